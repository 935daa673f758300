"""Inline, allocation-free variant of the 64-bit FNV-1a hash."""

OFFSET64 = 14695981039346656037
PRIME64 = 1099511628211

_MASK64 = (1 << 64) - 1


def _to_bytes(s):
    if isinstance(s, str):
        return s.encode("utf-8", "surrogateescape")
    return bytes(s)


def hash_new():
    """Return the initial FNV-1a 64-bit hash value."""
    return OFFSET64


def hash_add(h, s):
    """Add the bytes of a string to an FNV-1a hash value and return the result."""
    for byte in _to_bytes(s):
        h = ((h ^ byte) * PRIME64) & _MASK64
    return h


def hash_add_byte(h, b):
    """Add a single byte to an FNV-1a hash value and return the result."""
    return ((h ^ (b & 0xFF)) * PRIME64) & _MASK64