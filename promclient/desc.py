"""Metric descriptors: the immutable metadata shared by metrics."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .fnv import hash_add, hash_add_byte, hash_new

SEPARATOR_BYTE = 255
RESERVED_LABEL_PREFIX = "__"

_METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def _as_text(value):
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "surrogateescape")
    return value


def _go_quote(value):
    """Quote a string with Go-style escapes."""
    out = []
    for ch in _as_text(value):
        cp = ord(ch)
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif 0xDC80 <= cp <= 0xDCFF:
            out.append(f"\\x{cp - 0xDC00:02x}")
        elif ch.isprintable():
            out.append(ch)
        elif cp < 0x80:
            out.append(f"\\x{cp:02x}")
        elif cp < 0x10000:
            out.append(f"\\u{cp:04x}")
        else:
            out.append(f"\\U{cp:08x}")
    return '"' + "".join(out) + '"'


def _is_valid_utf8(value):
    try:
        if isinstance(value, (bytes, bytearray)):
            bytes(value).decode("utf-8")
        else:
            value.encode("utf-8")
    except UnicodeError:
        return False
    return True


@dataclass
class Opts:
    """Options shared by the constructors of the basic metric types."""

    namespace: str = ""
    subsystem: str = ""
    name: str = ""
    help: str = ""
    const_labels: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Desc:
    """Immutable metadata of a metric.

    Errors found while building it are kept in ``err`` and reported when the
    descriptor is registered.
    """

    fq_name: str = ""
    help: str = ""
    const_label_pairs: tuple = ()
    variable_labels: tuple = ()
    id: int = 0
    dim_hash: int = 0
    err: Exception | None = None

    def __str__(self):
        const = ",".join(f"{name}={_go_quote(value)}" for name, value in self.const_label_pairs)
        variable = "[" + " ".join(self.variable_labels) + "]"
        return (
            f"Desc{{fqName: {_go_quote(self.fq_name)}, help: {_go_quote(self.help)}, "
            f"constLabels: {{{const}}}, variableLabels: {variable}}}"
        )


def build_fq_name(namespace, subsystem, name):
    """Join the non-empty parts with underscores; empty if name is empty."""
    if not name:
        return ""
    return "_".join(part for part in (namespace, subsystem, name) if part)


def is_valid_metric_name(name):
    """Return whether name is a valid metric name."""
    return bool(name) and _METRIC_NAME_RE.match(name) is not None


def check_label_name(name):
    """Return whether name is a valid, non-reserved label name."""
    return (
        bool(name)
        and _LABEL_NAME_RE.match(name) is not None
        and not name.startswith(RESERVED_LABEL_PREFIX)
    )


def validate_label_values(values, expected):
    """Raise ValueError if the count is wrong or a value is not valid UTF-8."""
    values = list(values)
    if len(values) != expected:
        raise ValueError(
            f"inconsistent label cardinality: expected {expected} label values "
            f"but got {len(values)} in {[_as_text(v) for v in values]!r}"
        )
    for value in values:
        if not _is_valid_utf8(value):
            raise ValueError(f"label value {_go_quote(value)} is not valid UTF-8")


def new_desc(fq_name, help, variable_labels=None, const_labels=None):
    """Build a Desc, recording any validation error in its ``err`` field."""
    variable_labels = tuple(variable_labels or ())
    const_labels = dict(const_labels or {})

    def invalid(err):
        return Desc(fq_name=fq_name, help=help, variable_labels=variable_labels, err=err)

    if not is_valid_metric_name(fq_name):
        return invalid(ValueError(f"{_go_quote(fq_name)} is not a valid metric name"))

    const_names = sorted(const_labels)
    for label_name in const_names:
        if not check_label_name(label_name):
            return invalid(
                ValueError(
                    f"{_go_quote(label_name)} is not a valid label name for metric "
                    f"{_go_quote(fq_name)}"
                )
            )

    label_values = [fq_name] + [const_labels[name] for name in const_names]
    try:
        validate_label_values(label_values, len(label_values))
    except ValueError as err:
        return invalid(err)

    label_names = list(const_names)
    label_name_set = set(const_names)
    for label_name in variable_labels:
        if not check_label_name(label_name):
            return invalid(
                ValueError(
                    f"{_go_quote(label_name)} is not a valid label name for metric "
                    f"{_go_quote(fq_name)}"
                )
            )
        # The prefix keeps variable and const dimensions from colliding.
        label_names.append("$" + label_name)
        label_name_set.add(label_name)
    if len(label_names) != len(label_name_set):
        return invalid(ValueError("duplicate label names"))

    h = hash_new()
    for value in label_values:
        h = hash_add_byte(hash_add(h, value), SEPARATOR_BYTE)
    desc_id = h

    h = hash_add_byte(hash_add(hash_new(), help), SEPARATOR_BYTE)
    for label_name in sorted(label_names):
        h = hash_add_byte(hash_add(h, label_name), SEPARATOR_BYTE)
    dim_hash = h

    return Desc(
        fq_name=fq_name,
        help=help,
        const_label_pairs=tuple((name, const_labels[name]) for name in const_names),
        variable_labels=variable_labels,
        id=desc_id,
        dim_hash=dim_hash,
    )


def new_invalid_desc(err):
    """Return a descriptor that carries err and fails registration."""
    return Desc(err=err)