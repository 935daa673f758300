"""A minimal HTTP client bound to the base address of a server."""

from __future__ import annotations

import posixpath
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from urllib.parse import quote, unquote, urlsplit, urlunsplit

DEFAULT_OPENER = urllib.request.build_opener()

_PATH_SAFE = "/:@$&+,;=!*'()"


@dataclass
class Config:
    """Settings for a new client.

    ``opener`` drives the HTTP requests; ``DEFAULT_OPENER`` is used when it is
    not given.
    """

    address: str = ""
    opener: urllib.request.OpenerDirector | None = None


@dataclass
class Request:
    """An HTTP request to send with a Client."""

    method: str
    url: str
    body: bytes | None = None
    headers: dict = field(default_factory=dict)


@dataclass
class Response:
    """The status, headers and full body of an HTTP response."""

    status_code: int
    headers: dict
    body: bytes


def _join(*elements):
    parts = [element for element in elements if element]
    if not parts:
        return ""
    cleaned = posixpath.normpath("/".join(parts))
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


class Client:
    """Builds endpoint URLs and performs requests. Safe to share between threads."""

    def __init__(self, config):
        parts = urlsplit(config.address)
        self._scheme = parts.scheme
        self._netloc = parts.netloc
        self._path = unquote(parts.path).rstrip("/")
        self._query = parts.query
        self._fragment = parts.fragment
        self.opener = config.opener if config.opener is not None else DEFAULT_OPENER

    def url(self, endpoint, args=None):
        """Return the URL of endpoint, with each ``:name`` replaced from args."""
        path = _join(self._path, endpoint)
        for name, value in (args or {}).items():
            path = path.replace(":" + name, value)
        return urlunsplit(
            (self._scheme, self._netloc, quote(path, safe=_PATH_SAFE), self._query, self._fragment)
        )

    def do(self, request, timeout=None):
        """Send request and return the response with its whole body.

        Responses with error status codes are returned, not raised; transport
        failures raise ``urllib.error.URLError`` or ``TimeoutError``.
        """
        native = urllib.request.Request(
            request.url,
            data=request.body,
            headers=dict(request.headers),
            method=request.method,
        )
        kwargs = {} if timeout is None else {"timeout": timeout}
        try:
            with self.opener.open(native, **kwargs) as resp:
                body = resp.read()
                return Response(resp.status, dict(resp.headers.items()), body)
        except urllib.error.HTTPError as err:
            with err:
                body = err.read()
                headers = dict(err.headers.items()) if err.headers is not None else {}
            return Response(err.code, headers, body)


def new_client(config):
    """Return a Client for the given configuration."""
    return Client(config)