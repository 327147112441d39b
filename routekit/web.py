"""HTTP primitives shared by the router and its middlewares.

Handlers are plain callables ``handler(w, r)`` taking a response writer and a
request; middlewares are callables that take a handler and return a new one.
"""

from __future__ import annotations

import base64
import binascii
import dataclasses
import html
import io
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping
from http import HTTPStatus
from typing import Any, BinaryIO, Protocol, Union, runtime_checkable
from urllib.parse import parse_qs, quote, unquote, urlsplit

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)

_PATH_SAFE = "/:@!$&'()*+,;=-._~"


def canonical_header_key(key: str) -> str:
    """Return the canonical form of a header name, e.g. ``content-type`` -> ``Content-Type``.

    Keys holding characters that are not valid in a header name are returned unchanged.
    """
    if any(c not in _TOKEN_CHARS for c in key):
        return key
    out = []
    upper = True
    for c in key:
        out.append(c.upper() if upper else c.lower())
        upper = c == "-"
    return "".join(out)


class Headers:
    """A case-insensitive, multi-valued mapping of HTTP header fields."""

    def __init__(self, items: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None):
        self._data: dict[str, list[str]] = {}
        if items is None:
            return
        pairs = items.items() if isinstance(items, Mapping) else items
        for key, value in pairs:
            if isinstance(value, (list, tuple)):
                for item in value:
                    self.add(key, item)
            else:
                self.add(key, value)

    def get(self, key: str) -> str:
        """Return the first value for ``key``, or an empty string."""
        values = self._data.get(canonical_header_key(key))
        return values[0] if values else ""

    def get_all(self, key: str) -> list[str]:
        """Return every value for ``key``."""
        return list(self._data.get(canonical_header_key(key), ()))

    def set(self, key: str, value: str) -> None:
        """Replace any values for ``key`` with ``value``."""
        self._data[canonical_header_key(key)] = [str(value)]

    def add(self, key: str, value: str) -> None:
        """Append ``value`` to the values for ``key``."""
        self._data.setdefault(canonical_header_key(key), []).append(str(value))

    def delete(self, key: str) -> None:
        """Remove all values for ``key``."""
        self._data.pop(canonical_header_key(key), None)

    def copy(self) -> Headers:
        """Return an independent copy."""
        clone = Headers()
        clone._data = {k: list(v) for k, v in self._data.items()}
        return clone

    def items(self) -> Iterator[tuple[str, list[str]]]:
        for key, values in self._data.items():
            yield key, list(values)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and canonical_header_key(key) in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"Headers({self._data!r})"


class Canceled(Exception):
    """The context was canceled."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceeded(Exception):
    """The context deadline passed."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class AbortHandler(Exception):
    """Raised by a handler to abort the response; never recovered from."""


class _Scope:
    """Cancellation state shared by a context and its value-only children."""

    def __init__(self, parent: _Scope | None = None):
        self._event = threading.Event()
        self._err: Exception | None = None
        self._lock = threading.Lock()
        self._children: list[_Scope] = []
        self._timer: threading.Timer | None = None
        if parent is not None:
            parent._attach(self)

    def _attach(self, child: _Scope) -> None:
        with self._lock:
            if self._err is None:
                self._children.append(child)
                return
            err = self._err
        child.cancel(err)

    def start_timer(self, seconds: float) -> None:
        with self._lock:
            if self._err is not None:
                return
            timer = threading.Timer(seconds, self.cancel, args=(DeadlineExceeded(),))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self, err: Exception) -> None:
        with self._lock:
            if self._err is not None:
                return
            self._err = err
            children, self._children = self._children, []
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        self._event.set()
        for child in children:
            child.cancel(err)


_NO_KEY = object()


class Context:
    """A request-scoped carrier of values and cancellation."""

    __slots__ = ("_parent", "_scope", "_key", "_value")

    def __init__(self) -> None:
        self._parent: Context | None = None
        self._scope = _Scope()
        self._key: Any = _NO_KEY
        self._value: Any = None

    @classmethod
    def _derive(cls, parent: Context, scope: _Scope, key: Any = _NO_KEY, value: Any = None) -> Context:
        ctx = cls.__new__(cls)
        ctx._parent = parent
        ctx._scope = scope
        ctx._key = key
        ctx._value = value
        return ctx

    def with_value(self, key: Any, value: Any) -> Context:
        """Return a child context carrying ``key`` -> ``value``."""
        return Context._derive(self, self._scope, key, value)

    def value(self, key: Any) -> Any:
        """Return the value stored under ``key`` here or in an ancestor, else None."""
        ctx: Context | None = self
        while ctx is not None:
            if ctx._key is not _NO_KEY and ctx._key == key:
                return ctx._value
            ctx = ctx._parent
        return None

    def with_timeout(self, seconds: float) -> Context:
        """Return a child context canceled with DeadlineExceeded after ``seconds``."""
        scope = _Scope(self._scope)
        if seconds <= 0:
            scope.cancel(DeadlineExceeded())
        else:
            scope.start_timer(seconds)
        return Context._derive(self, scope)

    def cancel(self) -> None:
        """Cancel this context's scope and everything derived from it."""
        self._scope.cancel(Canceled())

    def done(self) -> bool:
        """Whether the context has been canceled or has timed out."""
        return self._scope._event.is_set()

    def err(self) -> Exception | None:
        """The reason the context ended, or None while it is live."""
        return self._scope._err

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context ends or ``timeout`` passes; return whether it ended."""
        return self._scope._event.wait(timeout)


def background() -> Context:
    """Return a fresh root context."""
    return Context()


@dataclasses.dataclass
class Request:
    """An incoming HTTP request."""

    method: str = "GET"
    path: str = "/"
    raw_path: str = ""
    raw_query: str = ""
    host: str = ""
    headers: Headers = dataclasses.field(default_factory=Headers)
    body: BinaryIO = dataclasses.field(default_factory=io.BytesIO)
    content_length: int = 0
    remote_addr: str = ""
    request_uri: str = "/"
    proto: str = "HTTP/1.1"
    proto_major: int = 1
    proto_minor: int = 1
    tls: bool = False
    context: Context = dataclasses.field(default_factory=background)

    def with_context(self, ctx: Context) -> Request:
        """Return a shallow copy of the request bound to ``ctx``."""
        if ctx is None:
            raise ValueError("nil context")
        return dataclasses.replace(self, context=ctx)

    def basic_auth(self) -> tuple[str, str] | None:
        """Return ``(user, password)`` from a Basic Authorization header, or None."""
        auth = self.headers.get("Authorization")
        prefix = "Basic "
        if len(auth) < len(prefix) or auth[: len(prefix)].lower() != prefix.lower():
            return None
        try:
            decoded = base64.b64decode(auth[len(prefix):], validate=True)
        except (binascii.Error, ValueError):
            return None
        text = decoded.decode("utf-8", errors="replace")
        user, sep, rest = text.partition(":")
        if not sep:
            return None
        return user, rest

    def query(self) -> dict[str, list[str]]:
        """Parse the query string into a mapping of names to value lists."""
        return parse_qs(self.raw_query, keep_blank_values=True)


def new_request(
    method: str,
    target: str,
    body: bytes | str | BinaryIO | None = None,
    headers: Mapping[str, Any] | Headers | None = None,
) -> Request:
    """Build a server-side request for ``target``, as a test server would receive it."""
    parts = urlsplit(target)
    escaped = parts.path or "/"
    path = unquote(escaped)
    raw_path = escaped if quote(path, safe=_PATH_SAFE) != escaped else ""

    if body is None:
        stream: BinaryIO = io.BytesIO()
        length = 0
    elif isinstance(body, str):
        data = body.encode()
        stream, length = io.BytesIO(data), len(data)
    elif isinstance(body, (bytes, bytearray, memoryview)):
        data = bytes(body)
        stream, length = io.BytesIO(data), len(data)
    else:
        stream, length = body, -1

    if isinstance(headers, Headers):
        header_set = headers.copy()
    else:
        header_set = Headers(headers)

    return Request(
        method=method or "GET",
        path=path,
        raw_path=raw_path,
        raw_query=parts.query,
        host=parts.netloc or "example.com",
        headers=header_set,
        body=stream,
        content_length=length,
        remote_addr="192.0.2.1:1234",
        request_uri=target,
        tls=parts.scheme == "https",
    )


@runtime_checkable
class ResponseWriter(Protocol):
    """What a handler writes its response to."""

    headers: Headers

    def write(self, data: bytes) -> int:
        """Write body bytes, sending a 200 status first if none was sent."""

    def write_header(self, code: int) -> None:
        """Send the status code and headers."""


Handler = Callable[[ResponseWriter, Request], None]
Middleware = Callable[[Handler], Handler]


def _check_code(code: int) -> None:
    if code < 100 or code > 999:
        raise ValueError(f"invalid WriteHeader code {code}")


class ResponseRecorder:
    """A ResponseWriter that records what was written, for inspection."""

    def __init__(self) -> None:
        self.code = 200
        self.headers = Headers()
        self.body = bytearray()
        self.wrote_header = False
        self.flushed = False

    def write_header(self, code: int) -> None:
        _check_code(code)
        if self.wrote_header:
            return
        self.code = code
        self.wrote_header = True

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode()
        if not self.wrote_header:
            self.write_header(HTTPStatus.OK)
        self.body += data
        return len(data)

    def flush(self) -> None:
        if not self.wrote_header:
            self.write_header(HTTPStatus.OK)
        self.flushed = True

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def status_text(code: int) -> str:
    """Return the reason phrase for ``code``, or an empty string if it is unknown."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


def error(w: ResponseWriter, message: str, code: int) -> None:
    """Reply with ``message`` as a plain-text body and status ``code``."""
    w.headers.delete("Content-Length")
    w.headers.set("Content-Type", "text/plain; charset=utf-8")
    w.headers.set("X-Content-Type-Options", "nosniff")
    w.write_header(code)
    w.write((message + "\n").encode())


def _clean_path(p: str) -> str:
    if not p:
        return "."
    rooted = p.startswith("/")
    parts: list[str] = []
    for segment in p.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            elif not rooted:
                parts.append("..")
            continue
        parts.append(segment)
    joined = "/".join(parts)
    if rooted:
        return "/" + joined
    return joined or "."


def _hex_escape_non_ascii(s: str) -> str:
    return "".join(c if ord(c) < 128 else quote(c) for c in s)


def redirect(w: ResponseWriter, r: Request, url: str, code: int) -> None:
    """Reply with a redirect to ``url``, resolving relative paths against the request."""
    parts = urlsplit(url)
    if not parts.scheme and not parts.netloc:
        old_path = r.path or "/"
        if not url.startswith("/"):
            old_dir = old_path[: old_path.rfind("/") + 1]
            url = old_dir + url
        url, qmark, query = url.partition("?")
        trailing = url.endswith("/")
        url = _clean_path(url)
        if trailing and not url.endswith("/"):
            url += "/"
        url += qmark + query

    had_content_type = "Content-Type" in w.headers
    w.headers.set("Location", _hex_escape_non_ascii(url))
    if not had_content_type and r.method in ("GET", "HEAD"):
        w.headers.set("Content-Type", "text/html; charset=utf-8")
    w.write_header(code)
    if not had_content_type and r.method == "GET":
        body = f'<a href="{html.escape(url)}">{status_text(code)}</a>.\n'
        w.write((body + "\n").encode())


@runtime_checkable
class Routes(Protocol):
    """A router that can be traversed and matched against."""

    def routes(self) -> list[Any]:
        """Return the routing tree in a traversable form."""

    def middlewares(self) -> list[Middleware]:
        """Return the middlewares in use by the router."""

    def match(self, rctx: Any, method: str, path: str) -> bool:
        """Whether a handler matches ``method`` and ``path``, without running it."""


BodyLike = Union[bytes, str, BinaryIO, None]