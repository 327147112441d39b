"""Attach a unique request ID to each request's context."""

from __future__ import annotations

import base64
import itertools
import secrets
import socket
import threading

from ..web import Context, Handler, Request, ResponseWriter


class _RequestIDKey:
    __slots__ = ()

    def __repr__(self) -> str:
        return "REQUEST_ID_KEY"


REQUEST_ID_KEY = _RequestIDKey()

# The header carrying an incoming request ID; may be reassigned.
REQUEST_ID_HEADER = "X-Request-Id"


def _make_prefix() -> str:
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = ""
    hostname = hostname or "localhost"
    b64 = ""
    while len(b64) < 10:
        b64 = base64.b64encode(secrets.token_bytes(12)).decode("ascii")
        b64 = b64.replace("+", "").replace("/", "")
    return f"{hostname}/{b64[:10]}"


_PREFIX = _make_prefix()
_counter = itertools.count(1)
_counter_lock = threading.Lock()


def next_request_id() -> int:
    """Return the next number in the process-wide request sequence."""
    with _counter_lock:
        return next(_counter)


def request_id(next: Handler) -> Handler:
    """Middleware storing a request ID on the context, from the header or generated.

    Generated IDs look like ``host/random-000001``.
    """

    def handler(w: ResponseWriter, r: Request) -> None:
        rid = r.headers.get(REQUEST_ID_HEADER)
        if not rid:
            rid = f"{_PREFIX}-{next_request_id():06d}"
        next(w, r.with_context(r.context.with_value(REQUEST_ID_KEY, rid)))

    return handler


def get_req_id(ctx: Context | None) -> str:
    """Return the request ID stored on ``ctx``, or an empty string."""
    if ctx is None:
        return ""
    value = ctx.value(REQUEST_ID_KEY)
    return value if isinstance(value, str) else ""