"""General-purpose middleware builders."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ..web import Handler, Middleware, Request, ResponseWriter


def from_handler(h: Handler) -> Middleware:
    """Return a middleware that serves every request with ``h``, ignoring the next handler."""

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            h(w, r)

        return handler

    return middleware


def with_value(key: Any, val: Any) -> Middleware:
    """Return a middleware that stores ``key`` -> ``val`` on the request context."""

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            next(w, r.with_context(r.context.with_value(key, val)))

        return handler

    return middleware


def maybe(mw: Middleware, maybe_fn: Callable[[Request], bool]) -> Middleware:
    """Return a middleware that applies ``mw`` only to requests for which ``maybe_fn`` is true."""

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            if maybe_fn(r):
                mw(next)(w, r)
            else:
                next(w, r)

        return handler

    return middleware