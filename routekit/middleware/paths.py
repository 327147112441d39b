"""Middlewares that adjust the request path before routing."""

from __future__ import annotations

from http import HTTPStatus

from ..routing import route_context
from ..web import Handler, Middleware, Request, ResponseWriter, _clean_path, redirect


class _ContextKey:
    """A unique key for values stored on a Context by middlewares."""

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __str__(self) -> str:
        return f"routekit/middleware context value {self.name}"

    __repr__ = __str__


URL_FORMAT_CTX_KEY = _ContextKey("URLFormat")


def clean_path(next: Handler) -> Handler:
    """Middleware collapsing double slashes and dot segments in the routing path.

    ``/users//1`` and ``//users////1`` are both routed as ``/users/1``.
    """

    def handler(w: ResponseWriter, r: Request) -> None:
        rctx = route_context(r.context)
        if rctx is None:
            raise LookupError("clean_path needs a routing context on the request")
        if not rctx.route_path:
            rctx.route_path = _clean_path(r.raw_path or r.path)
        next(w, r)

    return handler


def path_rewrite(old: str, new: str) -> Middleware:
    """Return a middleware replacing the first ``old`` in the request path with ``new``."""

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            r.path = r.path.replace(old, new, 1)
            next(w, r)

        return handler

    return middleware


def _current_path(r: Request):
    rctx = route_context(r.context)
    if rctx is not None and rctx.route_path:
        return rctx, rctx.route_path
    return rctx, r.path


def strip_slashes(next: Handler) -> Handler:
    """Middleware removing a trailing slash from the path before routing continues."""

    def handler(w: ResponseWriter, r: Request) -> None:
        rctx, path = _current_path(r)
        if len(path) > 1 and path.endswith("/"):
            trimmed = path[:-1]
            if rctx is None:
                r.path = trimmed
            else:
                rctx.route_path = trimmed
        next(w, r)

    return handler


def redirect_slashes(next: Handler) -> Handler:
    """Middleware redirecting paths with a trailing slash to the same path without it."""

    def handler(w: ResponseWriter, r: Request) -> None:
        _, path = _current_path(r)
        if len(path) > 1 and path.endswith("/"):
            target = path[:-1]
            if r.raw_query:
                target = f"{target}?{r.raw_query}"
            redirect(w, r, f"//{r.host}{target}", HTTPStatus.MOVED_PERMANENTLY)
            return
        next(w, r)

    return handler


def url_format(next: Handler) -> Handler:
    """Middleware moving a path extension such as ``.json`` onto the context.

    The extension is stored under URL_FORMAT_CTX_KEY and trimmed from the routing path.
    """

    def handler(w: ResponseWriter, r: Request) -> None:
        rctx, path = _current_path(r)
        fmt = ""
        if path.find(".") > 0:
            base = max(path.rfind("/"), 0)
            idx = path[base:].rfind(".")
            if idx > 0:
                idx += base
                fmt = path[idx + 1:]
                if rctx is not None:
                    rctx.route_path = path[:idx]
                else:
                    r.path = path[:idx]
        next(w, r.with_context(r.context.with_value(URL_FORMAT_CTX_KEY, fmt)))

    return handler