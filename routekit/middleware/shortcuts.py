"""Middlewares that answer or redirect certain requests before routing."""

from __future__ import annotations

from http import HTTPStatus

from ..routing import new_route_context, route_context
from ..web import Handler, Middleware, Request, ResponseWriter


def get_head(next: Handler) -> Handler:
    """Middleware routing HEAD requests with no HEAD route to the GET handler."""

    def handler(w: ResponseWriter, r: Request) -> None:
        if r.method == "HEAD":
            rctx = route_context(r.context)
            if rctx is None or rctx.routes is None:
                raise LookupError("get_head needs a routing context with routes")
            route_path = rctx.route_path or r.raw_path or r.path
            lookahead = new_route_context()
            if not rctx.routes.match(lookahead, "HEAD", route_path):
                rctx.route_method = "GET"
                rctx.route_path = route_path
        next(w, r)

    return handler


def heartbeat(endpoint: str) -> Middleware:
    """Return a middleware answering GET or HEAD on ``endpoint`` with a plain ``.``."""
    wanted = endpoint.casefold()

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            if r.method in ("GET", "HEAD") and r.path.casefold() == wanted:
                w.headers.set("Content-Type", "text/plain")
                w.write_header(HTTPStatus.OK)
                w.write(b".")
                return
            next(w, r)

        return handler

    return middleware


def page_route(path: str, handler: Handler) -> Middleware:
    """Return a middleware serving GET requests on ``path`` with ``handler``."""
    wanted = path.casefold()

    def middleware(next: Handler) -> Handler:
        def serve(w: ResponseWriter, r: Request) -> None:
            if r.method == "GET" and r.path.casefold() == wanted:
                handler(w, r)
                return
            next(w, r)

        return serve

    return middleware