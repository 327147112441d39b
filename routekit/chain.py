"""Composition of middleware stacks around endpoint handlers."""

from __future__ import annotations

from collections.abc import Iterable

from .web import Handler, Middleware, Request, ResponseWriter


class Middlewares(list):
    """A list of middlewares that can wrap an endpoint handler."""

    def handler(self, h: Handler) -> ChainHandler:
        """Wrap ``h`` with this middleware stack."""
        return ChainHandler(h, self)

    def handler_func(self, h: Handler) -> ChainHandler:
        """Wrap the handler function ``h`` with this middleware stack."""
        return ChainHandler(h, self)


class ChainHandler:
    """An endpoint handler wrapped by a middleware stack."""

    def __init__(self, endpoint: Handler, middlewares: Iterable[Middleware]):
        self.endpoint = endpoint
        self.middlewares = middlewares if isinstance(middlewares, Middlewares) else Middlewares(middlewares)
        self._chain = _compose(self.middlewares, endpoint)

    def __call__(self, w: ResponseWriter, r: Request) -> None:
        self._chain(w, r)


def _compose(middlewares: list[Middleware], endpoint: Handler) -> Handler:
    """Wrap ``endpoint`` so the first middleware runs outermost."""
    handler = endpoint
    for middleware in reversed(middlewares):
        handler = middleware(handler)
    return handler


def chain(*args: Middleware) -> Middlewares:
    """Return a Middlewares stack from the given middlewares, in order."""
    return Middlewares(args)