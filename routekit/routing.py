"""Routing state carried on a request context: URL parameters and patterns."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .web import Context, Request, Routes


class _ContextKey:
    """A unique key for values stored on a Context."""

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __str__(self) -> str:
        return f"routekit context value {self.name}"

    __repr__ = __str__


ROUTE_CTX_KEY = _ContextKey("RouteContext")


@dataclass
class RouteParams:
    """Parallel lists of URL parameter names and values."""

    keys: list[str] = field(default_factory=list)
    values: list[str] = field(default_factory=list)

    def add(self, key: str, value: str) -> None:
        """Append a URL parameter."""
        self.keys.append(key)
        self.values.append(value)


@dataclass
class RouteContext:
    """Routing state tracked through a request's passage across routers."""

    routes: Routes | None = None
    route_path: str = ""
    route_method: str = ""
    url_params: RouteParams = field(default_factory=RouteParams)
    route_patterns: list[str] = field(default_factory=list)
    _parent_ctx: Context | None = field(default=None, init=False, repr=False, compare=False)
    _route_params: RouteParams = field(default_factory=RouteParams, init=False, repr=False)
    _route_pattern: str = field(default="", init=False, repr=False)
    _method_not_allowed: bool = field(default=False, init=False, repr=False)
    _methods_allowed: list[Any] = field(default_factory=list, init=False, repr=False)

    def reset(self) -> None:
        """Return the routing context to its initial state."""
        self.routes = None
        self.route_path = ""
        self.route_method = ""
        self.route_patterns.clear()
        self.url_params.keys.clear()
        self.url_params.values.clear()
        self._route_pattern = ""
        self._route_params.keys.clear()
        self._route_params.values.clear()
        self._method_not_allowed = False
        self._parent_ctx = None

    def url_param(self, key: str) -> str:
        """Return the most recently captured value for ``key``, or an empty string."""
        for name, value in zip(reversed(self.url_params.keys), reversed(self.url_params.values)):
            if name == key:
                return value
        return ""

    def route_pattern(self) -> str:
        """Return the full routing pattern matched so far, with inner wildcards removed."""
        pattern = replace_wildcards("".join(self.route_patterns))
        pattern = pattern.removesuffix("//")
        return pattern.removesuffix("/")


def replace_wildcards(p: str) -> str:
    """Replace every ``/*/`` in ``p`` with ``/`` until none remain."""
    while "/*/" in p:
        p = p.replace("/*/", "/")
    return p


def route_context(ctx: Context) -> RouteContext | None:
    """Return the RouteContext stored on ``ctx``, if any."""
    value = ctx.value(ROUTE_CTX_KEY)
    return value if isinstance(value, RouteContext) else None


def new_route_context() -> RouteContext:
    """Return an empty RouteContext."""
    return RouteContext()


def url_param(r: Request, key: str) -> str:
    """Return the URL parameter ``key`` of a request, or an empty string."""
    return url_param_from_ctx(r.context, key)


def url_param_from_ctx(ctx: Context, key: str) -> str:
    """Return the URL parameter ``key`` from a context, or an empty string."""
    rctx = route_context(ctx)
    return rctx.url_param(key) if rctx is not None else ""