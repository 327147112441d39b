"""Choose a middleware by matching request header values."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..web import Handler, Middleware, Request, ResponseWriter


@dataclass(frozen=True)
class Pattern:
    """An exact value, or a prefix and suffix around a single ``*``."""

    prefix: str = ""
    suffix: str = ""
    wildcard: bool = False

    def match(self, value: str) -> bool:
        """Whether ``value`` matches the pattern."""
        if not self.wildcard:
            return self.prefix == value
        return (
            len(value) >= len(self.prefix) + len(self.suffix)
            and value.startswith(self.prefix)
            and value.endswith(self.suffix)
        )


def new_pattern(value: str) -> Pattern:
    """Build a Pattern; the first ``*`` in ``value`` is a wildcard."""
    prefix, star, suffix = value.partition("*")
    if not star:
        return Pattern(prefix=value)
    return Pattern(prefix=prefix, suffix=suffix, wildcard=True)


@dataclass
class HeaderRoute:
    """A middleware chosen when a header value matches one pattern or any of several."""

    middleware: Middleware | None = None
    match_one: Pattern = field(default_factory=Pattern)
    match_any: list[Pattern] = field(default_factory=list)

    def is_match(self, value: str) -> bool:
        """Whether ``value`` selects this route."""
        if self.match_any:
            return any(p.match(value) for p in self.match_any)
        return self.match_one.match(value)


class HeaderRouter(dict):
    """Header name (lower case) to the routes tried for its value, in order."""

    def route(self, header: str, match: str, middleware: Middleware) -> HeaderRouter:
        """Use ``middleware`` when ``header`` matches ``match``."""
        self.setdefault(header.lower(), []).append(
            HeaderRoute(middleware=middleware, match_one=new_pattern(match))
        )
        return self

    def route_any(self, header: str, match: Iterable[str], middleware: Middleware) -> HeaderRouter:
        """Use ``middleware`` when ``header`` matches any of ``match``."""
        self.setdefault(header.lower(), []).append(
            HeaderRoute(middleware=middleware, match_any=[new_pattern(m) for m in match])
        )
        return self

    def route_default(self, middleware: Middleware) -> HeaderRouter:
        """Use ``middleware`` when no header route matches."""
        self["*"] = [HeaderRoute(middleware=middleware)]
        return self

    def handler(self, next: Handler) -> Handler:
        """Return a handler sending each request through the first matching route."""

        def serve(w: ResponseWriter, r: Request) -> None:
            if not self:
                next(w, r)
                return
            for header, matchers in self.items():
                value = r.headers.get(header)
                if not value:
                    continue
                value = value.lower()
                for matcher in matchers:
                    if matcher.is_match(value):
                        matcher.middleware(next)(w, r)
                        return
            default = self.get("*")
            if not default or default[0].middleware is None:
                next(w, r)
                return
            default[0].middleware(next)(w, r)

        return serve


def route_headers() -> HeaderRouter:
    """Return an empty HeaderRouter."""
    return HeaderRouter()