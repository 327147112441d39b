"""Headers that keep responses out of caches."""

from __future__ import annotations

from email.utils import formatdate

from ..web import Handler, Request, ResponseWriter

EPOCH = formatdate(0, usegmt=True)

_CACHE_DIRECTIVES = (
    "no-cache",
    "no-store",
    "no-transform",
    "must-revalidate",
    "private",
    "max-age=0",
)

NO_CACHE_HEADERS = dict(
    [
        ("Expires", EPOCH),
        ("Cache-Control", ", ".join(_CACHE_DIRECTIVES)),
        ("Pragma", _CACHE_DIRECTIVES[0]),
        ("X-Accel-Expires", "0"),
    ]
)

ETAG_HEADERS = ("ETag",) + tuple(
    f"If-{suffix}"
    for suffix in ("Modified-Since", "Match", "None-Match", "Range", "Unmodified-Since")
)


def no_cache(h: Handler) -> Handler:
    """Middleware that strips conditional request headers and sets no-cache response headers."""

    def handler(w: ResponseWriter, r: Request) -> None:
        for name in (n for n in ETAG_HEADERS if r.headers.get(n)):
            r.headers.delete(name)
        for name, value in NO_CACHE_HEADERS.items():
            w.headers.set(name, value)
        h(w, r)

    return handler