"""Request content checks: charset, encoding and type allow-lists, and a header setter."""

from __future__ import annotations

from http import HTTPStatus

from ..web import Handler, Middleware, Request, ResponseWriter


def split_trimmed(text: str, sep: str) -> tuple[str, str]:
    """Split ``text`` at the first ``sep`` into two whitespace-trimmed parts."""
    head, found, tail = text.partition(sep)
    return head.strip(), tail.strip() if found else ""


def charset_matches(content_type: str, *charsets: str) -> bool:
    """Whether the charset of ``content_type`` is one of ``charsets`` (lower case)."""
    _, rest = split_trimmed(content_type.lower(), ";")
    _, rest = split_trimmed(rest, "charset=")
    charset, _ = split_trimmed(rest, ";")
    return charset in charsets


def content_charset(*charsets: str) -> Middleware:
    """Return a middleware answering 415 unless the request charset is allowed.

    An empty string among ``charsets`` allows requests with no charset.
    """
    allowed = tuple(c.lower() for c in charsets)

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            if not charset_matches(r.headers.get("Content-Type"), *allowed):
                w.write_header(HTTPStatus.UNSUPPORTED_MEDIA_TYPE)
                return
            next(w, r)

        return handler

    return middleware


def allow_content_encoding(*encodings: str) -> Middleware:
    """Return a middleware answering 415 unless every request Content-Encoding is allowed."""
    allowed = {e.lower().strip() for e in encodings}

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            if r.content_length == 0:
                next(w, r)
                return
            for encoding in r.headers.get_all("Content-Encoding"):
                if encoding.lower().strip() not in allowed:
                    w.write_header(HTTPStatus.UNSUPPORTED_MEDIA_TYPE)
                    return
            next(w, r)

        return handler

    return middleware


def allow_content_type(*content_types: str) -> Middleware:
    """Return a middleware answering 415 unless the request Content-Type is allowed."""
    allowed = {t.lower().strip() for t in content_types}

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            if r.content_length == 0:
                next(w, r)
                return
            media_type = r.headers.get("Content-Type").strip().lower().partition(";")[0]
            if media_type in allowed:
                next(w, r)
                return
            w.write_header(HTTPStatus.UNSUPPORTED_MEDIA_TYPE)

        return handler

    return middleware


def set_header(key: str, value: str) -> Middleware:
    """Return a middleware that sets a response header before calling the next handler."""

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            w.headers.set(key, value)
            next(w, r)

        return handler

    return middleware