"""Limit the size of request bodies."""

from __future__ import annotations

from typing import BinaryIO

from ..web import Handler, Middleware, Request, ResponseWriter


class RequestTooLarge(Exception):
    """The request body is larger than the allowed limit."""

    def __init__(self, limit: int):
        super().__init__("request body too large")
        self.limit = limit


class LimitedBody:
    """A body reader that raises RequestTooLarge once more than ``limit`` bytes are read."""

    def __init__(self, reader: BinaryIO, writer: ResponseWriter | None, limit: int):
        self._reader = reader
        self._writer = writer
        self._limit = limit
        self._remaining = max(limit, 0)
        self._exceeded = False

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes (all when negative) within the limit."""
        if self._exceeded:
            raise RequestTooLarge(self._limit)
        if size == 0:
            return b""
        want = self._remaining + 1
        if size is not None and size > 0:
            want = min(size, want)
        data = self._reader.read(want)
        if len(data) <= self._remaining:
            self._remaining -= len(data)
            return data
        self._remaining = 0
        self._exceeded = True
        notify = getattr(self._writer, "request_too_large", None)
        if callable(notify):
            notify()
        raise RequestTooLarge(self._limit)

    def close(self) -> None:
        close = getattr(self._reader, "close", None)
        if callable(close):
            close()


def request_size(limit: int) -> Middleware:
    """Return a middleware limiting request bodies to ``limit`` bytes."""

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            r.body = LimitedBody(r.body, w, limit)
            next(w, r)

        return handler

    return middleware