"""Request logging: one line per request with status, size and duration."""

from __future__ import annotations

import io
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ..web import Handler, Headers, Middleware, Request, ResponseWriter
from .request_id import get_req_id
from .terminal import (
    B_BLUE,
    B_CYAN,
    B_GREEN,
    B_MAGENTA,
    B_RED,
    B_YELLOW,
    N_CYAN,
    N_GREEN,
    N_RED,
    N_YELLOW,
    color_write,
)
from .wrap_writer import new_wrap_response_writer


class _ContextKey:
    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __str__(self) -> str:
        return f"routekit/middleware context value {self.name}"

    __repr__ = __str__


LOG_ENTRY_CTX_KEY = _ContextKey("LogEntry")


@runtime_checkable
class LogEntry(Protocol):
    """Records the final log line when a request completes."""

    def write(self, status: int, nbytes: int, headers: Headers, elapsed: float, extra: Any) -> None:
        """Log the finished request; ``elapsed`` is in seconds."""

    def panic(self, value: Any, stack: str) -> None:
        """Log an exception raised while handling the request."""


@runtime_checkable
class LogFormatter(Protocol):
    """Starts a LogEntry for each request."""

    def new_log_entry(self, r: Request) -> LogEntry:
        """Return the entry for ``r``."""


def _fraction(value: int, unit: int) -> str:
    whole, rem = divmod(value, unit)
    if not rem:
        return str(whole)
    digits = str(rem).zfill(len(str(unit)) - 1).rstrip("0")
    return f"{whole}.{digits}"


def _format_duration(seconds: float) -> str:
    ns = round(seconds * 1_000_000_000)
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_fraction(ns, 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_fraction(ns, 1_000_000)}ms"
    minutes, rem = divmod(ns, 60 * 1_000_000_000)
    hours, minutes = divmod(minutes, 60)
    text = f"{_fraction(rem, 1_000_000_000)}s"
    if hours:
        text = f"{hours}h{minutes}m{text}"
    elif minutes:
        text = f"{minutes}m{text}"
    return sign + text


def _stdout_logger(message: str) -> None:
    print(f"{time.strftime('%Y/%m/%d %H:%M:%S')} {message}")


class _DefaultLogEntry:
    def __init__(self, formatter: DefaultLogFormatter, request: Request, use_color: bool):
        self.formatter = formatter
        self.request = request
        self.use_color = use_color
        self.buf = io.StringIO()

    def write(self, status: int, nbytes: int, headers: Headers, elapsed: float, extra: Any) -> None:
        if status < 200:
            color = B_BLUE
        elif status < 300:
            color = B_GREEN
        elif status < 400:
            color = B_CYAN
        elif status < 500:
            color = B_YELLOW
        else:
            color = B_RED
        color_write(self.buf, self.use_color, color, "%03d", status)
        color_write(self.buf, self.use_color, B_BLUE, " %dB", nbytes)
        self.buf.write(" in ")
        if elapsed < 0.5:
            color = N_GREEN
        elif elapsed < 5:
            color = N_YELLOW
        else:
            color = N_RED
        color_write(self.buf, self.use_color, color, "%s", _format_duration(elapsed))
        self.formatter.logger(self.buf.getvalue())

    def panic(self, value: Any, stack: str) -> None:
        from .recoverer import print_pretty_stack

        print_pretty_stack(value)


@dataclass
class DefaultLogFormatter:
    """A LogFormatter writing coloured one-line entries to ``logger``."""

    logger: Callable[[str], None] = _stdout_logger
    no_color: bool = False

    def new_log_entry(self, r: Request) -> LogEntry:
        use_color = not self.no_color
        entry = _DefaultLogEntry(self, r, use_color)
        buf = entry.buf
        req_id = get_req_id(r.context)
        if req_id:
            color_write(buf, use_color, N_YELLOW, "[%s] ", req_id)
        color_write(buf, use_color, N_CYAN, '"')
        color_write(buf, use_color, B_MAGENTA, "%s ", r.method)
        scheme = "https" if r.tls else "http"
        color_write(buf, use_color, N_CYAN, '%s://%s%s %s" ', scheme, r.host, r.request_uri, r.proto)
        buf.write("from ")
        buf.write(r.remote_addr)
        buf.write(" - ")
        return entry


def get_log_entry(r: Request) -> LogEntry | None:
    """Return the LogEntry stored on the request, if any."""
    return r.context.value(LOG_ENTRY_CTX_KEY)


def with_log_entry(r: Request, entry: LogEntry) -> Request:
    """Return a copy of ``r`` carrying ``entry``."""
    return r.with_context(r.context.with_value(LOG_ENTRY_CTX_KEY, entry))


def request_logger(formatter: LogFormatter) -> Middleware:
    """Return a middleware logging each request through ``formatter``."""

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            entry = formatter.new_log_entry(r)
            ww = new_wrap_response_writer(w, r.proto_major)
            started = time.perf_counter()
            try:
                next(ww, with_log_entry(r, entry))
            finally:
                entry.write(ww.status(), ww.bytes_written(), ww.headers, time.perf_counter() - started, None)

        return handler

    return middleware


# Used by ``logger``; may be reassigned for a custom logging setup.
DEFAULT_LOGGER: Middleware = request_logger(
    DefaultLogFormatter(logger=_stdout_logger, no_color=os.name == "nt")
)


def logger(next: Handler) -> Handler:
    """Middleware logging each request with DEFAULT_LOGGER.

    Place it before middlewares that change the response, such as recoverer.
    """
    return DEFAULT_LOGGER(next)