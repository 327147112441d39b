"""Recover from exceptions raised by handlers and answer 500."""

from __future__ import annotations

import io
import re
import sys
import traceback
from http import HTTPStatus
from typing import Any

from ..web import AbortHandler, Handler, Request, ResponseWriter
from .logger import get_log_entry
from .terminal import B_BLUE, B_CYAN, B_GREEN, B_MAGENTA, B_RED, B_WHITE, N_YELLOW, color_write

_TRACEBACK_HEADER = "Traceback (most recent call last):"
_FRAME = re.compile(r'^\s*File "(?P<path>.+)", line (?P<line>\d+), in (?P<func>.+?)\s*$')


def _split_path(path: str) -> tuple[str, str]:
    sep = max(path.rfind("/"), path.rfind("\\"))
    return path[: sep + 1], path[sep + 1:]


class PrettyStack:
    """Renders a traceback innermost frame first, marking where the exception was raised."""

    def parse(self, stack: str, rvr: Any) -> str:
        """Render the last traceback in ``stack`` for the raised value ``rvr``.

        Raises ValueError if ``stack`` holds no frames.
        """
        block = stack.rsplit(_TRACEBACK_HEADER, 1)[-1]
        frames = [m for m in map(_FRAME.match, block.splitlines()) if m]
        if not frames:
            raise ValueError("no stack frames found")

        buf = io.StringIO()
        color_write(buf, False, B_RED, "\n")
        color_write(buf, True, B_CYAN, " panic: ")
        color_write(buf, True, B_BLUE, "%s", rvr)
        color_write(buf, False, B_WHITE, "\n \n")
        for num, frame in enumerate(reversed(frames)):
            self._decorate_call(buf, frame["path"], frame["func"], num == 0)
            self._decorate_source(buf, frame["path"], frame["line"], num == 0)
        return buf.getvalue()

    @staticmethod
    def _decorate_call(buf: io.StringIO, path: str, func: str, first: bool) -> None:
        module = _split_path(path)[1].removesuffix(".py")
        if first:
            color_write(buf, True, B_RED, " -> ")
            module_color, func_color = B_MAGENTA, B_RED
        else:
            color_write(buf, True, B_WHITE, "    ")
            module_color, func_color = N_YELLOW, B_GREEN
        color_write(buf, True, module_color, "%s", module)
        color_write(buf, True, func_color, "%s\n", "." + func)

    @staticmethod
    def _decorate_source(buf: io.StringIO, path: str, line: str, first: bool) -> None:
        directory, filename = _split_path(path)
        if first:
            color_write(buf, True, B_RED, " ->   ")
            file_color, line_color = B_RED, B_MAGENTA
        else:
            color_write(buf, False, B_WHITE, "      ")
            file_color, line_color = B_CYAN, B_GREEN
        color_write(buf, True, B_WHITE, "%s", directory)
        color_write(buf, True, file_color, "%s", filename)
        color_write(buf, True, line_color, "%s", ":" + line)
        if first:
            buf.write("\n")
        buf.write("\n")


def _stack_text(rvr: Any) -> str:
    if isinstance(rvr, BaseException) and rvr.__traceback__ is not None:
        return "".join(traceback.format_exception(type(rvr), rvr, rvr.__traceback__))
    return "".join(traceback.format_stack())


def print_pretty_stack(rvr: Any) -> None:
    """Write a readable traceback for ``rvr`` to standard error."""
    stack = _stack_text(rvr)
    try:
        out = PrettyStack().parse(stack, rvr)
    except ValueError:
        sys.stderr.write(stack)
        return
    sys.stderr.write(out)


def recoverer(next: Handler) -> Handler:
    """Middleware that logs exceptions from ``next`` and answers 500.

    AbortHandler is re-raised untouched. A request log entry, if present,
    receives the exception; otherwise a traceback goes to standard error.
    """

    def handler(w: ResponseWriter, r: Request) -> None:
        try:
            next(w, r)
        except AbortHandler:
            raise
        except Exception as exc:
            entry = get_log_entry(r)
            if entry is not None:
                entry.panic(exc, traceback.format_exc())
            else:
                print_pretty_stack(exc)
            if r.headers.get("Connection") != "Upgrade":
                w.write_header(HTTPStatus.INTERNAL_SERVER_ERROR)

    return handler