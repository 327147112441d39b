"""ANSI colour output for log lines, enabled only when stdout is a terminal."""

from __future__ import annotations

import os
import stat
import sys
from typing import Any, TextIO

# Normal colours
N_BLACK = "\033[30m"
N_RED = "\033[31m"
N_GREEN = "\033[32m"
N_YELLOW = "\033[33m"
N_BLUE = "\033[34m"
N_MAGENTA = "\033[35m"
N_CYAN = "\033[36m"
N_WHITE = "\033[37m"

# Bright colours
B_BLACK = "\033[30;1m"
B_RED = "\033[31;1m"
B_GREEN = "\033[32;1m"
B_YELLOW = "\033[33;1m"
B_BLUE = "\033[34;1m"
B_MAGENTA = "\033[35;1m"
B_CYAN = "\033[36;1m"
B_WHITE = "\033[37;1m"

RESET = "\033[0m"


def detect_tty() -> bool:
    """Whether standard output is a character device, taken to mean a terminal."""
    try:
        mode = os.fstat(sys.stdout.fileno()).st_mode
    except (AttributeError, OSError, ValueError):
        return False
    return stat.S_ISCHR(mode)


IS_TTY: bool = detect_tty()


def color_write(buf: TextIO, use_color: bool, color: str, fmt: str, *args: Any) -> None:
    """Write ``fmt % args`` to ``buf``, wrapped in ``color`` when colour is on."""
    colored = IS_TTY and use_color
    if colored:
        buf.write(color)
    buf.write(fmt % args if args else fmt)
    if colored:
        buf.write(RESET)