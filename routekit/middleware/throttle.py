"""Limit the number of requests processed at once, with an optional backlog."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from http import HTTPStatus

from ..web import Handler, Middleware, Request, ResponseWriter, error

ERR_CAPACITY_EXCEEDED = "Server capacity exceeded."
ERR_TIMED_OUT = "Timed out while waiting for a pending request to complete."
ERR_CONTEXT_CANCELED = "Context was canceled."

DEFAULT_BACKLOG_TIMEOUT = 60.0

_POLL = 0.01


@dataclass
class ThrottleOpts:
    """Throttling options; times are in seconds."""

    limit: int
    backlog_limit: int = 0
    backlog_timeout: float = 0.0
    retry_after_fn: Callable[[bool], float] | None = None


class _Throttler:
    def __init__(self, opts: ThrottleOpts):
        self.tokens = threading.Semaphore(opts.limit)
        self.backlog_tokens = threading.Semaphore(opts.limit + opts.backlog_limit)
        self.backlog_timeout = opts.backlog_timeout
        self.retry_after_fn = opts.retry_after_fn

    def reject(self, w: ResponseWriter, message: str, ctx_done: bool) -> None:
        if self.retry_after_fn is not None:
            w.headers.set("Retry-After", str(int(self.retry_after_fn(ctx_done))))
        error(w, message, HTTPStatus.TOO_MANY_REQUESTS)

    def wait_for_token(self, w: ResponseWriter, r: Request) -> bool:
        deadline = time.monotonic() + self.backlog_timeout
        while True:
            if self.tokens.acquire(blocking=False):
                return True
            if r.context.done():
                self.reject(w, ERR_CONTEXT_CANCELED, True)
                return False
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.reject(w, ERR_TIMED_OUT, False)
                return False
            if self.tokens.acquire(timeout=min(remaining, _POLL)):
                return True


def throttle_with_opts(opts: ThrottleOpts) -> Middleware:
    """Return a middleware limiting in-flight requests as ``opts`` describes."""
    if opts.limit < 1:
        raise ValueError("throttle expects limit > 0")
    if opts.backlog_limit < 0:
        raise ValueError("throttle expects backlog_limit to be positive")
    throttler = _Throttler(opts)

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            if r.context.done():
                throttler.reject(w, ERR_CONTEXT_CANCELED, True)
                return
            if not throttler.backlog_tokens.acquire(blocking=False):
                throttler.reject(w, ERR_CAPACITY_EXCEEDED, False)
                return
            try:
                if not throttler.wait_for_token(w, r):
                    return
                try:
                    next(w, r)
                finally:
                    throttler.tokens.release()
            finally:
                throttler.backlog_tokens.release()

        return handler

    return middleware


def throttle(limit: int) -> Middleware:
    """Return a middleware processing at most ``limit`` requests at a time."""
    return throttle_with_opts(ThrottleOpts(limit=limit, backlog_timeout=DEFAULT_BACKLOG_TIMEOUT))


def throttle_backlog(limit: int, backlog_limit: int, backlog_timeout: float) -> Middleware:
    """Return a middleware processing ``limit`` requests at once, holding up to ``backlog_limit`` more."""
    return throttle_with_opts(
        ThrottleOpts(limit=limit, backlog_limit=backlog_limit, backlog_timeout=backlog_timeout)
    )