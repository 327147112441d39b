"""Cancel the request context after a time limit."""

from __future__ import annotations

from http import HTTPStatus

from ..web import DeadlineExceeded, Handler, Middleware, Request, ResponseWriter


def timeout(seconds: float) -> Middleware:
    """Return a middleware that cancels the request context after ``seconds``.

    If the deadline passed, a 504 Gateway Timeout status is written once the
    handler returns. Handlers must watch ``r.context`` for the signal.
    """

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            ctx = r.context.with_timeout(seconds)
            try:
                next(w, r.with_context(ctx))
            finally:
                ctx.cancel()
                if isinstance(ctx.err(), DeadlineExceeded):
                    w.write_header(HTTPStatus.GATEWAY_TIMEOUT)

        return handler

    return middleware