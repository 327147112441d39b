"""HTTP basic authentication."""

from __future__ import annotations

import hmac
from collections.abc import Mapping
from http import HTTPStatus

from ..web import Handler, Middleware, Request, ResponseWriter


def _auth_failed(w: ResponseWriter, realm: str) -> None:
    w.headers.add("WWW-Authenticate", f'Basic realm="{realm}"')
    w.write_header(HTTPStatus.UNAUTHORIZED)


def basic_auth(realm: str, creds: Mapping[str, str]) -> Middleware:
    """Return a middleware that requires basic auth matching one of ``creds`` (user -> secret)."""

    def middleware(next: Handler) -> Handler:
        def handler(w: ResponseWriter, r: Request) -> None:
            given = r.basic_auth()
            if given is None:
                _auth_failed(w, realm)
                return
            user, supplied = given
            expected = creds.get(user)
            if expected is None or not hmac.compare_digest(supplied.encode(), expected.encode()):
                _auth_failed(w, realm)
                return
            next(w, r)

        return handler

    return middleware