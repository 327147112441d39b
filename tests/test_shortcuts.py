import re

import pytest

from routekit.middleware.shortcuts import get_head, heartbeat, page_route
from routekit.routing import ROUTE_CTX_KEY, new_route_context, route_context, url_param
from routekit.web import ResponseRecorder, error, new_request


def _compile(pattern):
    pieces = re.split(r"\{(\w+)\}", pattern)
    out = [f"(?P<{piece}>[^/]+)" if i % 2 else re.escape(piece) for i, piece in enumerate(pieces)]
    return re.compile("".join(out) + r"\Z")


class _Router:
    def __init__(self):
        self.table = []

    def add(self, method, pattern, handler):
        self.table.append((method, _compile(pattern), handler))

    def routes(self):
        return list(self.table)

    def middlewares(self):
        return []

    def match(self, rctx, method, path):
        return any(m == method and rx.match(path) for m, rx, _ in self.table)

    def dispatch(self, w, r):
        rctx = route_context(r.context)
        path = rctx.route_path or r.path
        method = rctx.route_method or r.method
        for m, rx, handler in self.table:
            found = rx.match(path)
            if m == method and found:
                for key, value in found.groupdict().items():
                    rctx.url_params.add(key, value)
                handler(w, r)
                return
        error(w, "404 page not found", 404)

    def request(self, method, target):
        rctx = new_route_context()
        rctx.routes = self
        r = new_request(method, target)
        return r.with_context(r.context.with_value(ROUTE_CTX_KEY, rctx))


@pytest.fixture
def router():
    router = _Router()

    def hi(w, r):
        w.headers.set("X-Test", "yes")
        w.write(b"bye")

    def article(w, r):
        article_id = url_param(r, "id")
        w.headers.set("X-Article", article_id)
        w.write(("article:" + article_id).encode())

    def user_head(w, r):
        w.headers.set("X-User", "-")
        w.write(b"user")

    def user_get(w, r):
        user_id = url_param(r, "id")
        w.headers.set("X-User", user_id)
        w.write(("user:" + user_id).encode())

    router.add("GET", "/hi", hi)
    router.add("GET", "/articles/{id}", article)
    router.add("HEAD", "/users/{id}", user_head)
    router.add("GET", "/users/{id}", user_get)
    return router


def test_get_head_plain_get(router):
    w = ResponseRecorder()
    get_head(router.dispatch)(w, router.request("GET", "/hi"))
    assert w.text == "bye"


def test_get_head_falls_back_to_get(router):
    w = ResponseRecorder()
    get_head(router.dispatch)(w, router.request("HEAD", "/hi"))
    assert w.headers.get("X-Test") == "yes"
    assert w.code == 200


def test_get_head_not_found(router):
    w = ResponseRecorder()
    get_head(router.dispatch)(w, router.request("GET", "/"))
    assert w.text == "404 page not found\n"
    w = ResponseRecorder()
    get_head(router.dispatch)(w, router.request("HEAD", "/"))
    assert w.code == 404


def test_get_head_with_params(router):
    w = ResponseRecorder()
    get_head(router.dispatch)(w, router.request("GET", "/articles/5"))
    assert w.text == "article:5"
    w = ResponseRecorder()
    get_head(router.dispatch)(w, router.request("HEAD", "/articles/5"))
    assert w.headers.get("X-Article") == "5"


def test_get_head_prefers_head_route(router):
    w = ResponseRecorder()
    get_head(router.dispatch)(w, router.request("GET", "/users/1"))
    assert w.text == "user:1"
    w = ResponseRecorder()
    get_head(router.dispatch)(w, router.request("HEAD", "/users/1"))
    assert w.headers.get("X-User") == "-"


def _next(w, r):
    w.write(b"next")


@pytest.mark.parametrize("method", ["GET", "HEAD"])
def test_heartbeat_answers(method):
    w = ResponseRecorder()
    heartbeat("/ping")(_next)(w, new_request(method, "/PING"))
    assert w.text == "."
    assert w.headers.get("Content-Type") == "text/plain"
    assert w.code == 200


def test_heartbeat_passes_other_requests():
    w = ResponseRecorder()
    heartbeat("/ping")(_next)(w, new_request("POST", "/ping"))
    assert w.text == "next"
    w = ResponseRecorder()
    heartbeat("/ping")(_next)(w, new_request("GET", "/pong"))
    assert w.text == "next"


def test_page_route():
    def page(w, r):
        w.write(b"page")

    mw = page_route("/About", page)
    w = ResponseRecorder()
    mw(_next)(w, new_request("GET", "/about"))
    assert w.text == "page"
    w = ResponseRecorder()
    mw(_next)(w, new_request("POST", "/about"))
    assert w.text == "next"