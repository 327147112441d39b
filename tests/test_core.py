from routekit.middleware.core import from_handler, maybe, with_value
from routekit.web import ResponseRecorder, new_request


def _endpoint(w, r):
    w.write(b"endpoint")


def _other(w, r):
    w.write(b"other")


def _tagging(next):
    def handler(w, r):
        w.headers.set("X-Tag", "on")
        next(w, r)

    return handler


def test_from_handler_replaces_next():
    w = ResponseRecorder()
    from_handler(_other)(_endpoint)(w, new_request("GET", "/"))
    assert w.text == "other"


def test_with_value_sets_context_value():
    seen = {}

    def endpoint(w, r):
        seen["value"] = r.context.value("answer")

    req = new_request("GET", "/")
    with_value("answer", 42)(endpoint)(ResponseRecorder(), req)
    assert seen["value"] == 42
    assert req.context.value("answer") is None


def test_maybe_applies_when_true():
    w = ResponseRecorder()
    handler = maybe(_tagging, lambda r: r.method == "GET")(_endpoint)
    handler(w, new_request("GET", "/"))
    assert w.headers.get("X-Tag") == "on"
    assert w.text == "endpoint"


def test_maybe_skips_when_false():
    w = ResponseRecorder()
    handler = maybe(_tagging, lambda r: r.method == "GET")(_endpoint)
    handler(w, new_request("POST", "/"))
    assert w.headers.get("X-Tag") == ""
    assert w.text == "endpoint"