import base64
import io

import pytest

from routekit.web import (
    Canceled,
    Context,
    DeadlineExceeded,
    Headers,
    Request,
    ResponseRecorder,
    background,
    canonical_header_key,
    error,
    new_request,
    redirect,
    status_text,
)


def test_canonical_header_key_normalises_case():
    assert canonical_header_key("x-forwarded-for") == "X-Forwarded-For"
    assert canonical_header_key("True-Client-IP") == "True-Client-Ip"


def test_canonical_header_key_leaves_invalid_keys():
    assert canonical_header_key("bad key") == "bad key"


def test_headers_are_case_insensitive():
    h = Headers()
    h.set("content-type", "text/html")
    assert h.get("Content-Type") == "text/html"
    assert "CONTENT-TYPE" in h
    assert h.get("missing") == ""


def test_headers_add_and_delete():
    h = Headers({"Vary": "Origin"})
    h.add("vary", "Accept-Encoding")
    assert h.get_all("Vary") == ["Origin", "Accept-Encoding"]
    assert h.get("Vary") == "Origin"
    h.set("Vary", "X")
    assert h.get_all("Vary") == ["X"]
    h.delete("VARY")
    assert "Vary" not in h
    assert h.get_all("Vary") == []


def test_headers_copy_is_independent():
    h = Headers({"A": ["1", "2"]})
    clone = h.copy()
    clone.add("A", "3")
    assert h.get_all("A") == ["1", "2"]
    assert clone.get_all("A") == ["1", "2", "3"]


def test_context_values_follow_the_chain():
    root = background()
    child = root.with_value("k", "v1")
    grandchild = child.with_value("k", "v2").with_value("other", 7)
    assert grandchild.value("k") == "v2"
    assert grandchild.value("other") == 7
    assert child.value("k") == "v1"
    assert root.value("k") is None


def test_cancel_propagates_to_descendants():
    root = background()
    child = root.with_timeout(30)
    grandchild = child.with_value("k", 1)
    assert not grandchild.done()
    assert grandchild.err() is None
    root.cancel()
    assert grandchild.done()
    assert isinstance(grandchild.err(), Canceled)


def test_cancel_of_child_leaves_parent_alive():
    root = background()
    child = root.with_timeout(30)
    child.cancel()
    assert child.done()
    assert not root.done()


def test_timeout_sets_deadline_exceeded():
    ctx = background().with_timeout(0.01)
    assert ctx.wait(5)
    assert isinstance(ctx.err(), DeadlineExceeded)


def test_timeout_on_done_parent_is_done_at_once():
    root = background()
    root.cancel()
    child = root.with_timeout(30)
    assert child.done()
    assert isinstance(child.err(), Canceled)


def test_wait_times_out_on_live_context():
    assert background().wait(0.01) is False


def test_with_context_copies_request():
    r = new_request("GET", "/items")
    ctx = Context().with_value("k", "v")
    r2 = r.with_context(ctx)
    assert r2.context.value("k") == "v"
    assert r.context.value("k") is None
    assert r2.path == r.path


def test_with_context_rejects_none():
    with pytest.raises(ValueError):
        new_request("GET", "/").with_context(None)


def test_basic_auth_round_trip():
    encoded = base64.b64encode(b"user:password").decode()
    r = new_request("GET", "/", headers={"Authorization": "Basic " + encoded})
    assert r.basic_auth() == ("user", "password")


def test_basic_auth_rejects_other_schemes_and_garbage():
    assert new_request("GET", "/").basic_auth() is None
    assert new_request("GET", "/", headers={"Authorization": "Bearer token"}).basic_auth() is None
    assert new_request("GET", "/", headers={"Authorization": "Basic token"}).basic_auth() is None


def test_query_parsing():
    r = new_request("GET", "/p?a=1&a=2&b=")
    assert r.query() == {"a": ["1", "2"], "b": [""]}
    assert r.path == "/p"


def test_new_request_body_and_length():
    body = b"This is my content"
    r = new_request("POST", "/", body)
    assert r.content_length == len(body)
    assert r.body.read() == body
    assert r.method == "POST"


def test_new_request_unknown_length_stream():
    stream = io.BytesIO(b"abc")
    r = new_request("POST", "/", stream)
    assert r.content_length == -1
    assert r.body is stream


def test_new_request_absolute_url():
    r = new_request("GET", "https://api.example.com/x?y=1")
    assert r.tls is True
    assert r.host == "api.example.com"
    assert r.raw_query == "y=1"


def test_recorder_write_implies_ok():
    w = ResponseRecorder()
    assert w.write(b"hello") == 5
    assert w.code == 200
    assert bytes(w.body) == b"hello"


def test_recorder_keeps_first_status():
    w = ResponseRecorder()
    w.write_header(404)
    w.write_header(500)
    assert w.code == 404


def test_recorder_rejects_invalid_code():
    with pytest.raises(ValueError):
        ResponseRecorder().write_header(42)


def test_recorder_flush():
    w = ResponseRecorder()
    w.flush()
    assert w.flushed
    assert w.wrote_header


def test_error_writes_plain_text():
    w = ResponseRecorder()
    w.headers.set("Content-Length", "10")
    error(w, "Server capacity exceeded.", 429)
    assert w.code == 429
    assert w.text == "Server capacity exceeded.\n"
    assert "Content-Length" not in w.headers
    assert w.headers.get("Content-Type") == "text/plain; charset=utf-8"


def test_redirect_keeps_scheme_relative_url():
    w = ResponseRecorder()
    r = new_request("GET", "/accounts/someuser/")
    redirect(w, r, "//example.com/accounts/someuser", 301)
    assert w.code == 301
    assert w.headers.get("Location") == "//example.com/accounts/someuser"
    assert status_text(301) in w.text


def test_redirect_resolves_relative_path():
    w = ResponseRecorder()
    r = new_request("HEAD", "/dir/page")
    redirect(w, r, "other", 302)
    assert w.headers.get("Location") == "/dir/other"
    assert w.text == ""


def test_status_text_unknown_code():
    assert status_text(599) == ""
    assert status_text(429) == status_text(429).strip()
    assert status_text(429)