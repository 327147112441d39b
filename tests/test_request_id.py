import pytest

from routekit.middleware import request_id as request_id_module
from routekit.middleware.request_id import get_req_id, next_request_id, request_id
from routekit.web import ResponseRecorder, background, new_request


def _echo(w, r):
    w.write(f"RequestID: {get_req_id(r.context)}".encode())


@pytest.mark.parametrize(
    "header, value, expected",
    [
        ("X-Request-Id", "req-123456", "RequestID: req-123456"),
        ("X-Trace-Id", "trace:abc123", "RequestID: trace:abc123"),
    ],
)
def test_request_id_from_header(monkeypatch, header, value, expected):
    monkeypatch.setattr(request_id_module, "REQUEST_ID_HEADER", header)
    w = ResponseRecorder()
    request_id(_echo)(w, new_request("GET", "/", headers={header: value}))
    assert w.text == expected


def test_request_id_generated_form():
    w = ResponseRecorder()
    request_id(_echo)(w, new_request("GET", "/"))
    label = "RequestID: "
    assert w.text.startswith(label)
    ident = w.text[len(label):]
    host_random, _, counter = ident.rpartition("-")
    assert counter.isdigit()
    assert len(counter) >= 6
    host, _, random_part = host_random.rpartition("/")
    assert host
    assert len(random_part) == 10
    assert random_part.isalnum()


def test_generated_ids_differ():
    first, second = ResponseRecorder(), ResponseRecorder()
    request_id(_echo)(first, new_request("GET", "/"))
    request_id(_echo)(second, new_request("GET", "/"))
    assert first.text != second.text
    assert first.text.rsplit("-", 1)[0] == second.text.rsplit("-", 1)[0]


def test_next_request_id_increases():
    a = next_request_id()
    b = next_request_id()
    assert b == a + 1


def test_get_req_id_missing():
    assert get_req_id(None) == ""
    assert get_req_id(background()) == ""
    assert get_req_id(background().with_value(request_id_module.REQUEST_ID_KEY, 5)) == ""