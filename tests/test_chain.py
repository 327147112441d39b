from routekit.chain import ChainHandler, Middlewares, chain
from routekit.web import ResponseRecorder, new_request


def _tagging(tag, log):
    def middleware(next_handler):
        def handler(w, r):
            log.append(tag + ":in")
            next_handler(w, r)
            log.append(tag + ":out")

        return handler

    return middleware


def _endpoint(log):
    def handler(w, r):
        log.append("endpoint")
        w.write(b"done")

    return handler


def test_chain_returns_middlewares_in_order():
    log = []
    first, second = _tagging("a", log), _tagging("b", log)
    mws = chain(first, second)
    assert isinstance(mws, Middlewares)
    assert list(mws) == [first, second]


def test_first_middleware_runs_outermost():
    log = []
    handler = chain(_tagging("a", log), _tagging("b", log)).handler(_endpoint(log))
    w = ResponseRecorder()
    handler(w, new_request("GET", "/"))
    assert log == ["a:in", "b:in", "endpoint", "b:out", "a:out"]
    assert bytes(w.body) == b"done"


def test_empty_chain_calls_endpoint_directly():
    log = []
    endpoint = _endpoint(log)
    handler = chain().handler_func(endpoint)
    w = ResponseRecorder()
    handler(w, new_request("GET", "/"))
    assert log == ["endpoint"]
    assert handler.endpoint is endpoint
    assert len(handler.middlewares) == 0


def test_chain_handler_exposes_parts():
    log = []
    mw = _tagging("x", log)
    endpoint = _endpoint(log)
    handler = ChainHandler(endpoint, [mw])
    assert handler.endpoint is endpoint
    assert list(handler.middlewares) == [mw]
    handler(ResponseRecorder(), new_request("GET", "/"))
    assert log == ["x:in", "endpoint", "x:out"]


def test_middleware_can_short_circuit():
    log = []

    def deny(next_handler):
        def handler(w, r):
            w.write_header(403)

        return handler

    handler = chain(deny, _tagging("b", log)).handler(_endpoint(log))
    w = ResponseRecorder()
    handler(w, new_request("GET", "/"))
    assert w.code == 403
    assert log == []