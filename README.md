# routekit

Small, composable HTTP middleware with a per-request routing context.

A handler is any callable taking a response writer and a request,
`handler(w, r)`. A middleware is a callable that takes the next handler and
returns a new one. Middlewares stack up with `chain`, and the result is an
ordinary handler.

routekit has no runtime dependencies.

## Installation

```
pip install routekit
```

To run the test suite, install the `test` extra and run pytest:

```
pip install "routekit[test]"
pytest
```

## Building blocks

`routekit.web` holds the HTTP primitives everything else is built on:

- `Request` (method, path, raw query, host, `Headers`, body, remote address,
  a `Context`), built for tests or adapters with
  `new_request(method, target, body, headers)`.
- `Headers`, a case-insensitive multi-valued mapping with `get`, `get_all`,
  `set`, `add`, `delete` and `copy`.
- `Context`, carrying values (`with_value`, `value`) and cancellation
  (`with_timeout`, `cancel`, `done`, `err`, `wait`); `background()` returns a
  fresh root. A timed-out context reports `DeadlineExceeded`, a canceled one
  `Canceled`.
- `ResponseRecorder`, a response writer that keeps the status code, headers
  and body for inspection.
- `error(w, message, code)` and `redirect(w, r, url, code)` helpers, and
  `status_text(code)`.
- `Routes`, the protocol a router offers to middleware: `routes()`,
  `middlewares()` and `match(rctx, method, path)`.

## Composing middleware

```python
from routekit.chain import chain
from routekit.web import new_request, ResponseRecorder
from routekit.middleware.realip import real_ip
from routekit.middleware.request_id import request_id, get_req_id
from routekit.middleware.nocache import no_cache
from routekit.middleware.shortcuts import heartbeat


def hello(w, r):
    w.write(f"hello from {r.remote_addr}, request {get_req_id(r.context)}".encode())


app = chain(heartbeat("/ping"), real_ip, request_id, no_cache).handler(hello)

w = ResponseRecorder()
r = new_request("GET", "/", None, {"X-Real-IP": "203.0.113.7"})
app(w, r)
print(w.code, w.text)
```

The first middleware passed to `chain` is the outermost one: it sees the
request first and the response last. `chain` returns a `Middlewares` list;
its `handler` and `handler_func` methods return a `ChainHandler`, which keeps
the `endpoint` and the `middlewares` it was built from.

## Routing context

`routekit.routing` holds the state a router keeps for each request in a
`RouteContext`: the captured URL parameters (`RouteParams`), the stack of
matched route patterns and an optional path and method override used by
middleware such as `strip_slashes`, `url_format` and `get_head`.

```python
from routekit.routing import new_route_context

rctx = new_route_context()
rctx.route_patterns = ["/v1/*", "/resources/*", "/{resource_id}"]
print(rctx.route_pattern())  # /v1/resources/{resource_id}
```

The context is stored on a request's `Context` under `ROUTE_CTX_KEY` and is
read back with `route_context(ctx)`. Handlers read parameters with
`url_param(r, "name")` or `url_param_from_ctx(ctx, "name")`.

## Middleware

All of these live under `routekit.middleware`:

| Module | Contents |
| --- | --- |
| `auth` | `basic_auth(realm, creds)` |
| `content` | `content_charset`, `allow_content_encoding`, `allow_content_type`, `set_header` |
| `core` | `from_handler`, `with_value`, `maybe` |
| `logger` | `logger`, `request_logger(formatter)`, `DefaultLogFormatter`, `get_log_entry`, `with_log_entry` |
| `nocache` | `no_cache` |
| `paths` | `clean_path`, `path_rewrite`, `strip_slashes`, `redirect_slashes`, `url_format` |
| `realip` | `real_ip`, `client_ip` |
| `recoverer` | `recoverer`, `print_pretty_stack`, `PrettyStack` |
| `request_id` | `request_id`, `get_req_id`, `next_request_id` |
| `request_size` | `request_size(limit)`, `LimitedBody`, `RequestTooLarge` |
| `route_headers` | `route_headers()` returning a `HeaderRouter` |
| `shortcuts` | `get_head`, `heartbeat(endpoint)`, `page_route(path, handler)` |
| `terminal` | `color_write`, `detect_tty`, ANSI colour constants |
| `throttle` | `throttle(limit)`, `throttle_backlog(...)`, `throttle_with_opts(ThrottleOpts(...))` |
| `timeout` | `timeout(seconds)` |
| `wrap_writer` | `new_wrap_response_writer(w, proto_major)` and the writer classes |

### Basic authentication

```python
from routekit.middleware.auth import basic_auth

protected = basic_auth("admin area", {"alice": "secret"})(hello)
```

Requests without matching credentials get `401` and a
`WWW-Authenticate: Basic realm="admin area"` header.

### Logging

`logger` writes one line per request to standard output: the request ID if
there is one, method, URL, protocol, remote address, status, bytes written
and elapsed time, in colour when standard output is a terminal. For another
destination, pass a callable to `DefaultLogFormatter(logger=...)` and use
`request_logger(formatter)`, or supply any object with a `new_log_entry(r)`
method.

### Recovering from exceptions

`recoverer` catches exceptions raised by the next handler, hands them to the
request's log entry (or prints a readable traceback to standard error) and
answers `500`, unless the request carries `Connection: Upgrade`.
`AbortHandler` is always re-raised.

### Throttling

```python
from routekit.middleware.throttle import throttle_backlog

app = throttle_backlog(10, 50, 10.0)(hello)
```

At most 10 requests run at once, up to 50 more wait for up to 10 seconds,
and the rest are answered with `429 Too Many Requests`. `ThrottleOpts`
also takes a `retry_after_fn` that sets a `Retry-After` header on refusals.

### Timeouts

`timeout(seconds)` gives the next handler a context that ends after
`seconds`; handlers watch `r.context.done()` or `r.context.wait(...)`. If the
deadline passed, `504 Gateway Timeout` is written once the handler returns.

## What routekit does not do

- It has no router of its own: there is no route tree, no pattern matching
  of paths and no registration of handlers by method. `RouteContext` and the
  `Routes` protocol describe what a router provides, and `get_head` needs one
  set on the request's routing context.
- It does not compress responses.
- It has no HTTP server and no command-line program; handlers are plain
  callables to be driven by whatever server adapter you use, or by
  `new_request` and `ResponseRecorder` in tests.