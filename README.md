# webguard

Two pieces of asynchronous HTTP middleware:

- **CORS** – a builder (`webguard.cors.Cors`) that describes a cross-origin
  policy and wraps a service in a `webguard.cors_middleware.CorsMiddleware`.
  The middleware answers `OPTIONS` preflight requests itself, checks the
  `Origin` of actual requests and adds `Access-Control-*` and `Vary` headers
  to responses.
- **Rate limiting** – a fixed-window counter per key stored in Redis
  (`webguard.limiter.Limiter`) and a `webguard.rate_limit_middleware.RateLimiter`
  middleware that answers `429` once a key has used up its allowance.

## Installation

```
pip install webguard
```

Rate limiting needs a reachable Redis server; CORS needs nothing beyond the
package itself.

## Requests, responses and services

The middleware works on the small types in `webguard.http`:

- `Headers` – a case-insensitive mutable mapping; names are validated and
  stored in lower case, values must not contain control characters
  (`ValueError` otherwise).
- `Request(method="GET", path="/", headers=...)` – `headers` may be a
  `Headers`, a dict or a list of pairs. `Request.cookie(name)` returns a
  cookie's value from the `Cookie` header, or `None`.
- `Response(status=200, headers=..., body="")`.
- `parse_method(value)` and `parse_header_name(value)` validate tokens and
  raise `ValueError` for invalid ones.

A *service* is any callable taking a `Request` and returning a `Response` or
an awaitable of one. Both middlewares are themselves async callables:
`response = await middleware(request)`.

## CORS

`Cors()` starts from restrictive defaults: no allowed origins, methods,
request headers or exposed headers, no credentials, no max age. Build the
policy with chained calls, then wrap a service:

```python
from webguard.cors import Cors
from webguard.http import Request, Response


def service(request: Request) -> Response:
    return Response(body="Hello, cross-origin world!")


app = (
    Cors()
    .allowed_origin("http://project.local:8080")
    .allowed_origin_fn(lambda origin, request: origin.startswith("http://localhost"))
    .allowed_methods(["GET", "POST"])
    .allowed_headers(["Authorization", "Accept"])
    .allowed_header("Content-Type")
    .expose_headers(["Content-Disposition"])
    .block_on_origin_mismatch(False)
    .max_age(3600)
    .wrap(service)
)

response = await app(Request(headers={"Origin": "http://localhost:3000"}))
```

Behaviour worth knowing:

- Invalid arguments raise at once: an invalid origin, method or header name
  raises `webguard.cors_errors.HttpError` (a `ValueError`),
  `allowed_origin("*")` raises `WildcardOrigin`, and a negative or non-integer
  `max_age` raises `ValueError`. Use `allow_any_origin()` with
  `send_wildcard()` to send `*`.
- `wrap()` refuses the combination of `supports_credentials()`,
  `send_wildcard()` and all origins with a `ValueError`. It takes a copy of
  the settings, so later builder calls do not change an existing middleware.
- `Cors.permissive()` allows every origin, the standard methods, every
  request header and every response header, supports credentials and sets a
  max age of 3600. It is meant for development only.
- Allowed origins are matched exactly. Origin predicates given to
  `allowed_origin_fn` are consulted when no listed origin matches; any one
  returning true allows the origin.
- A preflight request is an `OPTIONS` request with a valid
  `Access-Control-Request-Method` header. It is answered with `200` and the
  allowed origin, methods, headers, credentials and max age, or with `400` if
  the origin, method or requested headers are not allowed.
  `disable_preflight()` passes such requests on to the service.
- For actual requests with an `Origin` header: an allowed origin is echoed in
  `Access-Control-Allow-Origin` (or `*` with `send_wildcard()` and all
  origins). A disallowed origin gets no CORS origin header, unless
  `block_on_origin_mismatch(True)` is set, in which case the service is not
  called and `400` is returned.
- With `expose_any_header()` (or the permissive policy) every header name of
  the service's response is listed in `Access-Control-Expose-Headers`.
- `allow_private_network_access()` answers a request carrying
  `Access-Control-Request-Private-Network` with
  `Access-Control-Allow-Private-Network: true`.
- Unless `disable_vary_header()` is used, `Vary` gets
  `Origin, Access-Control-Request-Method, Access-Control-Request-Headers,
  Access-Control-Request-Private-Network` appended to any existing value.

Request checks raise subclasses of `webguard.cors_errors.CorsError`
(`MissingOrigin`, `MissingRequestMethod`, `BadRequestMethod`,
`BadRequestHeaders`, `OriginNotAllowed`, `MethodNotAllowed`,
`HeadersNotAllowed`); `error_response()` turns one into a `400` response
whose body is the error message. The checks themselves live on
`webguard.cors_policy.CorsPolicy`.

## Rate limiting

```python
from datetime import timedelta

from webguard.limiter import Limiter
from webguard.rate_limit_middleware import RateLimiter

limiter = (
    Limiter.builder("redis://localhost:6379/0")
    .limit(5000)
    .period(timedelta(hours=1))
    .key_by(lambda request: request.cookie("sid"))
    .build()
)

app = RateLimiter(limiter, service)
```

- The defaults are 5000 requests per 3600 seconds. Without `key_by`, the key
  is taken from the `sid` cookie (change it with `cookie_name(...)`, which
  raises `RuntimeError` if `key_by` was already set).
- `period` accepts a `timedelta` or a number of seconds.
- `build()` raises `webguard.limit_errors.ClientError` for a Redis URL that
  cannot be parsed; it does not connect.
- `await limiter.count(key)` returns a `webguard.limit_status.Status` with
  `limit`, `remaining` and `reset_epoch_utc`, and raises `LimitExceeded`
  (carrying the status) once the count passes the limit. Redis failures raise
  `ClientError`.
- The middleware passes requests whose key function returns `None` straight
  to the service, answers `429` when the limit is exceeded and `500` when the
  limiter fails.

## What this package does not do

It provides no HTTP server and no adapters for web frameworks: requests and
responses are the package's own `Request` and `Response` types, and plugging
the middleware into a server is left to the caller. Rate-limit keys come
from a key function or a cookie only; there is no session support.

## Running the tests

```
pip install -e ".[test]"
pytest
```