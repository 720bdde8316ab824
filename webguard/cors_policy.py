"""Resolved CORS configuration and the checks it applies to requests."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from webguard.all_or_some import AllOrSome
from webguard.cors_errors import (
    BadRequestHeaders,
    BadRequestMethod,
    HeadersNotAllowed,
    MethodNotAllowed,
    MissingOrigin,
    MissingRequestMethod,
    OriginNotAllowed,
)
from webguard.http import Headers, Request, parse_header_name, parse_method

OriginFn = Callable[[str, Request], bool]

ORIGIN = "origin"
VARY = "vary"
ACCESS_CONTROL_REQUEST_METHOD = "access-control-request-method"
ACCESS_CONTROL_REQUEST_HEADERS = "access-control-request-headers"

VARY_VALUE = (
    "Origin, Access-Control-Request-Method, Access-Control-Request-Headers, "
    "Access-Control-Request-Private-Network"
)


def _is_visible_ascii(value: str) -> bool:
    return all(char == "\t" or 0x20 <= ord(char) < 0x7F for char in value)


def header_value_to_method(value: str | None) -> str | None:
    """Parse a header value as an HTTP method, or return None if it is not one."""
    if value is None or not _is_visible_ascii(value):
        return None
    try:
        return parse_method(value)
    except ValueError:
        return None


def _empty_some() -> AllOrSome[set[str]]:
    return AllOrSome.some(set())


@dataclass
class CorsPolicy:
    """CORS settings; the defaults are the restrictive ones."""

    allowed_origins: AllOrSome[set[str]] = field(default_factory=_empty_some)
    allowed_origin_fns: list[OriginFn] = field(default_factory=list)
    allowed_methods: set[str] = field(default_factory=set)
    allowed_methods_baked: str | None = None
    allowed_headers: AllOrSome[set[str]] = field(default_factory=_empty_some)
    allowed_headers_baked: str | None = None
    expose_headers: AllOrSome[set[str]] = field(default_factory=_empty_some)
    expose_headers_baked: str | None = None
    max_age: int | None = None
    preflight: bool = True
    send_wildcard: bool = False
    supports_credentials: bool = False
    allow_private_network_access: bool = False
    vary_header: bool = True
    block_on_origin_mismatch: bool = False

    def validate_origin(self, request: Request) -> bool:
        """Return whether `Access-Control-Allow-Origin` should be sent; raise on rejection."""
        if self.allowed_origins.is_all():
            if not self.allowed_origin_fns:
                return True
            allowed: set[str] | frozenset[str] = frozenset()
        else:
            allowed = self.allowed_origins.items or frozenset()

        origin = request.headers.get(ORIGIN)
        if origin is None:
            raise MissingOrigin()
        if origin in allowed or self._validate_origin_fns(origin, request):
            return True
        if self.block_on_origin_mismatch:
            raise OriginNotAllowed()
        return False

    def _validate_origin_fns(self, origin: str, request: Request) -> bool:
        return any(origin_fn(origin, request) for origin_fn in self.allowed_origin_fns)

    def access_control_allow_origin(self, request: Request) -> str | None:
        """The `Access-Control-Allow-Origin` value for an already validated request."""
        if self.allowed_origins.is_all() and self.send_wildcard:
            return "*"
        return request.headers.get(ORIGIN)

    def validate_allowed_method(self, request: Request) -> None:
        """Check `Access-Control-Request-Method` against the allowed methods."""
        raw = request.headers.get(ACCESS_CONTROL_REQUEST_METHOD)
        if raw is None:
            raise MissingRequestMethod()
        method = header_value_to_method(raw)
        if method is None:
            raise BadRequestMethod()
        if method not in self.allowed_methods:
            raise MethodNotAllowed()

    def validate_allowed_headers(self, request: Request) -> None:
        """Check `Access-Control-Request-Headers` against the allowed request headers."""
        if self.allowed_headers.is_all():
            return
        allowed = self.allowed_headers.items or set()

        raw = request.headers.get(ACCESS_CONTROL_REQUEST_HEADERS)
        if raw is None:
            return
        if not _is_visible_ascii(raw):
            raise BadRequestHeaders()

        requested: set[str] = set()
        for name in raw.split(","):
            try:
                requested.add(parse_header_name(name.strip()))
            except ValueError:
                raise BadRequestHeaders() from None

        if not requested:
            raise BadRequestHeaders()
        if not requested <= allowed:
            raise HeadersNotAllowed()


def add_vary_header(headers: Headers) -> None:
    """Append the CORS request headers to the `Vary` header."""
    existing = headers.get(VARY)
    headers[VARY] = VARY_VALUE if existing is None else f"{existing}, {VARY_VALUE}"