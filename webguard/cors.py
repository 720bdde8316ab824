"""Builder for the CORS middleware."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from webguard.all_or_some import AllOrSome
from webguard.cors_errors import HttpError, WildcardOrigin
from webguard.cors_policy import CorsPolicy, OriginFn
from webguard.http import parse_header_name, parse_method

ALL_METHODS = frozenset(
    {"GET", "POST", "PUT", "DELETE", "HEAD", "OPTIONS", "CONNECT", "PATCH", "TRACE"}
)

_URI_FORBIDDEN = frozenset(' "<>\\^`{|}')


def _is_valid_uri(value: str) -> bool:
    return bool(value) and all(
        0x21 <= ord(char) <= 0x7E and char not in _URI_FORBIDDEN for char in value
    )


def intersperse_header_values(values: Iterable[str]) -> str:
    """Join a non-empty collection of header values with ", " in a stable order."""
    items = sorted(set(values))
    if not items:
        raise ValueError("cannot build a header value from an empty collection")
    return ", ".join(items)


def _copy_all_or_some(value: AllOrSome[set[str]]) -> AllOrSome[set[str]]:
    if value.is_all():
        return AllOrSome.all()
    return AllOrSome.some(set(value.items or ()))


class Cors:
    """Fluent builder for CORS settings.

    ``Cors()`` is restrictive: no origins, methods, request headers or exposed
    headers are allowed. ``Cors.permissive()`` allows everything and is meant
    for development only. Invalid arguments raise immediately.
    """

    def __init__(self) -> None:
        self._policy = CorsPolicy()

    @classmethod
    def permissive(cls) -> "Cors":
        """All origins, methods, request headers and exposed headers; credentials; max age 1h."""
        cors = cls()
        cors._policy = CorsPolicy(
            allowed_origins=AllOrSome.all(),
            allowed_methods=set(ALL_METHODS),
            allowed_headers=AllOrSome.all(),
            expose_headers=AllOrSome.all(),
            max_age=3600,
            supports_credentials=True,
        )
        return cors

    def allow_any_origin(self) -> "Cors":
        """Accept requests from any origin."""
        self._policy.allowed_origins = AllOrSome.all()
        return self

    def allowed_origin(self, origin: str) -> "Cors":
        """Add an origin that is allowed to make requests (matched case-sensitively)."""
        if not isinstance(origin, str) or not _is_valid_uri(origin):
            raise HttpError(f"invalid origin: {origin!r}")
        if origin == "*":
            raise WildcardOrigin()
        if self._policy.allowed_origins.is_all():
            self._policy.allowed_origins = AllOrSome.some(set())
        origins = self._policy.allowed_origins.items
        assert origins is not None
        origins.add(origin)
        return self

    def allowed_origin_fn(self, func: OriginFn) -> "Cors":
        """Add a predicate ``func(origin, request)`` consulted when no listed origin matches."""
        self._policy.allowed_origin_fns.append(func)
        return self

    def allow_any_method(self) -> "Cors":
        """Allow every standard HTTP method."""
        self._policy.allowed_methods = set(ALL_METHODS)
        return self

    def allowed_methods(self, methods: Iterable[str]) -> "Cors":
        """Add methods that allowed origins may use."""
        for method in methods:
            try:
                self._policy.allowed_methods.add(parse_method(method))
            except ValueError as err:
                raise HttpError(str(err)) from None
        return self

    def allow_any_header(self) -> "Cors":
        """Accept any request header."""
        self._policy.allowed_headers = AllOrSome.all()
        return self

    def _add_header(self, target: str, header: Any) -> None:
        try:
            name = parse_header_name(header)
        except ValueError as err:
            raise HttpError(str(err)) from None
        current: AllOrSome[set[str]] = getattr(self._policy, target)
        if current.is_all():
            current = AllOrSome.some(set())
            setattr(self._policy, target, current)
        names = current.items
        assert names is not None
        names.add(name)

    def allowed_header(self, header: str) -> "Cors":
        """Add one allowed request header."""
        self._add_header("allowed_headers", header)
        return self

    def allowed_headers(self, headers: Iterable[str]) -> "Cors":
        """Add request header names that allowed origins may send."""
        for header in headers:
            self._add_header("allowed_headers", header)
        return self

    def expose_any_header(self) -> "Cors":
        """Expose all response headers."""
        self._policy.expose_headers = AllOrSome.all()
        return self

    def expose_headers(self, headers: Iterable[str]) -> "Cors":
        """Add response headers that are safe to expose."""
        for header in headers:
            self._add_header("expose_headers", header)
        return self

    def max_age(self, max_age: int | None) -> "Cors":
        """Set the preflight cache time in seconds, or None to omit the header."""
        if max_age is not None and (
            isinstance(max_age, bool) or not isinstance(max_age, int) or max_age < 0
        ):
            raise ValueError(f"max_age must be a non-negative integer or None: {max_age!r}")
        self._policy.max_age = max_age
        return self

    def send_wildcard(self) -> "Cors":
        """Send `*` as the allowed origin when all origins are allowed."""
        self._policy.send_wildcard = True
        return self

    def supports_credentials(self) -> "Cors":
        """Send `Access-Control-Allow-Credentials: true`."""
        self._policy.supports_credentials = True
        return self

    def allow_private_network_access(self) -> "Cors":
        """Answer private network access requests with `Access-Control-Allow-Private-Network`."""
        self._policy.allow_private_network_access = True
        return self

    def disable_vary_header(self) -> "Cors":
        """Do not add CORS request headers to `Vary`."""
        self._policy.vary_header = False
        return self

    def disable_preflight(self) -> "Cors":
        """Do not handle `OPTIONS` preflight requests automatically."""
        self._policy.preflight = False
        return self

    def block_on_origin_mismatch(self, block: bool) -> "Cors":
        """Whether requests from disallowed origins are rejected with 400."""
        self._policy.block_on_origin_mismatch = bool(block)
        return self

    def _resolve(self) -> CorsPolicy:
        """Check the settings and return an independent policy with baked header values."""
        source = self._policy
        if (
            source.supports_credentials
            and source.send_wildcard
            and source.allowed_origins.is_all()
        ):
            raise ValueError(
                "Illegal combination of CORS options: credentials can not be supported when "
                "all origins are allowed and `send_wildcard` is enabled."
            )

        policy = replace(
            source,
            allowed_origins=_copy_all_or_some(source.allowed_origins),
            allowed_origin_fns=list(source.allowed_origin_fns),
            allowed_methods=set(source.allowed_methods),
            allowed_headers=_copy_all_or_some(source.allowed_headers),
            expose_headers=_copy_all_or_some(source.expose_headers),
        )

        if policy.allowed_headers.items:
            policy.allowed_headers_baked = intersperse_header_values(policy.allowed_headers.items)
        if policy.allowed_methods:
            policy.allowed_methods_baked = intersperse_header_values(policy.allowed_methods)
        if policy.expose_headers.items:
            policy.expose_headers_baked = intersperse_header_values(policy.expose_headers.items)
        return policy

    def wrap(self, service: Any) -> Any:
        """Wrap ``service`` in a CORS middleware using these settings."""
        policy = self._resolve()
        from webguard.cors_middleware import CorsMiddleware

        return CorsMiddleware(service, policy)

    def __repr__(self) -> str:
        return f"Cors({self._policy!r})"