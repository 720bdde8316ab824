"""Errors raised while configuring CORS or checking CORS-guarded requests."""

from __future__ import annotations

from webguard.http import Headers, Response


class HttpError(ValueError):
    """An invalid HTTP element (origin, method or header name) was given in configuration."""


class CorsError(Exception):
    """A CORS-guarded request or configuration was rejected."""

    message = "CORS request rejected"
    status_code = 400

    def __init__(self) -> None:
        super().__init__(self.message)

    def error_response(self) -> Response:
        """Build the 400 response that reports this error."""
        return Response(status=self.status_code, headers=Headers(), body=str(self))


class WildcardOrigin(CorsError):
    message = "`allowed_origin` argument must not be wildcard (`*`)"


class MissingOrigin(CorsError):
    message = "Request header `Origin` is required but was not provided"


class MissingRequestMethod(CorsError):
    message = "Request header `Access-Control-Request-Method` is required but is missing"


class BadRequestMethod(CorsError):
    message = "Request header `Access-Control-Request-Method` has an invalid value"


class BadRequestHeaders(CorsError):
    message = "Request header `Access-Control-Request-Headers` has an invalid value"


class OriginNotAllowed(CorsError):
    message = "Origin is not allowed to make this request"


class MethodNotAllowed(CorsError):
    message = "Requested method is not allowed"


class HeadersNotAllowed(CorsError):
    message = "One or more request headers are not allowed"