"""Middleware that applies a CORS policy to requests and responses."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Union

from webguard.cors import intersperse_header_values
from webguard.cors_errors import CorsError, OriginNotAllowed
from webguard.cors_policy import (
    ACCESS_CONTROL_REQUEST_HEADERS,
    ACCESS_CONTROL_REQUEST_METHOD,
    ORIGIN,
    CorsPolicy,
    add_vary_header,
    header_value_to_method,
)
from webguard.http import Headers, Request, Response

logger = logging.getLogger(__name__)

ACCESS_CONTROL_ALLOW_ORIGIN = "access-control-allow-origin"
ACCESS_CONTROL_ALLOW_METHODS = "access-control-allow-methods"
ACCESS_CONTROL_ALLOW_HEADERS = "access-control-allow-headers"
ACCESS_CONTROL_ALLOW_CREDENTIALS = "access-control-allow-credentials"
ACCESS_CONTROL_EXPOSE_HEADERS = "access-control-expose-headers"
ACCESS_CONTROL_MAX_AGE = "access-control-max-age"
ACCESS_CONTROL_REQUEST_PRIVATE_NETWORK = "access-control-request-private-network"
ACCESS_CONTROL_ALLOW_PRIVATE_NETWORK = "access-control-allow-private-network"

Service = Callable[[Request], Union[Response, Awaitable[Response]]]


def is_request_preflight(request: Request) -> bool:
    """True if the request is `OPTIONS` with a valid `Access-Control-Request-Method` header."""
    if request.method != "OPTIONS":
        return False
    method = header_value_to_method(request.headers.get(ACCESS_CONTROL_REQUEST_METHOD))
    return method is not None


class CorsMiddleware:
    """Wraps a service, answering preflight requests and adding CORS headers to responses.

    The wrapped service is called with a `Request` and may return a `Response`
    or an awaitable of one.
    """

    def __init__(self, service: Service, policy: CorsPolicy) -> None:
        self.service = service
        self.policy = policy

    async def __call__(self, request: Request) -> Response:
        policy = self.policy

        if policy.preflight and is_request_preflight(request):
            return self.handle_preflight(request)

        if request.headers.get(ORIGIN) is None:
            origin_allowed = False
        else:
            try:
                origin_allowed = policy.validate_origin(request)
            except CorsError as err:
                logger.debug("origin validation failed; inner service is not called")
                response = err.error_response()
                if policy.vary_header:
                    add_vary_header(response.headers)
                return response

        result = self.service(request)
        response = await result if inspect.isawaitable(result) else result
        return self.augment_response(origin_allowed, request, response)

    def handle_preflight(self, request: Request) -> Response:
        """Validate a preflight request and build its response."""
        policy = self.policy
        try:
            if not policy.validate_origin(request):
                raise OriginNotAllowed()
            policy.validate_allowed_method(request)
            policy.validate_allowed_headers(request)
        except CorsError as err:
            return err.error_response()

        headers = Headers()

        origin = policy.access_control_allow_origin(request)
        if origin is not None:
            headers[ACCESS_CONTROL_ALLOW_ORIGIN] = origin

        if policy.allowed_methods_baked is not None:
            headers[ACCESS_CONTROL_ALLOW_METHODS] = policy.allowed_methods_baked

        if policy.allowed_headers_baked is not None:
            headers[ACCESS_CONTROL_ALLOW_HEADERS] = policy.allowed_headers_baked
        else:
            requested = request.headers.get(ACCESS_CONTROL_REQUEST_HEADERS)
            if requested is not None:
                headers[ACCESS_CONTROL_ALLOW_HEADERS] = requested

        if (
            policy.allow_private_network_access
            and ACCESS_CONTROL_REQUEST_PRIVATE_NETWORK in request.headers
        ):
            headers[ACCESS_CONTROL_ALLOW_PRIVATE_NETWORK] = "true"

        if policy.supports_credentials:
            headers[ACCESS_CONTROL_ALLOW_CREDENTIALS] = "true"

        if policy.max_age is not None:
            headers[ACCESS_CONTROL_MAX_AGE] = str(policy.max_age)

        response = Response(status=200, headers=headers)
        if policy.vary_header:
            add_vary_header(response.headers)
        return response

    def augment_response(
        self, origin_allowed: bool, request: Request, response: Response
    ) -> Response:
        """Add CORS headers to the response of an actual (non-preflight) request."""
        policy = self.policy

        if origin_allowed:
            origin = policy.access_control_allow_origin(request)
            if origin is not None:
                response.headers[ACCESS_CONTROL_ALLOW_ORIGIN] = origin

        if policy.expose_headers_baked is not None:
            logger.debug("exposing selected headers: %s", policy.expose_headers_baked)
            response.headers[ACCESS_CONTROL_EXPOSE_HEADERS] = policy.expose_headers_baked
        elif policy.expose_headers.is_all() and len(response.headers):
            exposed = intersperse_header_values(response.headers.keys())
            logger.debug("exposing all headers from response: %s", exposed)
            response.headers[ACCESS_CONTROL_EXPOSE_HEADERS] = exposed

        if policy.supports_credentials:
            response.headers[ACCESS_CONTROL_ALLOW_CREDENTIALS] = "true"

        if (
            policy.allow_private_network_access
            and ACCESS_CONTROL_REQUEST_PRIVATE_NETWORK in request.headers
        ):
            response.headers[ACCESS_CONTROL_ALLOW_PRIVATE_NETWORK] = "true"

        if policy.vary_header:
            add_vary_header(response.headers)

        return response