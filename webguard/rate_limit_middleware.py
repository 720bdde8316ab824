"""Middleware that rejects requests once their key exceeds the rate limit."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Union

from webguard.http import Request, Response
from webguard.limit_errors import ClientError, LimitationError, LimitExceeded
from webguard.limiter import Limiter

logger = logging.getLogger(__name__)

Service = Callable[[Request], Union[Response, Awaitable[Response]]]


class RateLimiter:
    """Wraps a service; answers 429 when a key is over its limit, 500 on limiter failure.

    Requests for which the limiter's key function returns None are passed through uncounted.
    """

    def __init__(self, limiter: Limiter, service: Service) -> None:
        self.limiter = limiter
        self.service = service

    async def _call_service(self, request: Request) -> Response:
        result = self.service(request)
        return await result if inspect.isawaitable(result) else result

    async def __call__(self, request: Request) -> Response:
        key = self.limiter.get_key_fn(request)
        if key is None:
            return await self._call_service(request)

        try:
            await self.limiter.count(key)
        except LimitExceeded:
            logger.warning("Rate limit exceed error for %s", key)
            return Response(status=429)
        except ClientError as err:
            logger.error("Client request failed, redis error: %s", err.source)
            return Response(status=500)
        except LimitationError as err:
            logger.error("Count failed: %s", err)
            return Response(status=500)

        return await self._call_service(request)