"""Fixed-window rate limiter for arbitrary keys, backed by Redis."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional, Union

import redis
import redis.asyncio

from webguard.http import Request
from webguard.limit_errors import ClientError, LimitExceeded
from webguard.limit_status import Status, epoch_utc_plus

DEFAULT_REQUEST_LIMIT = 5000
DEFAULT_PERIOD_SECS = 3600
DEFAULT_COOKIE_NAME = "sid"

KeyFn = Callable[[Request], Optional[str]]


def _as_timedelta(period: Union[timedelta, int, float]) -> timedelta:
    if isinstance(period, timedelta):
        return period
    if isinstance(period, bool) or not isinstance(period, (int, float)):
        raise TypeError(f"period must be a timedelta or a number of seconds: {period!r}")
    return timedelta(seconds=period)


def _cookie_key_fn(cookie_name: str) -> KeyFn:
    def get_key(request: Request) -> str | None:
        value = request.cookie(cookie_name)
        return None if value is None else f"{cookie_name}={value}"

    return get_key


@dataclass
class Limiter:
    """Counts requests per key in fixed windows of ``period``."""

    client: Any
    limit: int = DEFAULT_REQUEST_LIMIT
    period: timedelta = field(default_factory=lambda: timedelta(seconds=DEFAULT_PERIOD_SECS))
    get_key_fn: KeyFn = field(default_factory=lambda: _cookie_key_fn(DEFAULT_COOKIE_NAME))

    @classmethod
    def builder(cls, redis_url: str) -> "Builder":
        """A builder with the default limit, period and cookie name."""
        return Builder(redis_url=str(redis_url))

    async def count(self, key: str) -> Status:
        """Consume one unit for ``key``; raise `LimitExceeded` when over the limit."""
        count, reset = await self._track(str(key))
        status = Status.from_count(count, self.limit, reset)
        if count > self.limit:
            raise LimitExceeded(status)
        return status

    async def _track(self, key: str) -> tuple[int, int]:
        """Increment the key's counter and return the count and the reset timestamp."""
        expires = int(self.period.total_seconds())
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, ex=expires, nx=True)
                pipe.incr(key)
                pipe.ttl(key)
                _, count, ttl = await pipe.execute()
        except redis.RedisError as err:
            raise ClientError(err) from err
        reset = epoch_utc_plus(int(ttl))
        return int(count), reset


@dataclass
class Builder:
    """Rate limiter builder."""

    redis_url: str
    _limit: int = DEFAULT_REQUEST_LIMIT
    _period: timedelta = field(default_factory=lambda: timedelta(seconds=DEFAULT_PERIOD_SECS))
    get_key_fn: Optional[KeyFn] = None
    _cookie_name: str = DEFAULT_COOKIE_NAME

    def limit(self, limit: int) -> "Builder":
        """Set the upper limit per period."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise ValueError(f"limit must be a non-negative integer: {limit!r}")
        self._limit = limit
        return self

    def period(self, period: Union[timedelta, int, float]) -> "Builder":
        """Set the window length."""
        self._period = _as_timedelta(period)
        return self

    def key_by(self, resolver: KeyFn) -> "Builder":
        """Set the function deriving the rate limit key from a request."""
        self.get_key_fn = resolver
        return self

    def cookie_name(self, cookie_name: str) -> "Builder":
        """Set the cookie whose value keys the limit; conflicts with `key_by`."""
        if self.get_key_fn is not None:
            raise RuntimeError(
                "This method should not be used in combination of get_key as they "
                "overwrite each other"
            )
        self._cookie_name = str(cookie_name)
        return self

    def build(self) -> Limiter:
        """Create the limiter; an unparsable Redis URL raises `ClientError`."""
        get_key = self.get_key_fn or _cookie_key_fn(self._cookie_name)
        try:
            client = redis.asyncio.Redis.from_url(self.redis_url)
        except (ValueError, redis.RedisError) as err:
            raise ClientError(err) from err
        return Limiter(client=client, limit=self._limit, period=self._period, get_key_fn=get_key)