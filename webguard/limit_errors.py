"""Failure modes of the rate limiter."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from webguard.limit_status import Status


class LimitationError(Exception):
    """Base class for rate limiter errors."""

    message = "Rate limiter failure"

    def __init__(self) -> None:
        super().__init__(self.message)


class ClientError(LimitationError):
    """The Redis client failed to connect or run a query."""

    message = "Redis client failed to connect or run a query"

    def __init__(self, source: BaseException) -> None:
        super().__init__()
        self.source = source
        self.__cause__ = source


class LimitExceeded(LimitationError):
    """The limit is exceeded for a key."""

    message = "Limit is exceeded for a key"

    def __init__(self, status: "Status") -> None:
        super().__init__()
        self.status = status


class TimeError(LimitationError):
    """A time conversion failed."""

    message = "Time conversion failed"

    def __init__(self, source: BaseException) -> None:
        super().__init__()
        self.source = source
        self.__cause__ = source


class OtherError(LimitationError):
    """A generic error; ``detail`` says what went wrong."""

    message = "Generic error"

    def __init__(self, detail: str) -> None:
        super().__init__()
        self.detail = detail

    def __repr__(self) -> str:
        return f"OtherError({self.detail!r})"