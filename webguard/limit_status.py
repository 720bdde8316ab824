"""Rate limit status reports."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Union

from webguard.limit_errors import OtherError

_OUT_OF_RANGE = "Source duration value is out of range for the target type"


@dataclass(frozen=True)
class Status:
    """The limit status of a key."""

    limit: int
    remaining: int
    reset_epoch_utc: int

    @classmethod
    def from_count(cls, count: int, limit: int, reset_epoch_utc: int) -> "Status":
        """Build a status from the number of requests made so far."""
        remaining = 0 if count >= limit else limit - count
        return cls(limit=limit, remaining=remaining, reset_epoch_utc=reset_epoch_utc)


def epoch_utc_plus(duration: Union[timedelta, int, float]) -> int:
    """The UNIX timestamp (UTC, rounded to whole seconds) ``duration`` from now."""
    try:
        delta = duration if isinstance(duration, timedelta) else timedelta(seconds=duration)
        if delta < timedelta(0):
            raise OtherError(_OUT_OF_RANGE)
        moment = datetime.now(timezone.utc) + delta
    except (OverflowError, ValueError):
        raise OtherError(_OUT_OF_RANGE) from None
    return max(0, math.floor(moment.timestamp() + 0.5))