"""Rate limiting value objects.

These value objects describe fixed request windows and the quotas enforced
against them. They carry no persistence concerns; the window rows themselves
live in :mod:`accessguard.domain.entities.rate_limit_window`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class IdentifierType(str, Enum):
    """What a rate limit identifier refers to."""

    USER = "user"
    IP = "ip"


class WindowGranularity(str, Enum):
    """Size of a fixed rate-limit window.

    Windows are aligned to the literal minute (``HH:MM:00``) or hour
    (``HH:00:00``) boundary, never to "N seconds before now".
    """

    MINUTE = "minute"
    HOUR = "hour"

    @property
    def size(self) -> timedelta:
        return timedelta(minutes=1) if self is WindowGranularity.MINUTE else timedelta(hours=1)

    def align(self, moment: datetime) -> datetime:
        """Truncate ``moment`` to the start of the window containing it."""
        if self is WindowGranularity.MINUTE:
            return moment.replace(second=0, microsecond=0)
        return moment.replace(minute=0, second=0, microsecond=0)

    def lookback_start(self, now: datetime) -> datetime:
        """Lower (exclusive) bound for windows still counting at ``now``."""
        return now - self.size

    def retry_after(self, window_start: datetime, now: datetime) -> int:
        """Whole seconds until the window starting at ``window_start`` ends.

        Clamped to at least one second and at most the window size.
        """
        remaining = (window_start + self.size - now).total_seconds()
        seconds = max(1, math.ceil(remaining))
        return min(seconds, int(self.size.total_seconds()))


@dataclass(frozen=True)
class RateLimitQuota:
    """Per-minute and per-hour request allowance for one protected operation.

    Attributes:
        per_minute: Maximum requests inside one minute window.
        per_hour: Maximum requests inside one hour window.
        identifier_type: What the operation is normally keyed on.
    """

    per_minute: int
    per_hour: int
    identifier_type: IdentifierType = IdentifierType.USER

    def __post_init__(self) -> None:
        if self.per_minute <= 0 or self.per_hour <= 0:
            raise ValueError("Rate limit quotas must be positive")

    def limit_for(self, granularity: WindowGranularity) -> int:
        return self.per_minute if granularity is WindowGranularity.MINUTE else self.per_hour


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate-limit check.

    ``retry_after_seconds`` is only set on denials. ``reason`` is a short
    machine-readable code: ``within_limit``, ``rate_limited``,
    ``store_unavailable`` or ``rate_limiting_disabled``.
    """

    allowed: bool
    retry_after_seconds: Optional[int] = None
    reason: str = "within_limit"
    granularity: Optional[WindowGranularity] = None

    @classmethod
    def allow(cls, reason: str = "within_limit") -> RateLimitDecision:
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(
        cls,
        retry_after_seconds: int,
        granularity: Optional[WindowGranularity] = None,
        reason: str = "rate_limited",
    ) -> RateLimitDecision:
        return cls(
            allowed=False,
            retry_after_seconds=retry_after_seconds,
            reason=reason,
            granularity=granularity,
        )
