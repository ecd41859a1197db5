"""
Rate Limiting Domain Services

The fixed-window limiter shared by every protected operation. All
coordination between instances happens through window rows in the shared
store; there is no in-process state and no locking.

Algorithm per check:
1. Opportunistically purge windows older than one hour (never blocks).
2. Read the current minute window and deny if its count reached the quota.
3. Read the current hour window and deny if its count reached the quota.
4. Record the request in both windows (insert, or overwrite with count + 1).

Steps 2 to 4 are read-then-write without a transaction. Concurrent requests
can read the same count and both write ``count + 1``, so under concurrency
``c`` at most ``per_minute + c`` requests pass in one window. The limiter is a
best-effort throttle, not a strict quota.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from structlog import get_logger

from accessguard.core.exceptions import StoreUnavailableError
from accessguard.domain.entities.rate_limit_window import RateLimitWindow
from accessguard.domain.interfaces.repositories import IRateLimitWindowRepository
from accessguard.domain.value_objects.rate_limit import (
    IdentifierType,
    RateLimitDecision,
    RateLimitQuota,
    WindowGranularity,
)
from accessguard.utils.clock import ensure_utc, utc_now

logger = get_logger(__name__)

WINDOW_RETENTION = timedelta(hours=1)
FAIL_CLOSED_RETRY_SECONDS = 60


class RateLimiter:
    """Database-coordinated fixed-window rate limiter.

    Args:
        repository: Window store.
        enabled: Global kill switch; a disabled limiter allows every request.
        fail_open: Default policy when the store errors. Overridable per call.
        clock: Source of the current UTC time.
    """

    def __init__(
        self,
        repository: IRateLimitWindowRepository,
        enabled: bool = True,
        fail_open: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self.enabled = enabled
        self.fail_open = fail_open
        self._clock = clock

    async def check(
        self,
        identifier: str,
        identifier_type: Union[IdentifierType, str],
        function_name: str,
        limits: RateLimitQuota,
        fail_open: Optional[bool] = None,
    ) -> RateLimitDecision:
        """Counts one request against ``identifier`` for ``function_name``.

        Args:
            identifier: User id or caller IP.
            identifier_type: ``user`` or ``ip``.
            function_name: Name of the protected operation.
            limits: Per-minute and per-hour quota.
            fail_open: Store-error policy for this call; defaults to the
                limiter's policy.

        Returns:
            RateLimitDecision: ``allowed`` with ``within_limit``, or a denial
            carrying ``retry_after_seconds`` in ``[1, window size]``.
        """
        if not self.enabled:
            return RateLimitDecision.allow("rate_limiting_disabled")

        kind = IdentifierType(identifier_type).value
        now = self._clock()

        await self._purge_stale_windows(now)

        try:
            minute_window = await self._current_window(
                identifier, kind, function_name, WindowGranularity.MINUTE, now
            )
            denial = self._exceeded(minute_window, limits, WindowGranularity.MINUTE, now)
            if denial is None:
                hour_window = await self._current_window(
                    identifier, kind, function_name, WindowGranularity.HOUR, now
                )
                denial = self._exceeded(hour_window, limits, WindowGranularity.HOUR, now)

            if denial is not None:
                logger.info(
                    "rate_limit_exceeded",
                    identifier=identifier,
                    identifier_type=kind,
                    function_name=function_name,
                    granularity=denial.granularity.value,
                    retry_after=denial.retry_after_seconds,
                )
                return denial

            await self._record(
                minute_window, identifier, kind, function_name, WindowGranularity.MINUTE, now
            )
            await self._record(
                hour_window, identifier, kind, function_name, WindowGranularity.HOUR, now
            )
        except StoreUnavailableError as exc:
            allow = self.fail_open if fail_open is None else fail_open
            logger.error(
                "rate_limit_store_error",
                identifier=identifier,
                identifier_type=kind,
                function_name=function_name,
                error=str(exc.cause or exc),
                fail_open=allow,
            )
            if allow:
                return RateLimitDecision.allow("store_unavailable")
            return RateLimitDecision.deny(FAIL_CLOSED_RETRY_SECONDS, reason="store_unavailable")

        return RateLimitDecision.allow()

    async def _purge_stale_windows(self, now: datetime) -> None:
        try:
            removed = await self.repository.delete_older_than(now - WINDOW_RETENTION)
        except StoreUnavailableError as exc:
            logger.warning("rate_limit_cleanup_failed", error=str(exc.cause or exc))
            return
        if removed:
            logger.debug("rate_limit_windows_purged", count=removed)

    async def _current_window(
        self,
        identifier: str,
        identifier_type: str,
        function_name: str,
        granularity: WindowGranularity,
        now: datetime,
    ) -> Optional[RateLimitWindow]:
        return await self.repository.get_latest_window(
            identifier,
            identifier_type,
            function_name,
            granularity.value,
            granularity.lookback_start(now),
        )

    @staticmethod
    def _exceeded(
        window: Optional[RateLimitWindow],
        limits: RateLimitQuota,
        granularity: WindowGranularity,
        now: datetime,
    ) -> Optional[RateLimitDecision]:
        if window is None or window.request_count < limits.limit_for(granularity):
            return None
        retry_after = granularity.retry_after(ensure_utc(window.window_start), now)
        return RateLimitDecision.deny(retry_after, granularity)

    async def _record(
        self,
        window: Optional[RateLimitWindow],
        identifier: str,
        identifier_type: str,
        function_name: str,
        granularity: WindowGranularity,
        now: datetime,
    ) -> None:
        window_start = granularity.align(now)
        if window is not None and ensure_utc(window.window_start) == window_start:
            await self.repository.set_count(window.id, window.request_count + 1, now)
            return
        await self.repository.insert_window(
            identifier, identifier_type, function_name, granularity.value, window_start, now
        )
