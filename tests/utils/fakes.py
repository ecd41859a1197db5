"""In-memory stand-ins for the repository interfaces.

They implement the same abstract base classes as the SQL repositories, so a
test exercising a domain service against them exercises the same contract.
"""

import asyncio
from datetime import datetime, timedelta
from typing import List, Optional

from accessguard.core.exceptions import StoreUnavailableError
from accessguard.domain.entities.rate_limit_window import RateLimitWindow
from accessguard.domain.interfaces.repositories import IRateLimitWindowRepository


class InMemoryWindowRepository(IRateLimitWindowRepository):
    """Window store kept in a list.

    ``yield_between_calls`` hands control back to the event loop on every
    call so concurrently scheduled checks interleave their reads and writes
    the way independent instances do against the shared store.
    """

    def __init__(self, yield_between_calls: bool = False):
        self.windows: List[RateLimitWindow] = []
        self.fail_reads = False
        self.fail_writes = False
        self.fail_cleanup = False
        self.yield_between_calls = yield_between_calls
        self._next_id = 1

    async def _pause(self) -> None:
        if self.yield_between_calls:
            await asyncio.sleep(0)

    async def delete_older_than(self, cutoff: datetime) -> int:
        await self._pause()
        if self.fail_cleanup:
            raise StoreUnavailableError()
        before = len(self.windows)
        self.windows = [w for w in self.windows if w.window_start >= cutoff]
        return before - len(self.windows)

    async def get_latest_window(
        self,
        identifier: str,
        identifier_type: str,
        function_name: str,
        granularity: str,
        since: datetime,
    ) -> Optional[RateLimitWindow]:
        await self._pause()
        if self.fail_reads:
            raise StoreUnavailableError()
        matches = [
            w
            for w in self.windows
            if w.identifier == identifier
            and w.identifier_type == identifier_type
            and w.function_name == function_name
            and w.window_granularity == granularity
            and w.window_start > since
        ]
        if not matches:
            return None
        latest = max(matches, key=lambda w: w.window_start)
        # Hand out a copy, as a fresh database read would.
        return RateLimitWindow(
            id=latest.id,
            identifier=latest.identifier,
            identifier_type=latest.identifier_type,
            function_name=latest.function_name,
            window_granularity=latest.window_granularity,
            window_start=latest.window_start,
            request_count=latest.request_count,
            updated_at=latest.updated_at,
        )

    async def insert_window(
        self,
        identifier: str,
        identifier_type: str,
        function_name: str,
        granularity: str,
        window_start: datetime,
        now: datetime,
    ) -> None:
        await self._pause()
        if self.fail_writes:
            raise StoreUnavailableError()
        existing = [
            w
            for w in self.windows
            if (w.identifier, w.identifier_type, w.function_name, w.window_granularity, w.window_start)
            == (identifier, identifier_type, function_name, granularity, window_start)
        ]
        if existing:
            # Mirrors the unique constraint on the window key.
            raise StoreUnavailableError("duplicate window")
        self.windows.append(
            RateLimitWindow(
                id=self._next_id,
                identifier=identifier,
                identifier_type=identifier_type,
                function_name=function_name,
                window_granularity=granularity,
                window_start=window_start,
                request_count=1,
                updated_at=now,
            )
        )
        self._next_id += 1

    async def set_count(self, window_id: int, request_count: int, now: datetime) -> None:
        await self._pause()
        if self.fail_writes:
            raise StoreUnavailableError()
        for window in self.windows:
            if window.id == window_id:
                window.request_count = request_count
                window.updated_at = now

    def count(self, function_name: str, granularity: str) -> int:
        return sum(
            w.request_count
            for w in self.windows
            if w.function_name == function_name and w.window_granularity == granularity
        )


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)
