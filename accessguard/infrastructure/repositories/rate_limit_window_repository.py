"""Window storage for the fixed-window rate limiter.

Counts are read and then overwritten; there is no atomic
``count = count + 1`` here, matching the limiter's best-effort contract.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update

from accessguard.domain.entities.rate_limit_window import RateLimitWindow
from accessguard.domain.interfaces.repositories import IRateLimitWindowRepository
from accessguard.infrastructure.repositories.base import SQLRepository, store_operation


class RateLimitWindowRepository(SQLRepository, IRateLimitWindowRepository):
    async def delete_older_than(self, cutoff: datetime) -> int:
        async with store_operation(self.db_session, "delete_stale_windows"):
            result = await self.db_session.execute(
                delete(RateLimitWindow).where(RateLimitWindow.window_start < cutoff)
            )
            await self.db_session.commit()
            return result.rowcount or 0

    async def get_latest_window(
        self,
        identifier: str,
        identifier_type: str,
        function_name: str,
        granularity: str,
        since: datetime,
    ) -> Optional[RateLimitWindow]:
        statement = (
            select(RateLimitWindow)
            .where(
                RateLimitWindow.identifier == identifier,
                RateLimitWindow.identifier_type == identifier_type,
                RateLimitWindow.function_name == function_name,
                RateLimitWindow.window_granularity == granularity,
                RateLimitWindow.window_start > since,
            )
            .order_by(RateLimitWindow.window_start.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        async with store_operation(
            self.db_session, "get_latest_window", function_name=function_name
        ):
            result = await self.db_session.execute(statement)
            return result.scalars().first()

    async def insert_window(
        self,
        identifier: str,
        identifier_type: str,
        function_name: str,
        granularity: str,
        window_start: datetime,
        now: datetime,
    ) -> None:
        async with store_operation(
            self.db_session, "insert_window", function_name=function_name
        ):
            self.db_session.add(
                RateLimitWindow(
                    identifier=identifier,
                    identifier_type=identifier_type,
                    function_name=function_name,
                    window_granularity=granularity,
                    window_start=window_start,
                    request_count=1,
                    updated_at=now,
                )
            )
            await self.db_session.commit()

    async def set_count(self, window_id: int, request_count: int, now: datetime) -> None:
        async with store_operation(self.db_session, "set_window_count", window_id=window_id):
            await self.db_session.execute(
                update(RateLimitWindow)
                .where(RateLimitWindow.id == window_id)
                .values(request_count=request_count, updated_at=now)
            )
            await self.db_session.commit()
