"""Session repository backed by the ``user_sessions`` and ``revoked_sessions`` tables."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from structlog import get_logger

from accessguard.core.exceptions import StoreUnavailableError
from accessguard.domain.entities.session import RevokedSession, UserSession
from accessguard.domain.interfaces.repositories import ISessionRepository
from accessguard.infrastructure.repositories.base import SQLRepository, store_operation
from accessguard.utils.clock import utc_now

logger = get_logger(__name__)


class SessionRepository(SQLRepository, ISessionRepository):
    """SQL implementation of :class:`ISessionRepository`.

    Credentials are only ever looked up by digest; the raw bearer value never
    reaches this layer.
    """

    async def get_by_token(self, token_digest: str) -> Optional[UserSession]:
        statement = (
            select(UserSession)
            .where(UserSession.session_token == token_digest)
            .execution_options(populate_existing=True)
        )
        async with store_operation(self.db_session, "get_session_by_token"):
            result = await self.db_session.execute(statement)
            return result.scalars().first()

    async def get_by_id(self, session_id: int) -> Optional[UserSession]:
        statement = select(UserSession).where(UserSession.id == session_id)
        async with store_operation(self.db_session, "get_session_by_id", session_id=session_id):
            result = await self.db_session.execute(statement)
            return result.scalars().first()

    async def create(self, session: UserSession) -> UserSession:
        """Insert ``session``.

        When another request registered the same credential first, the
        unique digest makes the insert fail and the existing row is returned.
        """
        async with store_operation(self.db_session, "create_session", user_id=session.user_id):
            try:
                self.db_session.add(session)
                await self.db_session.commit()
            except IntegrityError:
                await self.db_session.rollback()
                existing = await self.get_by_token(session.session_token)
                if existing is None:
                    raise StoreUnavailableError("Session could not be registered")
                logger.debug("session_registered_concurrently", session_id=existing.id)
                return existing
            return session

    async def touch(self, session_id: int, accessed_at: datetime) -> None:
        async with store_operation(self.db_session, "touch_session", session_id=session_id):
            await self.db_session.execute(
                update(UserSession)
                .where(UserSession.id == session_id)
                .values(last_accessed=accessed_at)
            )
            await self.db_session.commit()

    async def list_active(self, user_id: str, now: datetime) -> List[UserSession]:
        statement = (
            select(UserSession)
            .where(UserSession.user_id == user_id, UserSession.expires_at > now)
            .order_by(UserSession.created_at.desc(), UserSession.id.desc())
        )
        async with store_operation(self.db_session, "list_active_sessions", user_id=user_id):
            result = await self.db_session.execute(statement)
            return list(result.scalars().all())

    async def delete(self, session: UserSession, revoked_by: Optional[str]) -> None:
        async with store_operation(self.db_session, "delete_session", session_id=session.id):
            await self.db_session.execute(
                delete(UserSession).where(UserSession.id == session.id)
            )
            already_revoked = await self.db_session.execute(
                select(RevokedSession.id).where(
                    RevokedSession.session_token == session.session_token
                )
            )
            if already_revoked.first() is None:
                self.db_session.add(
                    RevokedSession(
                        session_token=session.session_token,
                        user_id=session.user_id,
                        revoked_by=revoked_by,
                        revoked_at=utc_now(),
                        expires_at=session.expires_at,
                    )
                )
            await self.db_session.commit()

    async def is_revoked(self, token_digest: str) -> bool:
        statement = (
            select(RevokedSession.id)
            .where(RevokedSession.session_token == token_digest)
            .limit(1)
        )
        async with store_operation(self.db_session, "check_revoked_session"):
            result = await self.db_session.execute(statement)
            return result.first() is not None

    async def purge_expired(self, now: datetime) -> int:
        async with store_operation(self.db_session, "purge_expired_sessions"):
            sessions = await self.db_session.execute(
                delete(UserSession).where(UserSession.expires_at <= now)
            )
            tombstones = await self.db_session.execute(
                delete(RevokedSession).where(RevokedSession.expires_at <= now)
            )
            await self.db_session.commit()
            return (sessions.rowcount or 0) + (tombstones.rowcount or 0)
