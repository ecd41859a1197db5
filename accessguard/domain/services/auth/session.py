from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from structlog import get_logger

from accessguard.core.exceptions import (
    PermissionError,
    SessionNotFoundError,
    SessionRevokedError,
    StoreUnavailableError,
    ValidationError,
)
from accessguard.domain.entities.session import UserSession
from accessguard.domain.interfaces.repositories import ISessionRepository
from accessguard.domain.services.auth.credential import CredentialVerifier, digest_credential
from accessguard.utils.clock import utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class ValidatedSession:
    """Identity established for one request.

    Attributes:
        user_id: Subject of the verified credential.
        is_new_session: The credential was seen for the first time and its
            session was registered by this request.
        session_id: Id of the session row, when known.
        degraded: The session store could not be consulted and the
            credential was trusted on its signature alone.
    """

    user_id: str
    is_new_session: bool = False
    session_id: Optional[int] = None
    degraded: bool = False


class SessionValidator:
    """Checks that a bearer credential belongs to a live, non-revoked session.

    A credential that verifies but has never been seen is registered on the
    spot. A credential whose session was revoked is refused even though its
    signature and expiry are still valid.

    Attributes:
        verifier: Signature, expiry and audience checks.
        repository: Session and tombstone store.
        fail_open: Trust a verified credential when the store errors.
        touch_on_access: Refresh ``last_accessed`` on every validation.
    """

    def __init__(
        self,
        verifier: CredentialVerifier,
        repository: ISessionRepository,
        fail_open: bool = True,
        touch_on_access: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.verifier = verifier
        self.repository = repository
        self.fail_open = fail_open
        self.touch_on_access = touch_on_access
        self._clock = clock

    async def validate(
        self,
        credential: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> ValidatedSession:
        """Validate ``credential`` and resolve its session.

        Raises:
            InvalidCredentialError: The credential failed verification. Never
                subject to the fail-open policy.
            SessionRevokedError: The credential's session was revoked.
            StoreUnavailableError: The store failed and ``fail_open`` is off.
        """
        verified = self.verifier.verify(credential)
        token_digest = digest_credential(credential)

        try:
            session = await self.repository.get_by_token(token_digest)
            if session is not None:
                await self._touch(session)
                return ValidatedSession(user_id=verified.user_id, session_id=session.id)

            if await self.repository.is_revoked(token_digest):
                logger.info("revoked_session_rejected", user_id=verified.user_id)
                raise SessionRevokedError()

            now = self._clock()
            created = await self.repository.create(
                UserSession(
                    user_id=verified.user_id,
                    session_token=token_digest,
                    created_at=now,
                    last_accessed=now,
                    expires_at=verified.expires_at,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
            )
        except StoreUnavailableError as exc:
            if not self.fail_open:
                raise
            logger.error(
                "session_store_error",
                user_id=verified.user_id,
                error=str(exc.cause or exc),
                fail_open=True,
            )
            return ValidatedSession(user_id=verified.user_id, degraded=True)

        logger.info("session_auto_registered", user_id=verified.user_id, session_id=created.id)
        return ValidatedSession(
            user_id=verified.user_id, is_new_session=True, session_id=created.id
        )

    async def _touch(self, session: UserSession) -> None:
        if not self.touch_on_access:
            return
        try:
            await self.repository.touch(session.id, self._clock())
        except StoreUnavailableError as exc:
            logger.warning("session_touch_failed", session_id=session.id, error=str(exc))


class SessionService:
    """Explicit session management: registration at login, listing and revocation."""

    def __init__(
        self,
        repository: ISessionRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repository = repository
        self._clock = clock

    async def register(
        self,
        user_id: str,
        credential: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> UserSession:
        """Register the session of a freshly issued credential.

        Idempotent: registering the same credential twice returns the
        existing session.

        Raises:
            SessionRevokedError: The credential was already revoked.
        """
        token_digest = digest_credential(credential)
        existing = await self.repository.get_by_token(token_digest)
        if existing is not None:
            return existing
        if await self.repository.is_revoked(token_digest):
            raise SessionRevokedError()

        now = self._clock()
        session = await self.repository.create(
            UserSession(
                user_id=user_id,
                session_token=token_digest,
                created_at=now,
                last_accessed=now,
                expires_at=expires_at,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )
        logger.info("session_registered", user_id=user_id, session_id=session.id)
        return session

    async def list_active(self, user_id: str) -> List[UserSession]:
        return await self.repository.list_active(user_id, self._clock())

    async def revoke(
        self,
        session_id: int,
        actor_id: str,
        actor_is_admin: bool = False,
        current_credential: Optional[str] = None,
    ) -> UserSession:
        """Revoke one session and tombstone its credential.

        Users may revoke their own sessions except the one making the call;
        administrators may revoke any session.

        Raises:
            SessionNotFoundError: No such session.
            PermissionError: The session belongs to someone else and the
                actor is not an administrator.
            ValidationError: A user tried to revoke the session they are using.
        """
        session = await self.repository.get_by_id(session_id)
        if session is None:
            raise SessionNotFoundError()
        if not actor_is_admin and session.user_id != actor_id:
            raise PermissionError("Admin access required to revoke other users' sessions")

        if (
            not actor_is_admin
            and current_credential
            and session.session_token == digest_credential(current_credential)
        ):
            raise ValidationError(
                "Cannot revoke the current session", code="cannot_revoke_current_session"
            )

        await self.repository.delete(session, revoked_by=actor_id)
        logger.info(
            "session_revoked",
            session_id=session_id,
            user_id=session.user_id,
            revoked_by=actor_id,
            by_admin=actor_is_admin,
        )
        return session

    async def revoke_all(
        self,
        user_id: str,
        actor_id: str,
        actor_is_admin: bool = False,
        keep_credential: Optional[str] = None,
    ) -> int:
        """Revoke every active session of ``user_id``.

        The session of ``keep_credential`` survives, so "log out everywhere
        else" keeps the caller logged in.

        Returns:
            Number of sessions revoked.
        """
        if not actor_is_admin and user_id != actor_id:
            raise PermissionError()

        keep_digest = digest_credential(keep_credential) if keep_credential else None
        revoked = 0
        for session in await self.repository.list_active(user_id, self._clock()):
            if session.session_token == keep_digest:
                continue
            await self.repository.delete(session, revoked_by=actor_id)
            revoked += 1

        logger.info("sessions_revoked", user_id=user_id, revoked_by=actor_id, count=revoked)
        return revoked

    async def purge_expired(self) -> int:
        removed = await self.repository.purge_expired(self._clock())
        if removed:
            logger.info("expired_sessions_purged", count=removed)
        return removed
