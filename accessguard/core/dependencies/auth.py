from __future__ import annotations

# FastAPI & typing
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

# Project imports
from accessguard.core.config.settings import settings
from accessguard.core.exceptions import InvalidCredentialError, PermissionError
from accessguard.domain.services.auth.credential import CredentialVerifier, JWTCredentialVerifier
from accessguard.domain.services.auth.session import (
    SessionService,
    SessionValidator,
    ValidatedSession,
)
from accessguard.infrastructure.database import get_async_db
from accessguard.infrastructure.repositories import RoleRepository, SessionRepository

__all__ = [
    "get_client_ip",
    "get_bearer_credential",
    "get_credential_verifier",
    "get_current_session",
    "get_current_admin",
    "get_session_service",
    "SessionManager",
    "Verifier",
    "DBSession",
    "Credential",
    "CurrentSession",
]

logger = get_logger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def get_client_ip(request: Request) -> str:
    """Caller IP used for ``ip`` rate-limit identifiers.

    Order: first ``X-Forwarded-For`` entry, ``CF-Connecting-IP``,
    ``X-Real-IP``, the socket peer, then ``"unknown"``. Proxy headers are
    ignored when ``TRUST_PROXY_HEADERS`` is off.
    """
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        for header in ("cf-connecting-ip", "x-real-ip"):
            value = (request.headers.get(header) or "").strip()
            if value:
                return value
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_bearer_credential(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(_bearer_scheme)],
) -> str:
    """The raw bearer credential; a missing header is an invalid credential."""
    if credentials is None or not credentials.credentials:
        raise InvalidCredentialError("Missing bearer credential")
    return credentials.credentials


@lru_cache(maxsize=1)
def get_credential_verifier() -> CredentialVerifier:
    return JWTCredentialVerifier(
        secret=settings.JWT_SECRET.get_secret_value(),
        algorithms=settings.JWT_ALGORITHMS,
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
        leeway=settings.JWT_LEEWAY_SECONDS,
    )


# ---------------------------------------------------------------------------
# Type-annotated dependency shortcuts
# ---------------------------------------------------------------------------


DBSession = Annotated[AsyncSession, Depends(get_async_db)]
Credential = Annotated[str, Depends(get_bearer_credential)]
Verifier = Annotated[CredentialVerifier, Depends(get_credential_verifier)]


# ---------------------------------------------------------------------------
# Public dependencies
# ---------------------------------------------------------------------------


def get_session_service(db_session: DBSession) -> SessionService:
    return SessionService(SessionRepository(db_session))


SessionManager = Annotated[SessionService, Depends(get_session_service)]


async def get_current_session(
    request: Request, credential: Credential, verifier: Verifier, db_session: DBSession
) -> ValidatedSession:  # noqa: D401
    """Validate the bearer credential and resolve its session.

    First sightings are registered on the spot. The validated session is also
    kept on ``request.state.session`` for handlers and logging.
    """
    validator = SessionValidator(
        verifier,
        SessionRepository(db_session),
        fail_open=settings.SESSION_FAIL_OPEN,
        touch_on_access=settings.SESSION_TOUCH_ON_ACCESS,
    )
    session = await validator.validate(
        credential,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    request.state.session = session
    return session


CurrentSession = Annotated[ValidatedSession, Depends(get_current_session)]


async def get_current_admin(current: CurrentSession, db_session: DBSession) -> ValidatedSession:
    """Ensure the authenticated user holds the *admin* role.

    The role lookup fails closed: a store error is not treated as "admin".
    """
    if not await RoleRepository(db_session).is_admin(current.user_id):
        logger.warning("admin_access_denied", user_id=current.user_id)
        raise PermissionError()
    return current


