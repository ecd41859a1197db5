"""Self-service session management.

Sessions are registered automatically on a credential's first authenticated
use; ``POST /sessions`` lets a login flow register one explicitly and returns
it. Listing and revocation act on the caller's own sessions unless the
caller is an administrator.
"""

from fastapi import APIRouter, Depends, Request, status
from structlog import get_logger

from accessguard.adapters.api.v1.schemas import (
    RevokeSessionRequest,
    RevokeSessionResponse,
    SessionListResponse,
    SessionOut,
)
from accessguard.core.dependencies.auth import (
    Credential,
    CurrentSession,
    DBSession,
    SessionManager,
    Verifier,
    get_client_ip,
)
from accessguard.core.dependencies.rate_limit import rate_limited
from accessguard.core.exceptions import PermissionError, ValidationError
from accessguard.infrastructure.repositories import RoleRepository

logger = get_logger(__name__)
router = APIRouter()


@router.post(
    "",
    response_model=SessionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register the session of the presented credential",
)
async def register_session(
    request: Request,
    credential: Credential,
    verifier: Verifier,
    current: CurrentSession,
    sessions: SessionManager,
    _rate_limit=Depends(rate_limited("register-session")),
) -> SessionOut:
    verified = verifier.verify(credential)
    session = await sessions.register(
        verified.user_id,
        credential,
        verified.expires_at,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return SessionOut.from_entity(session, current_id=session.id)


@router.get(
    "",
    response_model=SessionListResponse,
    summary="List the caller's active sessions",
)
async def list_sessions(
    current: CurrentSession,
    sessions: SessionManager,
    _rate_limit=Depends(rate_limited("get-user-sessions")),
) -> SessionListResponse:
    active = await sessions.list_active(current.user_id)
    items = [SessionOut.from_entity(s, current_id=current.session_id) for s in active]
    return SessionListResponse(sessions=items, total=len(items))


@router.post(
    "/revoke",
    response_model=RevokeSessionResponse,
    summary="Revoke one session, or every other session",
    responses={
        400: {"description": "Nothing to revoke, or the current session targeted"},
        403: {"description": "Another user's sessions targeted without the admin role"},
        404: {"description": "Session not found"},
    },
)
async def revoke_session(
    payload: RevokeSessionRequest,
    credential: Credential,
    current: CurrentSession,
    sessions: SessionManager,
    db_session: DBSession,
    _rate_limit=Depends(rate_limited("revoke-session")),
) -> RevokeSessionResponse:
    """Revoke sessions of the caller, or of ``target_user_id`` for administrators.

    ``revoke_all`` keeps the session making the call when a user acts on
    their own account.
    """
    if payload.session_id is None and not payload.revoke_all:
        raise ValidationError("session_id or revoke_all is required", code="missing_fields")

    target_user_id = payload.target_user_id or current.user_id
    acting_on_other = target_user_id != current.user_id
    is_admin = await RoleRepository(db_session).is_admin(current.user_id)
    if acting_on_other and not is_admin:
        logger.warning(
            "session_revoke_denied", user_id=current.user_id, target_user_id=target_user_id
        )
        raise PermissionError("Admin access required to revoke other users' sessions")

    if payload.revoke_all:
        count = await sessions.revoke_all(
            target_user_id,
            actor_id=current.user_id,
            actor_is_admin=is_admin,
            keep_credential=None if acting_on_other else credential,
        )
        return RevokeSessionResponse(message=f"Revoked {count} session(s)", revoked_count=count)

    await sessions.revoke(
        payload.session_id,
        actor_id=current.user_id,
        actor_is_admin=is_admin,
        current_credential=credential,
    )
    return RevokeSessionResponse(message="Session revoked", revoked_count=1)
