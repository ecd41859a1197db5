"""Administrator endpoints for sessions and entitlements.

Every route requires the ``admin`` role. Grants are upserted per
(user, product); revocations only deactivate a grant so its history stays
visible in listings.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from accessguard.adapters.api.v1.schemas import (
    EntitlementListResponse,
    EntitlementOut,
    GrantAccessRequest,
    RevokeAccessRequest,
    SessionListResponse,
    SessionOut,
)
from accessguard.core.dependencies.auth import SessionManager, get_current_admin
from accessguard.core.dependencies.entitlements import AdminEntitlements
from accessguard.core.dependencies.rate_limit import rate_limited
from accessguard.domain.entitlements import entitlement_status
from accessguard.domain.services.auth import ValidatedSession
from accessguard.utils.clock import utc_now

router = APIRouter()


@router.get(
    "/users/{user_id}/sessions",
    response_model=SessionListResponse,
    summary="List a user's active sessions",
)
async def admin_get_user_sessions(
    user_id: str,
    sessions: SessionManager,
    _rate_limit=Depends(rate_limited("admin-get-user-sessions")),
    admin: ValidatedSession = Depends(get_current_admin),
) -> SessionListResponse:
    active = await sessions.list_active(user_id)
    items = [SessionOut.from_entity(s, current_id=admin.session_id) for s in active]
    return SessionListResponse(sessions=items, total=len(items))


@router.post(
    "/entitlements",
    response_model=EntitlementOut,
    status_code=status.HTTP_201_CREATED,
    summary="Grant a user access to a product or to every product",
)
async def admin_grant_access(
    payload: GrantAccessRequest,
    entitlements: AdminEntitlements,
    _rate_limit=Depends(rate_limited("admin-grant-access")),
    admin: ValidatedSession = Depends(get_current_admin),
) -> EntitlementOut:
    entitlement = await entitlements.grant(
        admin.user_id,
        payload.user_id,
        payload.app_id,
        grant_type=payload.grant_type,
        expires_at=payload.expires_at,
        reason=payload.reason,
    )
    return EntitlementOut.from_entity(entitlement, entitlement_status(entitlement, utc_now()))


@router.post(
    "/entitlements/{entitlement_id}/revoke",
    response_model=EntitlementOut,
    summary="Deactivate a grant",
)
async def admin_revoke_access(
    entitlement_id: int,
    entitlements: AdminEntitlements,
    payload: Optional[RevokeAccessRequest] = None,
    _rate_limit=Depends(rate_limited("admin-revoke-access")),
    admin: ValidatedSession = Depends(get_current_admin),
) -> EntitlementOut:
    entitlement = await entitlements.revoke(
        admin.user_id, entitlement_id, payload.reason if payload else None
    )
    return EntitlementOut.from_entity(entitlement, entitlement_status(entitlement, utc_now()))


@router.get(
    "/users/{user_id}/entitlements",
    response_model=EntitlementListResponse,
    summary="List every grant of a user, active or not",
)
async def admin_list_entitlements(
    user_id: str,
    entitlements: AdminEntitlements,
    _rate_limit=Depends(rate_limited("admin-list-entitlements")),
    admin: ValidatedSession = Depends(get_current_admin),
) -> EntitlementListResponse:
    now = utc_now()
    items = [
        EntitlementOut.from_entity(e, entitlement_status(e, now))
        for e in await entitlements.list_for_user(user_id)
    ]
    return EntitlementListResponse(user_id=user_id, entitlements=items, total=len(items))
