from __future__ import annotations

"""Request and response Pydantic models for the v1 endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from accessguard.domain.entities.entitlement import Entitlement, GrantType
from accessguard.domain.entities.session import UserSession

# ---------------------------------------------------------------------------
# Requests -------------------------------------------------------------------
# ---------------------------------------------------------------------------


class ValidateLicenseRequest(BaseModel):
    """Payload expected by ``POST /access/validate``.

    One of ``product_id`` or ``product_slug`` is required.
    """

    product_id: Optional[str] = Field(default=None, examples=["9f1c2a7e-0d4b-4c1a-9b7e-1f2d3c4b5a6e"])
    product_slug: Optional[str] = Field(default=None, examples=["pro-toolkit"])


class RevokeSessionRequest(BaseModel):
    """Payload expected by ``POST /sessions/revoke``."""

    session_id: Optional[int] = Field(default=None, examples=[42])
    revoke_all: bool = False
    target_user_id: Optional[str] = Field(
        default=None, description="Another user's id; administrators only."
    )


class GrantAccessRequest(BaseModel):
    """Payload expected by ``POST /admin/entitlements``."""

    user_id: str = Field(..., min_length=1)
    app_id: str = Field(..., min_length=1, examples=["all"])
    grant_type: str = Field(default=GrantType.MANUAL.value, examples=["manual", "lifetime"])
    expires_at: Optional[datetime] = None
    reason: Optional[str] = Field(default=None, max_length=1024)


class RevokeAccessRequest(BaseModel):
    """Payload expected by ``POST /admin/entitlements/{id}/revoke``."""

    reason: Optional[str] = Field(default=None, max_length=1024)


# ---------------------------------------------------------------------------
# Responses ------------------------------------------------------------------
# ---------------------------------------------------------------------------


class ValidateLicenseResponse(BaseModel):
    allowed: bool
    reason: str
    user_id: str
    product_id: Optional[str] = None


class SessionOut(BaseModel):
    """A session as shown to its owner. The credential digest is never exposed."""

    id: int
    user_id: str
    created_at: datetime
    last_accessed: datetime
    expires_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_current: bool = False

    @classmethod
    def from_entity(cls, session: UserSession, current_id: Optional[int] = None) -> SessionOut:
        return cls(
            id=session.id,
            user_id=session.user_id,
            created_at=session.created_at,
            last_accessed=session.last_accessed,
            expires_at=session.expires_at,
            ip_address=session.ip_address,
            user_agent=session.user_agent,
            is_current=current_id is not None and session.id == current_id,
        )


class SessionListResponse(BaseModel):
    sessions: List[SessionOut]
    total: int


class RevokeSessionResponse(BaseModel):
    message: str
    revoked_count: int


class EntitlementOut(BaseModel):
    id: int
    user_id: str
    app_id: str
    active: bool
    status: str
    grant_type: str
    expires_at: Optional[datetime] = None
    granted_by: Optional[str] = None
    grant_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, entitlement: Entitlement, status: str) -> EntitlementOut:
        return cls(
            id=entitlement.id,
            user_id=entitlement.user_id,
            app_id=entitlement.app_id,
            active=entitlement.active,
            status=status,
            grant_type=entitlement.grant_type,
            expires_at=entitlement.expires_at,
            granted_by=entitlement.granted_by,
            grant_reason=entitlement.grant_reason,
            created_at=entitlement.created_at,
            updated_at=entitlement.updated_at,
        )


class EntitlementListResponse(BaseModel):
    user_id: str
    entitlements: List[EntitlementOut]
    total: int
