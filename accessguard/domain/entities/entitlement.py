from datetime import datetime  # For timestamp fields
from enum import Enum  # For type-safe grant types
from typing import Optional  # For optional fields

from sqlalchemy import Boolean, DateTime, Index, String, UniqueConstraint
from sqlmodel import Column, Field, SQLModel  # For ORM and table definition

from accessguard.utils.clock import utc_now

ALL_PRODUCTS = "all"


class GrantType(str, Enum):
    """How an administrative entitlement was granted."""

    MANUAL = "manual"
    TRIAL = "trial"
    SUBSCRIPTION = "subscription"
    LIFETIME = "lifetime"


class Entitlement(SQLModel, table=True):
    """An explicit, admin-controlled access grant, independent of purchases.

    At most one row exists per (user_id, app_id). Re-granting updates the row
    in place; revoking only clears ``active``. Rows are never deleted.

    Attributes:
        id: Surrogate key.
        user_id: Grantee.
        app_id: Product id, or ``"all"`` for every product.
        active: Whether the grant currently applies.
        expires_at: Optional end of the grant. Lifetime grants have none.
        grant_type: One of :class:`GrantType`.
        granted_by: Administrator who last granted it.
        grant_reason: Free-text justification; required for manual grants.
    """

    __tablename__ = "entitlements"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="Grantee of the entitlement.",
    )
    app_id: str = Field(
        sa_column=Column(String(128), nullable=False),
        description="Product id or the wildcard 'all'.",
    )
    active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True),
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )
    grant_type: str = Field(
        default=GrantType.MANUAL.value,
        sa_column=Column(String(32), nullable=False),
    )
    granted_by: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
    )
    grant_reason: Optional[str] = Field(
        default=None,
        sa_column=Column(String(1024), nullable=True),
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "app_id", name="uq_entitlements_user_app"),
        Index("ix_entitlements_user_id_active", "user_id", "active"),
        {"extend_existing": True},
    )
