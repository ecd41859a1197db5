from datetime import datetime  # For timestamp fields
from typing import Optional  # For optional fields

from sqlalchemy import DateTime, Index, String  # For explicit column types
from sqlmodel import Column, Field, SQLModel  # For ORM and table definition

from accessguard.utils.clock import utc_now


class UserSession(SQLModel, table=True):
    """Represents a live bearer credential.

    A credential is honored only while its digest is present here; deleting
    the row revokes the credential even if its signature and expiry are still
    valid. Rows are created on the first authenticated use of a fresh
    credential or explicitly at login.

    Attributes:
        id: Surrogate key, also used to address the session when revoking it.
        user_id: Identity-provider subject the credential was issued to.
        session_token: SHA-256 hex digest of the bearer credential. The raw
            credential is never stored.
        created_at: When the session was registered.
        expires_at: Expiry copied from the credential's ``exp`` claim.
        last_accessed: Last authenticated request made with the credential.
        ip_address: Caller IP at registration.
        user_agent: Caller user agent at registration.
    """

    __tablename__ = "user_sessions"

    id: Optional[int] = Field(
        default=None,  # Auto-incremented by database
        primary_key=True,
        description="The unique identifier for the session record.",
    )
    user_id: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="Subject of the credential.",
    )
    session_token: str = Field(
        sa_column=Column(String(64), unique=True, nullable=False),
        description="SHA-256 digest of the bearer credential.",
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="When the session was registered.",
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="Expiry of the underlying credential.",
    )
    last_accessed: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="Last authenticated request made with the credential.",
    )
    ip_address: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Caller IP at registration.",
    )
    user_agent: Optional[str] = Field(
        default=None,
        sa_column=Column(String(512), nullable=True),
        description="Caller user agent at registration.",
    )

    __table_args__ = (
        Index("ix_user_sessions_user_id_expires_at", "user_id", "expires_at"),
        {"extend_existing": True},
    )


class RevokedSession(SQLModel, table=True):
    """Tombstone for a session deleted by a revocation.

    Without it a revoked credential would look exactly like a brand-new one
    and be registered again on its next use. Tombstones are kept until the
    credential itself expires.

    Attributes:
        id: Surrogate key.
        session_token: Digest of the revoked credential.
        user_id: Owner of the revoked session.
        revoked_by: User id of whoever revoked it.
        revoked_at: Revocation time.
        expires_at: Expiry of the revoked credential; the tombstone can be
            purged afterwards.
    """

    __tablename__ = "revoked_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_token: str = Field(
        sa_column=Column(String(64), unique=True, nullable=False),
        description="SHA-256 digest of the revoked credential.",
    )
    user_id: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="Owner of the revoked session.",
    )
    revoked_by: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Who revoked the session.",
    )
    revoked_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="When the revoked credential would have expired.",
    )

    __table_args__ = (
        Index("ix_revoked_sessions_expires_at", "expires_at"),  # Index for purge
        {"extend_existing": True},
    )
