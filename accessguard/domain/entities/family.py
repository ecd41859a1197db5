"""Family plan membership tables, maintained by the family management flow."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String
from sqlmodel import Column, Field, SQLModel


class FamilyMember(SQLModel, table=True):
    """Membership of a user in a family group."""

    __tablename__ = "family_members"

    id: Optional[int] = Field(default=None, primary_key=True)
    family_group_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    user_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    status: str = Field(default="active", sa_column=Column(String(32), nullable=False))

    __table_args__ = (
        Index("ix_family_members_user_status", "user_id", "status"),
        {"extend_existing": True},
    )


class FamilySubscription(SQLModel, table=True):
    """The paid subscription backing a family group."""

    __tablename__ = "family_subscriptions"

    id: Optional[int] = Field(default=None, primary_key=True)
    family_group_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    plan_name: Optional[str] = Field(default=None, sa_column=Column(String(64), nullable=True))
    status: str = Field(default="active", sa_column=Column(String(32), nullable=False))
    current_period_end: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    __table_args__ = ({"extend_existing": True},)
