from enum import Enum  # For type-safe role enumeration
from typing import Optional

from sqlalchemy import String, UniqueConstraint
from sqlmodel import Column, Field, SQLModel


class Role(str, Enum):
    """Roles recognized by the access-control layer.

    Attributes:
        ADMIN: May manage other users' sessions and entitlements.
        USER: Regular storefront customer.
    """

    ADMIN = "admin"
    USER = "user"


class UserRole(SQLModel, table=True):
    """Role assignment for an identity-provider user."""

    __tablename__ = "user_roles"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    role: str = Field(default=Role.USER.value, sa_column=Column(String(32), nullable=False))

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
        {"extend_existing": True},
    )
