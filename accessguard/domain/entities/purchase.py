"""Catalog and purchase tables.

These rows are written by the payment webhook handlers of the storefront.
The access-control core only reads them.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, Index, String
from sqlmodel import Column, Field, SQLModel

from accessguard.utils.clock import utc_now


class Product(SQLModel, table=True):
    """A sellable product, addressed by id or slug."""

    __tablename__ = "products"

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        sa_column=Column(String(64), primary_key=True),
    )
    slug: str = Field(sa_column=Column(String(128), unique=True, nullable=False))
    status: str = Field(default="published", sa_column=Column(String(32), nullable=False))

    __table_args__ = ({"extend_existing": True},)


class Service(SQLModel, table=True):
    """A service offering. Family plans are recognized by slug."""

    __tablename__ = "services"

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        sa_column=Column(String(64), primary_key=True),
    )
    slug: str = Field(sa_column=Column(String(128), unique=True, nullable=False))

    __table_args__ = ({"extend_existing": True},)


class _PurchaseFields(SQLModel):
    """Columns shared by product and service purchases.

    Declared with ``sa_type`` rather than ``sa_column`` so each table gets its
    own Column objects.
    """

    user_id: str = Field(max_length=64, index=True, nullable=False)
    purchase_type: str = Field(max_length=32, nullable=False)
    status: str = Field(default="active", max_length=32, nullable=False)
    payment_status: Optional[str] = Field(default=None, max_length=32, nullable=True)
    expires_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True), nullable=True
    )
    current_period_end: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True), nullable=True
    )
    grace_period_ends_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True), nullable=True
    )
    is_trial: bool = Field(default=False, nullable=False)
    trial_end: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True), nullable=True
    )
    purchased_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False
    )


class ProductPurchase(_PurchaseFields, table=True):
    """A user's purchase of a single product."""

    __tablename__ = "product_purchases"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: str = Field(max_length=64, nullable=False)

    __table_args__ = (
        Index("ix_product_purchases_user_product", "user_id", "product_id"),
        {"extend_existing": True},
    )


class ServicePurchase(_PurchaseFields, table=True):
    """A user's purchase of a service, e.g. an all-products family plan."""

    __tablename__ = "service_purchases"

    id: Optional[int] = Field(default=None, primary_key=True)
    service_id: str = Field(max_length=64, nullable=False)

    __table_args__ = (
        Index("ix_service_purchases_user_status", "user_id", "status"),
        {"extend_existing": True},
    )
