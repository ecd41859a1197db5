"""Entitlement value objects.

An entitlement decision is computed from an immutable :class:`EntitlementSnapshot`
of everything that can grant a user access to a product. The records inside
the snapshot are plain, timezone-normalized copies of the database rows so
the evaluation itself never touches the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Tuple

from accessguard.utils.clock import ensure_utc


class PurchaseType(str, Enum):
    """How a product or service was bought."""

    SUBSCRIPTION = "subscription"
    ONE_TIME = "one_time"
    TRIAL = "trial"


class ReasonCode:
    """Machine-readable reasons attached to every entitlement decision."""

    AUTHENTICATED_USER_ACCESS = "authenticated_user_access"
    ADMIN_BYPASS = "admin_bypass"

    GRACE_PERIOD = "grace_period"
    SUBSCRIPTION_ACTIVE = "subscription_active"
    ONE_TIME_PAID = "one_time_paid"
    TRIAL_ACTIVE = "trial_active"

    FAMILY_PLAN_PREFIX = "family_plan_"
    FAMILY_SUBSCRIPTION_ACTIVE = "family_subscription_active"

    ENTITLEMENT_PREFIX = "entitlement_"

    STORE_UNAVAILABLE = "store_unavailable"
    NO_ENTITLEMENT = "no_entitlement"

    @classmethod
    def family_plan(cls, reason: str) -> str:
        return f"{cls.FAMILY_PLAN_PREFIX}{reason}"

    @classmethod
    def entitlement(cls, grant_type: str) -> str:
        return f"{cls.ENTITLEMENT_PREFIX}{grant_type}"


@dataclass(frozen=True)
class PurchaseRecord:
    """Access-relevant fields of a product or service purchase."""

    purchase_type: str
    status: str = "active"
    payment_status: Optional[str] = None
    expires_at: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    grace_period_ends_at: Optional[datetime] = None
    is_trial: bool = False
    trial_end: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Any) -> PurchaseRecord:
        """Copy a ``ProductPurchase`` or ``ServicePurchase`` row."""
        return cls(
            purchase_type=row.purchase_type,
            status=row.status,
            payment_status=row.payment_status,
            expires_at=ensure_utc(row.expires_at),
            current_period_end=ensure_utc(row.current_period_end),
            grace_period_ends_at=ensure_utc(row.grace_period_ends_at),
            is_trial=bool(row.is_trial),
            trial_end=ensure_utc(row.trial_end),
        )


@dataclass(frozen=True)
class EntitlementRecord:
    """Access-relevant fields of an administrative grant."""

    app_id: str
    grant_type: str
    active: bool = True
    expires_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Any) -> EntitlementRecord:
        return cls(
            app_id=row.app_id,
            grant_type=row.grant_type,
            active=bool(row.active),
            expires_at=ensure_utc(row.expires_at),
        )


@dataclass(frozen=True)
class EntitlementSnapshot:
    """Everything one entitlement decision depends on.

    The sources are read independently and need not be mutually consistent.

    Attributes:
        user_id: The validated user.
        product_id: Resolved product id the decision is about.
        direct_purchases: Purchases of this product by the user.
        family_service_purchases: Active purchases of a family-plan service.
        family_subscription_active: Whether the user belongs to a family group
            with an active subscription.
        entitlements: Grants for this product or for every product.
        is_admin: Whether the user holds the admin role.
    """

    user_id: str
    product_id: str
    direct_purchases: Tuple[PurchaseRecord, ...] = ()
    family_service_purchases: Tuple[PurchaseRecord, ...] = ()
    family_subscription_active: bool = False
    entitlements: Tuple[EntitlementRecord, ...] = ()
    is_admin: bool = False


@dataclass(frozen=True)
class EntitlementDecision:
    """Allow/deny outcome with the reason that produced it.

    ``product_id`` is the resolved product the decision is about, when known.
    """

    allowed: bool
    reason: str
    product_id: Optional[str] = None

    @classmethod
    def allow(cls, reason: str) -> EntitlementDecision:
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(cls, reason: str = ReasonCode.NO_ENTITLEMENT) -> EntitlementDecision:
        return cls(allowed=False, reason=reason)


@dataclass(frozen=True)
class ResolverPolicy:
    """Switches evaluated before the purchase and grant chain.

    Attributes:
        allow_all_authenticated_users: Grant every authenticated user.
        admin_bypass: Grant users holding the admin role.
    """

    allow_all_authenticated_users: bool = False
    admin_bypass: bool = True


@dataclass(frozen=True)
class ProductRef:
    """Reference to a product by id or by slug.

    Exactly one of the two must be given; an id wins when a caller sends both.
    """

    product_id: Optional[str] = None
    slug: Optional[str] = None

    def __post_init__(self) -> None:
        product_id = (self.product_id or "").strip() or None
        slug = (self.slug or "").strip() or None
        if product_id is None and slug is None:
            raise ValueError("A product id or slug is required")
        object.__setattr__(self, "product_id", product_id)
        object.__setattr__(self, "slug", None if product_id else slug)

    @property
    def by_slug(self) -> bool:
        return self.product_id is None
