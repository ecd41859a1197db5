"""
Entitlement Resolver

Decides whether a user may use a product. The decision is a pure function of
an :class:`EntitlementSnapshot`, loaded once per call, and a
:class:`ResolverPolicy`:

    policy switches -> grace period -> direct purchase -> family-plan purchase
    -> family-subscription membership -> administrative grant -> deny

The first matching step wins. Every step checks its own expiry, so an expired
purchase never masks a later, still-valid signal.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from structlog import get_logger

from accessguard.core.exceptions import (
    ProductNotFoundError,
    StoreUnavailableError,
)
from accessguard.domain.entities.entitlement import ALL_PRODUCTS
from accessguard.domain.interfaces.repositories import (
    IEntitlementRepository,
    IFamilyRepository,
    IPurchaseRepository,
    IRoleRepository,
)
from accessguard.domain.value_objects.entitlement import (
    EntitlementDecision,
    EntitlementRecord,
    EntitlementSnapshot,
    ProductRef,
    PurchaseRecord,
    PurchaseType,
    ReasonCode,
    ResolverPolicy,
)
from accessguard.utils.clock import utc_now

logger = get_logger(__name__)


def _in_future(moment: Optional[datetime], now: datetime) -> bool:
    return moment is not None and moment > now


def _unexpired(moment: Optional[datetime], now: datetime) -> bool:
    """An open-ended validity (no timestamp) never expires."""
    return moment is None or moment > now


def purchase_reason(purchase: PurchaseRecord, now: datetime) -> Optional[str]:
    """Reason a single purchase grants access at ``now``, or None.

    Unknown purchase types never grant access.
    """
    if purchase.purchase_type == PurchaseType.SUBSCRIPTION.value:
        if purchase.status == "active" and _unexpired(purchase.expires_at, now):
            return ReasonCode.SUBSCRIPTION_ACTIVE
    elif purchase.purchase_type == PurchaseType.ONE_TIME.value:
        if purchase.payment_status == "succeeded":
            return ReasonCode.ONE_TIME_PAID
    elif purchase.purchase_type == PurchaseType.TRIAL.value:
        if purchase.is_trial and _unexpired(purchase.trial_end, now):
            return ReasonCode.TRIAL_ACTIVE
    return None


def _purchases_reason(purchases: Sequence[PurchaseRecord], now: datetime) -> Optional[str]:
    # A grace period on any purchase wins over type-specific validity.
    if any(_in_future(p.grace_period_ends_at, now) for p in purchases):
        return ReasonCode.GRACE_PERIOD
    for purchase in purchases:
        reason = purchase_reason(purchase, now)
        if reason is not None:
            return reason
    return None


def _entitlement_reason(
    entitlements: Iterable[EntitlementRecord], product_id: str, now: datetime
) -> Optional[str]:
    for entitlement in entitlements:
        if entitlement.app_id not in (product_id, ALL_PRODUCTS):
            continue
        if entitlement.active and _unexpired(entitlement.expires_at, now):
            return ReasonCode.entitlement(entitlement.grant_type)
    return None


def evaluate(
    snapshot: EntitlementSnapshot,
    policy: ResolverPolicy,
    now: datetime,
) -> EntitlementDecision:
    """Evaluate the precedence chain over ``snapshot``.

    Args:
        snapshot: Everything that can grant the user access to the product.
        policy: Switches applied before the chain.
        now: Reference time for every expiry check.

    Returns:
        EntitlementDecision: The first matching grant, or a denial with
        ``no_entitlement``.
    """
    if policy.allow_all_authenticated_users:
        return EntitlementDecision.allow(ReasonCode.AUTHENTICATED_USER_ACCESS)
    if policy.admin_bypass and snapshot.is_admin:
        return EntitlementDecision.allow(ReasonCode.ADMIN_BYPASS)

    reason = _purchases_reason(snapshot.direct_purchases, now)
    if reason is not None:
        return EntitlementDecision.allow(reason)

    reason = _purchases_reason(snapshot.family_service_purchases, now)
    if reason is not None:
        return EntitlementDecision.allow(ReasonCode.family_plan(reason))

    if snapshot.family_subscription_active:
        return EntitlementDecision.allow(ReasonCode.FAMILY_SUBSCRIPTION_ACTIVE)

    reason = _entitlement_reason(snapshot.entitlements, snapshot.product_id, now)
    if reason is not None:
        return EntitlementDecision.allow(reason)

    return EntitlementDecision.deny()


class EntitlementSnapshotLoader:
    """Reads the inputs of one entitlement decision from the store.

    The reads are independent; no transaction ties them together.
    """

    def __init__(
        self,
        purchases: IPurchaseRepository,
        family: IFamilyRepository,
        entitlements: IEntitlementRepository,
        roles: IRoleRepository,
        family_plan_slugs: Sequence[str] = (),
    ):
        self.purchases = purchases
        self.family = family
        self.entitlements = entitlements
        self.roles = roles
        self.family_plan_slugs = tuple(family_plan_slugs)

    async def resolve_product_id(self, product_ref: ProductRef) -> str:
        """Raises:
            ProductNotFoundError: No product has the referenced slug.
        """
        if not product_ref.by_slug:
            return product_ref.product_id
        product_id = await self.purchases.resolve_product_id(product_ref.slug)
        if product_id is None:
            raise ProductNotFoundError()
        return product_id

    async def load(
        self, user_id: str, product_id: str, include_role: bool = True
    ) -> EntitlementSnapshot:
        is_admin = await self.roles.is_admin(user_id) if include_role else False
        direct = await self.purchases.get_product_purchases(user_id, product_id)
        family_plans = (
            await self.purchases.get_family_plan_purchases(user_id, self.family_plan_slugs)
            if self.family_plan_slugs
            else []
        )
        family_active = await self.family.has_active_family_subscription(user_id)
        grants = await self.entitlements.get_for_product(user_id, product_id)

        return EntitlementSnapshot(
            user_id=user_id,
            product_id=product_id,
            direct_purchases=tuple(PurchaseRecord.from_row(row) for row in direct),
            family_service_purchases=tuple(PurchaseRecord.from_row(row) for row in family_plans),
            family_subscription_active=family_active,
            entitlements=tuple(EntitlementRecord.from_row(row) for row in grants),
            is_admin=is_admin,
        )


class EntitlementResolver:
    """Loads a snapshot and evaluates it.

    Args:
        loader: Snapshot source.
        policy: Switches applied before the chain.
        fail_open: Allow (reason ``store_unavailable``) instead of raising
            when the snapshot cannot be loaded.
    """

    def __init__(
        self,
        loader: EntitlementSnapshotLoader,
        policy: Optional[ResolverPolicy] = None,
        fail_open: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.loader = loader
        self.policy = policy or ResolverPolicy()
        self.fail_open = fail_open
        self._clock = clock

    async def resolve(self, user_id: str, product_ref: ProductRef) -> EntitlementDecision:
        """Decide whether ``user_id`` may use the referenced product.

        Raises:
            ProductNotFoundError: The slug matches no product.
            StoreUnavailableError: The store failed and ``fail_open`` is off.
        """
        if self.policy.allow_all_authenticated_users:
            logger.info(
                "entitlement_granted",
                user_id=user_id,
                reason=ReasonCode.AUTHENTICATED_USER_ACCESS,
            )
            return EntitlementDecision.allow(ReasonCode.AUTHENTICATED_USER_ACCESS)

        try:
            product_id = await self.loader.resolve_product_id(product_ref)
            snapshot = await self.loader.load(
                user_id, product_id, include_role=self.policy.admin_bypass
            )
        except StoreUnavailableError as exc:
            logger.error(
                "entitlement_store_error",
                user_id=user_id,
                error=str(exc.cause or exc),
                fail_open=self.fail_open,
            )
            if self.fail_open:
                return EntitlementDecision.allow(ReasonCode.STORE_UNAVAILABLE)
            raise

        decision = replace(evaluate(snapshot, self.policy, self._clock()), product_id=product_id)
        logger.info(
            "entitlement_granted" if decision.allowed else "entitlement_denied",
            user_id=user_id,
            product_id=product_id,
            reason=decision.reason,
        )
        return decision
