"""Read-only access to the catalog, purchase history and family groups.

These tables are written by the payment webhooks and the family management
flow. The queries here only decide access.
"""

from typing import List, Optional, Sequence

from sqlalchemy import func, or_, select

from accessguard.domain.entities.family import FamilyMember, FamilySubscription
from accessguard.domain.entities.purchase import (
    Product,
    ProductPurchase,
    Service,
    ServicePurchase,
)
from accessguard.domain.interfaces.repositories import IFamilyRepository, IPurchaseRepository
from accessguard.infrastructure.repositories.base import SQLRepository, store_operation
from accessguard.utils.clock import utc_now


class PurchaseRepository(SQLRepository, IPurchaseRepository):
    async def resolve_product_id(self, slug: str) -> Optional[str]:
        async with store_operation(self.db_session, "resolve_product", slug=slug):
            result = await self.db_session.execute(select(Product.id).where(Product.slug == slug))
            return result.scalars().first()

    async def get_product_purchases(self, user_id: str, product_id: str) -> List[ProductPurchase]:
        statement = (
            select(ProductPurchase)
            .where(
                ProductPurchase.user_id == user_id,
                ProductPurchase.product_id == product_id,
            )
            .order_by(ProductPurchase.purchased_at.desc())
        )
        async with store_operation(
            self.db_session, "get_product_purchases", user_id=user_id, product_id=product_id
        ):
            result = await self.db_session.execute(statement)
            return list(result.scalars().all())

    async def get_family_plan_purchases(
        self, user_id: str, family_plan_slugs: Sequence[str]
    ) -> List[ServicePurchase]:
        statement = (
            select(ServicePurchase)
            .join(Service, Service.id == ServicePurchase.service_id)
            .where(
                ServicePurchase.user_id == user_id,
                ServicePurchase.status == "active",
                Service.slug.in_(list(family_plan_slugs)),
            )
            .order_by(ServicePurchase.purchased_at.desc())
        )
        async with store_operation(self.db_session, "get_family_plan_purchases", user_id=user_id):
            result = await self.db_session.execute(statement)
            return list(result.scalars().all())


class FamilyRepository(SQLRepository, IFamilyRepository):
    async def has_active_family_subscription(self, user_id: str) -> bool:
        """Counts active groups of the user that have an unexpired active subscription."""
        statement = (
            select(func.count(FamilySubscription.id))
            .select_from(FamilyMember)
            .join(
                FamilySubscription,
                FamilySubscription.family_group_id == FamilyMember.family_group_id,
            )
            .where(
                FamilyMember.user_id == user_id,
                FamilyMember.status == "active",
                FamilySubscription.status == "active",
                or_(
                    FamilySubscription.current_period_end.is_(None),
                    FamilySubscription.current_period_end > utc_now(),
                ),
            )
        )
        async with store_operation(self.db_session, "check_family_subscription", user_id=user_id):
            result = await self.db_session.execute(statement)
            return (result.scalar() or 0) > 0
