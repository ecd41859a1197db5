from typing import List, Optional

from sqlalchemy import select

from accessguard.domain.entities.entitlement import ALL_PRODUCTS, Entitlement
from accessguard.domain.entities.user_role import Role, UserRole
from accessguard.domain.interfaces.repositories import IEntitlementRepository, IRoleRepository
from accessguard.infrastructure.repositories.base import SQLRepository, store_operation


class EntitlementRepository(SQLRepository, IEntitlementRepository):
    """SQL implementation of :class:`IEntitlementRepository`."""

    async def get_for_product(self, user_id: str, product_id: str) -> List[Entitlement]:
        statement = select(Entitlement).where(
            Entitlement.user_id == user_id,
            Entitlement.app_id.in_([product_id, ALL_PRODUCTS]),
        )
        async with store_operation(
            self.db_session, "get_entitlements_for_product", user_id=user_id
        ):
            result = await self.db_session.execute(statement)
            return list(result.scalars().all())

    async def get_by_id(self, entitlement_id: int) -> Optional[Entitlement]:
        statement = (
            select(Entitlement)
            .where(Entitlement.id == entitlement_id)
            .execution_options(populate_existing=True)
        )
        async with store_operation(
            self.db_session, "get_entitlement", entitlement_id=entitlement_id
        ):
            result = await self.db_session.execute(statement)
            return result.scalars().first()

    async def get_by_user_and_app(self, user_id: str, app_id: str) -> Optional[Entitlement]:
        statement = select(Entitlement).where(
            Entitlement.user_id == user_id, Entitlement.app_id == app_id
        )
        async with store_operation(self.db_session, "get_entitlement_by_app", user_id=user_id):
            result = await self.db_session.execute(statement)
            return result.scalars().first()

    async def list_for_user(self, user_id: str) -> List[Entitlement]:
        statement = (
            select(Entitlement)
            .where(Entitlement.user_id == user_id)
            .order_by(Entitlement.created_at.desc(), Entitlement.id.desc())
        )
        async with store_operation(self.db_session, "list_entitlements", user_id=user_id):
            result = await self.db_session.execute(statement)
            return list(result.scalars().all())

    async def save(self, entitlement: Entitlement) -> Entitlement:
        async with store_operation(self.db_session, "save_entitlement", user_id=entitlement.user_id):
            self.db_session.add(entitlement)
            await self.db_session.commit()
            await self.db_session.refresh(entitlement)
            return entitlement


class RoleRepository(SQLRepository, IRoleRepository):
    async def is_admin(self, user_id: str) -> bool:
        statement = (
            select(UserRole.id)
            .where(UserRole.user_id == user_id, UserRole.role == Role.ADMIN.value)
            .limit(1)
        )
        async with store_operation(self.db_session, "check_admin_role", user_id=user_id):
            result = await self.db_session.execute(statement)
            return result.first() is not None
