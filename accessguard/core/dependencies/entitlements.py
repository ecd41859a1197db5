from typing import Annotated

from fastapi import Depends

from accessguard.core.config.settings import settings
from accessguard.core.dependencies.auth import DBSession
from accessguard.domain.entitlements import (
    EntitlementAdminService,
    EntitlementResolver,
    EntitlementSnapshotLoader,
)
from accessguard.domain.value_objects.entitlement import ResolverPolicy
from accessguard.infrastructure.repositories import (
    EntitlementRepository,
    FamilyRepository,
    PurchaseRepository,
    RoleRepository,
)


def get_entitlement_resolver(db_session: DBSession) -> EntitlementResolver:
    loader = EntitlementSnapshotLoader(
        purchases=PurchaseRepository(db_session),
        family=FamilyRepository(db_session),
        entitlements=EntitlementRepository(db_session),
        roles=RoleRepository(db_session),
        family_plan_slugs=settings.FAMILY_PLAN_SLUGS,
    )
    policy = ResolverPolicy(
        allow_all_authenticated_users=settings.ENTITLEMENT_ALLOW_ALL_AUTHENTICATED,
        admin_bypass=settings.ENTITLEMENT_ADMIN_BYPASS,
    )
    return EntitlementResolver(loader, policy=policy, fail_open=settings.ENTITLEMENT_FAIL_OPEN)


def get_entitlement_admin_service(db_session: DBSession) -> EntitlementAdminService:
    return EntitlementAdminService(EntitlementRepository(db_session))


Resolver = Annotated[EntitlementResolver, Depends(get_entitlement_resolver)]
AdminEntitlements = Annotated[EntitlementAdminService, Depends(get_entitlement_admin_service)]
