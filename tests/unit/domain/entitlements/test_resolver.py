"""EntitlementResolver end to end against the SQL repositories."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from accessguard.core.exceptions import ProductNotFoundError, StoreUnavailableError
from accessguard.domain.entities import FamilyMember, FamilySubscription, UserRole
from accessguard.domain.entitlements import EntitlementResolver, EntitlementSnapshotLoader
from accessguard.domain.value_objects.entitlement import ProductRef, ResolverPolicy
from accessguard.infrastructure.repositories import (
    EntitlementRepository,
    FamilyRepository,
    PurchaseRepository,
    RoleRepository,
)
from accessguard.utils.clock import utc_now
from tests.factories import (
    create_fake_entitlement,
    create_fake_product,
    create_fake_product_purchase,
    create_fake_service,
    create_fake_service_purchase,
)

FAMILY_SLUG = "all-tools-membership-family"


@pytest.fixture
def loader(db_session):
    return EntitlementSnapshotLoader(
        purchases=PurchaseRepository(db_session),
        family=FamilyRepository(db_session),
        entitlements=EntitlementRepository(db_session),
        roles=RoleRepository(db_session),
        family_plan_slugs=[FAMILY_SLUG],
    )


@pytest.fixture
def resolver(loader):
    return EntitlementResolver(loader)


@pytest_asyncio.fixture
async def product(db_session):
    product = create_fake_product(slug="pro-toolkit")
    db_session.add(product)
    await db_session.commit()
    return product


async def _add(db_session, *rows):
    db_session.add_all(rows)
    await db_session.commit()


class TestResolver:
    @pytest.mark.asyncio
    async def test_denies_without_any_signal(self, resolver, product):
        decision = await resolver.resolve("user-1", ProductRef(product_id=product.id))

        assert not decision.allowed
        assert decision.reason == "no_entitlement"
        assert decision.product_id == product.id

    @pytest.mark.asyncio
    async def test_resolves_slug_to_product(self, resolver, product, db_session):
        await _add(
            db_session,
            create_fake_product_purchase("user-1", product.id, "one_time", payment_status="succeeded"),
        )

        decision = await resolver.resolve("user-1", ProductRef(slug="pro-toolkit"))

        assert decision.allowed
        assert decision.reason == "one_time_paid"
        assert decision.product_id == product.id

    @pytest.mark.asyncio
    async def test_unknown_slug(self, resolver):
        with pytest.raises(ProductNotFoundError):
            await resolver.resolve("user-1", ProductRef(slug="does-not-exist"))

    @pytest.mark.asyncio
    async def test_other_users_purchases_do_not_count(self, resolver, product, db_session):
        await _add(
            db_session,
            create_fake_product_purchase("user-2", product.id, "subscription", status="active"),
        )

        assert not (await resolver.resolve("user-1", ProductRef(product.id))).allowed

    @pytest.mark.asyncio
    async def test_expired_purchase_with_admin_entitlement(self, resolver, product, db_session):
        await _add(
            db_session,
            create_fake_product_purchase(
                "user-1", product.id, "subscription", expires_at=utc_now() - timedelta(days=2)
            ),
            create_fake_entitlement("user-1", product.id, "manual"),
        )

        decision = await resolver.resolve("user-1", ProductRef(product.id))

        assert decision.allowed
        assert decision.reason == "entitlement_manual"

    @pytest.mark.asyncio
    async def test_grace_period_overrides_non_active_subscription(
        self, resolver, product, db_session
    ):
        await _add(
            db_session,
            create_fake_product_purchase(
                "user-1",
                product.id,
                "subscription",
                status="past_due",
                grace_period_ends_at=utc_now() + timedelta(days=3),
            ),
        )

        decision = await resolver.resolve("user-1", ProductRef(product.id))

        assert decision.reason == "grace_period"

    @pytest.mark.asyncio
    async def test_only_expired_trial(self, resolver, product, db_session):
        await _add(
            db_session,
            create_fake_product_purchase(
                "user-1", product.id, "trial", is_trial=True, trial_end=utc_now() - timedelta(hours=1)
            ),
        )

        decision = await resolver.resolve("user-1", ProductRef(product.id))

        assert not decision.allowed
        assert decision.reason == "no_entitlement"

    @pytest.mark.asyncio
    async def test_family_plan_purchase(self, resolver, product, db_session):
        service = create_fake_service(slug=FAMILY_SLUG)
        other = create_fake_service(slug="single-seat")
        await _add(db_session, service, other)
        await _add(
            db_session,
            create_fake_service_purchase("user-1", other.id, "subscription"),
        )
        assert not (await resolver.resolve("user-1", ProductRef(product.id))).allowed

        await _add(db_session, create_fake_service_purchase("user-1", service.id, "subscription"))

        decision = await resolver.resolve("user-1", ProductRef(product.id))
        assert decision.reason == "family_plan_subscription_active"

    @pytest.mark.asyncio
    async def test_family_group_membership(self, resolver, product, db_session):
        await _add(
            db_session,
            FamilyMember(family_group_id="fam-1", user_id="user-1", status="active"),
            FamilySubscription(
                family_group_id="fam-1",
                status="active",
                current_period_end=utc_now() + timedelta(days=10),
            ),
        )

        decision = await resolver.resolve("user-1", ProductRef(product.id))

        assert decision.reason == "family_subscription_active"

    @pytest.mark.asyncio
    async def test_lapsed_family_subscription_grants_nothing(self, resolver, product, db_session):
        await _add(
            db_session,
            FamilyMember(family_group_id="fam-1", user_id="user-1", status="active"),
            FamilySubscription(
                family_group_id="fam-1",
                status="active",
                current_period_end=utc_now() - timedelta(days=1),
            ),
        )

        assert not (await resolver.resolve("user-1", ProductRef(product.id))).allowed

    @pytest.mark.asyncio
    async def test_wildcard_entitlement(self, resolver, product, db_session):
        await _add(db_session, create_fake_entitlement("user-1", "all", "lifetime"))

        decision = await resolver.resolve("user-1", ProductRef(product.id))

        assert decision.reason == "entitlement_lifetime"

    @pytest.mark.asyncio
    async def test_admin_bypass(self, resolver, product, db_session):
        await _add(db_session, UserRole(user_id="user-1", role="admin"))

        decision = await resolver.resolve("user-1", ProductRef(product.id))

        assert decision.reason == "admin_bypass"


class TestResolverPolicy:
    @pytest.mark.asyncio
    async def test_allow_all_skips_the_store(self):
        loader = AsyncMock(spec=EntitlementSnapshotLoader)
        resolver = EntitlementResolver(
            loader, policy=ResolverPolicy(allow_all_authenticated_users=True)
        )

        decision = await resolver.resolve("user-1", ProductRef(slug="anything"))

        assert decision.allowed
        assert decision.reason == "authenticated_user_access"
        loader.resolve_product_id.assert_not_awaited()
        loader.load.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_allow_all_off_consults_the_chain(self, loader, product):
        resolver = EntitlementResolver(
            loader, policy=ResolverPolicy(allow_all_authenticated_users=False)
        )

        assert not (await resolver.resolve("user-1", ProductRef(product.id))).allowed

    @pytest.mark.asyncio
    async def test_store_error_propagates_by_default(self):
        loader = AsyncMock(spec=EntitlementSnapshotLoader)
        loader.resolve_product_id.return_value = "prod-1"
        loader.load.side_effect = StoreUnavailableError()

        with pytest.raises(StoreUnavailableError):
            await EntitlementResolver(loader).resolve("user-1", ProductRef("prod-1"))

    @pytest.mark.asyncio
    async def test_store_error_can_fail_open(self):
        loader = AsyncMock(spec=EntitlementSnapshotLoader)
        loader.resolve_product_id.return_value = "prod-1"
        loader.load.side_effect = StoreUnavailableError()

        decision = await EntitlementResolver(loader, fail_open=True).resolve(
            "user-1", ProductRef("prod-1")
        )

        assert decision.allowed
        assert decision.reason == "store_unavailable"
