"""Precedence chain of the entitlement evaluation, over hand-built snapshots."""

from datetime import datetime, timedelta, timezone

import pytest

from accessguard.domain.entitlements import evaluate
from accessguard.domain.entitlements.resolver import purchase_reason
from accessguard.domain.value_objects.entitlement import (
    EntitlementRecord,
    EntitlementSnapshot,
    PurchaseRecord,
    ReasonCode,
    ResolverPolicy,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
PAST = NOW - timedelta(days=1)
FUTURE = NOW + timedelta(days=1)
DEFAULT_POLICY = ResolverPolicy()


def snapshot(**kwargs) -> EntitlementSnapshot:
    kwargs.setdefault("user_id", "user-1")
    kwargs.setdefault("product_id", "prod-1")
    return EntitlementSnapshot(**kwargs)


class TestPurchaseReason:
    @pytest.mark.parametrize(
        "purchase,expected",
        [
            (PurchaseRecord("subscription", status="active"), ReasonCode.SUBSCRIPTION_ACTIVE),
            (
                PurchaseRecord("subscription", status="active", expires_at=FUTURE),
                ReasonCode.SUBSCRIPTION_ACTIVE,
            ),
            (PurchaseRecord("subscription", status="active", expires_at=PAST), None),
            (PurchaseRecord("subscription", status="canceled"), None),
            (PurchaseRecord("one_time", payment_status="succeeded"), ReasonCode.ONE_TIME_PAID),
            (PurchaseRecord("one_time", payment_status="pending"), None),
            (PurchaseRecord("trial", is_trial=True, trial_end=FUTURE), ReasonCode.TRIAL_ACTIVE),
            (PurchaseRecord("trial", is_trial=True, trial_end=PAST), None),
            (PurchaseRecord("trial", is_trial=False, trial_end=FUTURE), None),
            (PurchaseRecord("gift_card", status="active"), None),
        ],
    )
    def test_reason_per_purchase(self, purchase, expected):
        assert purchase_reason(purchase, NOW) == expected


class TestEvaluate:
    def test_no_signals_denies(self):
        decision = evaluate(snapshot(), DEFAULT_POLICY, NOW)

        assert not decision.allowed
        assert decision.reason == ReasonCode.NO_ENTITLEMENT

    def test_one_time_purchase_succeeded(self):
        decision = evaluate(
            snapshot(direct_purchases=(PurchaseRecord("one_time", payment_status="succeeded"),)),
            DEFAULT_POLICY,
            NOW,
        )

        assert decision.allowed
        assert decision.reason == "one_time_paid"

    def test_only_an_expired_trial_denies(self):
        decision = evaluate(
            snapshot(direct_purchases=(PurchaseRecord("trial", is_trial=True, trial_end=PAST),)),
            DEFAULT_POLICY,
            NOW,
        )

        assert not decision.allowed
        assert decision.reason == "no_entitlement"

    def test_grace_period_overrides_inactive_subscription(self):
        purchase = PurchaseRecord(
            "subscription", status="past_due", expires_at=PAST, grace_period_ends_at=FUTURE
        )

        decision = evaluate(snapshot(direct_purchases=(purchase,)), DEFAULT_POLICY, NOW)

        assert decision.allowed
        assert decision.reason == "grace_period"

    def test_grace_period_wins_over_other_valid_purchases(self):
        purchases = (
            PurchaseRecord("one_time", payment_status="succeeded"),
            PurchaseRecord("subscription", status="past_due", grace_period_ends_at=FUTURE),
        )

        decision = evaluate(snapshot(direct_purchases=purchases), DEFAULT_POLICY, NOW)

        assert decision.reason == "grace_period"

    def test_elapsed_grace_period_grants_nothing(self):
        purchase = PurchaseRecord("subscription", status="past_due", grace_period_ends_at=PAST)

        decision = evaluate(snapshot(direct_purchases=(purchase,)), DEFAULT_POLICY, NOW)

        assert not decision.allowed

    def test_expired_purchase_falls_through_to_admin_entitlement(self):
        decision = evaluate(
            snapshot(
                direct_purchases=(PurchaseRecord("subscription", status="active", expires_at=PAST),),
                entitlements=(EntitlementRecord(app_id="prod-1", grant_type="manual"),),
            ),
            DEFAULT_POLICY,
            NOW,
        )

        assert decision.allowed
        assert decision.reason == "entitlement_manual"

    def test_family_plan_purchase_is_prefixed(self):
        decision = evaluate(
            snapshot(family_service_purchases=(PurchaseRecord("subscription", status="active"),)),
            DEFAULT_POLICY,
            NOW,
        )

        assert decision.reason == "family_plan_subscription_active"

    def test_family_subscription_membership(self):
        decision = evaluate(snapshot(family_subscription_active=True), DEFAULT_POLICY, NOW)

        assert decision.allowed
        assert decision.reason == "family_subscription_active"

    def test_direct_purchase_beats_family_and_entitlement(self):
        decision = evaluate(
            snapshot(
                direct_purchases=(PurchaseRecord("one_time", payment_status="succeeded"),),
                family_subscription_active=True,
                entitlements=(EntitlementRecord(app_id="all", grant_type="lifetime"),),
            ),
            DEFAULT_POLICY,
            NOW,
        )

        assert decision.reason == "one_time_paid"

    @pytest.mark.parametrize(
        "record,allowed",
        [
            (EntitlementRecord(app_id="all", grant_type="lifetime"), True),
            (EntitlementRecord(app_id="prod-1", grant_type="trial", expires_at=FUTURE), True),
            (EntitlementRecord(app_id="prod-1", grant_type="trial", expires_at=PAST), False),
            (EntitlementRecord(app_id="prod-1", grant_type="manual", active=False), False),
            (EntitlementRecord(app_id="prod-2", grant_type="manual"), False),
        ],
    )
    def test_entitlement_validity(self, record, allowed):
        decision = evaluate(snapshot(entitlements=(record,)), DEFAULT_POLICY, NOW)

        assert decision.allowed is allowed
        if allowed:
            assert decision.reason == f"entitlement_{record.grant_type}"


class TestPolicy:
    def test_allow_all_authenticated_users_grants_without_signals(self):
        policy = ResolverPolicy(allow_all_authenticated_users=True)

        decision = evaluate(snapshot(), policy, NOW)

        assert decision.allowed
        assert decision.reason == "authenticated_user_access"

    def test_allow_all_switched_off_uses_the_chain(self):
        policy = ResolverPolicy(allow_all_authenticated_users=False)

        assert not evaluate(snapshot(), policy, NOW).allowed

    def test_admin_bypass(self):
        decision = evaluate(snapshot(is_admin=True), DEFAULT_POLICY, NOW)

        assert decision.allowed
        assert decision.reason == "admin_bypass"

    def test_admin_bypass_can_be_switched_off(self):
        policy = ResolverPolicy(admin_bypass=False)

        assert not evaluate(snapshot(is_admin=True), policy, NOW).allowed
