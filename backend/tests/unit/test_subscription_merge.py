"""
Unit tests for the subscription merge rule.

Validates that:
- status always follows the incoming event
- fields omitted by an event keep their stored value
- re-applying the same event leaves the record unchanged
"""

from datetime import datetime, timedelta, timezone

import pytest

from billing_sync.domain.subscription import (
    Subscription,
    SubscriptionStatus,
    SubscriptionUpdate,
    merge_subscription,
)


NOW = datetime(2026, 10, 18, tzinfo=timezone.utc)
T1 = datetime(2026, 11, 18, tzinfo=timezone.utc)


@pytest.fixture
def stored():
    return Subscription(
        id="row-1",
        user_id="u1",
        stripe_customer_id="cus_1",
        stripe_subscription_id="sub_1",
        status=SubscriptionStatus.ACTIVE,
        price_id="p_month",
        current_period_end=T1,
        customer_email="buyer@example.com",
        created_at=NOW - timedelta(days=30),
        updated_at=NOW - timedelta(days=30),
    )


class TestMergeSubscription:

    def test_new_record_takes_incoming_fields(self):
        incoming = SubscriptionUpdate(
            status=SubscriptionStatus.ACTIVE,
            stripe_customer_id="cus_1",
            stripe_subscription_id="sub_1",
            price_id="p_month",
            current_period_end=T1,
        )

        merged = merge_subscription("u1", None, incoming, NOW)

        assert merged.user_id == "u1"
        assert merged.status == SubscriptionStatus.ACTIVE
        assert merged.stripe_subscription_id == "sub_1"
        assert merged.price_id == "p_month"
        assert merged.current_period_end == T1
        assert merged.customer_email is None
        assert merged.updated_at == NOW

    def test_missing_period_end_keeps_stored_value(self, stored):
        incoming = SubscriptionUpdate(status=SubscriptionStatus.PAST_DUE)

        merged = merge_subscription("u1", stored, incoming, NOW)

        assert merged.current_period_end == T1

    def test_empty_strings_do_not_clobber(self, stored):
        incoming = SubscriptionUpdate(
            status=SubscriptionStatus.ACTIVE,
            stripe_customer_id="",
            price_id="",
            customer_email="",
        )

        merged = merge_subscription("u1", stored, incoming, NOW)

        assert merged.stripe_customer_id == "cus_1"
        assert merged.price_id == "p_month"
        assert merged.customer_email == "buyer@example.com"

    def test_truthy_values_overwrite(self, stored):
        later = T1 + timedelta(days=30)
        incoming = SubscriptionUpdate(
            status=SubscriptionStatus.ACTIVE,
            price_id="p_year",
            current_period_end=later,
        )

        merged = merge_subscription("u1", stored, incoming, NOW)

        assert merged.price_id == "p_year"
        assert merged.current_period_end == later

    @pytest.mark.parametrize("status", list(SubscriptionStatus))
    def test_status_is_authoritative(self, stored, status):
        merged = merge_subscription("u1", stored, SubscriptionUpdate(status=status), NOW)

        assert merged.status == status
        assert merged.stripe_subscription_id == "sub_1"
        assert merged.price_id == "p_month"

    def test_repeat_application_is_stable(self, stored):
        incoming = SubscriptionUpdate(
            status=SubscriptionStatus.PAST_DUE,
            stripe_customer_id="cus_1",
            customer_email="buyer@example.com",
        )

        once = merge_subscription("u1", stored, incoming, NOW)
        twice = merge_subscription("u1", once, incoming, NOW)

        assert twice == once

    def test_keeps_row_identity(self, stored):
        merged = merge_subscription(
            "u1", stored, SubscriptionUpdate(status=SubscriptionStatus.CANCELED), NOW
        )

        assert merged.id == "row-1"
        assert merged.created_at == stored.created_at
        assert merged.updated_at == NOW
        assert merged.is_premium is False
