"""
Test configuration and fixtures for Billing Sync.

Provides the FastAPI app, in-memory repositories standing in for the
database, and a mocked Stripe service.
"""

from datetime import datetime, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from billing_sync.domain.subscription import Subscription, SubscriptionBilling
from billing_sync.infrastructure.exceptions import DatabaseError, SubscriptionWriteError
from billing_sync.infrastructure.services import (
    PremiumFlagSynchronizer,
    SubscriptionMerger,
    UserResolver,
    WebhookEventRouter,
)


FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
PERIOD_END = datetime(2026, 11, 18, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# In-memory Repositories
# =============================================================================

class InMemorySubscriptionRepository:
    """Dict-backed stand-in for SubscriptionRepository."""

    def __init__(self):
        self.rows: dict[str, Subscription] = {}
        self.upsert_calls = 0
        self.fail_writes = False
        self.fail_reads = False

    async def get_by_user_id(self, user_id: str) -> Optional[Subscription]:
        if self.fail_reads:
            raise DatabaseError("read failed", operation="get_by_user_id", table="subscriptions")
        row = self.rows.get(user_id)
        return row.model_copy() if row else None

    async def get_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        if self.fail_reads:
            raise DatabaseError("read failed", operation="get_by_stripe_subscription_id")
        for row in self.rows.values():
            if row.stripe_subscription_id == stripe_subscription_id:
                return row.model_copy()
        return None

    async def upsert(self, subscription: Subscription) -> Subscription:
        self.upsert_calls += 1
        if self.fail_writes:
            raise SubscriptionWriteError("connection reset", operation="upsert", table="subscriptions")
        self.rows[subscription.user_id] = subscription.model_copy()
        return subscription


class InMemoryProfileRepository:
    """Dict-backed stand-in for ProfileRepository."""

    def __init__(self):
        self.emails: dict[str, str] = {}
        self.premium: dict[str, bool] = {}
        self.premium_calls: list[tuple[str, bool]] = []
        self.lookups: list[str] = []
        self.fail_lookup = False
        self.fail_premium = False

    async def find_user_id_by_email(self, email: str) -> Optional[str]:
        self.lookups.append(email)
        if self.fail_lookup:
            raise DatabaseError("lookup failed", operation="find_user_id_by_email", table="profiles")
        return self.emails.get(email)

    async def set_premium(self, user_id: str, is_premium: bool) -> None:
        self.premium_calls.append((user_id, is_premium))
        if self.fail_premium:
            raise DatabaseError("update failed", operation="set_premium", table="profiles")
        self.premium[user_id] = is_premium


# =============================================================================
# Pipeline Fixtures
# =============================================================================

@pytest.fixture
def subscription_repo():
    return InMemorySubscriptionRepository()


@pytest.fixture
def profile_repo():
    return InMemoryProfileRepository()


@pytest.fixture
def mock_stripe_service():
    """Stripe service whose lookups return a monthly plan ending at PERIOD_END."""
    service = MagicMock()
    service.has_webhook_secret = True
    service.get_subscription_billing = AsyncMock(
        return_value=SubscriptionBilling(price_id="p_month", current_period_end=PERIOD_END)
    )
    service.get_customer_email = AsyncMock(return_value=None)
    service.create_checkout_session = AsyncMock()
    service.retrieve_checkout_session = AsyncMock()
    return service


@pytest.fixture
def merger(subscription_repo):
    return SubscriptionMerger(subscription_repo, clock=lambda: FIXED_NOW)


@pytest.fixture
def event_router(mock_stripe_service, subscription_repo, profile_repo, merger):
    return WebhookEventRouter(
        stripe_service=mock_stripe_service,
        resolver=UserResolver(profile_repo),
        merger=merger,
        premium=PremiumFlagSynchronizer(profile_repo),
        subscriptions=subscription_repo,
    )


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application."""
    from billing_sync.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app, mock_stripe_service, event_router):
    """Test client wired to the in-memory pipeline."""
    from billing_sync.api.dependencies import get_webhook_router
    from billing_sync.infrastructure.payments.stripe_service import get_stripe_service

    app.dependency_overrides[get_stripe_service] = lambda: mock_stripe_service
    app.dependency_overrides[get_webhook_router] = lambda: event_router
    return TestClient(app)


# =============================================================================
# Sample Data Fixtures
# =============================================================================

def make_event(event_type: str, obj: dict, event_id: str = "evt_test") -> dict:
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


@pytest.fixture
def checkout_event():
    """checkout.session.completed for a logged-in user u1."""
    return make_event(
        "checkout.session.completed",
        {
            "id": "cs_test_1",
            "client_reference_id": "u1",
            "customer": "cus_1",
            "subscription": "sub_1",
            "customer_details": {"email": "buyer@example.com"},
            "metadata": {},
        },
        event_id="evt_checkout",
    )


@pytest.fixture
def payment_failed_event():
    """invoice.payment_failed for buyer@example.com on sub_1."""
    return make_event(
        "invoice.payment_failed",
        {
            "id": "in_failed_1",
            "customer": "cus_1",
            "customer_email": "buyer@example.com",
            "parent": {
                "type": "subscription_details",
                "subscription_details": {"subscription": "sub_1", "metadata": {}},
            },
        },
        event_id="evt_failed",
    )


@pytest.fixture
def stripe_event():
    """Factory for ad-hoc event payloads."""
    return make_event


@pytest.fixture
def period_end():
    return PERIOD_END


@pytest.fixture
def now():
    return FIXED_NOW
