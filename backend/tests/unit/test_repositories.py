"""
Unit tests for the subscription and profile repositories.

Uses a mocked AsyncSession and inspects the compiled PostgreSQL
statements.
"""

import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError

from billing_sync.domain.subscription import Subscription, SubscriptionStatus
from billing_sync.infrastructure.db.repositories import (
    ProfileRepository,
    SubscriptionRepository,
)
from billing_sync.infrastructure.exceptions import DatabaseError, SubscriptionWriteError


# ============== Test Fixtures ==============

@pytest.fixture
def mock_session():
    """Mock async session for testing."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def subscriptions(mock_session):
    return SubscriptionRepository(mock_session)


@pytest.fixture
def profiles(mock_session):
    return ProfileRepository(mock_session)


def scalars_result(values):
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    result.scalars.return_value.first.return_value = values[0] if values else None
    return result


def compiled_sql(mock_session) -> str:
    statement = mock_session.execute.call_args.args[0]
    return str(statement.compile(dialect=postgresql.dialect()))


# ============== Subscription Repository Tests ==============

class TestSubscriptionRepository:

    @pytest.mark.asyncio
    async def test_upsert_conflicts_on_user_id(self, subscriptions, mock_session):
        subscription = Subscription(
            user_id="u1",
            status=SubscriptionStatus.ACTIVE,
            stripe_subscription_id="sub_1",
            updated_at=datetime(2026, 10, 18, tzinfo=timezone.utc),
        )

        result = await subscriptions.upsert(subscription)

        assert result is subscription
        assert "ON CONFLICT (user_id) DO UPDATE" in compiled_sql(mock_session)
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upsert_failure_rolls_back(self, subscriptions, mock_session):
        mock_session.execute.side_effect = SQLAlchemyError("connection reset")

        with pytest.raises(SubscriptionWriteError) as exc_info:
            await subscriptions.upsert(
                Subscription(user_id="u1", status=SubscriptionStatus.PAST_DUE)
            )

        assert exc_info.value.details == {"operation": "upsert", "table": "subscriptions"}
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_by_user_id_not_found(self, subscriptions, mock_session):
        mock_session.execute.return_value = scalars_result([])

        assert await subscriptions.get_by_user_id("u1") is None
        mock_session.execute.assert_called_once()


# ============== Profile Repository Tests ==============

class TestProfileRepository:

    @pytest.mark.asyncio
    async def test_email_lookup_is_ordered(self, profiles, mock_session):
        mock_session.execute.return_value = scalars_result(["u1"])

        assert await profiles.find_user_id_by_email("buyer@example.com") == "u1"

        sql = compiled_sql(mock_session)
        assert "ORDER BY profiles.id" in sql
        assert "LIMIT" in sql

    @pytest.mark.asyncio
    async def test_shared_email_picks_first_and_warns(self, profiles, mock_session, caplog):
        mock_session.execute.return_value = scalars_result(["u-a", "u-b"])

        with caplog.at_level(logging.WARNING):
            user_id = await profiles.find_user_id_by_email("shared@example.com")

        assert user_id == "u-a"
        assert "Multiple profiles share email shared@example.com" in caplog.text

    @pytest.mark.asyncio
    async def test_no_match(self, profiles, mock_session):
        mock_session.execute.return_value = scalars_result([])

        assert await profiles.find_user_id_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_lookup_failure(self, profiles, mock_session):
        mock_session.execute.side_effect = SQLAlchemyError("timeout")

        with pytest.raises(DatabaseError):
            await profiles.find_user_id_by_email("buyer@example.com")

        mock_session.rollback.assert_awaited_once()
