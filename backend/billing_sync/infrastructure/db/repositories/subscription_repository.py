"""
Subscription Repository

Data access layer for subscription persistence.
Maps between the SQLModel table and the Subscription domain entity.
"""

import logging
from typing import Optional
from uuid import uuid4

from sqlmodel import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_sync.domain.subscription import Subscription, SubscriptionStatus
from billing_sync.infrastructure.db.models.subscription import SubscriptionModel
from billing_sync.infrastructure.exceptions import DatabaseError, SubscriptionWriteError


logger = logging.getLogger(__name__)


class SubscriptionRepository:
    """
    Repository for subscription data access.

    Each instance is bound to the request-scoped session it was built with.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_user_id(self, user_id: str) -> Optional[Subscription]:
        """
        Get subscription by user ID.

        Args:
            user_id: Internal user ID

        Returns:
            Subscription domain model or None
        """
        statement = select(SubscriptionModel).where(SubscriptionModel.user_id == user_id)
        return await self._fetch_one(statement, "get_by_user_id")

    async def get_by_stripe_subscription_id(
        self,
        stripe_subscription_id: str,
    ) -> Optional[Subscription]:
        """
        Get subscription by Stripe subscription ID.

        Args:
            stripe_subscription_id: Stripe subscription ID

        Returns:
            Subscription domain model or None
        """
        statement = select(SubscriptionModel).where(
            SubscriptionModel.stripe_subscription_id == stripe_subscription_id
        )
        return await self._fetch_one(statement, "get_by_stripe_subscription_id")

    async def _fetch_one(self, statement, operation: str) -> Optional[Subscription]:
        try:
            result = await self._session.execute(statement)
            model = result.scalars().first()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error(f"Subscription {operation} failed: {e}")
            raise DatabaseError(
                f"Failed to read subscription: {e}",
                operation=operation,
                table=SubscriptionModel.__tablename__,
                original_error=e,
            )

        if model:
            return self._to_domain(model)

        return None

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def upsert(self, subscription: Subscription) -> Subscription:
        """
        Create or replace the subscription row for ``subscription.user_id``.

        Uses PostgreSQL ``ON CONFLICT (user_id) DO UPDATE`` so concurrent
        deliveries for the same user never produce two rows. The write is
        committed immediately.

        Args:
            subscription: Fully merged subscription

        Returns:
            The subscription as written

        Raises:
            SubscriptionWriteError: if the store rejects the write
        """
        values = {
            "stripe_customer_id": subscription.stripe_customer_id,
            "stripe_subscription_id": subscription.stripe_subscription_id,
            "status": subscription.status.value,
            "price_id": subscription.price_id,
            "current_period_end": subscription.current_period_end,
            "customer_email": subscription.customer_email,
            "updated_at": subscription.updated_at,
        }

        stmt = pg_insert(SubscriptionModel).values(
            id=uuid4(),
            user_id=subscription.user_id,
            created_at=subscription.created_at or subscription.updated_at,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={key: getattr(stmt.excluded, key) for key in values},
        )

        try:
            await self._session.execute(stmt)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error(f"Subscription upsert failed for user {subscription.user_id}: {e}")
            raise SubscriptionWriteError(
                f"Failed to upsert subscription: {e}",
                operation="upsert",
                table=SubscriptionModel.__tablename__,
                original_error=e,
            )

        logger.info(
            f"Upserted subscription for user {subscription.user_id} "
            f"(status={subscription.status.value})"
        )
        return subscription

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: SubscriptionModel) -> Subscription:
        """Convert database model to domain entity."""
        return Subscription(
            id=str(model.id),
            user_id=model.user_id,
            stripe_customer_id=model.stripe_customer_id,
            stripe_subscription_id=model.stripe_subscription_id,
            status=SubscriptionStatus(model.status),
            price_id=model.price_id,
            current_period_end=model.current_period_end,
            customer_email=model.customer_email,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
