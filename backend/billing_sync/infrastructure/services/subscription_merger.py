"""
Subscription Merger

Merge-safe upsert: reads the stored subscription for a user, applies
``merge_subscription`` and writes the result keyed by user ID.

Webhook events carry partial views of a subscription (a failed payment
has no price or period end), so fields missing from the event keep
their stored values.
"""

import logging
from datetime import datetime
from typing import Callable

from billing_sync.domain.subscription import (
    Subscription,
    SubscriptionUpdate,
    merge_subscription,
)
from billing_sync.infrastructure.db.models.base import utcnow
from billing_sync.infrastructure.db.repositories import SubscriptionRepository


logger = logging.getLogger(__name__)


class SubscriptionMerger:
    """
    Args:
        subscriptions: Repository for the subscriptions table
        clock: Source of ``updated_at`` timestamps
    """

    def __init__(
        self,
        subscriptions: SubscriptionRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._subscriptions = subscriptions
        self._clock = clock

    async def upsert(self, user_id: str, incoming: SubscriptionUpdate) -> Subscription:
        """
        Merge ``incoming`` into the user's stored record and persist it.

        A missing record is treated as empty, not as an error.

        Raises:
            DatabaseError: if the read fails
            SubscriptionWriteError: if the write fails (retryable)
        """
        existing = await self._subscriptions.get_by_user_id(user_id)
        merged = merge_subscription(user_id, existing, incoming, self._clock())

        if existing is None:
            logger.info(f"Creating subscription record for user {user_id}")

        return await self._subscriptions.upsert(merged)
