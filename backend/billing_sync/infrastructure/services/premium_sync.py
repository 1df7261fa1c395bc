"""
Premium-Flag Synchronizer

Mirrors subscription status onto ``profiles.is_premium``. Runs after the
subscription row is committed, so failures here are logged, not raised.
"""

import logging
from typing import Optional

from billing_sync.infrastructure.db.repositories import ProfileRepository
from billing_sync.infrastructure.exceptions import DatabaseError


logger = logging.getLogger(__name__)


class PremiumFlagSynchronizer:

    def __init__(self, profiles: ProfileRepository):
        self._profiles = profiles

    async def set_premium(self, user_id: Optional[str], is_premium: bool) -> None:
        if not user_id:
            return

        try:
            await self._profiles.set_premium(user_id, is_premium)
        except DatabaseError as e:
            logger.error(f"Failed to set is_premium={is_premium} for user {user_id}: {e}")
            return

        logger.info(f"Set is_premium={is_premium} for user {user_id}")
