"""
Profile Repository for Billing Sync

Email lookup and premium-flag writes against the externally owned
profiles table.
"""

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from billing_sync.infrastructure.db.models.profile import Profile
from billing_sync.infrastructure.exceptions import DatabaseError


logger = logging.getLogger(__name__)


class ProfileRepository:
    """Repository for the two profile operations webhooks need."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_user_id_by_email(self, email: str) -> Optional[str]:
        """
        Find the user whose profile email matches exactly.

        Args:
            email: Billing email from Stripe

        Returns:
            User ID, or None if no profile has that email. When several
            profiles share the email, the lowest ID wins and a warning is logged.

        Raises:
            DatabaseError: if the lookup itself fails
        """
        stmt = (
            select(Profile.id)
            .where(Profile.email == email)
            .order_by(Profile.id)
            .limit(2)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise DatabaseError(
                f"Profile lookup failed: {e}",
                operation="find_user_id_by_email",
                table=Profile.__tablename__,
                original_error=e,
            )
        user_ids = result.scalars().all()
        if len(user_ids) > 1:
            logger.warning(
                f"Multiple profiles share email {email}; using {user_ids[0]}"
            )
        return user_ids[0] if user_ids else None

    async def set_premium(self, user_id: str, is_premium: bool) -> None:
        """
        Write the premium flag for a user and commit.

        Raises:
            DatabaseError: if the update fails
        """
        stmt = update(Profile).where(Profile.id == user_id).values(is_premium=is_premium)
        try:
            await self._session.execute(stmt)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise DatabaseError(
                f"Premium flag update failed: {e}",
                operation="set_premium",
                table=Profile.__tablename__,
                original_error=e,
            )
