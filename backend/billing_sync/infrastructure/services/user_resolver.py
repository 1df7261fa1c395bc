"""
User Resolver

Maps the identity hints carried by a Stripe event to an internal user ID.

Strategies, in strict priority order (first match wins):
1. direct reference (``client_reference_id``), set when the buyer was
   logged in before checkout
2. ``metadata["user_id"]``, copied onto sessions and subscriptions
3. exact email match against the profiles table, for buyers who paid
   on the landing page before creating an account
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel

from billing_sync.infrastructure.db.repositories import ProfileRepository
from billing_sync.infrastructure.exceptions import (
    DatabaseError,
    ResolutionFailure,
    UserResolutionError,
)


logger = logging.getLogger(__name__)

METADATA_USER_ID_KEY = "user_id"


class ResolutionSource(str, Enum):
    """Which strategy produced the user ID."""
    DIRECT = "direct"
    METADATA = "metadata"
    EMAIL = "email"


class ResolvedUser(BaseModel):
    user_id: str
    source: ResolutionSource


class UserResolver:
    """
    Resolves event identity hints to a user ID.

    Args:
        profiles: Repository used for the email lookup strategy
    """

    def __init__(self, profiles: ProfileRepository):
        self._profiles = profiles

    async def resolve(
        self,
        direct_id: Optional[str],
        metadata: Optional[Mapping[str, Any]],
        email: Optional[str],
    ) -> ResolvedUser:
        """
        Resolve a user from event hints.

        Raises:
            UserResolutionError: with reason ``no_email``, ``lookup_failed``
                or ``profile_not_found`` when strategy 3 cannot succeed
        """
        if direct_id:
            return ResolvedUser(user_id=direct_id, source=ResolutionSource.DIRECT)

        metadata_id = (metadata or {}).get(METADATA_USER_ID_KEY)
        if isinstance(metadata_id, str) and metadata_id:
            return ResolvedUser(user_id=metadata_id, source=ResolutionSource.METADATA)

        if not email:
            raise UserResolutionError(ResolutionFailure.NO_EMAIL)

        try:
            user_id = await self._profiles.find_user_id_by_email(email)
        except DatabaseError as e:
            raise UserResolutionError(
                ResolutionFailure.LOOKUP_FAILED,
                email=email,
                original_error=e,
            )

        if not user_id:
            raise UserResolutionError(ResolutionFailure.PROFILE_NOT_FOUND, email=email)

        return ResolvedUser(user_id=str(user_id), source=ResolutionSource.EMAIL)
