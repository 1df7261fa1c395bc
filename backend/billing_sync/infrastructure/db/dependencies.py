"""
Dependency Injection Providers for Billing Sync

Provides FastAPI dependencies for database sessions and repositories.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from billing_sync.infrastructure.db.database import get_session
from billing_sync.infrastructure.db.repositories import (
    SubscriptionRepository,
    ProfileRepository,
)


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_subscription_repository(
    session: SessionDep,
) -> AsyncGenerator[SubscriptionRepository, None]:
    """
    Dependency provider for SubscriptionRepository.

    Usage:
        @router.post("/webhooks/stripe")
        async def webhook(
            repo: SubscriptionRepository = Depends(get_subscription_repository)
        ):
            ...
    """
    yield SubscriptionRepository(session)


async def get_profile_repository(
    session: SessionDep,
) -> AsyncGenerator[ProfileRepository, None]:
    """
    Dependency provider for ProfileRepository.
    """
    yield ProfileRepository(session)


# Type aliases for repository dependencies
SubscriptionRepoDep = Annotated[
    SubscriptionRepository,
    Depends(get_subscription_repository)
]
ProfileRepoDep = Annotated[
    ProfileRepository,
    Depends(get_profile_repository)
]
