"""
Repository Layer for Billing Sync

Exports all repository classes for dependency injection.
"""

from billing_sync.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from billing_sync.infrastructure.db.repositories.profile_repository import (
    ProfileRepository,
)


__all__ = [
    "SubscriptionRepository",
    "ProfileRepository",
]
