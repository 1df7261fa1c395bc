"""
Webhook reconciliation services.
"""

from billing_sync.infrastructure.services.user_resolver import (
    ResolutionSource,
    ResolvedUser,
    UserResolver,
)
from billing_sync.infrastructure.services.subscription_merger import SubscriptionMerger
from billing_sync.infrastructure.services.premium_sync import PremiumFlagSynchronizer
from billing_sync.infrastructure.services.event_router import (
    WebhookEventRouter,
    WebhookOutcome,
)

__all__ = [
    "ResolutionSource",
    "ResolvedUser",
    "UserResolver",
    "SubscriptionMerger",
    "PremiumFlagSynchronizer",
    "WebhookEventRouter",
    "WebhookOutcome",
]
