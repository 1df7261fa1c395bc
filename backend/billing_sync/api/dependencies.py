"""
API Dependencies

FastAPI dependency injection for the Stripe client and the webhook
reconciliation pipeline. Tests replace any of these through
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from billing_sync.infrastructure.db.dependencies import (
    ProfileRepoDep,
    SubscriptionRepoDep,
)
from billing_sync.infrastructure.payments.stripe_service import (
    StripeService,
    get_stripe_service,
)
from billing_sync.infrastructure.services import (
    PremiumFlagSynchronizer,
    SubscriptionMerger,
    UserResolver,
    WebhookEventRouter,
)


StripeServiceDep = Annotated[StripeService, Depends(get_stripe_service)]


async def get_webhook_router(
    stripe_service: StripeServiceDep,
    subscriptions: SubscriptionRepoDep,
    profiles: ProfileRepoDep,
) -> WebhookEventRouter:
    """Assemble the request-scoped webhook pipeline."""
    return WebhookEventRouter(
        stripe_service=stripe_service,
        resolver=UserResolver(profiles),
        merger=SubscriptionMerger(subscriptions),
        premium=PremiumFlagSynchronizer(profiles),
        subscriptions=subscriptions,
    )


WebhookRouterDep = Annotated[WebhookEventRouter, Depends(get_webhook_router)]
