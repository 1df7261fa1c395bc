"""
Payments Infrastructure Module

Stripe webhook verification, lookups and checkout sessions.
"""

from billing_sync.infrastructure.payments.stripe_service import (
    StripeService,
    StripeServiceError,
    get_stripe_service,
)

__all__ = ["StripeService", "StripeServiceError", "get_stripe_service"]
