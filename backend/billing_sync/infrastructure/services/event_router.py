"""
Webhook Event Router

Dispatches a verified Stripe event to exactly one handler and applies
the subscription state transition:

    checkout.session.completed    -> active    (premium on)
    invoice.paid                  -> active    (premium on)
    invoice.payment_failed        -> past_due  (premium off)
    customer.subscription.deleted -> canceled  (premium off)

Handlers raise UserResolutionError or DatabaseError when the event could
not be durably recorded; the HTTP layer turns those into a retryable 500.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional

from billing_sync.domain.events import (
    CheckoutCompletedEvent,
    EventType,
    IdentityHints,
    InvoicePaidEvent,
    InvoicePaymentFailedEvent,
    SubscriptionDeletedEvent,
    WebhookEvent,
    parse_event,
)
from billing_sync.domain.subscription import (
    Subscription,
    SubscriptionBilling,
    SubscriptionStatus,
    SubscriptionUpdate,
)
from billing_sync.infrastructure.db.repositories import SubscriptionRepository
from billing_sync.infrastructure.exceptions import UserResolutionError
from billing_sync.infrastructure.payments.stripe_service import StripeService
from billing_sync.infrastructure.services.premium_sync import PremiumFlagSynchronizer
from billing_sync.infrastructure.services.subscription_merger import SubscriptionMerger
from billing_sync.infrastructure.services.user_resolver import (
    METADATA_USER_ID_KEY,
    ResolvedUser,
    UserResolver,
)


logger = logging.getLogger(__name__)


class WebhookOutcome(str, Enum):
    """How an event that did not fail was consumed."""
    PROCESSED = "processed"
    SKIPPED = "skipped"
    IGNORED = "ignored"


class WebhookEventRouter:
    """
    Routes one event at a time through resolve -> merge -> premium sync.

    Args:
        stripe_service: Source of enrichment lookups
        resolver: Event identity -> user ID
        merger: Merge-safe subscription upsert
        premium: Profile premium-flag writer
        subscriptions: Used to find the owner of a deleted subscription
    """

    def __init__(
        self,
        stripe_service: StripeService,
        resolver: UserResolver,
        merger: SubscriptionMerger,
        premium: PremiumFlagSynchronizer,
        subscriptions: SubscriptionRepository,
    ):
        self._stripe = stripe_service
        self._resolver = resolver
        self._merger = merger
        self._premium = premium
        self._subscriptions = subscriptions

        self._handlers = {
            EventType.CHECKOUT_COMPLETED: self._handle_checkout_completed,
            EventType.INVOICE_PAID: self._handle_invoice_paid,
            EventType.INVOICE_PAYMENT_FAILED: self._handle_invoice_payment_failed,
            EventType.SUBSCRIPTION_DELETED: self._handle_subscription_deleted,
        }

    async def dispatch(self, event: Mapping[str, Any]) -> WebhookOutcome:
        """
        Process a verified event.

        Returns:
            WebhookOutcome for events that were consumed

        Raises:
            InvalidEventError: a handled event has wrongly typed fields
            UserResolutionError: no identity strategy matched
            DatabaseError: the subscription could not be read or written
        """
        parsed = parse_event(event)

        if parsed is None:
            logger.info(f"Unhandled event type: {event.get('type')}")
            return WebhookOutcome.IGNORED

        return await self._handlers[parsed.type](parsed)

    # =========================================================================
    # Event Handlers
    # =========================================================================

    async def _handle_checkout_completed(self, event: CheckoutCompletedEvent) -> WebhookOutcome:
        """Fired once after a successful checkout; creates the record."""
        if not event.subscription_id:
            logger.warning(
                f"checkout.session.completed {event.session_id}: no subscription ID, skipping"
            )
            return WebhookOutcome.SKIPPED

        user = await self._resolve(event, event.identity)
        billing = await self._fetch_billing(event.subscription_id)

        await self._apply(
            user.user_id,
            SubscriptionUpdate(
                status=SubscriptionStatus.ACTIVE,
                stripe_customer_id=event.customer_id,
                stripe_subscription_id=event.subscription_id,
                price_id=billing.price_id,
                current_period_end=billing.current_period_end,
                customer_email=event.identity.email,
            ),
        )
        logger.info(
            f"Subscription {event.subscription_id} linked to user {user.user_id} "
            f"via {user.source.value}"
        )
        return WebhookOutcome.PROCESSED

    async def _handle_invoice_paid(self, event: InvoicePaidEvent) -> WebhookOutcome:
        """Fired on every successful renewal; keeps the record active."""
        identity = await self._with_customer_email(event.identity, event.customer_id)
        user = await self._resolve(event, identity)

        billing = SubscriptionBilling()
        if event.subscription_id:
            billing = await self._fetch_billing(event.subscription_id)

        await self._apply(
            user.user_id,
            SubscriptionUpdate(
                status=SubscriptionStatus.ACTIVE,
                stripe_customer_id=event.customer_id,
                stripe_subscription_id=event.subscription_id,
                price_id=billing.price_id,
                current_period_end=billing.current_period_end,
                customer_email=identity.email,
            ),
        )
        logger.info(f"invoice.paid -> status=active for user {user.user_id}")
        return WebhookOutcome.PROCESSED

    async def _handle_invoice_payment_failed(
        self,
        event: InvoicePaymentFailedEvent,
    ) -> WebhookOutcome:
        """Payment failed (e.g. expired card); Stripe will retry the charge."""
        identity = await self._with_customer_email(event.identity, event.customer_id)
        user = await self._resolve(event, identity)

        await self._apply(
            user.user_id,
            SubscriptionUpdate(
                status=SubscriptionStatus.PAST_DUE,
                stripe_customer_id=event.customer_id,
                stripe_subscription_id=event.subscription_id,
                customer_email=identity.email,
            ),
        )
        logger.warning(f"invoice.payment_failed -> status=past_due for user {user.user_id}")
        return WebhookOutcome.PROCESSED

    async def _handle_subscription_deleted(self, event: SubscriptionDeletedEvent) -> WebhookOutcome:
        """Subscription ended; the record is kept and marked canceled."""
        existing: Optional[Subscription] = None
        if event.subscription_id:
            existing = await self._subscriptions.get_by_stripe_subscription_id(
                event.subscription_id
            )

        if existing is None:
            logger.info(
                f"customer.subscription.deleted: no record for {event.subscription_id}, "
                "nothing to cancel"
            )
            return WebhookOutcome.SKIPPED

        await self._apply(
            existing.user_id,
            SubscriptionUpdate(
                status=SubscriptionStatus.CANCELED,
                stripe_customer_id=event.customer_id,
                stripe_subscription_id=event.subscription_id,
            ),
        )
        logger.info(
            f"customer.subscription.deleted -> status=canceled for user {existing.user_id}"
        )
        return WebhookOutcome.PROCESSED

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _apply(self, user_id: str, update: SubscriptionUpdate) -> Subscription:
        """Persist the merged record, then mirror it onto the profile."""
        subscription = await self._merger.upsert(user_id, update)
        await self._premium.set_premium(user_id, subscription.is_premium)
        return subscription

    async def _resolve(self, event: WebhookEvent, identity: IdentityHints) -> ResolvedUser:
        try:
            return await self._resolver.resolve(
                identity.direct_id,
                identity.metadata,
                identity.email,
            )
        except UserResolutionError as e:
            logger.error(
                f"Could not resolve user for {event.type.value} ({event.event_id}): "
                f"reason={e.reason.value}, email={identity.email}, "
                f"customer={getattr(event, 'customer_id', None)}"
            )
            raise

    async def _with_customer_email(
        self,
        identity: IdentityHints,
        customer_id: Optional[str],
    ) -> IdentityHints:
        """
        Fill in the billing email from the Stripe customer when the
        invoice lacks one and the email strategy will be needed.
        """
        needs_email = not (
            identity.email
            or identity.direct_id
            or identity.metadata.get(METADATA_USER_ID_KEY)
        )
        if not needs_email or not customer_id:
            return identity

        email = await self._stripe.get_customer_email(customer_id)
        return identity.model_copy(update={"email": email})

    async def _fetch_billing(self, subscription_id: str) -> SubscriptionBilling:
        """Price and period end; missing data is tolerated."""
        billing = await self._stripe.get_subscription_billing(subscription_id)
        if billing is None:
            logger.warning(
                f"Continuing without price/period end for subscription {subscription_id}"
            )
            return SubscriptionBilling()
        return billing
