"""
Stripe Payment Service

Infrastructure service wrapping the Stripe SDK calls this system needs:
- Webhook signature verification
- Subscription and customer lookups used to enrich webhook data
- Hosted Checkout session creation and retrieval

The API key is passed per call instead of being set on the global
``stripe`` module, so several instances can coexist in tests.
"""

import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional

import stripe
from stripe import StripeError

from billing_sync.config.settings import get_settings
from billing_sync.domain.subscription import SubscriptionBilling
from billing_sync.infrastructure.exceptions import BillingSyncError


logger = logging.getLogger(__name__)


class StripeServiceError(BillingSyncError):
    """Base exception for Stripe service errors."""
    pass


def _as_dict(obj: Any) -> dict:
    """Normalize a StripeObject (or plain mapping) to a dict."""
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def _timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class StripeService:
    """
    Stripe payment processing service.

    Args:
        api_key: Stripe secret key
        webhook_secret: Signing secret of the webhook endpoint
        webhook_tolerance: Maximum age of a signed payload, in seconds
    """

    def __init__(
        self,
        api_key: Optional[str],
        webhook_secret: Optional[str],
        webhook_tolerance: int = 300,
    ):
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._webhook_tolerance = webhook_tolerance

    @property
    def has_webhook_secret(self) -> bool:
        return bool(self._webhook_secret)

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
    ) -> dict:
        """
        Verify webhook signature and decode the event.

        The payload must be the exact bytes Stripe sent; any re-serialization
        before this call invalidates the signature.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header

        Returns:
            Event as a plain dict

        Raises:
            StripeServiceError if signature or payload is invalid
        """
        try:
            stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self._webhook_secret,
                self._webhook_tolerance,
            )
            event = json.loads(payload)
        except stripe.SignatureVerificationError as e:
            raise StripeServiceError(f"Invalid signature: {e}", original_error=e)
        except ValueError as e:
            raise StripeServiceError(f"Invalid payload: {e}", original_error=e)

        if not isinstance(event, dict):
            raise StripeServiceError("Invalid payload: event is not an object")

        return event

    # =========================================================================
    # Enrichment Lookups
    # =========================================================================

    async def get_subscription_billing(
        self,
        subscription_id: str,
    ) -> Optional[SubscriptionBilling]:
        """
        Fetch price and current period end for a subscription.

        Newer API versions report ``current_period_end`` on the subscription
        item rather than the subscription, so both are checked.

        Args:
            subscription_id: Stripe subscription ID

        Returns:
            SubscriptionBilling, or None if Stripe could not be reached
        """
        try:
            subscription = _as_dict(
                stripe.Subscription.retrieve(subscription_id, api_key=self._api_key)
            )
        except StripeError as e:
            logger.error(f"Failed to retrieve subscription {subscription_id}: {e}")
            return None

        items = (subscription.get("items") or {}).get("data") or []
        first_item = items[0] if items else {}

        return SubscriptionBilling(
            price_id=(first_item.get("price") or {}).get("id"),
            current_period_end=_timestamp(
                subscription.get("current_period_end")
                or first_item.get("current_period_end")
            ),
        )

    async def get_customer_email(self, customer_id: str) -> Optional[str]:
        """
        Fetch the email on file for a customer.

        Returns:
            Email, or None if missing, deleted, or Stripe could not be reached
        """
        try:
            customer = _as_dict(stripe.Customer.retrieve(customer_id, api_key=self._api_key))
        except StripeError as e:
            logger.error(f"Failed to retrieve customer {customer_id}: {e}")
            return None

        if customer.get("deleted"):
            logger.warning(f"Customer {customer_id} is deleted")
            return None

        return customer.get("email") or None

    # =========================================================================
    # Checkout Session
    # =========================================================================

    async def create_checkout_session(
        self,
        price_id: str,
        success_url: str,
        cancel_url: str,
    ) -> Any:
        """
        Create a Stripe Checkout Session for a subscription.

        No ``client_reference_id`` is set: the buyer may not have an
        account yet, so the webhook falls back to the billing email.

        Args:
            price_id: Stripe price to subscribe to
            success_url: Redirect after successful payment
            cancel_url: Redirect after cancelled payment

        Returns:
            stripe.checkout.Session with checkout URL
        """
        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                customer_creation="always",
                success_url=f"{success_url}?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=cancel_url,
            )
        except StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise StripeServiceError(
                f"Failed to create checkout: {e.user_message or e}",
                original_error=e,
            )

        logger.info(f"Created checkout session {session.id} for price {price_id}")
        return session

    async def retrieve_checkout_session(self, session_id: str) -> Optional[dict]:
        """
        Retrieve a checkout session for conversion tracking.

        Returns:
            Session as a dict, or None if Stripe does not know the ID

        Raises:
            StripeServiceError for any other Stripe failure
        """
        try:
            return _as_dict(
                stripe.checkout.Session.retrieve(session_id, api_key=self._api_key)
            )
        except stripe.InvalidRequestError as e:
            if e.http_status == 404:
                logger.warning(f"Checkout session not found: {session_id}")
                return None
            raise StripeServiceError(f"Failed to retrieve session: {e}", original_error=e)
        except StripeError as e:
            logger.error(f"Failed to retrieve checkout session {session_id}: {e}")
            raise StripeServiceError(f"Failed to retrieve session: {e}", original_error=e)


# =============================================================================
# Cached Instance (Dependency Injection Ready)
# =============================================================================

@lru_cache
def get_stripe_service() -> StripeService:
    """Build the Stripe service from settings once per process."""
    settings = get_settings()
    return StripeService(
        api_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        webhook_tolerance=settings.stripe_webhook_tolerance,
    )
