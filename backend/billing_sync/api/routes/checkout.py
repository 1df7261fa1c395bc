"""
Checkout API Routes

Landing-page endpoints: start a hosted Stripe Checkout for one of the
configured prices, and read back a finished session for conversion
tracking.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, status

from billing_sync.api.dependencies import StripeServiceDep
from billing_sync.config.settings import get_settings
from billing_sync.domain.subscription import (
    CheckoutResponse,
    CheckoutSessionSummary,
    CreateCheckoutRequest,
)
from billing_sync.infrastructure.payments.stripe_service import StripeServiceError


logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_CURRENCY = "BRL"


@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout(
    request: CreateCheckoutRequest,
    stripe_service: StripeServiceDep,
):
    """Create a subscription checkout session and return its URL."""
    settings = get_settings()

    if not request.price_id or request.price_id not in settings.valid_price_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid priceId"
        )

    landing = settings.landing_base_url.rstrip("/")

    try:
        session = await stripe_service.create_checkout_session(
            price_id=request.price_id,
            success_url=f"{landing}/success",
            cancel_url=f"{landing}/cancel",
        )
    except StripeServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message
        )

    return CheckoutResponse(url=session.url)


@router.get("/stripe-session", response_model=CheckoutSessionSummary)
async def get_checkout_session(
    stripe_service: StripeServiceDep,
    session_id: Optional[str] = None,
):
    """Return the amount and currency of a checkout session for tracking."""
    if not session_id:
        logger.error(f"Received invalid session_id: {session_id!r}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing or invalid session_id"
        )

    try:
        session = await stripe_service.retrieve_checkout_session(session_id)
    except StripeServiceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message
        )

    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found"
        )

    return CheckoutSessionSummary(
        value=(session.get("amount_total") or 0) / 100,  # Stripe amounts are in cents
        currency=(session.get("currency") or DEFAULT_CURRENCY).upper(),
        session_id=session.get("id") or session_id,
        payment_status=session.get("payment_status"),
    )
