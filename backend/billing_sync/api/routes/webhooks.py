"""
Stripe Webhook Handler

Verifies the signature on the raw request body, hands the event to the
WebhookEventRouter and maps the result onto the status code Stripe uses
to decide whether to redeliver:

- 200: consumed (processed, skipped, or unhandled type)
- 400: missing/invalid signature, malformed payload, or a handled event
  whose fields have the wrong types (never retried)
- 500: user unresolved or subscription not persisted (Stripe retries)
"""

import logging

from fastapi import APIRouter, Request, HTTPException, status
from fastapi.responses import JSONResponse

from billing_sync.api.dependencies import StripeServiceDep, WebhookRouterDep
from billing_sync.infrastructure.exceptions import (
    DatabaseError,
    InvalidEventError,
    UserResolutionError,
)
from billing_sync.infrastructure.payments.stripe_service import StripeServiceError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_service: StripeServiceDep,
    event_router: WebhookRouterDep,
):
    """
    Handle Stripe webhook events.

    The body is read as raw bytes; parsing it before verification would
    invalidate the signature.
    """
    if not stripe_service.has_webhook_secret:
        logger.error("STRIPE_WEBHOOK_SECRET is not set")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"received": False, "error": "Webhook secret not configured"},
        )

    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    try:
        event = stripe_service.verify_webhook_signature(payload, signature)
    except StripeServiceError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook Error: {e.message}"
        )

    event_id = event.get("id")
    event_type = event.get("type")
    logger.info(f"Received webhook event: {event_type} ({event_id})")

    try:
        outcome = await event_router.dispatch(event)
    except InvalidEventError as e:
        logger.error(f"Rejected malformed {event_type} ({event_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Webhook Error: {e.message}"
        )
    except UserResolutionError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"received": False, "error": e.message, "reason": e.reason.value},
        )
    except DatabaseError as e:
        logger.error(f"Failed to persist {event_type} ({event_id}): {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"received": False, "error": e.message, "details": e.details},
        )

    return {"received": True, "status": outcome.value}
