"""
Subscription Domain Models

Domain models for the subscription bounded context.
Enums, domain entities, and the field-level merge rule applied to
every webhook write.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


# Fields that keep their stored value when an event omits them
MERGEABLE_FIELDS = (
    "stripe_customer_id",
    "stripe_subscription_id",
    "current_period_end",
    "price_id",
    "customer_email",
)


# =============================================================================
# Domain Entities
# =============================================================================

class Subscription(BaseModel):
    """Core subscription domain entity (one per user)."""
    id: Optional[str] = None
    user_id: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    status: SubscriptionStatus
    price_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    customer_email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_premium(self) -> bool:
        """Whether this status grants premium access."""
        return self.status == SubscriptionStatus.ACTIVE


class SubscriptionUpdate(BaseModel):
    """
    Partial view of a subscription carried by a single webhook event.

    Only ``status`` is mandatory; everything else may be missing
    depending on the event type.
    """
    status: SubscriptionStatus
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    price_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    customer_email: Optional[str] = None


class SubscriptionBilling(BaseModel):
    """Billing facts fetched from Stripe for a subscription."""
    price_id: Optional[str] = None
    current_period_end: Optional[datetime] = None


# =============================================================================
# Merge Rule
# =============================================================================

def merge_subscription(
    user_id: str,
    existing: Optional[Subscription],
    incoming: SubscriptionUpdate,
    now: datetime,
) -> Subscription:
    """
    Combine an incoming event view with the stored record.

    ``status`` always comes from the event. Every other field is replaced
    only by a truthy incoming value; otherwise the stored value is kept.

    Args:
        user_id: Owner of the record
        existing: Stored record, or None if the user has no row yet
        incoming: Fields carried by the current event
        now: Timestamp written to ``updated_at``

    Returns:
        The merged Subscription to persist
    """
    merged = {
        "user_id": user_id,
        "status": incoming.status,
        "updated_at": now,
    }

    for field in MERGEABLE_FIELDS:
        new_value = getattr(incoming, field)
        old_value = getattr(existing, field) if existing else None
        merged[field] = new_value if new_value else old_value

    if existing:
        merged["id"] = existing.id
        merged["created_at"] = existing.created_at

    return Subscription(**merged)


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CreateCheckoutRequest(BaseModel):
    """Request DTO for creating a checkout session."""
    price_id: Optional[str] = Field(
        default=None,
        alias="priceId",
        description="Stripe price to subscribe to"
    )

    model_config = ConfigDict(populate_by_name=True)


class CheckoutResponse(BaseModel):
    """Response DTO for checkout session creation."""
    url: str


class CheckoutSessionSummary(BaseModel):
    """Tracking data for a completed checkout session."""
    value: float = Field(description="Amount paid in major currency units")
    currency: str
    session_id: str
    payment_status: Optional[str] = None
