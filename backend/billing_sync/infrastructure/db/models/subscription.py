"""
Subscription Database Model

SQLModel table for subscription data persistence.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field
from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID

from billing_sync.infrastructure.db.models.base import TimestampMixin


class SubscriptionModel(TimestampMixin, table=True):
    """
    Subscription table for storing user subscription data.

    Maps to the 'subscriptions' table in PostgreSQL. ``user_id`` is the
    conflict target for webhook upserts.
    """

    __tablename__ = "subscriptions"

    id: UUID = Field(default_factory=uuid4, sa_column=Column(PGUUID(as_uuid=True), primary_key=True))
    user_id: str = Field(sa_column=Column(String(36), unique=True, index=True, nullable=False))

    # Stripe IDs
    stripe_customer_id: Optional[str] = Field(default=None, max_length=255, index=True)
    stripe_subscription_id: Optional[str] = Field(default=None, max_length=255, index=True)

    # Subscription details
    status: str = Field(default="active", max_length=20)
    price_id: Optional[str] = Field(default=None, max_length=255)
    current_period_end: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
    )
    customer_email: Optional[str] = Field(default=None, max_length=320)
