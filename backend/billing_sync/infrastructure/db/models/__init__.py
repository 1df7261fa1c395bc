"""
SQLModel ORM Models for Billing Sync

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from billing_sync.infrastructure.db.models.base import TimestampMixin, utcnow
from billing_sync.infrastructure.db.models.subscription import SubscriptionModel
from billing_sync.infrastructure.db.models.profile import Profile


__all__ = [
    # Base
    "TimestampMixin",
    "utcnow",
    # Tables
    "SubscriptionModel",
    "Profile",
]
