"""
Base Model for SQLModel ORM

Provides common fields shared by the tables this service owns.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Timezone-aware current time used for all timestamps."""
    return datetime.now(timezone.utc)


class TimestampMixin(SQLModel):
    """
    Mixin providing timestamp fields for models.

    ``updated_at`` is written explicitly by the merger on every upsert,
    so no ``onupdate`` hook is attached here.
    """

    created_at: Optional[datetime] = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        nullable=False,
        description="Record creation timestamp (UTC)"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        nullable=False,
        description="Last update timestamp (UTC)"
    )
