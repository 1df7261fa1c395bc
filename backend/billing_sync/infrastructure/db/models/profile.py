"""
Profile SQLModel for Billing Sync

The 'profiles' table is owned by the auth provider. Only the columns
this service reads (email) or writes (is_premium) are mapped.
"""

from typing import Optional

from sqlmodel import Field, SQLModel


class Profile(SQLModel, table=True):
    """Minimal mapping of the externally managed profiles table."""

    __tablename__ = "profiles"

    id: str = Field(primary_key=True, max_length=36, description="Auth user ID")
    email: Optional[str] = Field(default=None, index=True, max_length=320)
    is_premium: bool = Field(default=False, description="Premium entitlement gate")
