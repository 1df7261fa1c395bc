"""Add is_premium flag to profiles

Revision ID: 0002_profiles_is_premium
Revises: 0001_add_subscriptions
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0002_profiles_is_premium'
down_revision: Union[str, None] = '0001_add_subscriptions'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # profiles is owned by the auth provider, so guard every statement
    op.execute(
        "ALTER TABLE profiles ADD COLUMN IF NOT EXISTS is_premium boolean NOT NULL DEFAULT false"
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_profiles_email ON profiles (email)")


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_profiles_email")
    op.execute("ALTER TABLE profiles DROP COLUMN IF EXISTS is_premium")
