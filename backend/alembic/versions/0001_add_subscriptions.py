"""Add subscriptions table

Revision ID: 0001_add_subscriptions
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_add_subscriptions'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create subscriptions table written by the Stripe webhook."""

    op.create_table(
        'subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False, unique=True, index=True),

        # Stripe IDs
        sa.Column('stripe_customer_id', sa.String(255), index=True),
        sa.Column('stripe_subscription_id', sa.String(255), index=True),

        # Subscription details
        sa.Column('status', sa.String(20), server_default='active', nullable=False),
        sa.Column('price_id', sa.String(255)),
        sa.Column('current_period_end', sa.DateTime(timezone=True)),
        sa.Column('customer_email', sa.String(320)),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),

        sa.CheckConstraint(
            "status IN ('active', 'past_due', 'canceled')",
            name='ck_subscriptions_status',
        ),
    )

    # Enable RLS
    op.execute('ALTER TABLE subscriptions ENABLE ROW LEVEL SECURITY')

    # RLS Policy: Users can only see their own subscription
    op.execute("""
        CREATE POLICY "Users can view own subscription"
        ON subscriptions FOR SELECT
        TO authenticated
        USING (user_id = auth.uid()::text)
    """)

    # RLS Policy: Service role can manage all subscriptions (for webhooks)
    op.execute("""
        CREATE POLICY "Service role manages subscriptions"
        ON subscriptions FOR ALL
        TO service_role
        USING (true)
        WITH CHECK (true)
    """)


def downgrade() -> None:
    """Drop subscriptions table."""

    op.execute('DROP POLICY IF EXISTS "Users can view own subscription" ON subscriptions')
    op.execute('DROP POLICY IF EXISTS "Service role manages subscriptions" ON subscriptions')

    op.drop_table('subscriptions')
