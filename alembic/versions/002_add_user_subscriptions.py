"""add user_subscriptions

Revision ID: 002_user_subscriptions
Revises: 001_initial
Create Date: 2025-03-09 14:30:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '002_user_subscriptions'
down_revision: Union[str, None] = '001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per user; a missing row means free/active
    op.create_table(
        'user_subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('plan', sa.String(16), nullable=False, server_default='free'),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('stripe_session_id', sa.String(255), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True),
        sa.Column('payment_status', sa.String(32), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_event_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.CheckConstraint("plan IN ('free', 'pro')", name='ck_user_subscriptions_plan'),
        sa.CheckConstraint(
            "status IN ('active', 'canceled', 'incomplete', 'past_due')",
            name='ck_user_subscriptions_status'
        ),
    )
    op.create_index('ix_user_subscriptions_id', 'user_subscriptions', ['id'])
    op.create_index('ix_user_subscriptions_user_id', 'user_subscriptions', ['user_id'], unique=True)
    op.create_index('ix_user_subscriptions_stripe_customer_id', 'user_subscriptions', ['stripe_customer_id'])
    op.create_index('ix_user_subscriptions_stripe_subscription_id', 'user_subscriptions', ['stripe_subscription_id'])


def downgrade() -> None:
    op.drop_index('ix_user_subscriptions_stripe_subscription_id', table_name='user_subscriptions')
    op.drop_index('ix_user_subscriptions_stripe_customer_id', table_name='user_subscriptions')
    op.drop_index('ix_user_subscriptions_user_id', table_name='user_subscriptions')
    op.drop_index('ix_user_subscriptions_id', table_name='user_subscriptions')
    op.drop_table('user_subscriptions')
