"""create profiles, billing catalog, subscriptions, feature flags, projects and leads

Revision ID: 001
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
    ]


def upgrade() -> None:
    """Create the tables backing subscription sync and feature gating."""

    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False, primary_key=True),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_profiles_stripe_customer_id', 'profiles', ['stripe_customer_id'], unique=True)

    op.create_table(
        'plans',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False, primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'prices',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False, primary_key=True),
        sa.Column('plan_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('stripe_price_id', sa.String(length=255), nullable=False),
        sa.Column('currency', sa.String(length=10), nullable=False, server_default='usd'),
        sa.Column('unit_amount', sa.Integer(), nullable=True),
        sa.Column('interval', sa.String(length=20), nullable=True),
        sa.Column('interval_count', sa.Integer(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=True, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_prices_plan_id', 'prices', ['plan_id'])
    op.create_index('ix_prices_stripe_price_id', 'prices', ['stripe_price_id'], unique=True)

    op.create_table(
        'subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False, primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('plan_id', postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column('price_id', postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(length=255), nullable=False),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('trial_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('trial_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['price_id'], ['prices.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('stripe_subscription_id', name='subscriptions_stripe_subscription_id_key'),
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])
    op.create_index('ix_subscriptions_user_status', 'subscriptions', ['user_id', 'status'])

    op.create_table(
        'feature_flags',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False, primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_configs', sa.JSON(), nullable=False, server_default='[]'),
        *_timestamps(),
    )
    op.create_index('ix_feature_flags_name', 'feature_flags', ['name'], unique=True)

    op.create_table(
        'projects',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False, primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=True, unique=True),
        sa.Column('domain', sa.String(length=255), nullable=True),
        sa.Column('show_branding', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_projects_user_id', 'projects', ['user_id'])

    op.create_table(
        'leads',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False, primary_key=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('device_type', sa.String(length=20), nullable=True),
        sa.Column('browser', sa.String(length=100), nullable=True),
        sa.Column('os', sa.String(length=100), nullable=True),
        sa.Column('referer', sa.String(length=2048), nullable=True),
        sa.Column('country', sa.String(length=8), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('project_id', 'email', name='uq_leads_project_email'),
    )
    op.create_index('ix_leads_project_id', 'leads', ['project_id'])


def downgrade() -> None:
    """Drop all tables created in upgrade."""
    op.drop_index('ix_leads_project_id', table_name='leads')
    op.drop_table('leads')
    op.drop_index('ix_projects_user_id', table_name='projects')
    op.drop_table('projects')
    op.drop_index('ix_feature_flags_name', table_name='feature_flags')
    op.drop_table('feature_flags')
    op.drop_index('ix_subscriptions_user_status', table_name='subscriptions')
    op.drop_index('ix_subscriptions_user_id', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_index('ix_prices_stripe_price_id', table_name='prices')
    op.drop_index('ix_prices_plan_id', table_name='prices')
    op.drop_table('prices')
    op.drop_table('plans')
    op.drop_index('ix_profiles_stripe_customer_id', table_name='profiles')
    op.drop_table('profiles')
