"""Initial access control schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _purchase_columns() -> list:
    return [
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('purchase_type', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('payment_status', sa.String(length=32), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('grace_period_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_trial', sa.Boolean(), nullable=False),
        sa.Column('trial_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('purchased_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create rate limiting, session, purchase, family, role and entitlement tables."""
    op.create_table(
        'rate_limit_windows',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('identifier', sa.String(length=255), nullable=False),
        sa.Column('identifier_type', sa.String(length=16), nullable=False),
        sa.Column('function_name', sa.String(length=128), nullable=False),
        sa.Column('window_granularity', sa.String(length=16), nullable=False),
        sa.Column('window_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('request_count', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            'identifier', 'identifier_type', 'function_name', 'window_granularity',
            'window_start', name='uq_rate_limit_windows_key',
        ),
    )
    op.create_index(
        'ix_rate_limit_windows_lookup', 'rate_limit_windows',
        ['identifier', 'identifier_type', 'function_name', 'window_granularity', 'window_start'],
    )
    op.create_index('ix_rate_limit_windows_window_start', 'rate_limit_windows', ['window_start'])

    op.create_table(
        'user_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('session_token', sa.String(length=64), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_accessed', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
    )
    op.create_index('ix_user_sessions_user_id', 'user_sessions', ['user_id'])
    op.create_index('ix_user_sessions_user_id_expires_at', 'user_sessions', ['user_id', 'expires_at'])

    op.create_table(
        'revoked_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_token', sa.String(length=64), nullable=False, unique=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('revoked_by', sa.String(length=64), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_revoked_sessions_user_id', 'revoked_sessions', ['user_id'])
    op.create_index('ix_revoked_sessions_expires_at', 'revoked_sessions', ['expires_at'])

    op.create_table(
        'products',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('slug', sa.String(length=128), nullable=False, unique=True),
        sa.Column('status', sa.String(length=32), nullable=False),
    )
    op.create_table(
        'services',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('slug', sa.String(length=128), nullable=False, unique=True),
    )

    op.create_table(
        'product_purchases',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        *_purchase_columns(),
    )
    op.create_index('ix_product_purchases_user_id', 'product_purchases', ['user_id'])
    op.create_index(
        'ix_product_purchases_user_product', 'product_purchases', ['user_id', 'product_id']
    )

    op.create_table(
        'service_purchases',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('service_id', sa.String(length=64), nullable=False),
        *_purchase_columns(),
    )
    op.create_index('ix_service_purchases_user_id', 'service_purchases', ['user_id'])
    op.create_index('ix_service_purchases_user_status', 'service_purchases', ['user_id', 'status'])

    op.create_table(
        'family_members',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('family_group_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
    )
    op.create_index('ix_family_members_family_group_id', 'family_members', ['family_group_id'])
    op.create_index('ix_family_members_user_id', 'family_members', ['user_id'])
    op.create_index('ix_family_members_user_status', 'family_members', ['user_id', 'status'])

    op.create_table(
        'family_subscriptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('family_group_id', sa.String(length=64), nullable=False),
        sa.Column('plan_name', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        'ix_family_subscriptions_family_group_id', 'family_subscriptions', ['family_group_id']
    )

    op.create_table(
        'user_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.UniqueConstraint('user_id', 'role', name='uq_user_roles_user_role'),
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])

    op.create_table(
        'entitlements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('app_id', sa.String(length=128), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('grant_type', sa.String(length=32), nullable=False),
        sa.Column('granted_by', sa.String(length=64), nullable=True),
        sa.Column('grant_reason', sa.String(length=1024), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('user_id', 'app_id', name='uq_entitlements_user_app'),
    )
    op.create_index('ix_entitlements_user_id', 'entitlements', ['user_id'])
    op.create_index('ix_entitlements_user_id_active', 'entitlements', ['user_id', 'active'])


def downgrade() -> None:
    """Drop every access control table."""
    for table in (
        'entitlements',
        'user_roles',
        'family_subscriptions',
        'family_members',
        'service_purchases',
        'product_purchases',
        'services',
        'products',
        'revoked_sessions',
        'user_sessions',
        'rate_limit_windows',
    ):
        op.drop_table(table)
