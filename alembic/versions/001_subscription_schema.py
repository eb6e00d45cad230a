"""Subscription schema: tenants, plans, payment records

Revision ID: 001_subscription_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


revision: str = '001_subscription_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


tenant_status = sa.Enum('ACTIVE', 'INACTIVE', 'TRIAL', name='tenantstatus')
renewal_type = sa.Enum('MONTHLY', 'SEMIANNUAL', 'ANNUAL', 'SERVICE_COUNT', name='renewaltype')
payment_status = sa.Enum('PAID', 'PENDING', 'OVERDUE', name='paymentstatus')
billing_type = sa.Enum('MONTHLY', 'SEMIANNUAL', name='billingtype')
plan_type = sa.Enum('MONTHLY', 'SERVICE', name='plantype')


def upgrade() -> None:
    # Tenants table
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('status', tenant_status, nullable=False, server_default='TRIAL'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('plan_id', sa.String(64), nullable=True),
        sa.Column('renewal_type', renewal_type, nullable=False, server_default='MONTHLY'),
        sa.Column('payment_status', payment_status, nullable=False, server_default='PENDING'),
        sa.Column('subscription_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('subscription_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('billing_cycle_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('trial_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('auto_renewal', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('gateway_subscription_id', sa.String(128), nullable=True),
        sa.Column('pending_plan_id', sa.String(64), nullable=True),
        sa.Column('pending_billing_type', billing_type, nullable=True),
        sa.Column('renewal_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('inactive_reason', sa.String(255), nullable=True),
        sa.Column('inactive_since', sa.DateTime(timezone=True), nullable=True),
        sa.Column('services_used_this_month', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_services_contracted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('services_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('services_remaining', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('service_subscription_expiry', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active_user_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_tenant_status', 'tenants', ['status'])
    op.create_index('ix_tenants_gateway_subscription_id', 'tenants', ['gateway_subscription_id'])

    # Plan catalog
    op.create_table(
        'plans',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.String(1000), nullable=False, server_default=''),
        sa.Column('plan_type', plan_type, nullable=False, server_default='MONTHLY'),
        sa.Column('price_monthly', sa.Float(), nullable=False, server_default='0'),
        sa.Column('price_semiannual', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max_users', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('max_monthly_services', sa.Integer(), nullable=True),
        sa.Column('service_price', sa.Float(), nullable=True),
        sa.Column('total_services', sa.Integer(), nullable=True),
        sa.Column('validity_months', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('publish_on_homepage', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recommended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # Payment records (append-only)
    op.create_table(
        'payment_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('method', sa.String(50), nullable=False),
        sa.Column('reference', sa.String(128), nullable=False),
        sa.Column('plan_id', sa.String(64), nullable=True),
        sa.Column('billing_type', sa.String(20), nullable=True),
        sa.UniqueConstraint('reference', name='uq_payment_records_reference'),
    )
    op.create_index('ix_payment_records_tenant_id', 'payment_records', ['tenant_id'])
    op.create_index('ix_payment_tenant_paid_at', 'payment_records', ['tenant_id', 'paid_at'])


def downgrade() -> None:
    op.drop_table('payment_records')
    op.drop_table('plans')
    op.drop_table('tenants')

    bind = op.get_bind()
    for enum in (plan_type, billing_type, payment_status, renewal_type, tenant_status):
        enum.drop(bind, checkfirst=True)
