"""initial back office schema

Revision ID: 1f3c9a7b2d10
Revises:
Create Date: 2026-10-19 10:12:44.318520

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '1f3c9a7b2d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns(soft_delete: bool = True):
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
    ]
    if soft_delete:
        columns += [
            sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('deleted_by', sa.String(), nullable=True),
        ]
    return columns


def _payment_totals_columns():
    return [
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('paid_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('due_amount', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('payment_status', sa.String(32), nullable=False),
    ]


def _tenant_index(table: str):
    op.create_index(op.f(f'ix_{table}_id'), table, ['id'])
    op.create_index(op.f(f'ix_{table}_tenant_id'), table, ['tenant_id'])
    op.create_index(op.f(f'ix_{table}_shop_id'), table, ['shop_id'])


def upgrade() -> None:
    """Create parties, reference documents, payments and their supporting tables."""
    for table, extra in (
        ('customers', [
            sa.Column('address', sa.Text(), nullable=True),
        ]),
        ('suppliers', [
            sa.Column('contact_name', sa.String(), nullable=True),
            sa.Column('gst_number', sa.String(), nullable=True),
        ]),
    ):
        op.create_table(
            table,
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('tenant_id', sa.String(), nullable=True),
            sa.Column('shop_id', sa.String(), nullable=True),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('phone', sa.String(), nullable=True),
            sa.Column('email', sa.String(), nullable=True),
            *extra,
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('balance', sa.Numeric(12, 2), server_default='0', nullable=False),
            *_audit_columns(soft_delete=False),
        )
        _tenant_index(table)

    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.Column('shop_id', sa.String(), nullable=True),
        sa.Column('sale_number', sa.String(32), nullable=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('sale_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_payment_totals_columns(),
        *_audit_columns(),
        sa.UniqueConstraint('tenant_id', 'shop_id', 'sale_number', name='_tenant_shop_sale_number_uc'),
    )
    _tenant_index('sales')
    op.create_index(op.f('ix_sales_sale_number'), 'sales', ['sale_number'])

    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.Column('shop_id', sa.String(), nullable=True),
        sa.Column('purchase_number', sa.String(32), nullable=True),
        sa.Column('bill_no', sa.String(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_payment_totals_columns(),
        *_audit_columns(),
        sa.UniqueConstraint('tenant_id', 'shop_id', 'purchase_number', name='_tenant_shop_purchase_number_uc'),
    )
    _tenant_index('purchases')
    op.create_index(op.f('ix_purchases_purchase_number'), 'purchases', ['purchase_number'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.Column('shop_id', sa.String(), nullable=True),
        sa.Column('order_number', sa.String(32), nullable=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('order_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('expected_delivery_date', sa.Date(), nullable=True),
        sa.Column('actual_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('actual_completion_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_payment_totals_columns(),
        *_audit_columns(),
        sa.UniqueConstraint('tenant_id', 'shop_id', 'order_number', name='_tenant_shop_order_number_uc'),
    )
    _tenant_index('orders')
    op.create_index(op.f('ix_orders_order_number'), 'orders', ['order_number'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('shop_id', sa.String(), nullable=False),
        sa.Column('payment_number', sa.String(32), nullable=False),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('transaction_type', sa.String(32), nullable=False),
        sa.Column('payment_mode', sa.String(32), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', sa.String(32), nullable=False),
        sa.Column('transaction_id', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('party_type', sa.String(32), nullable=False),
        sa.Column('party_id', sa.Integer(), nullable=True),
        sa.Column('party_name', sa.String(), nullable=False),
        sa.Column('reference_type', sa.String(32), nullable=False),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('reference_number', sa.String(), nullable=True),
        sa.Column('payment_details', sa.JSON(), nullable=True),
        sa.Column('cheque_number', sa.String(), nullable=True),
        sa.Column('cheque_date', sa.Date(), nullable=True),
        sa.Column('cheque_bank_name', sa.String(), nullable=True),
        sa.Column('cheque_status', sa.String(32), nullable=True),
        sa.Column('clearance_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('bounce_reason', sa.Text(), nullable=True),
        sa.Column('is_reconciled', sa.Boolean(), nullable=False),
        sa.Column('reconciled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reconciled_by', sa.String(), nullable=True),
        sa.Column('reconciled_with', sa.String(), nullable=True),
        sa.Column('discrepancy', sa.Numeric(12, 2), nullable=False),
        sa.Column('reconciliation_notes', sa.Text(), nullable=True),
        sa.Column('requires_approval', sa.Boolean(), nullable=False),
        sa.Column('approval_status', sa.String(32), nullable=False),
        sa.Column('approved_by', sa.String(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('is_refund', sa.Boolean(), nullable=False),
        sa.Column('original_payment_id', sa.Integer(), sa.ForeignKey('payments.id'), nullable=True),
        sa.Column('refund_reason', sa.Text(), nullable=True),
        sa.Column('refunded_by', sa.String(), nullable=True),
        sa.Column('reference_applied', sa.Boolean(), nullable=False),
        sa.Column('balance_applied', sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.UniqueConstraint('tenant_id', 'shop_id', 'payment_number', name='_tenant_shop_payment_number_uc'),
    )
    _tenant_index('payments')
    op.create_index(op.f('ix_payments_payment_number'), 'payments', ['payment_number'])
    op.create_index('ix_payments_shop_status', 'payments', ['shop_id', 'status'])
    op.create_index('ix_payments_party', 'payments', ['party_type', 'party_id'])
    op.create_index('ix_payments_reference', 'payments', ['reference_type', 'reference_id'])

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.String(), nullable=False),
        sa.Column('shop_id', sa.String(), nullable=False),
        sa.Column('prefix', sa.String(16), nullable=False),
        sa.Column('last_value', sa.Integer(), nullable=False),
        *_audit_columns(soft_delete=False),
        sa.UniqueConstraint('tenant_id', 'shop_id', 'prefix', name='_tenant_shop_prefix_uc'),
    )
    _tenant_index('document_sequences')

    op.create_table(
        'shop_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('value', sa.String(255), nullable=False),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.Column('shop_id', sa.String(), nullable=True),
        *_audit_columns(soft_delete=False),
        sa.UniqueConstraint('name', 'tenant_id', 'shop_id', name='_shop_setting_name_uc'),
    )
    _tenant_index('shop_settings')
    op.create_index(op.f('ix_shop_settings_name'), 'shop_settings', ['name'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor', sa.String(), nullable=False),
        sa.Column('tenant_id', sa.String(), nullable=True),
        sa.Column('shop_id', sa.String(), nullable=True),
        sa.Column('module', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('severity', sa.String(32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
    )
    _tenant_index('audit_log')


def downgrade() -> None:
    """Drop every back office table, dependents first."""
    for table in (
        'audit_log',
        'shop_settings',
        'document_sequences',
        'payments',
        'orders',
        'purchases',
        'sales',
        'suppliers',
        'customers',
    ):
        op.drop_table(table)
