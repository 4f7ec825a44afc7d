"""Create invoice tables

Revision ID: 20260301_000001
Revises: None
Create Date: 2026-03-01

Creates invoices, invoice_line_items and invoice_attachments. The
organizations, users, properties, tenants and leases tables are owned by
the property-management core and must already exist.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260301_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name, *values):
    return sa.Enum(*values, name=name, create_constraint=True, length=32)


def upgrade() -> None:
    """Create the invoice tables."""
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=50), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('lease_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=True),
        sa.Column(
            'category',
            _enum('invoice_category', 'Rent', 'Utilities', 'Maintenance', 'Late Fee', 'Security Deposit', 'Other'),
            nullable=False,
        ),
        sa.Column(
            'priority',
            _enum('invoice_priority', 'Low', 'Medium', 'High', 'Urgent'),
            nullable=False,
            server_default='Medium',
        ),
        sa.Column(
            'status',
            _enum('invoice_status', 'Draft', 'Pending', 'Sent', 'Viewed', 'Paid', 'Overdue', 'Cancelled', 'Refunded'),
            nullable=False,
            server_default='Draft',
        ),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('viewed_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('payment_terms', sa.String(length=500), nullable=True),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('frequency', _enum('recurrence_frequency', 'Monthly', 'Quarterly', 'Yearly'), nullable=True),
        sa.Column('next_invoice_date', sa.Date(), nullable=True),
        sa.Column('recurrence_end_date', sa.Date(), nullable=True),
        sa.Column('billing_period', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_invoices'),
        sa.UniqueConstraint('organization_id', 'invoice_number', name='uq_invoices_organization_invoice_number'),
        sa.CheckConstraint('subtotal >= 0', name='ck_invoices_non_negative_subtotal'),
        sa.CheckConstraint('tax_amount >= 0', name='ck_invoices_non_negative_tax'),
        sa.CheckConstraint('discount_amount >= 0', name='ck_invoices_non_negative_discount'),
        sa.CheckConstraint('total_amount >= 0', name='ck_invoices_non_negative_total'),
        sa.CheckConstraint('due_date >= issue_date', name='ck_invoices_due_after_issue'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_invoices_organization_id'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.tenant_id'], name='fk_invoices_tenant_id'),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], name='fk_invoices_property_id'),
        sa.ForeignKeyConstraint(['lease_id'], ['leases.id'], name='fk_invoices_lease_id', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], name='fk_invoices_created_by'),
    )

    # Indexes for common queries
    op.create_index('ix_invoices_organization_id', 'invoices', ['organization_id'])
    op.create_index('ix_invoices_tenant_id', 'invoices', ['tenant_id'])
    op.create_index('ix_invoices_property_id', 'invoices', ['property_id'])
    op.create_index('ix_invoices_lease_id', 'invoices', ['lease_id'])
    op.create_index('ix_invoices_created_by', 'invoices', ['created_by'])
    op.create_index('ix_invoices_category', 'invoices', ['category'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    op.create_index('ix_invoices_issue_date', 'invoices', ['issue_date'])
    op.create_index('ix_invoices_due_date', 'invoices', ['due_date'])
    op.create_index('ix_invoices_org_status_due', 'invoices', ['organization_id', 'status', 'due_date'])
    op.create_index('ix_invoices_org_category', 'invoices', ['organization_id', 'category'])

    op.create_table(
        'invoice_line_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=10, scale=2), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id', name='pk_invoice_line_items'),
        sa.CheckConstraint('quantity >= 0', name='ck_invoice_line_items_non_negative_quantity'),
        sa.CheckConstraint('unit_price >= 0', name='ck_invoice_line_items_non_negative_unit_price'),
        sa.CheckConstraint('tax_rate >= 0 AND tax_rate <= 100', name='ck_invoice_line_items_tax_rate_range'),
        sa.ForeignKeyConstraint(
            ['invoice_id'],
            ['invoices.id'],
            name='fk_invoice_line_items_invoice_id',
            ondelete='CASCADE',
        ),
    )
    op.create_index('ix_invoice_line_items_invoice_id', 'invoice_line_items', ['invoice_id'])

    op.create_table(
        'invoice_attachments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(length=1000), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_invoice_attachments'),
        sa.ForeignKeyConstraint(
            ['invoice_id'],
            ['invoices.id'],
            name='fk_invoice_attachments_invoice_id',
            ondelete='CASCADE',
        ),
    )
    op.create_index('ix_invoice_attachments_invoice_id', 'invoice_attachments', ['invoice_id'])


def downgrade() -> None:
    """Drop the invoice tables."""
    op.drop_index('ix_invoice_attachments_invoice_id', table_name='invoice_attachments')
    op.drop_table('invoice_attachments')
    op.drop_index('ix_invoice_line_items_invoice_id', table_name='invoice_line_items')
    op.drop_table('invoice_line_items')
    for name in (
        'ix_invoices_org_category',
        'ix_invoices_org_status_due',
        'ix_invoices_due_date',
        'ix_invoices_issue_date',
        'ix_invoices_status',
        'ix_invoices_category',
        'ix_invoices_created_by',
        'ix_invoices_lease_id',
        'ix_invoices_property_id',
        'ix_invoices_tenant_id',
        'ix_invoices_organization_id',
    ):
        op.drop_index(name, table_name='invoices')
    op.drop_table('invoices')
