"""Add one-invoice-per-lease-per-month uniqueness

Revision ID: 20260301_000002
Revises: 20260301_000001
Create Date: 2026-03-01

Recurring generation stamps billing_period with the month it billed. A
unique index on (lease_id, billing_period) stops a second run from billing
the same lease twice for that month. Manual invoices leave billing_period
NULL; SQL Server treats NULLs as equal in unique indexes, so there the
index is filtered to rows that have both values.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '20260301_000002'
down_revision: Union[str, None] = '20260301_000001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INDEX_NAME = 'uq_invoices_lease_billing_period'


def upgrade() -> None:
    if op.get_bind().dialect.name == 'mssql':
        op.execute(
            f"CREATE UNIQUE INDEX {INDEX_NAME} ON invoices (lease_id, billing_period) "
            "WHERE lease_id IS NOT NULL AND billing_period IS NOT NULL"
        )
    else:
        op.create_index(INDEX_NAME, 'invoices', ['lease_id', 'billing_period'], unique=True)
    op.create_index('ix_invoices_org_billing_period', 'invoices', ['organization_id', 'billing_period'])


def downgrade() -> None:
    op.drop_index('ix_invoices_org_billing_period', table_name='invoices')
    op.drop_index(INDEX_NAME, table_name='invoices')
