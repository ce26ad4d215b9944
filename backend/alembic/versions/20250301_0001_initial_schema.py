"""initial schema

Revision ID: 20250301_0001
Revises:
Create Date: 2025-03-01 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20250301_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Files created by the application itself already have these tables;
    # run_migrations.py stamps them at this revision instead.
    op.create_table('app_settings',
                    sa.Column('key', sa.String(length=64), primary_key=True),
                    sa.Column('value', sa.JSON(), nullable=False),
                    sa.Column('updated_at', sa.DateTime(), nullable=False),
                    )

    op.create_table('clients',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('contact_person', sa.Text()),
                    sa.Column('email', sa.Text()),
                    sa.Column('phone', sa.Text()),
                    sa.Column('address', sa.Text()),
                    )

    op.create_table('invoices',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('invoice_number', sa.Text()),
                    sa.Column('client_id', sa.Integer()),
                    sa.Column('project', sa.Text()),
                    sa.Column('status', sa.String(length=20)),
                    sa.Column('invoice_date', sa.Date()),
                    sa.Column('subtotal', sa.Float()),
                    sa.Column('notes', sa.Text()),
                    sa.Column('created_at', sa.DateTime()),
                    sa.Column('paid_at', sa.DateTime()),
                    sa.Column('advance_paid_at', sa.DateTime()),
                    )
    op.create_index('ix_invoices_invoice_number', 'invoices', ['invoice_number'])
    op.create_index('ix_invoices_client_id', 'invoices', ['client_id'])
    op.create_index('ix_invoices_invoice_date', 'invoices', ['invoice_date'])
    op.create_index('idx_invoice_date_status', 'invoices', ['invoice_date', 'status'])

    op.create_table('invoice_items',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('invoice_id', sa.Integer(), nullable=False),
                    sa.Column('title', sa.Text()),
                    sa.Column('description', sa.Text()),
                    sa.Column('quantity', sa.Integer(), nullable=False),
                    sa.Column('unit_price', sa.Float(), nullable=False),
                    sa.Column('total', sa.Float(), nullable=False),
                    sa.CheckConstraint('quantity > 0', name='check_item_quantity_positive'),
                    sa.CheckConstraint('unit_price >= 0', name='check_item_unit_price_non_negative'),
                    )
    op.create_index('ix_invoice_items_invoice_id', 'invoice_items', ['invoice_id'])


def downgrade() -> None:
    op.drop_index('ix_invoice_items_invoice_id', table_name='invoice_items')
    op.drop_table('invoice_items')
    op.drop_index('idx_invoice_date_status', table_name='invoices')
    op.drop_index('ix_invoices_invoice_date', table_name='invoices')
    op.drop_index('ix_invoices_client_id', table_name='invoices')
    op.drop_index('ix_invoices_invoice_number', table_name='invoices')
    op.drop_table('invoices')
    op.drop_table('clients')
    op.drop_table('app_settings')
