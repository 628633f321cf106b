"""Invoices, invoice items and payments

One invoice per order; payments are recorded by the supplier against an
order (and its invoice when one exists). Order payment_status is derived
from completed payments.

Revision ID: tx005_billing
Revises: tx004_orders
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'tx005_billing'
down_revision = 'tx004_orders'
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # STEP 1: invoices
    # ==========================================================================
    op.create_table('invoices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('customer_company_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=32), nullable=False),
        sa.Column('status', sa.Enum('draft', 'sent', 'partially_paid', 'paid', 'overdue', 'void',
                                    name='invoice_status'),
                  nullable=False, server_default='draft'),
        sa.Column('payment_term', sa.Enum('immediate', 'net7', 'net15', 'net30', 'net45', 'net60', 'net90',
                                          name='payment_term'),
                  nullable=False, server_default='net30'),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('paid_amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('billing_address', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_invoices_company_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['customer_company_id'], ['companies.id'], name='fk_invoices_customer_company_id',
                                ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], name='fk_invoices_order_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], name='fk_invoices_created_by_id', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', name='uq_invoices_order_id'),
        sa.UniqueConstraint('company_id', 'invoice_number', name='uq_invoices_company_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoices', schema=None) as batch_op:
        batch_op.create_index('ix_invoices_company_status', ['company_id', 'status'], unique=False)
        batch_op.create_index('ix_invoices_customer_company_id', ['customer_company_id'], unique=False)

    # ==========================================================================
    # STEP 2: invoice_items
    # ==========================================================================
    op.create_table('invoice_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('discount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('line_total', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], name='fk_invoice_items_invoice_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_invoice_items_product_id', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoice_items', schema=None) as batch_op:
        batch_op.create_index('ix_invoice_items_invoice_id', ['invoice_id'], unique=False)

    # ==========================================================================
    # STEP 3: payments
    # ==========================================================================
    op.create_table('payments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('customer_company_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=True),
        sa.Column('transaction_id', sa.String(length=64), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('method', sa.Enum('bank_transfer', 'cash', 'check', 'credit_card', 'e_wallet', 'other',
                                    name='payment_method'),
                  nullable=False, server_default='bank_transfer'),
        sa.Column('payment_type', sa.Enum('payment', 'refund', name='payment_type'),
                  nullable=False, server_default='payment'),
        sa.Column('status', sa.Enum('completed', 'voided', name='payment_record_status'),
                  nullable=False, server_default='completed'),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('external_reference', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('reconciliation_status', sa.Enum('unreconciled', 'reconciled', 'disputed', 'pending_review',
                                                   name='reconciliation_status'),
                  nullable=False, server_default='unreconciled'),
        sa.Column('reconciled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reconciled_by_id', sa.Integer(), nullable=True),
        sa.Column('voided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('void_reason', sa.Text(), nullable=True),
        sa.Column('recorded_by_id', sa.Integer(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_payments_company_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['customer_company_id'], ['companies.id'], name='fk_payments_customer_company_id',
                                ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], name='fk_payments_order_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], name='fk_payments_invoice_id', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reconciled_by_id'], ['users.id'], name='fk_payments_reconciled_by_id',
                                ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['recorded_by_id'], ['users.id'], name='fk_payments_recorded_by_id', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'transaction_id', name='uq_payments_company_transaction'),
        sa.CheckConstraint('amount > 0', name='ck_payments_amount_positive'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('payments', schema=None) as batch_op:
        batch_op.create_index('ix_payments_company_id', ['company_id'], unique=False)
        batch_op.create_index('ix_payments_customer_company_id', ['customer_company_id'], unique=False)
        batch_op.create_index('ix_payments_order_id', ['order_id'], unique=False)


def downgrade():
    op.drop_table('payments')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
