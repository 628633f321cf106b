"""Warehouses, batches and inventory

MULTI-TENANT:
- Warehouse names are unique per company
- Batch numbers are unique per company
- One inventory row per (product, warehouse, company); quantity >= 0

CONCURRENCY: inventory.version_id backs optimistic locking for stock updates.

Revision ID: tx003_warehouses_inventory
Revises: tx002_catalog
Create Date: 2026-03-04
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'tx003_warehouses_inventory'
down_revision = 'tx002_catalog'
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # STEP 1: warehouses
    # ==========================================================================
    op.create_table('warehouses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('capacity', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('contact_info', sa.JSON(), nullable=True),
        sa.Column('type', sa.Enum('main', 'secondary', 'distribution', 'storage', name='warehouse_type'),
                  nullable=False, server_default='storage'),
        sa.Column('status', sa.Enum('active', 'inactive', 'under_maintenance', name='warehouse_status'),
                  nullable=False, server_default='active'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_warehouses_company_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'name', name='uq_warehouses_company_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('warehouses', schema=None) as batch_op:
        batch_op.create_index('ix_warehouses_company_id', ['company_id'], unique=False)
        batch_op.create_index('ix_warehouses_company_type', ['company_id', 'type'], unique=False)

    # ==========================================================================
    # STEP 2: batches
    # ==========================================================================
    op.create_table('batches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('batch_number', sa.String(length=100), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('unit', sa.String(length=50), nullable=False),
        sa.Column('manufacturing_date', sa.Date(), nullable=True),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('status', sa.Enum('active', 'inactive', 'depleted', 'expired', name='batch_status'),
                  nullable=False, server_default='active'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_batches_product_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], name='fk_batches_warehouse_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_batches_company_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('batch_number', 'company_id', name='uq_batches_number_company'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('batches', schema=None) as batch_op:
        batch_op.create_index('ix_batches_company_id', ['company_id'], unique=False)
        batch_op.create_index('ix_batches_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_batches_warehouse_id', ['warehouse_id'], unique=False)
        batch_op.create_index('ix_batches_expiry_date', ['expiry_date'], unique=False)
        batch_op.create_index('ix_batches_company_expiry', ['company_id', 'expiry_date'], unique=False)

    # ==========================================================================
    # STEP 3: inventory
    # ==========================================================================
    op.create_table('inventory',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('unit', sa.String(length=50), nullable=False),
        sa.Column('min_threshold', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('max_threshold', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('reorder_point', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('reorder_quantity', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('auto_reorder', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_reorder_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.Enum('active', 'inactive', name='inventory_status'),
                  nullable=False, server_default='active'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_inventory_product_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_inventory_company_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], name='fk_inventory_warehouse_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'warehouse_id', 'company_id', name='uq_inventory_product_warehouse_company'),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory', schema=None) as batch_op:
        batch_op.create_index('ix_inventory_company_warehouse', ['company_id', 'warehouse_id'], unique=False)


def downgrade():
    op.drop_table('inventory')
    op.drop_table('batches')
    op.drop_table('warehouses')
