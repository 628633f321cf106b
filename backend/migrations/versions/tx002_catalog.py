"""Product catalog: categories and products

Categories are company-scoped and nest via parent_id (SET NULL on parent
delete). Products belong to a supplier company.

Revision ID: tx002_catalog
Revises: tx001_companies_users
Create Date: 2026-03-02
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'tx002_catalog'
down_revision = 'tx001_companies_users'
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # STEP 1: product_categories
    # ==========================================================================
    op.create_table('product_categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], name='fk_product_categories_company_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_id'], ['product_categories.id'], name='fk_product_categories_parent_id', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'parent_id', 'name', name='uq_product_categories_company_parent_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('product_categories', schema=None) as batch_op:
        batch_op.create_index('ix_product_categories_company_id', ['company_id'], unique=False)
        batch_op.create_index('ix_product_categories_parent_id', ['parent_id'], unique=False)

    # ==========================================================================
    # STEP 2: products
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('unit', sa.String(length=50), nullable=False),
        sa.Column('status', sa.Enum('active', 'inactive', name='product_status'),
                  nullable=False, server_default='active'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['supplier_id'], ['companies.id'], name='fk_products_supplier_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['category_id'], ['product_categories.id'], name='fk_products_category_id', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_supplier_status', ['supplier_id', 'status'], unique=False)
        batch_op.create_index('ix_products_category_id', ['category_id'], unique=False)


def downgrade():
    op.drop_table('products')
    op.drop_table('product_categories')
