"""initial pharmacy schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the pharmacy POS schema:
- products: bilingual product master with sale price and reorder level
- inventory_batches: expiry-dated lots with cost basis and quantity on hand
- sales / sale_items / payments: checkout records (one sale_items row per batch drawn)
- expenses: till expenses for the daily ledger
- invoice_sequences: monotonic invoice counters
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # products: Product master
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name_mm', sa.String(length=255), nullable=False),
        sa.Column('name_en', sa.String(length=255), nullable=True),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('sale_price', sa.Integer(), nullable=False),
        sa.Column('reorder_level', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('sale_price >= 0', name='ck_products_sale_price_nonneg'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_barcode', 'products', ['barcode'], unique=False)

    # ============================================================================
    # inventory_batches: Expiry-dated stock lots
    # ============================================================================
    op.create_table(
        'inventory_batches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('batch_no', sa.String(length=64), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=False),
        sa.Column('cost_price', sa.Integer(), nullable=False),
        sa.Column('received_qty', sa.Integer(), nullable=False),
        sa.Column('qty_on_hand', sa.Integer(), nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('qty_on_hand >= 0', name='ck_batches_qty_nonneg'),
        sa.CheckConstraint('received_qty > 0', name='ck_batches_received_pos'),
        sa.CheckConstraint('cost_price >= 0', name='ck_batches_cost_nonneg'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_inventory_batches_product_id_products'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_batches_product_id', 'inventory_batches', ['product_id'], unique=False)
    op.create_index('ix_batches_product_expiry', 'inventory_batches', ['product_id', 'expiry_date'], unique=False)

    # ============================================================================
    # sales: Sale headers
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_no', sa.String(length=64), nullable=False),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('subtotal', sa.Integer(), nullable=False),
        sa.Column('discount', sa.Integer(), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_no', name='uq_sales_invoice_no'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_sold_at', 'sales', ['sold_at'], unique=False)

    # ============================================================================
    # sale_items: One row per (cart line, batch) allocation
    # ============================================================================
    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.Column('line_total', sa.Integer(), nullable=False),
        sa.Column('cost_at_sale', sa.Integer(), nullable=False),
        sa.CheckConstraint('qty > 0', name='ck_sale_items_qty_pos'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], name='fk_sale_items_sale_id_sales'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_sale_items_product_id_products'),
        sa.ForeignKeyConstraint(['batch_id'], ['inventory_batches.id'], name='fk_sale_items_batch_id_inventory_batches'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'], unique=False)
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'], unique=False)
    op.create_index('ix_sale_items_batch_id', 'sale_items', ['batch_id'], unique=False)

    # ============================================================================
    # payments: One payment per sale
    # ============================================================================
    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('tendered', sa.Integer(), nullable=False),
        sa.Column('change_due', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint("method IN ('CASH', 'KPAY', 'WAVE')", name='ck_payments_method'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], name='fk_payments_sale_id_sales'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', name='uq_payments_sale'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # expenses: Till expenses
    # ============================================================================
    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('spent_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('particulars', sa.String(length=255), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_expenses_amount_pos'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_spent_at', 'expenses', ['spent_at'], unique=False)

    # ============================================================================
    # invoice_sequences: Monotonic invoice counters
    # ============================================================================
    op.create_table(
        'invoice_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('prefix', sa.String(length=16), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('prefix', name='uq_invoice_sequences_prefix'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('invoice_sequences')
    op.drop_index('ix_expenses_spent_at', table_name='expenses')
    op.drop_table('expenses')
    op.drop_table('payments')
    op.drop_index('ix_sale_items_batch_id', table_name='sale_items')
    op.drop_index('ix_sale_items_product_id', table_name='sale_items')
    op.drop_index('ix_sale_items_sale_id', table_name='sale_items')
    op.drop_table('sale_items')
    op.drop_index('ix_sales_sold_at', table_name='sales')
    op.drop_table('sales')
    op.drop_index('ix_batches_product_expiry', table_name='inventory_batches')
    op.drop_index('ix_inventory_batches_product_id', table_name='inventory_batches')
    op.drop_table('inventory_batches')
    op.drop_index('ix_products_barcode', table_name='products')
    op.drop_table('products')
