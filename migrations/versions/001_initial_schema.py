"""Initial schema: inventory_stocks, inventory_transactions

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 09:30:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create inventory_stocks table
    op.create_table(
        'inventory_stocks',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('warehouse_id', sa.String(length=64), nullable=False),
        sa.Column('current_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reserved_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_cost', sa.Numeric(precision=18, scale=6), nullable=False, server_default='0'),
        sa.Column('last_in_date', sa.DateTime(), nullable=True),
        sa.Column('last_out_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'warehouse_id', name='uq_inventory_stocks_product_warehouse')
    )

    # Create indexes for inventory_stocks
    op.create_index('ix_inventory_stocks_product_id', 'inventory_stocks', ['product_id'])
    op.create_index('ix_inventory_stocks_warehouse_id', 'inventory_stocks', ['warehouse_id'])

    # Create inventory_transactions table
    op.create_table(
        'inventory_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_no', sa.String(length=64), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('warehouse_id', sa.String(length=64), nullable=False),
        sa.Column('transaction_type', sa.Enum('IN', 'OUT', 'ADJUST', name='transactiontype'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=20, scale=6), nullable=False),
        sa.Column('reference_type', sa.String(length=50), nullable=True),
        sa.Column('reference_id', sa.String(length=100), nullable=True),
        sa.Column('operator', sa.String(length=100), nullable=False),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create indexes for inventory_transactions
    op.create_index('ix_inventory_transactions_transaction_no', 'inventory_transactions',
                    ['transaction_no'], unique=True)
    op.create_index('ix_inventory_transactions_product_id', 'inventory_transactions', ['product_id'])
    op.create_index('ix_inventory_transactions_warehouse_id', 'inventory_transactions', ['warehouse_id'])
    op.create_index('ix_inventory_transactions_transaction_type', 'inventory_transactions',
                    ['transaction_type'])
    op.create_index('ix_inventory_transactions_reference_id', 'inventory_transactions', ['reference_id'])
    op.create_index('ix_inventory_transactions_created_at', 'inventory_transactions', ['created_at'])


def downgrade():
    op.drop_index('ix_inventory_transactions_created_at', table_name='inventory_transactions')
    op.drop_index('ix_inventory_transactions_reference_id', table_name='inventory_transactions')
    op.drop_index('ix_inventory_transactions_transaction_type', table_name='inventory_transactions')
    op.drop_index('ix_inventory_transactions_warehouse_id', table_name='inventory_transactions')
    op.drop_index('ix_inventory_transactions_product_id', table_name='inventory_transactions')
    op.drop_index('ix_inventory_transactions_transaction_no', table_name='inventory_transactions')
    op.drop_table('inventory_transactions')

    op.drop_index('ix_inventory_stocks_warehouse_id', table_name='inventory_stocks')
    op.drop_index('ix_inventory_stocks_product_id', table_name='inventory_stocks')
    op.drop_table('inventory_stocks')

    sa.Enum(name='transactiontype').drop(op.get_bind(), checkfirst=True)
