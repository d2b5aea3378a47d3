"""initial fulfillment + billing schema

Revision ID: 5d1e0c7a2b93
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '5d1e0c7a2b93'
down_revision = None
branch_labels = None
depends_on = None


MONEY = sa.Numeric(12, 2)


def upgrade() -> None:
    # -------------------------------
    # User
    # -------------------------------
    op.create_table(
        'user',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('username', sa.String(80), nullable=False, unique=True),
        sa.Column('email', sa.String(120), nullable=False, unique=True),
        sa.Column('full_name', sa.String(120)),
        sa.Column('phone', sa.String(30)),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(30), nullable=False, server_default='staff'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("role in ('admin','manager','staff','vendor')", name='ck_user_role'),
    )
    op.create_index('ix_user_email', 'user', ['email'])

    # -------------------------------
    # Vendor
    # -------------------------------
    op.create_table(
        'vendor',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('user.id', ondelete='SET NULL'), unique=True),
        sa.Column('name', sa.String(160), nullable=False),
        sa.Column('email', sa.String(120)),
        sa.Column('phone', sa.String(30)),
        sa.Column('address', sa.String(255)),
        sa.Column('contact_person', sa.String(120)),
        sa.Column('payment_terms', sa.String(120)),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # -------------------------------
    # Inventory item
    # -------------------------------
    op.create_table(
        'inventory_item',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(160), nullable=False),
        sa.Column('sku', sa.String(64), unique=True),
        sa.Column('description', sa.Text),
        sa.Column('category', sa.String(80)),
        sa.Column('quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('min_stock_level', sa.Integer, nullable=False, server_default='10'),
        sa.Column('unit_price', MONEY),
        sa.Column('supplier_id', sa.Integer, sa.ForeignKey('vendor.id')),
        sa.Column('location', sa.String(120)),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_item_quantity'),
        sa.CheckConstraint('min_stock_level >= 0', name='ck_inventory_item_min_stock'),
    )

    # -------------------------------
    # Purchase order + items
    # -------------------------------
    op.create_table(
        'purchase_order',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('po_number', sa.String(40), nullable=False, unique=True),
        sa.Column('vendor_id', sa.Integer, sa.ForeignKey('vendor.id'), nullable=False),
        sa.Column('created_by_user_id', sa.Integer, sa.ForeignKey('user.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('total_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('order_date', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('expected_delivery_date', sa.Date),
        sa.Column('notes', sa.Text),
        sa.Column('completed_at', sa.DateTime),
        sa.CheckConstraint("status in ('pending','completed','cancelled')", name='ck_purchase_order_status'),
    )
    op.create_index('ix_purchase_order_vendor_id', 'purchase_order', ['vendor_id'])
    op.create_index('ix_purchase_order_status', 'purchase_order', ['status'])

    op.create_table(
        'purchase_order_item',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('po_id', sa.Integer, sa.ForeignKey('purchase_order.id', ondelete='CASCADE'), nullable=False),
        sa.Column('item_id', sa.Integer, sa.ForeignKey('inventory_item.id'), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('unit_price', MONEY, nullable=False),
        sa.Column('subtotal', MONEY, nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_purchase_order_item_quantity'),
        sa.CheckConstraint('unit_price >= 0', name='ck_purchase_order_item_price'),
    )
    op.create_index('ix_purchase_order_item_po_id', 'purchase_order_item', ['po_id'])

    # -------------------------------
    # Invoice + items + payments
    # -------------------------------
    op.create_table(
        'invoice',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('invoice_number', sa.String(40), nullable=False, unique=True),
        sa.Column('po_id', sa.Integer, sa.ForeignKey('purchase_order.id'), unique=True),
        sa.Column('vendor_id', sa.Integer, sa.ForeignKey('vendor.id'), nullable=False),
        sa.Column('amount_due', MONEY, nullable=False),
        sa.Column('amount_paid', MONEY, nullable=False, server_default='0'),
        sa.Column('status', sa.String(7), nullable=False, server_default='unpaid'),
        sa.Column('issue_date', sa.Date, nullable=False, server_default=sa.func.current_date()),
        sa.Column('due_date', sa.Date),
        sa.Column('billing_address', sa.String(255)),
        sa.Column('terms', sa.String(120)),
        sa.Column('notes', sa.Text),
        sa.Column('created_by_user_id', sa.Integer, sa.ForeignKey('user.id')),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status in ('unpaid','partial','paid')", name='invoice_status'),
        sa.CheckConstraint('amount_due > 0', name='ck_invoice_amount_due'),
        sa.CheckConstraint('amount_paid >= 0', name='ck_invoice_amount_paid'),
        sa.CheckConstraint('amount_paid <= amount_due', name='ck_invoice_not_overpaid'),
    )
    op.create_index('ix_invoice_vendor_id', 'invoice', ['vendor_id'])

    op.create_table(
        'invoice_item',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('invoice_id', sa.Integer, sa.ForeignKey('invoice.id', ondelete='CASCADE'), nullable=False),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=False, server_default='1'),
        sa.Column('unit_price', MONEY, nullable=False, server_default='0'),
        sa.Column('subtotal', MONEY, nullable=False, server_default='0'),
    )
    op.create_index('ix_invoice_item_invoice_id', 'invoice_item', ['invoice_id'])

    op.create_table(
        'payment',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('invoice_id', sa.Integer, sa.ForeignKey('invoice.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('payment_date', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('method', sa.String(30)),
        sa.Column('reference', sa.String(120)),
        sa.Column('notes', sa.Text),
        sa.Column('recorded_by_user_id', sa.Integer, sa.ForeignKey('user.id')),
        sa.CheckConstraint('amount > 0', name='ck_payment_amount'),
    )
    op.create_index('ix_payment_invoice_id', 'payment', ['invoice_id'])

    # -------------------------------
    # Notification
    # -------------------------------
    op.create_table(
        'notification',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('user.id', ondelete='CASCADE')),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_notification_user_id', 'notification', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_notification_user_id', table_name='notification')
    op.drop_table('notification')
    op.drop_index('ix_payment_invoice_id', table_name='payment')
    op.drop_table('payment')
    op.drop_index('ix_invoice_item_invoice_id', table_name='invoice_item')
    op.drop_table('invoice_item')
    op.drop_index('ix_invoice_vendor_id', table_name='invoice')
    op.drop_table('invoice')
    op.drop_index('ix_purchase_order_item_po_id', table_name='purchase_order_item')
    op.drop_table('purchase_order_item')
    op.drop_index('ix_purchase_order_status', table_name='purchase_order')
    op.drop_index('ix_purchase_order_vendor_id', table_name='purchase_order')
    op.drop_table('purchase_order')
    op.drop_table('inventory_item')
    op.drop_table('vendor')
    op.drop_index('ix_user_email', table_name='user')
    op.drop_table('user')
