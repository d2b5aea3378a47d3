# chainsense/models.py
from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from flask_login import UserMixin
from sqlalchemy import Enum as SAEnum

from .extensions import db


# Naive UTC everywhere: columns are "timestamp without time zone".
def utcnow_naive() -> datetime:
    return datetime.utcnow()


def _money(v) -> float | None:
    if v is None:
        return None
    return float(v)


def _iso(v) -> str | None:
    if v is None:
        return None
    return v.isoformat()


MONEY = db.Numeric(12, 2)
ZERO = Decimal("0.00")


# =========================================================
# User model (Authentication + Roles)
# =========================================================
ROLES = ("admin", "manager", "staff", "vendor")


class User(UserMixin, db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(80), nullable=False, unique=True)
    email = db.Column(db.String(120), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(30), nullable=True)

    password_hash = db.Column(db.String(255), nullable=False)

    # admin / manager / staff / vendor
    role = db.Column(db.String(30), nullable=False, default="staff")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    __table_args__ = (
        db.CheckConstraint(
            "role in ('admin','manager','staff','vendor')",
            name="ck_user_role",
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
        }

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"


# =========================================================
# Vendor (+ explicit login link)
# =========================================================
class Vendor(db.Model):
    __tablename__ = "vendor"

    id = db.Column(db.Integer, primary_key=True)

    # One login account per vendor; replaces matching on email.
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="SET NULL"), unique=True, nullable=True)
    user = db.relationship("User", foreign_keys=[user_id], lazy="joined")

    name = db.Column(db.String(160), nullable=False)
    email = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(30), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    contact_person = db.Column(db.String(120), nullable=True)

    # Free text, e.g. "Net 45"
    payment_terms = db.Column(db.String(120), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="active")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    def __repr__(self) -> str:
        return f"<Vendor {self.id} {self.name}>"


# =========================================================
# InventoryItem
# =========================================================
class InventoryItem(db.Model):
    __tablename__ = "inventory_item"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    sku = db.Column(db.String(64), unique=True, nullable=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(80), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)
    unit_price = db.Column(MONEY, nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("vendor.id"), nullable=True)
    supplier = db.relationship("Vendor", foreign_keys=[supplier_id], lazy="select")

    location = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_item_quantity"),
        db.CheckConstraint("min_stock_level >= 0", name="ck_inventory_item_min_stock"),
    )

    @property
    def is_low_stock(self) -> bool:
        return (self.quantity or 0) <= (self.min_stock_level or 0)

    def __repr__(self) -> str:
        return f"<InventoryItem {self.id} {self.name} qty={self.quantity}>"


# =========================================================
# PurchaseOrder + items
# =========================================================
PO_STATUSES = ("pending", "completed", "cancelled")


class PurchaseOrder(db.Model):
    __tablename__ = "purchase_order"

    id = db.Column(db.Integer, primary_key=True)
    po_number = db.Column(db.String(40), unique=True, nullable=False)

    vendor_id = db.Column(db.Integer, db.ForeignKey("vendor.id"), nullable=False, index=True)
    vendor = db.relationship("Vendor", foreign_keys=[vendor_id], lazy="joined")

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    created_by = db.relationship("User", foreign_keys=[created_by_user_id], lazy="select")

    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    total_amount = db.Column(MONEY, nullable=False, default=ZERO)

    order_date = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    expected_delivery_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Set exactly once, by the request that wins the first transition into "completed".
    completed_at = db.Column(db.DateTime, nullable=True)

    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
        lazy="select",
    )

    __table_args__ = (
        db.CheckConstraint(
            "status in ('pending','completed','cancelled')",
            name="ck_purchase_order_status",
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "po_number": self.po_number,
            "vendor_id": self.vendor_id,
            "status": self.status,
            "total_amount": _money(self.total_amount),
            "order_date": _iso(self.order_date),
            "expected_delivery_date": _iso(self.expected_delivery_date),
            "completed_at": _iso(self.completed_at),
        }

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.id} {self.po_number} {self.status}>"


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_item"

    id = db.Column(db.Integer, primary_key=True)
    po_id = db.Column(db.Integer, db.ForeignKey("purchase_order.id", ondelete="CASCADE"), nullable=False, index=True)
    order = db.relationship("PurchaseOrder", back_populates="items")

    item_id = db.Column(db.Integer, db.ForeignKey("inventory_item.id"), nullable=False)
    item = db.relationship("InventoryItem", foreign_keys=[item_id], lazy="joined")

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(MONEY, nullable=False)
    subtotal = db.Column(MONEY, nullable=False)

    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_order_item_quantity"),
        db.CheckConstraint("unit_price >= 0", name="ck_purchase_order_item_price"),
    )


# =========================================================
# Invoice Status (Enum)
# =========================================================
class InvoiceStatus(enum.Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


def derive_invoice_status(amount_due, amount_paid) -> InvoiceStatus:
    due = Decimal(amount_due or 0)
    paid = Decimal(amount_paid or 0)
    if paid >= due:
        return InvoiceStatus.PAID
    if paid > 0:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.UNPAID


# =========================================================
# Invoice
# =========================================================
class Invoice(db.Model):
    __tablename__ = "invoice"

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(40), unique=True, nullable=False)

    # UNIQUE: at most one invoice per purchase order, enforced by the database.
    po_id = db.Column(db.Integer, db.ForeignKey("purchase_order.id"), unique=True, nullable=True)
    purchase_order = db.relationship("PurchaseOrder", foreign_keys=[po_id], lazy="select")

    vendor_id = db.Column(db.Integer, db.ForeignKey("vendor.id"), nullable=False, index=True)
    vendor = db.relationship("Vendor", foreign_keys=[vendor_id], lazy="joined")

    amount_due = db.Column(MONEY, nullable=False)
    amount_paid = db.Column(MONEY, nullable=False, default=ZERO)

    status = db.Column(
        SAEnum(
            InvoiceStatus,
            name="invoice_status",
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
            create_constraint=True,
        ),
        nullable=False,
        default=InvoiceStatus.UNPAID,
    )

    issue_date = db.Column(db.Date, nullable=False, default=date.today)
    due_date = db.Column(db.Date, nullable=True)

    billing_address = db.Column(db.String(255), nullable=True)
    terms = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_by = db.relationship("User", foreign_keys=[created_by_user_id], lazy="select")

    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
        lazy="select",
    )
    payments = db.relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="select",
    )

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    __table_args__ = (
        db.CheckConstraint("amount_due > 0", name="ck_invoice_amount_due"),
        db.CheckConstraint("amount_paid >= 0", name="ck_invoice_amount_paid"),
        db.CheckConstraint("amount_paid <= amount_due", name="ck_invoice_not_overpaid"),
    )

    @property
    def amount_remaining(self) -> Decimal:
        remaining = Decimal(self.amount_due or 0) - Decimal(self.amount_paid or 0)
        return max(remaining, ZERO)

    @property
    def is_overdue(self) -> bool:
        if not self.due_date or self.status == InvoiceStatus.PAID:
            return False
        return self.due_date < date.today()

    def refresh_status(self) -> InvoiceStatus:
        self.status = derive_invoice_status(self.amount_due, self.amount_paid)
        return self.status

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "po_id": self.po_id,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "amount_due": _money(self.amount_due),
            "amount_paid": _money(self.amount_paid),
            "amount_remaining": _money(self.amount_remaining),
            "status": self.status.value if self.status else None,
            "is_overdue": self.is_overdue,
            "issue_date": _iso(self.issue_date),
            "due_date": _iso(self.due_date),
            "billing_address": self.billing_address,
            "terms": self.terms,
            "notes": self.notes,
            "created_by": self.created_by_user_id,
        }

    def __repr__(self) -> str:
        return f"<Invoice {self.id} {self.invoice_number} {self.status}>"


# =========================================================
# InvoiceItem
# =========================================================
class InvoiceItem(db.Model):
    __tablename__ = "invoice_item"

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoice.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice = db.relationship("Invoice", back_populates="items")

    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=1)
    unit_price = db.Column(MONEY, nullable=False, default=ZERO)
    subtotal = db.Column(MONEY, nullable=False, default=ZERO)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "quantity": float(self.quantity),
            "unit_price": _money(self.unit_price),
            "subtotal": _money(self.subtotal),
        }


# =========================================================
# Payment (append-only)
# =========================================================
class Payment(db.Model):
    __tablename__ = "payment"

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoice.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice = db.relationship("Invoice", back_populates="payments")

    amount = db.Column(MONEY, nullable=False)
    payment_date = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    method = db.Column(db.String(30), nullable=True)  # cash/bank/upi/card
    reference = db.Column(db.String(120), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    recorded_by = db.relationship("User", foreign_keys=[recorded_by_user_id], lazy="joined")

    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_payment_amount"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "amount": _money(self.amount),
            "payment_date": _iso(self.payment_date),
            "method": self.method,
            "reference": self.reference,
            "notes": self.notes,
            "recorded_by": self.recorded_by_user_id,
            "recorded_by_name": self.recorded_by.username if self.recorded_by else None,
        }


# =========================================================
# Notification (write-once; only is_read flips)
# =========================================================
class Notification(db.Model):
    __tablename__ = "notification"

    id = db.Column(db.Integer, primary_key=True)

    # NULL = broadcast
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=True, index=True)

    type = db.Column(db.String(20), nullable=False)  # info / alert / success / warning
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column("read", db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, server_default=sa.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "read": bool(self.is_read),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Notification {self.id} {self.type} {self.title!r}>"
