# chainsense/services/invoices.py
from __future__ import annotations

import re
import secrets
import time
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from chainsense.errors import NotFoundError, ServiceError, ValidationError
from chainsense.extensions import db
from chainsense.models import (
    ZERO,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    PurchaseOrder,
)
from chainsense.services.invoice_files import ensure_invoice_pdf
from chainsense.services.notifications import notify_best_effort, send_invoice_pending_email
from chainsense.utils.db import commit_or_rollback

CENT = Decimal("0.01")


@dataclass
class InvoiceGenerationResult:
    created: bool
    already_existed: bool
    invoice: Invoice | None
    pdf_path: str | None = None
    error: str | None = None
    email: dict | None = None


# =========================================================
# Helpers
# =========================================================
def generate_invoice_number() -> str:
    """Time + random; uniqueness is still enforced by the column."""
    return f"INV-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


_FIRST_INT = re.compile(r"\d+")


def parse_terms_days(terms: str | None, default: int = 30) -> int:
    """First integer in a free-text terms string ("Net 45" -> 45), else default."""
    if not terms:
        return default
    m = _FIRST_INT.search(str(terms))
    if not m:
        return default
    return int(m.group(0))


def _line_description(line) -> str:
    item = line.item
    if item is None:
        return f"Item {line.item_id}"
    if item.sku:
        return f"{item.name} ({item.sku})"
    return item.name


def build_invoice_items(order: PurchaseOrder) -> list[InvoiceItem]:
    """One invoice line per order line, or a single line for the whole order."""
    if not order.items:
        total = Decimal(order.total_amount or 0).quantize(CENT)
        return [
            InvoiceItem(
                description=f"Purchase Order {order.po_number}",
                quantity=Decimal(1),
                unit_price=total,
                subtotal=total,
            )
        ]

    lines = []
    for li in order.items:
        unit_price = Decimal(li.unit_price or 0).quantize(CENT)
        lines.append(
            InvoiceItem(
                description=_line_description(li),
                quantity=Decimal(li.quantity),
                unit_price=unit_price,
                subtotal=(Decimal(li.quantity) * unit_price).quantize(CENT),
            )
        )
    return lines


def find_invoice_for_order(order_id: int) -> Invoice | None:
    return Invoice.query.filter_by(po_id=order_id).first()


# =========================================================
# Generator
# =========================================================
def _persist_invoice(order: PurchaseOrder, actor_id: int | None) -> Invoice | None:
    """
    Insert invoice + items. Returns None when another writer already created
    the invoice for this order (po_id unique constraint).
    """
    vendor = order.vendor
    default_days = int(current_app.config.get("DEFAULT_PAYMENT_TERMS_DAYS", 30))
    terms = getattr(vendor, "payment_terms", None)
    due_in = parse_terms_days(terms, default_days)

    # A numbering clash gets one retry; a po_id clash means we lost the race.
    for attempt in range(2):
        items = build_invoice_items(order)
        amount_due = sum((it.subtotal for it in items), ZERO)
        if amount_due <= 0:
            raise ValidationError("Invoice total must be greater than zero")

        inv = Invoice(
            invoice_number=generate_invoice_number(),
            po_id=order.id,
            vendor_id=order.vendor_id,
            amount_due=amount_due,
            amount_paid=ZERO,
            status=InvoiceStatus.UNPAID,
            issue_date=date.today(),
            due_date=date.today() + timedelta(days=due_in),
            billing_address=getattr(vendor, "address", None),
            terms=terms,
            notes=f"Auto-generated from Purchase Order {order.po_number}",
            created_by_user_id=actor_id,
        )
        inv.items = items
        db.session.add(inv)

        try:
            db.session.commit()
            return inv
        except IntegrityError:
            db.session.rollback()
            if find_invoice_for_order(order.id) is not None:
                return None
            if attempt == 0:
                continue
            raise

    return None


def generate_for_order(order_id: int, actor_id: int | None) -> InvoiceGenerationResult:
    """
    Create the invoice for a purchase order, at most once per order.

    After the invoice is stored, the PDF is rendered and the vendor is emailed.
    Both are best-effort: a failure there is reported in `error` but the
    invoice stays created.
    """
    existing = find_invoice_for_order(order_id)
    if existing is not None:
        return InvoiceGenerationResult(created=False, already_existed=True, invoice=existing)

    order = db.session.get(PurchaseOrder, order_id)
    if order is None:
        raise NotFoundError("Purchase order not found")

    po_number = order.po_number
    invoice = _persist_invoice(order, actor_id)
    if invoice is None:
        current_app.logger.info("Invoice for PO %s created concurrently; reusing it", po_number)
        return InvoiceGenerationResult(
            created=False,
            already_existed=True,
            invoice=find_invoice_for_order(order_id),
        )

    current_app.logger.info("Invoice %s created for PO %s", invoice.invoice_number, po_number)
    result = InvoiceGenerationResult(created=True, already_existed=False, invoice=invoice)

    try:
        result.pdf_path = ensure_invoice_pdf(invoice.id)
    except ServiceError as exc:
        current_app.logger.warning("Invoice %s PDF failed: %s", invoice.invoice_number, exc.message)
        result.error = exc.message

    try:
        result.email = send_invoice_pending_email(invoice, result.pdf_path)
    except Exception:
        current_app.logger.exception("Invoice %s email could not be queued", invoice.invoice_number)
        result.email = {"error": "email could not be queued"}

    notify_best_effort(
        "invoice_generated",
        invoice_number=invoice.invoice_number,
        amount=f"{Decimal(invoice.amount_due):,.2f}",
        po_number=po_number,
    )

    return result
