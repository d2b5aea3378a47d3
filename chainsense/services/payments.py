# chainsense/services/payments.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from flask import current_app

from chainsense.errors import ConflictError, NotFoundError, ValidationError
from chainsense.extensions import db
from chainsense.models import Invoice, Payment, utcnow_naive
from chainsense.services.notifications import notify_best_effort
from chainsense.utils.db import commit_or_rollback

CENT = Decimal("0.01")


def parse_amount(value) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError("Payment amount must be greater than zero")
    try:
        amount = Decimal(str(value).strip()).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError("Payment amount must be greater than zero")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")
    return amount


def _parse_payment_date(value) -> datetime:
    if not value:
        return utcnow_naive()
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError("payment_date must be an ISO date or datetime")


def _clean_text(value, field: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"{field} must be text")
    return str(value).strip() or None


def payment_history(invoice_id: int) -> list[Payment]:
    """Most recent first."""
    return (
        Payment.query
        .filter_by(invoice_id=invoice_id)
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
        .all()
    )


def record_payment(
    invoice_id: int,
    amount,
    *,
    method: str | None = None,
    reference: str | None = None,
    notes: str | None = None,
    payment_date=None,
    actor_id: int | None = None,
) -> Invoice:
    """
    Append a payment and recompute the invoice status.
    Payments above the remaining balance are rejected, so amount_paid can
    never exceed amount_due.
    """
    amount = parse_amount(amount)
    paid_on = _parse_payment_date(payment_date)
    method = _clean_text(method, "method")
    reference = _clean_text(reference, "reference")
    notes = _clean_text(notes, "notes")

    invoice = db.session.get(Invoice, invoice_id, with_for_update=True)
    if invoice is None:
        raise NotFoundError("Invoice not found")

    remaining = invoice.amount_remaining
    if remaining <= 0:
        raise ConflictError("Invoice is already fully paid")
    if amount > remaining:
        raise ConflictError(
            "Payment exceeds remaining balance",
            details={"amount_remaining": float(remaining)},
        )

    db.session.add(
        Payment(
            invoice_id=invoice.id,
            amount=amount,
            payment_date=paid_on,
            method=method,
            reference=reference,
            notes=notes,
            recorded_by_user_id=actor_id,
        )
    )
    invoice.amount_paid = Decimal(invoice.amount_paid or 0) + amount
    invoice.refresh_status()
    commit_or_rollback("Record payment")

    current_app.logger.info(
        "Payment %s recorded on invoice %s (status %s)",
        amount, invoice.invoice_number, invoice.status.value,
    )
    notify_best_effort(
        "payment_recorded",
        amount=f"{amount:,.2f}",
        invoice_number=invoice.invoice_number,
        status=invoice.status.value,
    )
    return invoice
