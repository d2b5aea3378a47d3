from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from chainsense.errors import ConflictError, NotFoundError, ValidationError
from chainsense.extensions import db
from chainsense.models import InvoiceStatus, Notification, derive_invoice_status
from chainsense.services.payments import parse_amount, payment_history, record_payment


def test_partial_then_paid_then_rejected(fulfilled_invoice, admin):
    inv_id = fulfilled_invoice.id
    assert Decimal(fulfilled_invoice.amount_due) == Decimal("100.00")

    inv = record_payment(inv_id, "60", method="bank", reference="TRX-1", actor_id=admin.id)
    assert inv.status == InvoiceStatus.PARTIAL
    assert inv.amount_remaining == Decimal("40.00")

    inv = record_payment(inv_id, 40, method="upi", actor_id=admin.id)
    assert inv.status == InvoiceStatus.PAID
    assert inv.amount_remaining == Decimal("0.00")

    with pytest.raises(ConflictError) as exc:
        record_payment(inv_id, "0.01", actor_id=admin.id)
    assert exc.value.status_code == 400
    assert exc.value.message == "Invoice is already fully paid"


def test_overpayment_rejected_and_nothing_written(fulfilled_invoice, admin):
    record_payment(fulfilled_invoice.id, "75.50", actor_id=admin.id)

    with pytest.raises(ConflictError) as exc:
        record_payment(fulfilled_invoice.id, "24.51", actor_id=admin.id)

    assert exc.value.details == {"amount_remaining": 24.5}
    assert Decimal(fulfilled_invoice.amount_paid) == Decimal("75.50")
    assert len(payment_history(fulfilled_invoice.id)) == 1


@pytest.mark.parametrize("amount", [0, -5, "abc", None, "", True, "NaN"])
def test_non_positive_or_malformed_amount(fulfilled_invoice, amount):
    with pytest.raises(ValidationError):
        record_payment(fulfilled_invoice.id, amount)


def test_amount_paid_never_exceeds_due(fulfilled_invoice, admin):
    for amount in ("33.33", "33.33", "50", "33.34", "1"):
        try:
            record_payment(fulfilled_invoice.id, amount, actor_id=admin.id)
        except ConflictError:
            pass
        assert Decimal(fulfilled_invoice.amount_paid) <= Decimal(fulfilled_invoice.amount_due)

    assert fulfilled_invoice.status == InvoiceStatus.PAID


def test_history_is_most_recent_first(fulfilled_invoice, admin):
    record_payment(fulfilled_invoice.id, "10", payment_date="2026-01-05", actor_id=admin.id)
    record_payment(fulfilled_invoice.id, "20", payment_date="2026-03-01T10:30:00", actor_id=admin.id)
    record_payment(fulfilled_invoice.id, "30", payment_date="2026-02-10", actor_id=admin.id)

    history = payment_history(fulfilled_invoice.id)

    assert [Decimal(p.amount) for p in history] == [Decimal("20.00"), Decimal("30.00"), Decimal("10.00")]
    assert history[0].payment_date == datetime(2026, 3, 1, 10, 30)
    assert history[0].to_dict()["recorded_by_name"] == admin.username


def test_bad_payment_date(fulfilled_invoice):
    with pytest.raises(ValidationError):
        record_payment(fulfilled_invoice.id, "10", payment_date="next tuesday")


def test_unknown_invoice(app):
    with pytest.raises(NotFoundError):
        record_payment(31337, "10")


def test_payment_notification(fulfilled_invoice, admin):
    record_payment(fulfilled_invoice.id, "25", actor_id=admin.id)

    note = Notification.query.filter_by(title="Payment Recorded").one()
    assert note.type == "success"
    assert "25.00" in note.message
    assert fulfilled_invoice.invoice_number in note.message
    assert "partial" in note.message


@pytest.mark.parametrize(
    "due,paid,expected",
    [
        ("100", "0", InvoiceStatus.UNPAID),
        ("100", "0.01", InvoiceStatus.PARTIAL),
        ("100", "99.99", InvoiceStatus.PARTIAL),
        ("100", "100", InvoiceStatus.PAID),
        ("100", "120", InvoiceStatus.PAID),
    ],
)
def test_derived_status_law(due, paid, expected):
    assert derive_invoice_status(Decimal(due), Decimal(paid)) is expected


def test_parse_amount_rounds_to_cents():
    assert parse_amount("12.345") == Decimal("12.35")
    assert parse_amount(7) == Decimal("7.00")


def test_overdue_until_paid(fulfilled_invoice, admin):
    fulfilled_invoice.due_date = date.today() - timedelta(days=1)
    db.session.commit()
    assert fulfilled_invoice.is_overdue is True

    record_payment(fulfilled_invoice.id, "30", actor_id=admin.id)
    assert fulfilled_invoice.status == InvoiceStatus.PARTIAL
    assert fulfilled_invoice.is_overdue is True

    record_payment(fulfilled_invoice.id, "70", actor_id=admin.id)
    assert fulfilled_invoice.status == InvoiceStatus.PAID
    assert fulfilled_invoice.is_overdue is False
    assert fulfilled_invoice.to_dict()["is_overdue"] is False


def test_future_due_date_is_not_overdue(fulfilled_invoice):
    fulfilled_invoice.due_date = date.today() + timedelta(days=1)
    db.session.commit()
    assert fulfilled_invoice.is_overdue is False


def test_numeric_method_is_stored_as_text(fulfilled_invoice, admin):
    record_payment(fulfilled_invoice.id, "5", method=5, reference="  ", actor_id=admin.id)

    payment, = payment_history(fulfilled_invoice.id)
    assert payment.method == "5"
    assert payment.reference is None


def test_non_text_notes_rejected(fulfilled_invoice):
    with pytest.raises(ValidationError):
        record_payment(fulfilled_invoice.id, "5", notes=["a", "b"])
    assert payment_history(fulfilled_invoice.id) == []
