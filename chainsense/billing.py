# chainsense/billing.py
from __future__ import annotations

from flask import Blueprint, jsonify, request, send_file
from flask_login import current_user, login_required

from chainsense.errors import NotFoundError
from chainsense.extensions import db
from chainsense.models import Invoice
from chainsense.services.invoice_files import ensure_invoice_pdf, invoice_pdf_filename
from chainsense.services.payments import payment_history, record_payment
from chainsense.utils.guards import ensure_vendor_scope, role_required

billing_bp = Blueprint("billing", __name__, url_prefix="/billing")


def _truthy(val) -> bool:
    return (val or "").strip().lower() in ("1", "true", "yes", "on")


def _load_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")
    ensure_vendor_scope(invoice.vendor_id)
    return invoice


def _invoice_payload(invoice: Invoice) -> dict:
    data = invoice.to_dict()
    data["items"] = [it.to_dict() for it in invoice.items]
    data["payments"] = [p.to_dict() for p in payment_history(invoice.id)]
    return data


# -------------------------------------------------------------------
# Invoice detail
# GET /billing/invoices/<id>
# -------------------------------------------------------------------
@billing_bp.route("/invoices/<int:invoice_id>", methods=["GET"])
@login_required
def invoice_detail(invoice_id: int):
    invoice = _load_invoice(invoice_id)
    return jsonify({"invoice": _invoice_payload(invoice)}), 200


# -------------------------------------------------------------------
# Invoice PDF (rendered once, then served from storage)
# GET /billing/invoices/<id>/pdf[?force=1]
# -------------------------------------------------------------------
@billing_bp.route("/invoices/<int:invoice_id>/pdf", methods=["GET"])
@login_required
def invoice_pdf(invoice_id: int):
    invoice = _load_invoice(invoice_id)

    path = ensure_invoice_pdf(invoice.id, force=_truthy(request.args.get("force")))

    return send_file(
        path,
        mimetype="application/pdf",
        as_attachment=True,
        download_name=invoice_pdf_filename(invoice),
        max_age=0,
    )


# -------------------------------------------------------------------
# Payments
# POST /billing/invoices/<id>/payments   {"amount": ..., "method": ..., ...}
# -------------------------------------------------------------------
@billing_bp.route("/invoices/<int:invoice_id>/payments", methods=["POST"])
@role_required("admin", "manager")
def add_payment(invoice_id: int):
    data = request.get_json(silent=True) or {}

    invoice = record_payment(
        invoice_id,
        data.get("amount"),
        method=data.get("method"),
        reference=data.get("reference"),
        notes=data.get("notes"),
        payment_date=data.get("payment_date"),
        actor_id=current_user.id,
    )

    return (
        jsonify(
            {
                "message": "Payment recorded successfully",
                "invoice": _invoice_payload(invoice),
            }
        ),
        201,
    )
