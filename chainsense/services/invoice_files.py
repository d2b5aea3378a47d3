# chainsense/services/invoice_files.py
from __future__ import annotations

import os
import tempfile

from flask import current_app

from chainsense.errors import NotFoundError, RenderError
from chainsense.extensions import db
from chainsense.models import Invoice, InvoiceItem
from chainsense.utils.invoice_pdf import render_invoice_pdf


# =========================================================
# Storage helpers
# =========================================================
def invoices_storage_dir() -> str:
    """
    Local storage for invoice PDFs.
    Priority:
      1) Flask config: INVOICE_PDF_DIR
      2) instance_path/invoices
    """
    base = current_app.config.get("INVOICE_PDF_DIR")
    if not base:
        base = os.path.join(current_app.instance_path, "invoices")

    os.makedirs(base, exist_ok=True)
    return base


def invoice_pdf_filename(invoice: Invoice) -> str:
    return f"invoice-{invoice.invoice_number or invoice.id}.pdf"


def invoice_pdf_path(invoice: Invoice) -> str:
    return os.path.join(invoices_storage_dir(), invoice_pdf_filename(invoice))


def _write_atomic(path: str, data: bytes) -> None:
    # Readers only ever see a complete file: write beside it, then rename over.
    directory = os.path.dirname(path)
    fd, tmp_path = tempfile.mkstemp(prefix=".invoice-", suffix=".pdf.tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


# =========================================================
# Artifact
# =========================================================
def ensure_invoice_pdf(invoice_id: int, force: bool = False) -> str:
    """
    Return the path of the invoice PDF, rendering it only when it is missing
    or `force` is set. Never writes to the database.
    """
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found for PDF generation")

    try:
        path = invoice_pdf_path(invoice)
    except OSError as exc:
        current_app.logger.exception("Invoice PDF storage unavailable for invoice %s", invoice.id)
        raise RenderError("Failed to generate invoice PDF", details={"error": str(exc)}) from exc

    if os.path.exists(path) and not force:
        return path

    items = (
        InvoiceItem.query
        .filter_by(invoice_id=invoice.id)
        .order_by(InvoiceItem.id.asc())
        .all()
    )

    try:
        pdf_bytes = render_invoice_pdf(invoice, items, currency=current_app.config.get("CURRENCY", "INR"))
        _write_atomic(path, pdf_bytes)
    except Exception as exc:
        current_app.logger.exception("Invoice PDF render failed for invoice %s", invoice.id)
        raise RenderError("Failed to generate invoice PDF", details={"error": str(exc)}) from exc

    current_app.logger.info("Rendered invoice PDF %s", path)
    return path
