# chainsense/utils/invoice_pdf.py

from __future__ import annotations

import io
from datetime import datetime, date
from decimal import Decimal

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib import colors
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from chainsense.config.company import (
    BILLING_EMAIL,
    COMPANY_ADDRESS,
    COMPANY_EMAIL,
    COMPANY_NAME,
    COMPANY_PHONE,
    COMPANY_TAGLINE,
)


def _fmt_date(d):
    if not d:
        return "N/A"
    if isinstance(d, (datetime, date)):
        return d.strftime("%Y-%m-%d")
    return str(d)


def _money(v, currency="INR"):
    if v is None:
        return "-"
    try:
        return f"{currency} {Decimal(v):,.2f}"
    except (ArithmeticError, TypeError, ValueError):
        return f"{currency} {v}"


def _safe_enum_value(v):
    return getattr(v, "value", v)


def render_invoice_pdf(invoice, items, *, currency: str = "INR") -> bytes:
    """
    Render an Invoice PDF from stored invoice + item rows (NO DB writes).
    Returns PDF bytes.
    """
    buf = io.BytesIO()
    # invariant=1 keeps output byte-stable for the same invoice state
    c = canvas.Canvas(buf, pagesize=A4, invariant=1)
    width, height = A4

    PRIMARY = colors.HexColor("#111827")
    ACCENT = colors.HexColor("#2563eb")
    SUBTLE = colors.HexColor("#f8fafc")
    BORDER = colors.HexColor("#e5e7eb")
    MUTED = colors.HexColor("#6b7280")

    # --- Header bar ---
    c.setFillColor(PRIMARY)
    c.rect(0, height - 30 * mm, width, 30 * mm, stroke=0, fill=1)

    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 18)
    c.drawString(18 * mm, height - 15 * mm, COMPANY_NAME)
    c.setFont("Helvetica", 9)
    c.drawString(18 * mm, height - 22 * mm, COMPANY_TAGLINE)

    inv_no = invoice.invoice_number or f"INV-{invoice.id}"
    c.setFont("Helvetica", 9)
    c.drawRightString(width - 18 * mm, height - 11 * mm, "INVOICE")
    c.setFont("Helvetica-Bold", 13)
    c.drawRightString(width - 18 * mm, height - 18 * mm, inv_no)

    # --- Meta grid (left) + amount card (right) ---
    y = height - 42 * mm
    po = getattr(invoice, "purchase_order", None)
    meta = [
        ("ISSUE DATE", _fmt_date(invoice.issue_date)),
        ("DUE DATE", _fmt_date(invoice.due_date)),
        ("PO NUMBER", po.po_number if po else "-"),
        ("STATUS", str(_safe_enum_value(invoice.status) or "unpaid").upper()),
    ]
    for idx, (label, value) in enumerate(meta):
        x = 18 * mm + (idx % 2) * 55 * mm
        row_y = y - (idx // 2) * 12 * mm
        c.setFillColor(MUTED)
        c.setFont("Helvetica", 8)
        c.drawString(x, row_y, label)
        c.setFillColor(PRIMARY)
        c.setFont("Helvetica-Bold", 10)
        c.drawString(x, row_y - 5 * mm, value)

    card_x = width - 78 * mm
    c.setStrokeColor(BORDER)
    c.setFillColor(SUBTLE)
    c.roundRect(card_x, y - 22 * mm, 60 * mm, 28 * mm, 6, stroke=1, fill=1)
    c.setFillColor(MUTED)
    c.setFont("Helvetica", 8)
    c.drawString(card_x + 5 * mm, y, "AMOUNT DUE")
    c.setFillColor(ACCENT)
    c.setFont("Helvetica-Bold", 14)
    c.drawString(card_x + 5 * mm, y - 7 * mm, _money(invoice.amount_due, currency))
    c.setFillColor(MUTED)
    c.setFont("Helvetica", 8)
    c.drawString(card_x + 5 * mm, y - 13 * mm, "AMOUNT PAID")
    c.setFillColor(PRIMARY)
    c.setFont("Helvetica", 10)
    c.drawString(card_x + 5 * mm, y - 19 * mm, _money(invoice.amount_paid, currency))

    y -= 34 * mm

    # --- Bill To / Remit To ---
    vendor = getattr(invoice, "vendor", None)
    bill_lines = [
        getattr(vendor, "name", None) or "Vendor",
        invoice.billing_address or getattr(vendor, "address", None) or "N/A",
        getattr(vendor, "email", None) or "",
    ]
    remit_lines = [
        COMPANY_NAME,
        COMPANY_ADDRESS,
        f"{COMPANY_EMAIL} • {COMPANY_PHONE}",
        f"Payment Terms: {invoice.terms or 'Net 30'}",
    ]

    card_w = (width - 36 * mm - 8 * mm) / 2
    for idx, (title, lines) in enumerate((("BILL TO", bill_lines), ("REMIT TO", remit_lines))):
        x = 18 * mm + idx * (card_w + 8 * mm)
        c.setStrokeColor(BORDER)
        c.setFillColor(SUBTLE)
        c.roundRect(x, y - 30 * mm, card_w, 34 * mm, 6, stroke=1, fill=1)
        c.setFillColor(MUTED)
        c.setFont("Helvetica", 8)
        c.drawString(x + 4 * mm, y - 1 * mm, title)
        c.setFillColor(PRIMARY)
        c.setFont("Helvetica", 9)
        line_y = y - 7 * mm
        for line in lines:
            if line:
                c.drawString(x + 4 * mm, line_y, str(line)[:60])
                line_y -= 5 * mm

    y -= 40 * mm

    # --- Items table ---
    data = [["Description", "Qty", "Unit Price", "Subtotal"]]
    for it in items:
        data.append([
            (it.description or "-")[:70],
            f"{Decimal(it.quantity or 0).normalize():f}",
            _money(it.unit_price, currency),
            _money(it.subtotal, currency),
        ])

    if len(data) == 1:
        data.append(["No line items recorded", "-", "-", "-"])

    table = Table(
        data,
        colWidths=[92 * mm, 18 * mm, 32 * mm, 32 * mm],
        hAlign="LEFT",
    )
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), PRIMARY),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [SUBTLE, colors.white]),
        ("LINEBELOW", (0, 0), (-1, -1), 0.5, BORDER),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("PADDING", (0, 0), (-1, -1), 6),
    ]))

    tw, th = table.wrapOn(c, width - 36 * mm, height)
    table.drawOn(c, 18 * mm, y - th)

    y = y - th - 10 * mm

    # --- Totals ---
    amount_due = Decimal(invoice.amount_due or 0)
    amount_paid = Decimal(invoice.amount_paid or 0)
    balance = max(amount_due - amount_paid, Decimal("0"))

    block_x = width - 18 * mm
    c.setFont("Helvetica", 9)
    c.setFillColor(MUTED)
    c.drawRightString(block_x - 45 * mm, y, "Subtotal")
    c.drawRightString(block_x - 45 * mm, y - 6 * mm, "Paid to Date")
    c.setFillColor(ACCENT)
    c.setFont("Helvetica-Bold", 10)
    c.drawRightString(block_x - 45 * mm, y - 14 * mm, "Outstanding Balance")

    c.setFillColor(PRIMARY)
    c.setFont("Helvetica", 9)
    c.drawRightString(block_x, y, _money(amount_due, currency))
    c.drawRightString(block_x, y - 6 * mm, _money(amount_paid, currency))
    c.setFont("Helvetica-Bold", 11)
    c.drawRightString(block_x, y - 14 * mm, _money(balance, currency))

    y -= 26 * mm

    # --- Notes ---
    if invoice.notes:
        c.setFont("Helvetica-Bold", 10)
        c.setFillColor(PRIMARY)
        c.drawString(18 * mm, y, "Notes")
        c.setFont("Helvetica", 9)
        c.setFillColor(MUTED)
        c.drawString(18 * mm, y - 6 * mm, invoice.notes[:120])

    # --- Footer ---
    c.setFillColor(BORDER)
    c.rect(0, 0, width, 12 * mm, stroke=0, fill=1)
    c.setFillColor(colors.HexColor("#374151"))
    c.setFont("Helvetica", 8)
    c.drawString(
        18 * mm, 4 * mm,
        f"Thank you for doing business with {COMPANY_NAME}. Billing questions: {BILLING_EMAIL}",
    )

    c.showPage()
    c.save()

    pdf = buf.getvalue()
    buf.close()
    return pdf
