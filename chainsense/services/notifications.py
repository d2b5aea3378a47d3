# chainsense/services/notifications.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from flask import current_app, render_template
from markupsafe import escape

from chainsense.config.company import company_context
from chainsense.extensions import db, notify_executor
from chainsense.models import Notification, User
from chainsense.services import mailer
from chainsense.utils.db import commit_or_rollback

logger = logging.getLogger(__name__)

BROADCAST = None

CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"


# =========================================================
# Message templates (one per event)
# =========================================================
@dataclass(frozen=True)
class NotificationTemplate:
    type: str
    title: str
    message: str


PO_STATUS_NOTES = {
    "pending": "Purchase Order has been set to pending",
    "completed": "Purchase Order has been completed",
    "cancelled": "Purchase Order has been cancelled",
}

TEMPLATES: dict[str, NotificationTemplate] = {
    "po_status_changed": NotificationTemplate(
        "info",
        "Purchase Order Status Updated",
        "Purchase Order {po_number} status changed to {status}. {status_note}",
    ),
    "inventory_updated": NotificationTemplate(
        "info",
        "Inventory Updated",
        "Purchase Order {po_number} completed. Inventory updated: {summary}",
    ),
    "po_completed": NotificationTemplate(
        "info",
        "Purchase Order Completed",
        "Purchase Order {po_number} completed. Inventory updated: {summary}",
    ),
    "low_stock": NotificationTemplate(
        "alert",
        "Low Stock Alert",
        "{item_name} is running low. Current quantity: {quantity}",
    ),
    "invoice_generated": NotificationTemplate(
        "success",
        "Invoice Generated",
        "Invoice {invoice_number} for {amount} generated from Purchase Order {po_number}.",
    ),
    "payment_recorded": NotificationTemplate(
        "success",
        "Payment Recorded",
        "Payment of {amount} recorded against invoice {invoice_number}. Status: {status}.",
    ),
}


def build_notification(event: str, **data) -> NotificationTemplate:
    """
    Render the (type, title, message) triple for an event.
    Unknown events and missing fields raise KeyError.
    """
    tpl = TEMPLATES[event]
    if event == "po_status_changed":
        data.setdefault("status_note", PO_STATUS_NOTES.get(data.get("status"), ""))
    message = tpl.message.format_map({k: "" if v is None else v for k, v in data.items()})
    return NotificationTemplate(tpl.type, tpl.title, message.strip())


def inventory_summary(results) -> str:
    parts = []
    for r in results:
        sign = "+" if r.delta >= 0 else ""
        parts.append(f"{r.item_name}: {sign}{r.delta} ({r.old_quantity} -> {r.new_quantity})")
    return ", ".join(parts)


# =========================================================
# External channels
# =========================================================
def _run_quietly(fn: Callable, *args, **kwargs) -> None:
    try:
        fn(*args, **kwargs)
    except Exception:
        # Channel failures never reach the caller.
        logger.exception("Notification channel send failed (%s)", getattr(fn, "__name__", fn))


def dispatch(fn: Callable, *args, **kwargs) -> None:
    """Fire-and-forget: background thread unless NOTIFY_ASYNC is off."""
    if current_app.config.get("NOTIFY_ASYNC", True):
        notify_executor.submit(_run_quietly, fn, *args, **kwargs)
    else:
        _run_quietly(fn, *args, **kwargs)


def _send_channels(user: User, title: str, message: str, channels: Iterable[str]) -> None:
    cfg = mailer.transport_config(current_app.config)
    channels = set(channels)

    if CHANNEL_EMAIL in channels and user.email:
        html = f"<h2>{escape(title)}</h2><p>{escape(message)}</p>"
        dispatch(mailer.send_email, cfg, to=user.email, subject=title, html=html, text=message)

    if CHANNEL_SMS in channels and user.phone:
        dispatch(mailer.send_sms, cfg, to=user.phone, body=f"{title}: {message}")


# =========================================================
# Dispatcher
# =========================================================
def notify(scope: int | None, type: str, title: str, message: str, channels: Iterable[str] = ()) -> Notification:
    """
    Persist a notification (scope None = broadcast) and attempt any external
    channels for a user-scoped notification. Channel failures are logged only.
    """
    note = Notification(user_id=scope, type=type, title=title, message=message)
    db.session.add(note)
    commit_or_rollback("Create notification")

    channels = tuple(channels)
    if channels and scope is not None:
        user = db.session.get(User, scope)
        if user is not None:
            _send_channels(user, title, message, channels)

    return note


def notify_event(event: str, scope: int | None = BROADCAST, channels: Iterable[str] = (), **data) -> Notification:
    tpl = build_notification(event, **data)
    return notify(scope, tpl.type, tpl.title, tpl.message, channels)


def notify_best_effort(event: str, scope: int | None = BROADCAST, **data) -> Notification | None:
    """notify_event that logs instead of raising; for side notes on a main write."""
    try:
        return notify_event(event, scope, **data)
    except Exception:
        current_app.logger.exception("Notification '%s' could not be stored", event)
        return None


def notify_roles(event: str, roles: Iterable[str], **data) -> int:
    """One user-scoped notification per active user holding any of `roles`."""
    users = User.query.filter(User.role.in_(tuple(roles)), User.is_active.is_(True)).all()
    for user in users:
        notify_best_effort(event, user.id, **data)
    return len(users)


# =========================================================
# Billing email
# =========================================================
def send_invoice_pending_email(invoice, pdf_path: str | None) -> dict:
    """
    Email the vendor that payment is pending, with the invoice PDF attached.
    Delivery is fire-and-forget; returns whether a send was queued.
    """
    vendor = invoice.vendor
    vendor_email = getattr(vendor, "email", None)
    if not vendor_email:
        return {"skipped": True, "reason": "vendor has no email"}

    cfg = mailer.transport_config(current_app.config)
    if not mailer.email_configured(cfg):
        current_app.logger.warning("Email not configured; invoice %s email skipped.", invoice.invoice_number)
        return {"skipped": True, "reason": "email not configured"}

    attachments = []
    if pdf_path:
        with open(pdf_path, "rb") as f:
            attachments.append((f"invoice-{invoice.invoice_number}.pdf", f.read()))

    html = render_template(
        "emails/invoice_pending.html",
        vendor_name=getattr(vendor, "name", None),
        invoice=invoice,
        currency=current_app.config.get("CURRENCY", "INR"),
        **company_context(),
    )

    dispatch(
        mailer.send_email,
        cfg,
        to=vendor_email,
        subject=f"Payment Pending - Invoice {invoice.invoice_number}",
        html=html,
        attachments=attachments,
    )
    return {"queued": True}
