# chainsense/services/fulfillment.py
"""
Purchase order status transitions and the one-time fulfillment they trigger.

The status write always happens first and is committed on its own. Only the
request that wins the first transition into "completed" then runs, in order:
inventory decrement -> invoice generation (PDF + vendor email) -> notes.
Sub-step failures are reported in the result, never raised.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import update

from chainsense.errors import NotFoundError, ValidationError
from chainsense.extensions import db
from chainsense.models import PO_STATUSES, PurchaseOrder, utcnow_naive
from chainsense.services.inventory import Direction, apply_delta, lines_from_order
from chainsense.services.invoices import find_invoice_for_order, generate_for_order
from chainsense.services.notifications import (
    inventory_summary,
    notify_best_effort,
    notify_roles,
)
from chainsense.utils.db import commit_or_rollback


@dataclass
class BillingOutcome:
    attempted: bool = False
    created: bool = False
    already_existed: bool = False
    invoice: dict | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "created": self.created,
            "already_existed": self.already_existed,
            "invoice": self.invoice,
            "error": self.error,
        }


@dataclass
class FulfillmentResult:
    previous_status: str
    new_status: str
    already_completed: bool = False
    inventory_updated: bool = False
    inventory_error: str | None = None
    inventory_details: list[dict] | None = None
    billing: BillingOutcome = field(default_factory=BillingOutcome)
    debug: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "previous_status": self.previous_status,
            "new_status": self.new_status,
            "already_completed": self.already_completed,
            "inventory_updated": self.inventory_updated,
            "inventory_error": self.inventory_error,
            "inventory_details": self.inventory_details,
            "billing": self.billing.to_dict(),
            "debug": self.debug,
        }


def normalize_status(raw) -> str:
    status = (raw or "").strip().lower() if isinstance(raw, str) else ""
    if not status:
        raise ValidationError("Status is required")
    if status not in PO_STATUSES:
        raise ValidationError(f"Invalid status '{status}'", details={"allowed": list(PO_STATUSES)})
    return status


def _claim_completion(order_id: int) -> bool:
    """
    Stamp completed_at if nobody has yet. Exactly one caller ever gets True,
    whatever the number of concurrent requests.
    """
    res = db.session.execute(
        update(PurchaseOrder)
        .where(PurchaseOrder.id == order_id, PurchaseOrder.completed_at.is_(None))
        .values(completed_at=utcnow_naive())
        .execution_options(synchronize_session=False)
    )
    commit_or_rollback("Claim purchase order completion")
    return res.rowcount == 1


# =========================================================
# Stages
# =========================================================
def _run_inventory(order: PurchaseOrder, po_number: str, result: FulfillmentResult) -> None:
    outcome = apply_delta(lines_from_order(order), Direction.DECREMENT)

    if outcome.results:
        result.inventory_details = [r.to_dict() for r in outcome.results]

    if outcome.error is not None:
        result.inventory_error = outcome.error.message
        if outcome.error.resolved:
            result.debug["resolved_items"] = outcome.error.resolved
        current_app.logger.error(
            "Inventory update for PO %s (id %s) failed; items %s: %s",
            po_number, order.id, outcome.error.failed_item_ids, outcome.error.message,
        )

    result.inventory_updated = outcome.ok and bool(outcome.results)
    if not outcome.results:
        return

    summary = inventory_summary(outcome.results)
    notify_best_effort("inventory_updated", po_number=po_number, summary=summary)
    notify_roles(
        "po_completed",
        current_app.config.get("NOTIFY_STAFF_ROLES", ("admin", "manager")),
        po_number=po_number,
        summary=summary,
    )

    for r in outcome.results:
        if r.crossed_low_stock:
            notify_best_effort("low_stock", item_name=r.item_name, quantity=r.new_quantity)


def _run_billing(order_id: int, po_number: str, actor_id: int | None, result: FulfillmentResult) -> None:
    result.billing.attempted = True
    try:
        gen = generate_for_order(order_id, actor_id)
    except Exception as exc:
        current_app.logger.exception("Invoice generation for PO %s (id %s) failed", po_number, order_id)
        result.billing.error = getattr(exc, "message", None) or str(exc)
        return

    result.billing.created = gen.created
    result.billing.already_existed = gen.already_existed
    result.billing.invoice = gen.invoice.to_dict() if gen.invoice is not None else None
    result.billing.error = gen.error


# =========================================================
# Transition
# =========================================================
def transition(order_id: int, requested_status, actor) -> FulfillmentResult:
    """
    Set a purchase order's status. The first move into "completed" also
    decrements inventory and creates the invoice; any later one is a plain
    status write.
    """
    status = normalize_status(requested_status)

    order = db.session.get(PurchaseOrder, order_id)
    if order is None:
        raise NotFoundError("Purchase order not found")

    previous = order.status
    po_number = order.po_number
    actor_id = getattr(actor, "id", None)

    order.status = status
    commit_or_rollback("Update purchase order status")

    result = FulfillmentResult(previous_status=previous, new_status=status)
    wants_completion = status == "completed"
    was_completed = previous == "completed"

    should_fulfill = False
    if wants_completion and not was_completed:
        should_fulfill = _claim_completion(order_id)

    result.debug.update({
        "was_completed": wants_completion,
        "was_already_completed": was_completed,
        "should_update": should_fulfill,
    })

    if wants_completion and not should_fulfill:
        result.already_completed = True
        existing = find_invoice_for_order(order_id)
        if existing is not None:
            result.billing.already_existed = True
            result.billing.invoice = existing.to_dict()

    if should_fulfill:
        current_app.logger.info("Fulfilling PO %s (id %s), previous status %s", po_number, order_id, previous)
        order = db.session.get(PurchaseOrder, order_id)
        _run_inventory(order, po_number, result)
        # Billing proceeds even if inventory failed; both are best-effort.
        _run_billing(order_id, po_number, actor_id, result)

    notify_best_effort("po_status_changed", po_number=po_number, status=status)
    return result
