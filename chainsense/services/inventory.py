# chainsense/services/inventory.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field, asdict
from typing import Iterable, Mapping

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from chainsense.extensions import db
from chainsense.models import InventoryItem, utcnow_naive


class Direction(str, enum.Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"


# =========================================================
# Types
# =========================================================
@dataclass(frozen=True)
class LineDelta:
    item_id: int
    quantity: int


@dataclass(frozen=True)
class AdjustmentResult:
    item_id: int
    item_name: str
    delta: int
    old_quantity: int
    new_quantity: int
    min_stock_level: int = 0

    @property
    def crossed_low_stock(self) -> bool:
        return self.old_quantity > self.min_stock_level >= self.new_quantity

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("min_stock_level")
        return d


@dataclass
class AdjustmentError:
    message: str
    failed_item_ids: list[int] = field(default_factory=list)
    # Items that resolved before validation stopped (diagnostics only, nothing applied)
    resolved: list[dict] = field(default_factory=list)

    def __str__(self) -> str:
        return self.message


@dataclass
class AdjustmentOutcome:
    results: list[AdjustmentResult] = field(default_factory=list)
    error: AdjustmentError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# =========================================================
# Input normalization
# =========================================================
def _as_positive_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    return n if n > 0 else None


def _normalize(line: LineDelta | Mapping) -> tuple[int | None, int | None, object]:
    if isinstance(line, LineDelta):
        raw_id, raw_qty = line.item_id, line.quantity
    else:
        raw_id, raw_qty = line.get("item_id"), line.get("quantity")
    return _as_positive_int(raw_id), _as_positive_int(raw_qty), raw_id


def lines_from_order(order) -> list[LineDelta]:
    return [LineDelta(item_id=li.item_id, quantity=li.quantity) for li in order.items]


# =========================================================
# Engine
# =========================================================
def _validate(lines: list) -> tuple[list[tuple[int, int]], AdjustmentError | None]:
    """
    Resolve every line before anything is written.
    Stops at the first bad entry; the whole batch is then rejected.
    """
    resolved: list[tuple[int, int]] = []
    snapshots: list[dict] = []

    for line in lines:
        item_id, qty, raw_id = _normalize(line)
        if item_id is None or qty is None:
            raw_qty = line.quantity if isinstance(line, LineDelta) else line.get("quantity")
            return resolved, AdjustmentError(
                f"Invalid item_id ({raw_id}) or quantity ({raw_qty})",
                failed_item_ids=[item_id] if item_id else [],
                resolved=snapshots,
            )

        item = db.session.get(InventoryItem, item_id)
        if item is None:
            return resolved, AdjustmentError(
                f"Inventory item {item_id} not found",
                failed_item_ids=[item_id],
                resolved=snapshots,
            )

        resolved.append((item_id, qty))
        snapshots.append({"item_id": item.id, "item_name": item.name, "quantity": item.quantity})

    return resolved, None


def _apply_one(item_id: int, qty: int, direction: Direction) -> AdjustmentResult:
    # Read current state under a row lock, then write the new quantity.
    item = db.session.get(InventoryItem, item_id, with_for_update=True)
    if item is None:
        raise LookupError(f"Inventory item {item_id} not found")

    old = int(item.quantity or 0)
    if direction is Direction.DECREMENT:
        new = max(old - qty, 0)
        delta = -qty
    else:
        new = old + qty
        delta = qty

    item.quantity = new
    item.updated_at = utcnow_naive()
    db.session.commit()

    return AdjustmentResult(
        item_id=item.id,
        item_name=item.name,
        delta=delta,
        old_quantity=old,
        new_quantity=new,
        min_stock_level=int(item.min_stock_level or 0),
    )


def apply_delta(lines: Iterable[LineDelta | Mapping], direction: Direction | str) -> AdjustmentOutcome:
    """
    Apply one signed quantity change per line item.

    - Every line is validated first; one bad line rejects the batch.
    - Decrements clamp at zero.
    - Items are committed one by one. A failing item is skipped and reported;
      items already applied stay applied.
    """
    direction = Direction(direction)
    lines = list(lines)

    if not lines:
        return AdjustmentOutcome(error=AdjustmentError("No items found in purchase order"))

    resolved, error = _validate(lines)
    if error is not None:
        current_app.logger.warning("Inventory batch rejected: %s", error.message)
        return AdjustmentOutcome(error=error)

    outcome = AdjustmentOutcome()
    failures: list[str] = []
    failed_ids: list[int] = []

    for item_id, qty in resolved:
        try:
            outcome.results.append(_apply_one(item_id, qty, direction))
        except (SQLAlchemyError, LookupError) as exc:
            db.session.rollback()
            current_app.logger.exception("Inventory update failed for item %s", item_id)
            failures.append(f"Item {item_id} update failed: {exc}")
            failed_ids.append(item_id)

    if failures:
        outcome.error = AdjustmentError("; ".join(failures), failed_item_ids=failed_ids)

    return outcome
