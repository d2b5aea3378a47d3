from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from chainsense.extensions import db
from chainsense.models import InventoryItem
from chainsense.services import inventory
from chainsense.services.inventory import Direction, LineDelta, apply_delta


def _qty(item_id):
    return db.session.get(InventoryItem, item_id).quantity


def test_decrement_reports_before_and_after(make_item):
    a = make_item(quantity=5, name="Copper wire")
    b = make_item(quantity=8, name="Steel bolts")

    out = apply_delta([LineDelta(a.id, 3), LineDelta(b.id, 2)], Direction.DECREMENT)

    assert out.ok
    assert [r.to_dict() for r in out.results] == [
        {"item_id": a.id, "item_name": "Copper wire", "delta": -3, "old_quantity": 5, "new_quantity": 2},
        {"item_id": b.id, "item_name": "Steel bolts", "delta": -2, "old_quantity": 8, "new_quantity": 6},
    ]
    assert _qty(a.id) == 2
    assert _qty(b.id) == 6


@pytest.mark.parametrize("stock,requested", [(0, 1), (3, 3), (3, 4), (7, 1000)])
def test_decrement_clamps_at_zero(make_item, stock, requested):
    item = make_item(quantity=stock)

    out = apply_delta([{"item_id": item.id, "quantity": requested}], "decrement")

    assert out.ok
    assert out.results[0].new_quantity == max(stock - requested, 0)
    assert _qty(item.id) == max(stock - requested, 0)


def test_increment_adds(make_item):
    item = make_item(quantity=4)

    out = apply_delta([LineDelta(item.id, 6)], Direction.INCREMENT)

    assert out.results[0].delta == 6
    assert _qty(item.id) == 10


def test_unknown_item_rejects_whole_batch(make_item):
    good = make_item(quantity=9, name="Pallets")

    out = apply_delta([LineDelta(good.id, 2), LineDelta(999_999, 1)], Direction.DECREMENT)

    assert not out.ok
    assert out.results == []
    assert "999999" in out.error.message
    assert out.error.failed_item_ids == [999_999]
    # resolved prefix is reported for diagnostics, nothing was written
    assert out.error.resolved == [{"item_id": good.id, "item_name": "Pallets", "quantity": 9}]
    assert _qty(good.id) == 9


@pytest.mark.parametrize("bad_qty", [0, -2, "three", 1.5, None, True])
def test_invalid_quantity_rejects_batch(make_item, bad_qty):
    item = make_item(quantity=9)

    out = apply_delta([{"item_id": item.id, "quantity": bad_qty}], Direction.DECREMENT)

    assert not out.ok
    assert "Invalid" in out.error.message
    assert _qty(item.id) == 9


def test_empty_batch_is_an_error():
    out = apply_delta([], Direction.DECREMENT)
    assert out.error.message == "No items found in purchase order"


def test_failing_item_is_skipped_and_others_applied(make_item, monkeypatch):
    a = make_item(quantity=5)
    b = make_item(quantity=5)
    c = make_item(quantity=5)

    real_apply = inventory._apply_one

    def flaky(item_id, qty, direction):
        if item_id == b.id:
            raise OperationalError("UPDATE inventory_item", {}, Exception("database is locked"))
        return real_apply(item_id, qty, direction)

    monkeypatch.setattr(inventory, "_apply_one", flaky)

    out = apply_delta([LineDelta(a.id, 1), LineDelta(b.id, 1), LineDelta(c.id, 1)], Direction.DECREMENT)

    assert not out.ok
    assert [r.item_id for r in out.results] == [a.id, c.id]
    assert out.error.failed_item_ids == [b.id]
    assert f"Item {b.id}" in out.error.message
    assert (_qty(a.id), _qty(b.id), _qty(c.id)) == (4, 5, 4)


def test_crossed_low_stock_only_on_crossing(make_item):
    above = make_item(quantity=12, min_stock_level=10)
    already_low = make_item(quantity=4, min_stock_level=10)

    out = apply_delta([LineDelta(above.id, 3), LineDelta(already_low.id, 1)], Direction.DECREMENT)

    crossed = {r.item_id: r.crossed_low_stock for r in out.results}
    assert crossed == {above.id: True, already_low.id: False}
