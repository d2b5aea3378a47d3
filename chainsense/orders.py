# chainsense/orders.py
from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from chainsense.errors import NotFoundError
from chainsense.extensions import db
from chainsense.models import PurchaseOrder
from chainsense.services.fulfillment import transition
from chainsense.utils.guards import ensure_vendor_scope

orders_bp = Blueprint("orders", __name__, url_prefix="/purchase-orders")


# -------------------------------------------------------------------
# Purchase order status
# PUT /purchase-orders/<id>   {"status": "pending|completed|cancelled"}
# -------------------------------------------------------------------
@orders_bp.route("/<int:order_id>", methods=["PUT"])
@login_required
def update_order(order_id: int):
    data = request.get_json(silent=True) or {}

    order = db.session.get(PurchaseOrder, order_id)
    if order is None:
        raise NotFoundError("Purchase order not found")
    ensure_vendor_scope(order.vendor_id)

    result = transition(order_id, data.get("status"), current_user)

    body = {"message": "Purchase order updated successfully"}
    body.update(result.to_dict())
    return jsonify(body), 200
