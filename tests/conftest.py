"""
Shared fixtures: a TestConfig app on in-memory SQLite with a fresh schema per
test, a FlaskLoginClient for acting as a given user, and small factories.
"""
from __future__ import annotations

import itertools
from decimal import Decimal

import pytest
from flask import g
from flask_login import FlaskLoginClient

from chainsense import create_app
from chainsense.extensions import db
from chainsense.models import (
    InventoryItem,
    PurchaseOrder,
    PurchaseOrderItem,
    User,
    Vendor,
)
from chainsense.settings import TestConfig
from chainsense.utils.passwords import hash_password

PASSWORD = "Sup3rSecret99"

_seq = itertools.count(1)


@pytest.fixture
def app(tmp_path):
    app = create_app(TestConfig)
    app.config["INVOICE_PDF_DIR"] = str(tmp_path / "invoices")
    app.test_client_class = FlaskLoginClient

    @app.before_request
    def _reset_request_globals():
        # Tests keep one app context open across requests.
        g.pop("_login_user", None)
        g.pop("current_vendor", None)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client_as(app):
    """client_as(user) -> test client logged in as that user."""
    def _client(user=None):
        if user is None:
            return app.test_client()
        return app.test_client(user=user)
    return _client


# =========================================================
# Factories
# =========================================================
@pytest.fixture
def make_user(app):
    def _make(role="admin", **kw):
        n = next(_seq)
        user = User(
            username=kw.pop("username", f"{role}{n}"),
            email=kw.pop("email", f"{role}{n}@example.com"),
            role=role,
            password_hash=hash_password(kw.pop("password", PASSWORD)),
            **kw,
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def make_vendor(app):
    def _make(user=None, **kw):
        n = next(_seq)
        vendor = Vendor(
            name=kw.pop("name", f"Vendor {n}"),
            user_id=user.id if user is not None else None,
            **kw,
        )
        db.session.add(vendor)
        db.session.commit()
        return vendor
    return _make


@pytest.fixture
def make_item(app):
    def _make(quantity=0, **kw):
        n = next(_seq)
        item = InventoryItem(
            name=kw.pop("name", f"Item {n}"),
            sku=kw.pop("sku", f"SKU-{n}"),
            quantity=quantity,
            **kw,
        )
        db.session.add(item)
        db.session.commit()
        return item
    return _make


@pytest.fixture
def make_order(app):
    """
    make_order(vendor, creator, [(item, qty, unit_price), ...], total=None)
    total defaults to the sum of line subtotals.
    """
    def _make(vendor, creator, lines=(), *, status="pending", total=None, **kw):
        n = next(_seq)
        order = PurchaseOrder(
            po_number=kw.pop("po_number", f"PO-{n:05d}"),
            vendor_id=vendor.id,
            created_by_user_id=creator.id,
            status=status,
            **kw,
        )
        running = Decimal("0.00")
        for item, qty, price in lines:
            price = Decimal(str(price))
            subtotal = price * qty
            running += subtotal
            order.items.append(
                PurchaseOrderItem(item_id=item.id, quantity=qty, unit_price=price, subtotal=subtotal)
            )
        order.total_amount = Decimal(str(total)) if total is not None else running
        db.session.add(order)
        db.session.commit()
        return order
    return _make


@pytest.fixture
def fulfilled_invoice(admin, make_vendor, make_item, make_order):
    """A completed order's invoice (amount due 100.00), created through the generator."""
    from chainsense.services.invoices import generate_for_order

    vendor = make_vendor(payment_terms="Net 15", address="12 Dock Road")
    item = make_item(quantity=50)
    order = make_order(vendor, admin, [(item, 10, "10.00")], status="completed")
    return generate_for_order(order.id, admin.id).invoice
