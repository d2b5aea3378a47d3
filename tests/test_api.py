from __future__ import annotations

from decimal import Decimal

import pytest

from chainsense.extensions import db
from chainsense.models import InventoryItem, Invoice


@pytest.fixture
def vendor_account(make_user, make_vendor):
    user = make_user("vendor")
    return user, make_vendor(user=user, email="ap@vendor.example")


@pytest.fixture
def order(admin, vendor_account, make_item, make_order):
    _, vendor = vendor_account
    item = make_item(quantity=10)
    return make_order(vendor, admin, [(item, 4, "25.00")])


# =========================================================
# PUT /purchase-orders/<id>
# =========================================================
def test_complete_order_over_http(client_as, admin, order):
    resp = client_as(admin).put(f"/purchase-orders/{order.id}", json={"status": "completed"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["message"] == "Purchase order updated successfully"
    assert body["previous_status"] == "pending"
    assert body["inventory_updated"] is True
    assert body["inventory_details"][0]["new_quantity"] == 6
    assert body["billing"]["created"] is True
    assert body["billing"]["invoice"]["amount_due"] == 100.0
    assert body["debug"]["should_update"] is True


def test_repeat_over_http(client_as, admin, order):
    client = client_as(admin)
    client.put(f"/purchase-orders/{order.id}", json={"status": "completed"})

    body = client.put(f"/purchase-orders/{order.id}", json={"status": "completed"}).get_json()

    assert body["inventory_updated"] is False
    assert body["already_completed"] is True
    assert body["billing"]["already_existed"] is True


def test_missing_status_is_400(client_as, admin, order):
    resp = client_as(admin).put(f"/purchase-orders/{order.id}", json={})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Status is required"


def test_unknown_order_is_404(client_as, admin):
    resp = client_as(admin).put("/purchase-orders/9999", json={"status": "completed"})
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Purchase order not found"


def test_anonymous_is_401(client_as, order):
    resp = client_as().put(f"/purchase-orders/{order.id}", json={"status": "completed"})
    assert resp.status_code == 401


def test_vendor_can_complete_own_order(client_as, vendor_account, order):
    user, _ = vendor_account
    resp = client_as(user).put(f"/purchase-orders/{order.id}", json={"status": "completed"})
    assert resp.status_code == 200


def test_vendor_cannot_touch_other_vendors_order(client_as, make_user, make_vendor, order):
    other = make_user("vendor")
    make_vendor(user=other)

    resp = client_as(other).put(f"/purchase-orders/{order.id}", json={"status": "completed"})

    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Access denied"
    assert db.session.get(InventoryItem, order.items[0].item_id).quantity == 10


# =========================================================
# Billing
# =========================================================
@pytest.fixture
def invoice(client_as, admin, order):
    body = client_as(admin).put(f"/purchase-orders/{order.id}", json={"status": "completed"}).get_json()
    return db.session.get(Invoice, body["billing"]["invoice"]["id"])


def test_pdf_download(client_as, admin, invoice):
    resp = client_as(admin).get(f"/billing/invoices/{invoice.id}/pdf")

    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    disposition = resp.headers["Content-Disposition"]
    assert disposition.startswith("attachment")
    assert f"invoice-{invoice.invoice_number}.pdf" in disposition
    assert resp.data.startswith(b"%PDF")
    resp.close()


def test_pdf_force_rerenders(client_as, admin, invoice, monkeypatch):
    from chainsense.services import invoice_files

    calls = []
    real = invoice_files.render_invoice_pdf
    monkeypatch.setattr(
        invoice_files, "render_invoice_pdf", lambda inv, items, **kw: calls.append(1) or real(inv, items, **kw)
    )
    client = client_as(admin)

    client.get(f"/billing/invoices/{invoice.id}/pdf").close()
    client.get(f"/billing/invoices/{invoice.id}/pdf?force=1").close()

    assert calls == [1]


def test_pdf_render_error_is_500(client_as, admin, invoice, monkeypatch):
    def broken(inv, items, **kw):
        raise ValueError("bad glyph")

    monkeypatch.setattr("chainsense.services.invoice_files.render_invoice_pdf", broken)

    resp = client_as(admin).get(f"/billing/invoices/{invoice.id}/pdf?force=true")

    assert resp.status_code == 500
    assert resp.get_json() == {"message": "Failed to generate invoice PDF", "error": "bad glyph"}


def test_invoice_pdf_unknown(client_as, admin):
    assert client_as(admin).get("/billing/invoices/777/pdf").status_code == 404


def test_vendor_sees_only_own_invoices(client_as, make_user, make_vendor, vendor_account, invoice):
    owner, _ = vendor_account
    stranger = make_user("vendor")
    make_vendor(user=stranger)

    assert client_as(owner).get(f"/billing/invoices/{invoice.id}").status_code == 200
    assert client_as(stranger).get(f"/billing/invoices/{invoice.id}").status_code == 403
    assert client_as(stranger).get(f"/billing/invoices/{invoice.id}/pdf").status_code == 403


def test_vendor_login_without_vendor_record_is_denied(client_as, make_user, invoice):
    orphan = make_user("vendor")
    assert client_as(orphan).get(f"/billing/invoices/{invoice.id}").status_code == 403


def test_invoice_detail(client_as, admin, invoice):
    body = client_as(admin).get(f"/billing/invoices/{invoice.id}").get_json()["invoice"]

    assert body["invoice_number"] == invoice.invoice_number
    assert body["amount_remaining"] == 100.0
    assert body["is_overdue"] is False
    assert len(body["items"]) == 1
    assert body["payments"] == []


def test_record_payments_over_http(client_as, admin, invoice):
    client = client_as(admin)
    url = f"/billing/invoices/{invoice.id}/payments"

    resp = client.post(url, json={"amount": 60, "method": "bank", "reference": "UTR-881"})
    assert resp.status_code == 201
    body = resp.get_json()["invoice"]
    assert body["status"] == "partial"
    assert body["amount_remaining"] == 40.0

    body = client.post(url, json={"amount": "40.00"}).get_json()["invoice"]
    assert body["status"] == "paid"
    assert [p["amount"] for p in body["payments"]] == [40.0, 60.0]

    resp = client.post(url, json={"amount": 1})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invoice is already fully paid"


def test_payment_validation_over_http(client_as, admin, invoice):
    url = f"/billing/invoices/{invoice.id}/payments"
    client = client_as(admin)

    assert client.post(url, json={"amount": 0}).status_code == 400
    resp = client.post(url, json={"amount": 150})
    assert resp.status_code == 400
    assert resp.get_json() == {"message": "Payment exceeds remaining balance", "amount_remaining": 100.0}


@pytest.mark.parametrize("role", ["staff", "vendor"])
def test_payments_need_admin_or_manager(client_as, make_user, invoice, role):
    resp = client_as(make_user(role)).post(f"/billing/invoices/{invoice.id}/payments", json={"amount": 10})
    assert resp.status_code == 403


def test_manager_may_record_payment(client_as, make_user, invoice):
    resp = client_as(make_user("manager")).post(f"/billing/invoices/{invoice.id}/payments", json={"amount": 10})
    assert resp.status_code == 201


def test_unknown_route_is_json_404(client_as, admin):
    resp = client_as(admin).get("/nope")
    assert resp.status_code == 404
    assert resp.get_json() == {"message": "Not found"}


def test_pdf_storage_failure_is_json_500(app, client_as, admin, invoice, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"")
    app.config["INVOICE_PDF_DIR"] = str(blocker / "invoices")

    resp = client_as(admin).get(f"/billing/invoices/{invoice.id}/pdf")

    assert resp.status_code == 500
    assert resp.get_json()["message"] == "Failed to generate invoice PDF"


def test_non_text_payment_fields_are_400(client_as, admin, invoice):
    resp = client_as(admin).post(
        f"/billing/invoices/{invoice.id}/payments",
        json={"amount": 10, "method": {"kind": "bank"}},
    )

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "method must be text"
    assert Decimal(db.session.get(Invoice, invoice.id).amount_paid) == Decimal("0")
