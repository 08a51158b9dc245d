from decimal import Decimal
from io import BytesIO

import pytest
from openpyxl import load_workbook

from conftest import SHOP

BASE = f"/shops/{SHOP}/payments"


@pytest.fixture
def db(session_factory):
    # Factory objects stay readable without reopening a transaction on the shared connection
    session = session_factory(expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()


def _receipt_body(customer, amount, mode="cash", **extra):
    body = {
        "transaction_type": "receipt",
        "payment_mode": mode,
        "amount": str(amount),
        "party": {"party_type": "customer", "party_id": customer.id, "party_name": customer.name},
    }
    body.update(extra)
    return body


def test_create_and_read_payment(client, make_customer, make_sale):
    customer = make_customer()
    sale = make_sale("10000", customer)

    response = client.post(f"{BASE}/", json=_receipt_body(
        customer, 4000, reference={"reference_type": "sale", "reference_id": sale.id},
    ))

    assert response.status_code == 201
    outcome = response.json()
    assert outcome["issues"] == []
    payment = outcome["payment"]
    assert payment["payment_number"] == "PAY000001"
    assert payment["status"] == "completed"
    assert payment["created_by"] == "cashier@shop-1"

    fetched = client.get(f"{BASE}/{payment['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["reference_number"] == sale.sale_number


def test_missing_headers_are_rejected(client):
    response = client.get(f"{BASE}/", headers={"X-Tenant-ID": ""})
    assert response.status_code == 400


def test_business_errors_map_to_status_codes(client, make_customer, make_sale):
    customer = make_customer()
    sale = make_sale("1000", customer)

    too_much = client.post(f"{BASE}/", json=_receipt_body(customer, 5000, reference={"reference_type": "sale", "reference_id": sale.id}))
    assert too_much.status_code == 422
    assert too_much.json()["error_code"] == "UNPROCESSABLE"

    zero = client.post(f"{BASE}/", json=_receipt_body(customer, 0))
    assert zero.status_code == 400
    assert zero.json()["error_code"] == "VALIDATION_ERROR"

    missing = client.get(f"{BASE}/9999")
    assert missing.status_code == 404


def test_invalid_transition_names_both_states(client, make_customer):
    payment = client.post(f"{BASE}/", json=_receipt_body(make_customer(), 100, mode="card")).json()["payment"]
    client.post(f"{BASE}/{payment['id']}/status", json={"status": "failed"})

    response = client.post(f"{BASE}/{payment['id']}/status", json={"status": "completed"})

    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "INVALID_TRANSITION"
    assert body["details"]["from"] == "failed"
    assert body["details"]["to"] == "completed"


def test_cheque_clear_and_reconcile_flow(client, make_customer):
    customer = make_customer()
    payment = client.post(f"{BASE}/", json=_receipt_body(
        customer, 2500, mode="cheque", cheque={"cheque_number": "556677", "bank_name": "ICICI Bank"},
    )).json()["payment"]

    pending = client.get(f"{BASE}/cheques/pending").json()
    assert [p["id"] for p in pending] == [payment["id"]]

    cleared = client.post(f"{BASE}/{payment['id']}/cheque/clear", json={"notes": "Cleared same day"})
    assert cleared.status_code == 200
    assert cleared.json()["payment"]["cheque_status"] == "cleared"

    reconciled = client.post(f"{BASE}/{payment['id']}/reconcile", json={"reconciled_with": "STMT-77", "discrepancy": "0"})
    assert reconciled.status_code == 200
    assert reconciled.json()["is_reconciled"] is True

    again = client.post(f"{BASE}/{payment['id']}/reconcile", json={"reconciled_with": "STMT-78"})
    assert again.status_code == 409

    summary = client.get(f"{BASE}/reconciliation/summary").json()
    assert summary["reconciled"]["count"] == 1


def test_bulk_reconcile_reports_counts(client, make_customer):
    customer = make_customer()
    ids = [client.post(f"{BASE}/", json=_receipt_body(customer, 100)).json()["payment"]["id"] for _ in range(2)]

    response = client.post(f"{BASE}/reconcile/bulk", json={"payment_ids": ids + [4040], "reconciled_with": "STMT-9"})

    assert response.status_code == 200
    assert response.json() == {"reconciled_count": 2, "skipped_count": 1, "total_provided": 3, "skipped_ids": [4040]}


def test_refund_endpoint(client, make_customer):
    payment = client.post(f"{BASE}/", json=_receipt_body(make_customer(), 900)).json()["payment"]

    response = client.post(f"{BASE}/{payment['id']}/refund", json={
        "refund_amount": "900", "refund_mode": "cash", "refund_reason": "Size mismatch",
    })

    assert response.status_code == 201
    refund = response.json()["payment"]
    assert refund["payment_number"] == "REF000001"
    assert refund["transaction_type"] == "payment"
    assert client.get(f"{BASE}/{payment['id']}").json()["status"] == "refunded"
    assert [r["id"] for r in client.get(f"{BASE}/refunds").json()] == [refund["id"]]


def test_list_filters_and_search(client, make_customer):
    customer = make_customer(name="Anjali Mehta")
    client.post(f"{BASE}/", json=_receipt_body(customer, 100))
    client.post(f"{BASE}/", json=_receipt_body(customer, 5000, mode="upi", transaction_id="UPI-998877"))

    assert len(client.get(f"{BASE}/", params={"payment_mode": "upi"}).json()) == 1
    assert len(client.get(f"{BASE}/", params={"min_amount": "1000"}).json()) == 1
    assert len(client.get(f"{BASE}/", params={"search": "998877"}).json()) == 1
    assert len(client.get(f"{BASE}/", params={"search": "Anjali"}).json()) == 2


def test_party_summary(client, make_customer):
    customer = make_customer()
    client.post(f"{BASE}/", json=_receipt_body(customer, 1000))
    client.post(f"{BASE}/", json=_receipt_body(customer, 300, mode="card"))

    summary = client.get(f"{BASE}/by-party/customer/{customer.id}/summary").json()

    assert float(summary["total_received"]) == 1000
    assert float(summary["pending_received"]) == 300
    assert summary["payment_count"] == 2
    assert float(summary["balance"]) == -1300


def test_export_workbook(client, make_customer):
    customer = make_customer()
    ids = [client.post(f"{BASE}/", json=_receipt_body(customer, amount)).json()["payment"]["id"] for amount in (100, 250)]

    response = client.post(f"{BASE}/export", json={"payment_ids": ids + [31337]})

    assert response.status_code == 200
    assert response.headers["x-exported-count"] == "2"
    assert response.headers["x-skipped-count"] == "1"
    sheet = load_workbook(BytesIO(response.content)).active
    assert sheet.cell(row=1, column=1).value == "Payment No"
    assert [sheet.cell(row=r, column=1).value for r in (2, 3)] == ["PAY000001", "PAY000002"]


def test_order_status_endpoint(client, make_order):
    order = make_order()

    confirmed = client.patch(f"/shops/{SHOP}/orders/{order.id}/status", json={"status": "confirmed"})
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    invalid = client.patch(f"/shops/{SHOP}/orders/{order.id}/status", json={"status": "delivered"})
    assert invalid.status_code == 409


def test_shop_settings_drive_approval(client, make_customer):
    put = client.put(f"/shops/{SHOP}/settings/", json={"name": "payment_approval_threshold", "value": "1000"})
    assert put.status_code == 200

    payment = client.post(f"{BASE}/", json=_receipt_body(make_customer(), 1500)).json()["payment"]
    assert payment["requires_approval"] is True

    approved = client.post(f"{BASE}/{payment['id']}/approve")
    assert approved.json()["approval_status"] == "approved"


def test_collection_and_dashboard_routes(client, make_customer):
    customer = make_customer()
    client.post(f"{BASE}/", json=_receipt_body(customer, 1200))
    client.post(f"{BASE}/", json=_receipt_body(customer, 300, mode="upi", transaction_id="UPI-4410"))

    cash = client.get(f"{BASE}/analytics/cash-collection")
    assert cash.status_code == 200
    assert cash.json()["cash_received"]["count"] == 1
    assert Decimal(cash.json()["net_cash_balance"]) == Decimal("1200")

    digital = client.get(f"{BASE}/analytics/digital-collection")
    assert digital.status_code == 200
    assert [item["payment_mode"] for item in digital.json()["breakdown"]] == ["upi"]

    by_mode = client.get(f"{BASE}/analytics/by-mode")
    assert [item["payment_mode"] for item in by_mode.json()] == ["cash", "upi"]

    analytics = client.get(f"{BASE}/analytics", params={"group_by": "month"})
    assert analytics.status_code == 200
    assert analytics.json()["summary"]["total_receipts"]["count"] == 2
    assert client.get(f"{BASE}/analytics", params={"group_by": "year"}).status_code == 400

    dashboard = client.get(f"{BASE}/dashboard")
    assert dashboard.status_code == 200
    assert dashboard.json()["unreconciled_count"] == 2
    assert len(dashboard.json()["recent_payments"]) == 2


def test_clearing_payment_date_is_rejected(client, make_customer):
    created = client.post(f"{BASE}/", json=_receipt_body(make_customer(), 500, mode="card")).json()["payment"]

    response = client.patch(f"{BASE}/{created['id']}", json={"payment_date": None})

    assert response.status_code == 400
    assert client.get(f"{BASE}/{created['id']}").json()["payment_date"] is not None
