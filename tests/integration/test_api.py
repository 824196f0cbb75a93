"""
API tests for the dashboard backend.
"""
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

import dashboard.app as dashboard_app


@pytest.fixture
def client(test_config, test_db, monkeypatch):
    """TestClient bound to an isolated config and database."""
    monkeypatch.setattr(dashboard_app, "_config", test_config)
    monkeypatch.setattr(dashboard_app, "_db", test_db)
    return TestClient(dashboard_app.app)


@pytest.mark.api
class TestGeneralEndpoints:

    def test_health(self, client, test_config):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.json()["db_exists"] is True

    def test_options(self, client):
        body = client.get("/api/options").json()
        assert body["units"] == ["Kg", "g", "L", "ml", "Pcs"]
        assert body["gst_rates"] == ["0", "5", "12", "18", "28"]
        assert body["default_unit"] == "Kg"
        assert body["default_gst_rate"] == "5"

    def test_stats_empty(self, client):
        assert client.get("/api/stats").json()["purchases"] == 0


@pytest.mark.api
class TestPurchaseEndpoints:

    def test_quote_prices_without_saving(self, client, test_db, sample_purchase_payload):
        resp = client.post("/api/purchases/quote", json=sample_purchase_payload)
        assert resp.status_code == 200

        invoice = resp.json()["invoice"]
        assert [li["amount"] for li in invoice["line_items"]] == ["23.1", "115.5"]
        assert invoice["totals"] == {"quantity": 6, "amount": "139"}
        assert test_db.list_purchases() == []

    def test_quote_accepts_json_numbers(self, client):
        resp = client.post("/api/purchases/quote", json={
            "supplier_name": "ABC Traders",
            "line_items": [{"name": "Oil", "quantity": 2, "unit": "L",
                            "price_per_unit": 100, "gst_rate": 18}],
        })
        assert resp.json()["invoice"]["totals"]["amount"] == "236"

    def test_create_purchase(self, client, sample_purchase_payload, sample_suppliers):
        resp = client.post("/api/purchases", json=sample_purchase_payload)
        assert resp.status_code == 201

        body = resp.json()
        assert body["accepted"] is True
        assert body["invoice_number"] == "PUR-000001"

        fetched = client.get("/api/purchases/PUR-000001")
        assert fetched.status_code == 200
        assert fetched.json()["supplier_name"] == "ABC Traders"

        listed = client.get("/api/purchases", params={"search": "ABC"}).json()
        assert [r["invoice_number"] for r in listed] == ["PUR-000001"]

    def test_create_purchase_rejected(self, client, test_db, sample_purchase_payload):
        payload = dict(sample_purchase_payload, supplier_name="",
                       billing_date=(date.today() + timedelta(days=30)).isoformat())
        resp = client.post("/api/purchases", json=payload)

        assert resp.status_code == 422
        body = resp.json()
        assert body["accepted"] is False
        assert body["error_count"] == 2
        assert {i["type"] for i in body["issues"]} >= {"missing_supplier_name", "billing_date_future"}
        assert test_db.list_purchases() == []

    @pytest.mark.parametrize("line", [
        {"name": "Oil", "quantity": 2, "unit": "lb", "price_per_unit": 100, "gst_rate": 18},
        {"name": "Oil", "quantity": 2, "unit": "L", "price_per_unit": 100, "gst_rate": 7},
    ])
    def test_out_of_set_unit_or_rate_is_rejected(self, client, test_db,
                                                sample_purchase_payload, line):
        payload = dict(sample_purchase_payload, line_items=[line])

        quoted = client.post("/api/purchases/quote", json=payload)
        assert quoted.status_code == 422
        assert "Invalid line item values" in quoted.json()["detail"]

        created = client.post("/api/purchases", json=payload)
        assert created.status_code == 422
        assert test_db.list_purchases() == []
        assert test_db.next_invoice_number() == "PUR-000001"

    def test_large_numbers_do_not_fail_the_quote(self, client):
        resp = client.post("/api/purchases/quote", json={
            "supplier_name": "ABC Traders",
            "line_items": [
                {"name": "Bulk", "quantity": "1" * 30, "unit": "Kg",
                 "price_per_unit": "22", "gst_rate": "5"},
                {"name": "Grain", "quantity": "100000000000000", "unit": "Kg",
                 "price_per_unit": "999999999999999", "gst_rate": "5"},
            ],
        })
        assert resp.status_code == 200
        invoice = resp.json()["invoice"]
        assert invoice["line_items"][0]["quantity"] == 0
        assert invoice["totals"]["quantity"] == 100000000000000

    def test_get_missing_purchase(self, client):
        assert client.get("/api/purchases/PUR-404").status_code == 404
        assert client.get("/api/purchases/PUR-404/print").status_code == 404
        assert client.delete("/api/purchases/PUR-404").status_code == 404

    def test_print_and_delete(self, client, sample_purchase_payload):
        client.post("/api/purchases", json=sample_purchase_payload)

        printed = client.get("/api/purchases/PUR-000001/print")
        assert printed.status_code == 200
        assert printed.headers["content-type"].startswith("text/html")
        assert "Purchase PUR-000001" in printed.text

        deleted = client.delete("/api/purchases/PUR-000001")
        assert deleted.json() == {"invoice_number": "PUR-000001", "deleted": True}
        assert client.get("/api/purchases/PUR-000001").status_code == 404


@pytest.mark.api
class TestPaymentEndpoints:

    @pytest.fixture
    def payment_body(self):
        return {
            "invoice_number": "PUR-000001",
            "supplier_name": "ABC Traders",
            "billing_address": "12 Market Road, Pune",
            "payment_date": "2026-10-05",
            "amount_paid": 139,
        }

    def test_payment_crud(self, client, payment_body):
        created = client.post("/api/payments-out", json=payment_body)
        assert created.status_code == 201
        assert created.json()["message"] == "Payment recorded successfully"
        payment_id = created.json()["payment"]["id"]

        assert client.get(f"/api/payments-out/{payment_id}").json()["amount_paid"] == 139.0
        assert len(client.get("/api/payments-out").json()) == 1

        updated = client.put(f"/api/payments-out/{payment_id}", json={"amount_paid": 50})
        assert updated.json()["message"] == "Payment updated successfully"
        assert updated.json()["payment"]["amount_paid"] == 50.0

        deleted = client.delete(f"/api/payments-out/{payment_id}")
        assert deleted.json() == {"message": "Payment deleted successfully"}
        assert client.get(f"/api/payments-out/{payment_id}").status_code == 404

    def test_invalid_payment(self, client, payment_body):
        resp = client.post("/api/payments-out", json=dict(payment_body, amount_paid=0))
        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("Error recording payment")

        resp = client.post("/api/payments-out", json=dict(payment_body, supplier_name=""))
        assert resp.status_code == 400

    def test_update_invalid_and_missing_payment(self, client, payment_body):
        payment_id = client.post("/api/payments-out", json=payment_body).json()["payment"]["id"]
        bad = client.put(f"/api/payments-out/{payment_id}", json={"amount_paid": -5})
        assert bad.status_code == 400
        assert client.put("/api/payments-out/999", json={"amount_paid": 5}).status_code == 404
        assert client.delete("/api/payments-out/999").status_code == 404


@pytest.mark.api
class TestSupplierEndpoints:

    def test_supplier_crud(self, client):
        created = client.post("/api/suppliers", json={"name": "ABC Traders", "phone": "9876543210"})
        assert created.status_code == 201
        supplier_id = created.json()["id"]

        updated = client.put(f"/api/suppliers/{supplier_id}", json={"gstin": "27AAPFU0939F1ZV"})
        assert updated.json()["gstin"] == "27AAPFU0939F1ZV"
        assert client.get(f"/api/suppliers/{supplier_id}").json()["name"] == "ABC Traders"

        assert client.delete(f"/api/suppliers/{supplier_id}").status_code == 200
        assert client.get(f"/api/suppliers/{supplier_id}").status_code == 404

    def test_create_supplier_requires_name_and_phone(self, client):
        resp = client.post("/api/suppliers", json={"name": "", "phone": "9876543210"})
        assert resp.status_code == 400

    def test_list_suppliers(self, client, sample_suppliers):
        body = client.get("/api/suppliers", params={"limit": 2}).json()
        assert body["success"] is True
        assert body["total"] == 3
        assert body["pages"] == 2
        assert [s["name"] for s in body["data"]] == ["ABC Traders", "Fresh Mart Suppliers"]

    def test_match_supplier(self, client, sample_suppliers):
        by_name = client.get("/api/suppliers/match", params={"name": "abc trader"})
        assert by_name.status_code == 200
        assert by_name.json()["name"] == "ABC Traders"

        by_gstin = client.get("/api/suppliers/match", params={"gstin": "29 AAACX 1234 B1Z5"})
        assert by_gstin.json()["name"] == "XYZ Agro Ltd."

        assert client.get("/api/suppliers/match", params={"name": "Nobody"}).status_code == 404
