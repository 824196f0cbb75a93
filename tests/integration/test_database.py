"""
Integration tests for database operations.
"""
import json
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from models.payment import PaymentOut
from models.supplier import Supplier
from purchasing.database import Database
from purchasing.ledger import PurchaseLedger


def _purchase(config, invoice_number, supplier="ABC Traders"):
    ledger = PurchaseLedger(config, invoice_number=invoice_number,
                            billing_date=date(2026, 10, 1))
    ledger.set_supplier_name(supplier)
    return ledger.snapshot()


def _payment(**overrides) -> PaymentOut:
    fields = {
        "invoice_number": "PUR-000001",
        "supplier_name": "ABC Traders",
        "billing_address": "12 Market Road, Pune",
        "payment_date": date(2026, 10, 5),
        "amount_paid": 139.0,
    }
    fields.update(overrides)
    return PaymentOut(**fields)


@pytest.mark.integration
class TestInvoiceNumbers:
    """Tests for the invoice number sequence."""

    def test_sequence_is_monotonic(self, test_db):
        assert test_db.next_invoice_number() == "PUR-000001"
        assert test_db.next_invoice_number() == "PUR-000002"
        assert test_db.next_invoice_number() == "PUR-000003"

    def test_sequence_survives_reopen(self, test_db, test_config):
        test_db.next_invoice_number()
        reopened = Database(test_config.db_path)
        assert reopened.next_invoice_number() == "PUR-000002"


@pytest.mark.integration
class TestPurchases:
    """Tests for saving and reading purchase snapshots."""

    def test_save_and_get_purchase(self, test_db, test_config):
        invoice = _purchase(test_config, "PUR-000001")
        test_db.save_purchase(invoice)

        loaded = test_db.get_purchase("PUR-000001")
        assert loaded is not None
        assert loaded.supplier_name == "ABC Traders"
        assert loaded.billing_date == date(2026, 10, 1)
        assert loaded.line_items == invoice.line_items
        assert loaded.totals.amount == Decimal("139")
        assert loaded.totals.quantity == 6

    def test_get_missing_purchase(self, test_db):
        assert test_db.get_purchase("PUR-999999") is None

    def test_duplicate_invoice_number_rejected(self, test_db, test_config):
        invoice = _purchase(test_config, "PUR-000001")
        test_db.save_purchase(invoice)
        with pytest.raises(ValueError, match="already exists"):
            test_db.save_purchase(invoice)

    def test_list_purchases_and_search(self, test_db, test_config):
        test_db.save_purchase(_purchase(test_config, "PUR-000001", "ABC Traders"))
        test_db.save_purchase(_purchase(test_config, "PUR-000002", "Fresh Mart Suppliers"))

        rows = test_db.list_purchases()
        assert {r["invoice_number"] for r in rows} == {"PUR-000001", "PUR-000002"}
        assert "snapshot" not in rows[0]
        assert rows[0]["total_amount"] == "139"
        assert rows[0]["line_count"] == 2

        found = test_db.list_purchases(search="fresh")
        assert [r["invoice_number"] for r in found] == ["PUR-000002"]

    def test_delete_purchase(self, test_db, test_config):
        test_db.save_purchase(_purchase(test_config, "PUR-000001"))
        assert test_db.delete_purchase("PUR-000001") is True
        assert test_db.get_purchase("PUR-000001") is None
        assert test_db.delete_purchase("PUR-000001") is False

    def test_purchase_audit_trail(self, test_db, test_config):
        test_db.save_purchase(_purchase(test_config, "PUR-000001"), actor="clerk")
        test_db.delete_purchase("PUR-000001", actor="manager")

        entries = test_db.get_audit_log("purchase", "PUR-000001")
        assert [e["action"] for e in entries] == ["created", "deleted"]
        assert [e["actor"] for e in entries] == ["clerk", "manager"]
        assert json.loads(entries[0]["detail"]) == {"total_amount": "139"}


@pytest.mark.integration
class TestPayments:
    """Tests for payment-out records."""

    def test_create_and_get_payment(self, test_db):
        saved = test_db.create_payment(_payment())
        assert saved.id is not None

        loaded = test_db.get_payment(saved.id)
        assert loaded == saved
        assert loaded.payment_date == date(2026, 10, 5)

    def test_list_payments_newest_first(self, test_db):
        test_db.create_payment(_payment(payment_date=date(2026, 9, 1)))
        test_db.create_payment(_payment(invoice_number="PUR-000002",
                                        supplier_name="XYZ Agro Ltd.",
                                        payment_date=date(2026, 10, 1)))

        payments = test_db.list_payments()
        assert [p.invoice_number for p in payments] == ["PUR-000002", "PUR-000001"]
        assert [p.supplier_name for p in test_db.list_payments(search="xyz")] == ["XYZ Agro Ltd."]

    def test_update_payment(self, test_db):
        saved = test_db.create_payment(_payment())
        updated = test_db.update_payment(saved.id, {"amount_paid": 100.0})

        assert updated.amount_paid == 100.0
        assert test_db.get_payment(saved.id).amount_paid == 100.0
        assert test_db.get_payment(saved.id).supplier_name == "ABC Traders"

    def test_update_payment_rejects_invalid_values(self, test_db):
        saved = test_db.create_payment(_payment())
        with pytest.raises(ValidationError):
            test_db.update_payment(saved.id, {"amount_paid": 0})
        with pytest.raises(ValueError, match="Unknown payment field"):
            test_db.update_payment(saved.id, {"discount": 5})
        assert test_db.get_payment(saved.id).amount_paid == 139.0

    def test_update_missing_payment(self, test_db):
        assert test_db.update_payment(42, {"amount_paid": 1.0}) is None

    def test_delete_payment(self, test_db):
        saved = test_db.create_payment(_payment())
        assert test_db.delete_payment(saved.id) is True
        assert test_db.get_payment(saved.id) is None
        assert test_db.delete_payment(saved.id) is False


@pytest.mark.integration
class TestSuppliers:
    """Tests for the supplier master list."""

    def test_create_and_get_supplier(self, test_db):
        saved = test_db.create_supplier(Supplier(name="ABC Traders", phone="9876543210"))
        assert saved.id is not None
        assert saved.created_at is not None
        assert test_db.get_supplier(saved.id).name == "ABC Traders"

    def test_all_suppliers_sorted_by_name(self, test_db, sample_suppliers):
        names = [s.name for s in test_db.all_suppliers()]
        assert names == ["ABC Traders", "Fresh Mart Suppliers", "XYZ Agro Ltd."]

    def test_list_suppliers_pagination(self, test_db, sample_suppliers):
        page = test_db.list_suppliers(page=2, limit=2)
        assert page["total"] == 3
        assert page["pages"] == 2
        assert page["page"] == 2
        assert page["count"] == 1
        assert page["data"][0].name == "XYZ Agro Ltd."

    def test_list_suppliers_search(self, test_db, sample_suppliers):
        by_name = test_db.list_suppliers(search="mart")
        assert [s.name for s in by_name["data"]] == ["Fresh Mart Suppliers"]
        by_gstin = test_db.list_suppliers(search="29AAACX")
        assert [s.name for s in by_gstin["data"]] == ["XYZ Agro Ltd."]
        none = test_db.list_suppliers(search="nobody")
        assert none["total"] == 0 and none["pages"] == 0 and none["data"] == []

    def test_update_supplier(self, test_db, sample_suppliers):
        abc = sample_suppliers[0]
        updated = test_db.update_supplier(abc.id, {"amount_payable": 1500.0, "phone": "9999999999"})
        assert updated.amount_payable == 1500.0
        assert updated.phone == "9999999999"
        assert updated.gstin == "27AAPFU0939F1ZV"

    def test_update_supplier_validation(self, test_db, sample_suppliers):
        abc = sample_suppliers[0]
        with pytest.raises(ValidationError):
            test_db.update_supplier(abc.id, {"amount_payable": -1})
        with pytest.raises(ValueError, match="Unknown supplier field"):
            test_db.update_supplier(abc.id, {"rating": 5})
        assert test_db.update_supplier(999, {"phone": "1"}) is None

    def test_delete_supplier(self, test_db, sample_suppliers):
        abc = sample_suppliers[0]
        assert test_db.delete_supplier(abc.id) is True
        assert test_db.get_supplier(abc.id) is None
        assert [e["action"] for e in test_db.get_audit_log("supplier", str(abc.id))] == [
            "created", "deleted",
        ]


@pytest.mark.integration
def test_stats(test_db, test_config, sample_suppliers):
    test_db.save_purchase(_purchase(test_config, "PUR-000001"))
    test_db.save_purchase(_purchase(test_config, "PUR-000002"))
    test_db.create_payment(_payment(amount_paid=100.5))

    stats = test_db.get_stats()
    assert stats == {
        "purchases": 2,
        "purchased_total": "278",
        "payments": 1,
        "paid_total": 100.5,
        "suppliers": 3,
    }
