"""
Pytest configuration and shared fixtures for the purchasing test suite.
"""
import os
import shutil
import tempfile
from datetime import date
from pathlib import Path
from typing import Generator

import pytest

# Run from the project root so relative paths resolve
PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="purchasing_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path, monkeypatch) -> "Config":
    """Provide a test configuration with isolated directories."""
    # Keep a developer's config/ledger_settings.json out of the tests
    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    from config import Config

    config = Config()
    config.output_dir = temp_dir / "output"
    config.db_path = temp_dir / "output" / "purchasing.db"
    config.currency = "INR"
    config.currency_symbol = "₹"
    config.ensure_output_dir()
    return config


@pytest.fixture
def test_db(test_config) -> "Database":
    """Provide a test database instance."""
    from purchasing.database import Database
    return Database(test_config.db_path)


@pytest.fixture
def blank_ledger(test_config) -> "PurchaseLedger":
    """A ledger holding one blank line item."""
    from purchasing.ledger import PurchaseLedger
    return PurchaseLedger(test_config, invoice_number="PUR-TEST-1", seed_items=())


@pytest.fixture
def rice_ledger(test_config) -> "PurchaseLedger":
    """A ledger holding a single line: 1 Kg of rice at 22 with 5 % GST."""
    from purchasing.ledger import PurchaseLedger
    return PurchaseLedger(
        test_config,
        invoice_number="PUR-TEST-2",
        seed_items=[
            {"name": "Rice", "quantity": 1, "unit": "Kg", "price_per_unit": 22, "gst_rate": 5},
        ],
    )


@pytest.fixture
def sample_purchase_payload() -> dict:
    """Return a complete purchase payload as the entry form would post it."""
    return {
        "supplier_name": "ABC Traders",
        "billing_address": "12 Market Road, Pune",
        "billing_date": date.today().isoformat(),
        "line_items": [
            {"name": "Rice", "quantity": "1", "unit": "Kg", "price_per_unit": "22", "gst_rate": "5"},
            {"name": "Rice", "quantity": "5", "unit": "Kg", "price_per_unit": "22", "gst_rate": "5"},
        ],
    }


@pytest.fixture
def sample_suppliers(test_db) -> list:
    """Create three suppliers in the test database."""
    from models.supplier import Supplier

    records = [
        Supplier(name="ABC Traders", phone="9876543210", email="accounts@abctraders.in",
                 address="12 Market Road, Pune", gstin="27AAPFU0939F1ZV"),
        Supplier(name="XYZ Agro Ltd.", phone="9123456780", gstin="29AAACX1234B1Z5"),
        Supplier(name="Fresh Mart Suppliers", phone="9000000001", email="hello@freshmart.in"),
    ]
    return [test_db.create_supplier(s) for s in records]


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")
