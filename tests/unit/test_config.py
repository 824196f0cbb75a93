"""
Unit tests for configuration loading.
"""
import json
from decimal import Decimal

import pytest

from config import Config


@pytest.fixture
def settings_dir(temp_dir, monkeypatch):
    """Point CONFIG_DIR at an empty temp directory."""
    config_dir = temp_dir / "config"
    config_dir.mkdir()
    monkeypatch.setenv("CONFIG_DIR", str(config_dir))
    return config_dir


def _write_settings(config_dir, settings: dict) -> None:
    (config_dir / "ledger_settings.json").write_text(json.dumps(settings), encoding="utf-8")


@pytest.mark.unit
class TestConfig:
    """Tests for Config defaults and the ledger_settings.json overlay."""

    def test_defaults(self, settings_dir):
        config = Config()
        assert config.units == ["Kg", "g", "L", "ml", "Pcs"]
        assert config.default_unit == "Kg"
        assert config.gst_rates == [Decimal(r) for r in ("0", "5", "12", "18", "28")]
        assert config.default_gst_rate == Decimal("5")

    def test_overlay(self, settings_dir):
        _write_settings(settings_dir, {
            "_comment": "ignored",
            "units": ["Pcs", "Box"],
            "gst_rates": [0, 12.5],
            "default_gst_rate": 12.5,
            "max_future_days": 3,
        })
        config = Config()
        assert config.units == ["Pcs", "Box"]
        assert config.gst_rates == [Decimal("0"), Decimal("12.5")]
        assert config.default_gst_rate == Decimal("12.5")
        assert config.max_future_days == 3

    def test_default_rate_outside_tiers_falls_back_to_first_tier(self, settings_dir):
        _write_settings(settings_dir, {"gst_rates": [12, 18], "default_gst_rate": 5})
        config = Config()
        assert config.default_gst_rate == Decimal("12")

    def test_unreadable_settings_file_keeps_defaults(self, settings_dir):
        (settings_dir / "ledger_settings.json").write_text("{not json", encoding="utf-8")
        config = Config()
        assert config.units == ["Kg", "g", "L", "ml", "Pcs"]
        assert config.default_gst_rate == Decimal("5")
