"""
Central configuration for the purchasing back office.

Paths, enumerated units and tax tiers, and validation thresholds are all
defined here. Override via environment variables or by passing a Config
instance directly.

Settings priority (highest wins):
  1. Environment variables
  2. config/ledger_settings.json  (admin-editable, persisted)
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

# Default data locations (relative to project root)
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"
DEFAULT_DB_PATH    = DEFAULT_OUTPUT_DIR / "purchasing.db"

# Unit-of-measure symbols offered on a purchase line, in display order.
# The first entry is the default for new lines.
DEFAULT_UNITS = ["Kg", "g", "L", "ml", "Pcs"]

# GST tiers (percent)
DEFAULT_GST_RATES = [Decimal("0"), Decimal("5"), Decimal("12"), Decimal("18"), Decimal("28")]
DEFAULT_GST_RATE  = Decimal("5")


@dataclass
class Config:
    # --- Storage ---
    output_dir: Path = field(default_factory=lambda: DEFAULT_OUTPUT_DIR)
    db_path:    Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )

    # --- Currency (presentation only, amounts are never converted) ---
    currency: str = field(
        default_factory=lambda: os.getenv("CURRENCY", "INR")
    )
    currency_symbol: str = field(
        default_factory=lambda: os.getenv("CURRENCY_SYMBOL", "₹")
    )

    # --- Enumerated line item values ---
    units:            list[str]     = field(default_factory=lambda: list(DEFAULT_UNITS))
    gst_rates:        list[Decimal] = field(default_factory=lambda: list(DEFAULT_GST_RATES))
    default_gst_rate: Decimal       = DEFAULT_GST_RATE

    # --- Submission validation thresholds ---
    max_future_days:       int = 7      # Error if billing date is this far ahead
    max_purchase_age_days: int = 365    # Warn if billing date is older than this

    # --- Supplier matching ---
    supplier_fuzzy_threshold: int = 75  # Minimum rapidfuzz score (0-100)

    def __post_init__(self) -> None:
        """
        Overlay runtime-tunable settings from ledger_settings.json if present,
        then make sure the default GST rate is one of the tiers.
        """
        config_dir = Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
        settings_file = config_dir / "ledger_settings.json"
        if settings_file.exists():
            self._load_settings(settings_file)

        if self.gst_rates and self.default_gst_rate not in self.gst_rates:
            logger.warning(
                "default_gst_rate %s is not a configured GST tier; using %s",
                self.default_gst_rate, self.gst_rates[0],
            )
            self.default_gst_rate = self.gst_rates[0]

    def _load_settings(self, settings_file: Path) -> None:
        _type_map: dict[str, type] = {
            "currency":                 str,
            "currency_symbol":          str,
            "default_gst_rate":         _to_decimal,
            "max_future_days":          int,
            "max_purchase_age_days":    int,
            "supplier_fuzzy_threshold": int,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key == "units":
                    self.units = [str(u) for u in val]
                elif key == "gst_rates":
                    self.gst_rates = [_to_decimal(r) for r in val]
                elif key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load ledger_settings.json: %s", exc)

    @property
    def default_unit(self) -> str:
        return self.units[0]

    def ensure_output_dir(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)


def _to_decimal(value) -> Decimal:
    # JSON 0.1 -> Decimal("0.1")
    return Decimal(str(value))
