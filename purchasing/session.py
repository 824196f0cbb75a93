"""
Purchase entry sessions.

A PurchaseEntrySession is one pass through the "Add purchase" form:

  1. open      -- a ledger is created with an invoice number from the database
  2. edit      -- callers drive the ledger's setters
  3. submit    -- snapshot -> PurchaseValidator -> Database.save_purchase
                  On success the session closes and the ledger is discarded.
                  On validation errors nothing is saved and the session stays
                  open so the operator can fix the form.
  4. cancel    -- discard the ledger; nothing is persisted

build_ledger() applies a complete request payload to a fresh ledger through
the same setters, for the API and CLI where the whole form arrives at once.
Unlike keystrokes in the form, a payload unit or GST rate outside the
configured sets is rejected with ValueError instead of being ignored.
"""
import logging
from typing import Optional

from config import Config
from models.purchase import PurchaseInvoice
from models.result import SubmissionResult
from .database import Database
from .ledger import PurchaseLedger
from .pricing import parse_decimal
from .supplier_directory import SupplierDirectory
from .validator import PurchaseValidator

logger = logging.getLogger(__name__)


class SessionClosedError(RuntimeError):
    """Raised when a submitted or cancelled session is used again."""


def build_ledger(
    payload: dict,
    config: Optional[Config] = None,
    invoice_number: Optional[str] = None,
) -> PurchaseLedger:
    """
    Build a ledger from a purchase payload.

    Payload keys (all optional):
      supplier_name, billing_address, billing_date
      line_items: list of dicts with name, quantity, unit, price_per_unit, gst_rate
    Raw values are parsed by the ledger exactly as keyboard input would be.
    Raises ValueError if a line item names a unit or GST rate that is not
    configured.
    """
    config = config or Config()
    check_line_item_choices(payload, config)
    return _fill_ledger(payload, config, invoice_number)


def check_line_item_choices(payload: dict, config: Config) -> None:
    """Raise ValueError naming every out-of-set unit and GST rate in *payload*."""
    problems = []
    for i, seed in enumerate(payload.get("line_items") or ()):
        if "unit" in seed and seed["unit"] not in config.units:
            problems.append(
                f"line item {i + 1}: unit {seed['unit']!r} is not one of "
                f"{', '.join(config.units)}"
            )
        if "gst_rate" in seed:
            rate = parse_decimal(seed["gst_rate"])
            if rate and rate not in config.gst_rates:
                problems.append(
                    f"line item {i + 1}: GST rate {seed['gst_rate']!r} is not one of "
                    f"{', '.join(str(r) for r in config.gst_rates)}"
                )
    if problems:
        raise ValueError("Invalid line item values: " + "; ".join(problems))


def _fill_ledger(payload: dict, config: Config, invoice_number: Optional[str]) -> PurchaseLedger:
    ledger = PurchaseLedger(
        config,
        invoice_number=invoice_number,
        seed_items=payload.get("line_items") or (),
    )
    apply_invoice_fields(ledger, payload)
    return ledger


def apply_invoice_fields(ledger: PurchaseLedger, payload: dict) -> None:
    if "supplier_name" in payload:
        ledger.set_supplier_name(payload["supplier_name"])
    if "billing_address" in payload:
        ledger.set_billing_address(payload["billing_address"])
    ledger.set_billing_date(payload.get("billing_date"))


class PurchaseEntrySession:
    """
    Owns one ledger for the lifetime of a purchase entry and hands its
    snapshot to the database on submit.

    Usage:
        session = PurchaseEntrySession(db, config)
        session.ledger.set_supplier_name("ABC Traders")
        result = session.submit()
        if not result.accepted:
            ...  # show result.issues, session is still open
    """

    def __init__(
        self,
        db: Database,
        config: Optional[Config] = None,
        payload: Optional[dict] = None,
        actor: str = "system",
    ):
        self.config = config or Config()
        self.db = db
        self.actor = actor
        self.validator = PurchaseValidator(
            max_days_past=self.config.max_purchase_age_days,
            max_days_future=self.config.max_future_days,
        )
        if payload is not None:
            check_line_item_choices(payload, self.config)
        invoice_number = db.next_invoice_number()
        if payload is None:
            self._ledger: Optional[PurchaseLedger] = PurchaseLedger(
                self.config, invoice_number=invoice_number,
            )
        else:
            self._ledger = _fill_ledger(payload, self.config, invoice_number)
        logger.info("Opened purchase entry %s", invoice_number)

    @property
    def is_open(self) -> bool:
        return self._ledger is not None

    @property
    def ledger(self) -> PurchaseLedger:
        if self._ledger is None:
            raise SessionClosedError("Purchase entry session is closed")
        return self._ledger

    def submit(self) -> SubmissionResult:
        """
        Validate the current snapshot and, if there are no errors, save it.

        Returns the SubmissionResult either way. Database errors propagate and
        leave the session open.
        """
        invoice: PurchaseInvoice = self.ledger.snapshot()
        directory = SupplierDirectory(
            self.db.all_suppliers(),
            fuzzy_threshold=self.config.supplier_fuzzy_threshold,
        )
        result = SubmissionResult(
            invoice_number=invoice.invoice_number,
            invoice=invoice,
            issues=self.validator.validate(invoice, directory),
        )
        result.compute_summary()

        if not result.accepted:
            logger.info(
                "Purchase %s not saved: %d error(s)", invoice.invoice_number, result.error_count
            )
            return result

        self.db.save_purchase(invoice, actor=self.actor)
        self._ledger = None
        return result

    def cancel(self) -> None:
        """Discard the ledger without saving. Cancelling twice is harmless."""
        if self._ledger is not None:
            logger.info("Discarded purchase entry %s", self._ledger.invoice_number)
        self._ledger = None
