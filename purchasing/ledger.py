"""
Purchase ledger: the in-memory state of one purchase entry session.

PurchaseLedger owns a single invoice (supplier fields, billing date and an
ordered list of line items) and keeps every derived value current:

  - editing quantity, price per unit or GST rate reprices that line and
    recomputes the invoice totals before the call returns
  - name and unit edits never touch pricing
  - the ledger always holds at least one line item

Input is never rejected. Unparseable numbers become zero, removing the last
line is a no-op, and unknown line ids are ignored. Business-rule checks on the
finished invoice belong to purchasing.validator at submission time.
"""
import itertools
import logging
import uuid
from datetime import date, datetime
from typing import Callable, Iterable, Optional

from config import Config
from models.purchase import LineItem, PurchaseInvoice, PurchaseTotals
from .pricing import compute_totals, make_line_item, parse_decimal, parse_quantity, reprice

logger = logging.getLogger(__name__)

# Example rows a new purchase form starts with
SAMPLE_LINE_ITEMS: tuple[dict, ...] = (
    {"name": "Rice", "quantity": 1, "unit": "Kg", "price_per_unit": 22, "gst_rate": 5},
    {"name": "Rice", "quantity": 5, "unit": "Kg", "price_per_unit": 22, "gst_rate": 5},
)


def generate_invoice_number() -> str:
    """Fallback invoice number for ledgers created without a database sequence."""
    return f"PUR-{uuid.uuid4().hex[:10].upper()}"


class PurchaseLedger:
    """
    Line items and totals for one purchase invoice.

    Usage:
        ledger = PurchaseLedger(config, invoice_number=db.next_invoice_number())
        item_id = ledger.add_line_item()
        ledger.set_line_item_price_per_unit(item_id, "22")
        invoice = ledger.snapshot()

    seed_items defaults to SAMPLE_LINE_ITEMS. Each seed is a dict with any of
    name, quantity, unit, price_per_unit, gst_rate and goes through the same
    setters as user input. An empty seed list starts with one blank line.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        invoice_number: Optional[str] = None,
        billing_date: Optional[date] = None,
        seed_items: Optional[Iterable[dict]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.config = config or Config()
        self._invoice_number = invoice_number or generate_invoice_number()
        self._supplier_name = ""
        self._billing_address = ""
        self._billing_date: date = billing_date or date.today()

        if id_factory is None:
            counter = itertools.count(1)
            id_factory = lambda: str(next(counter))  # noqa: E731
        self._id_factory = id_factory
        self._issued_ids: set[str] = set()

        self._items: list[LineItem] = []
        self._totals = PurchaseTotals()

        seeds = SAMPLE_LINE_ITEMS if seed_items is None else tuple(seed_items)
        for seed in seeds:
            self._add_seeded(seed)
        if not self._items:
            self.add_line_item()

        logger.debug(
            "Opened ledger %s with %d line item(s)", self._invoice_number, len(self._items)
        )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def invoice_number(self) -> str:
        return self._invoice_number

    @property
    def supplier_name(self) -> str:
        return self._supplier_name

    @property
    def billing_address(self) -> str:
        return self._billing_address

    @property
    def billing_date(self) -> date:
        return self._billing_date

    @property
    def line_items(self) -> tuple[LineItem, ...]:
        return tuple(self._items)

    @property
    def totals(self) -> PurchaseTotals:
        return self._totals

    def get_line_item(self, item_id: str) -> Optional[LineItem]:
        index = self._index_of(item_id)
        return self._items[index] if index is not None else None

    # ------------------------------------------------------------------
    # Invoice fields
    # ------------------------------------------------------------------

    def set_supplier_name(self, value: str) -> None:
        self._supplier_name = value or ""

    def set_billing_address(self, value: str) -> None:
        self._billing_address = value or ""

    def set_billing_date(self, value=None) -> None:
        """
        Replace the billing date. Accepts a date, a datetime or an ISO date
        string; None, an unreadable string or any other type keeps the
        current date.
        """
        if value is None or value == "":
            return
        if isinstance(value, datetime):
            value = value.date()
        elif isinstance(value, str):
            try:
                value = date.fromisoformat(value.strip()[:10])
            except ValueError:
                logger.warning("Ignoring unreadable billing date %r", value)
                return
        elif not isinstance(value, date):
            logger.warning("Ignoring billing date of type %s", type(value).__name__)
            return
        self._billing_date = value

    # ------------------------------------------------------------------
    # Line item lifecycle
    # ------------------------------------------------------------------

    def add_line_item(self) -> str:
        """Append a blank line (qty 1, default unit and GST rate, price 0); return its id."""
        item = make_line_item(
            self._new_id(),
            quantity=1,
            unit=self.config.default_unit,
            gst_rate=self.config.default_gst_rate,
        )
        self._items.append(item)
        self._refresh_totals()
        logger.debug("Added line item %s", item.id)
        return item.id

    def remove_line_item(self, item_id: str) -> bool:
        """
        Remove a line item. Does nothing (and returns False) when it is the
        only line left or the id is unknown.
        """
        if len(self._items) <= 1:
            return False
        index = self._index_of(item_id)
        if index is None:
            return False
        del self._items[index]
        self._refresh_totals()
        logger.debug("Removed line item %s", item_id)
        return True

    # ------------------------------------------------------------------
    # Line item fields
    # ------------------------------------------------------------------

    def set_line_item_name(self, item_id: str, value: str) -> None:
        self._replace(item_id, lambda item: item.model_copy(update={"name": value or ""}))

    def set_line_item_unit(self, item_id: str, value: str) -> None:
        if value not in self.config.units:
            logger.warning("Ignoring unknown unit %r for line item %s", value, item_id)
            return
        self._replace(item_id, lambda item: item.model_copy(update={"unit": value}))

    def set_line_item_quantity(self, item_id: str, raw_value) -> None:
        quantity = parse_quantity(raw_value)
        if self._replace(item_id, lambda item: reprice(item, quantity=quantity)):
            self._refresh_totals()

    def set_line_item_price_per_unit(self, item_id: str, raw_value) -> None:
        price = parse_decimal(raw_value)
        if self._replace(item_id, lambda item: reprice(item, price_per_unit=price)):
            self._refresh_totals()

    def set_line_item_gst_rate(self, item_id: str, raw_value) -> None:
        """
        Set the GST rate. Unparseable input becomes 0; a readable rate that
        is not one of the configured tiers is ignored.
        """
        rate = parse_decimal(raw_value)
        if rate and rate not in self.config.gst_rates:
            logger.warning("Ignoring GST rate %s for line item %s: not a configured tier",
                           rate, item_id)
            return
        if self._replace(item_id, lambda item: reprice(item, gst_rate=rate)):
            self._refresh_totals()

    # ------------------------------------------------------------------
    # Totals and handoff
    # ------------------------------------------------------------------

    def compute_totals(self) -> PurchaseTotals:
        """Totals for the current line items. Does not change ledger state."""
        return compute_totals(self._items)

    def snapshot(self) -> PurchaseInvoice:
        """Immutable copy of the invoice for persistence. The ledger is left as is."""
        return PurchaseInvoice(
            invoice_number=self._invoice_number,
            supplier_name=self._supplier_name,
            billing_address=self._billing_address,
            billing_date=self._billing_date,
            line_items=tuple(self._items),
            totals=self._totals,
            currency=self.config.currency,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new_id(self) -> str:
        item_id = self._id_factory()
        while item_id in self._issued_ids:
            item_id = self._id_factory()
        self._issued_ids.add(item_id)
        return item_id

    def _index_of(self, item_id: str) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def _replace(self, item_id: str, update: Callable[[LineItem], LineItem]) -> bool:
        index = self._index_of(item_id)
        if index is None:
            logger.debug("No line item %s; ignoring edit", item_id)
            return False
        self._items[index] = update(self._items[index])
        return True

    def _refresh_totals(self) -> None:
        self._totals = compute_totals(self._items)

    def _add_seeded(self, seed: dict) -> None:
        item_id = self.add_line_item()
        if "name" in seed:
            self.set_line_item_name(item_id, seed["name"])
        if "unit" in seed:
            self.set_line_item_unit(item_id, seed["unit"])
        if "quantity" in seed:
            self.set_line_item_quantity(item_id, seed["quantity"])
        if "gst_rate" in seed:
            self.set_line_item_gst_rate(item_id, seed["gst_rate"])
        if "price_per_unit" in seed:
            self.set_line_item_price_per_unit(item_id, seed["price_per_unit"])
