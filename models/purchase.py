from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LineItem(BaseModel):
    """
    One product row on a purchase invoice.

    price_with_tax and amount are derived from quantity, price_per_unit and
    gst_rate; build instances through purchasing.pricing.make_line_item so
    the derived fields always agree with the inputs.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    quantity: int = Field(default=1, ge=0)
    unit: str                                   # e.g. "Kg", "ml", "Pcs"
    price_per_unit: Decimal = Field(default=Decimal("0"), ge=0)   # pre-tax
    gst_rate: Decimal = Decimal("5")            # percent, e.g. 5 = 5 %
    price_with_tax: Decimal = Field(default=Decimal("0"), ge=0)
    amount: Decimal = Field(default=Decimal("0"), ge=0)


class PurchaseTotals(BaseModel):
    """Invoice-level aggregates. amount is rounded to whole currency units."""
    model_config = ConfigDict(frozen=True)

    quantity: int = 0
    amount: Decimal = Decimal("0")


class PurchaseInvoice(BaseModel):
    """
    Immutable snapshot of a purchase invoice, as handed to persistence.

    line_items keeps insertion order, which is also the display order.
    """
    model_config = ConfigDict(frozen=True)

    invoice_number: str
    supplier_name: str = ""
    billing_address: str = ""
    billing_date: Optional[date] = None
    line_items: tuple[LineItem, ...] = ()
    totals: PurchaseTotals = Field(default_factory=PurchaseTotals)

    currency: str = "INR"
    created_at: datetime = Field(default_factory=datetime.now)
