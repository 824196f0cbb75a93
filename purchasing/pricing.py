"""
Pricing rules for purchase line items.

All money is Decimal. Derived values:
  price_with_tax = price_per_unit + price_per_unit * gst_rate / 100
  amount         = quantity * price_with_tax

Invoice totals sum the line amounts first and round only the sum, to whole
currency units, with ROUND_HALF_UP (ties go away from zero: 138.5 -> 139,
2.5 -> 3). round_total() is the only place totals are rounded.

Raw user input is parsed leniently: whatever cannot be read as a
non-negative number becomes zero. Nothing in this module raises on bad input.
"""
import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Iterable

from models.purchase import LineItem, PurchaseTotals

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TOTALS_ROUNDING = ROUND_HALF_UP

# Leading numeric prefix, so "12 kg" reads as 12 and "22.5abc" as 22.5
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_DECIMAL_PREFIX = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")

# Magnitudes of 10**16 and above are treated as unparseable
_MAX_ADJUSTED_EXPONENT = 15
_MAX_QUANTITY = 10 ** (_MAX_ADJUSTED_EXPONENT + 1) - 1

# Totals can need more digits than the default 28-digit context
_TOTALS_PRECISION = 60


def parse_quantity(raw) -> int:
    """
    Parse a quantity the way a number field is read as it is typed.

    Returns the integer prefix of text input ("3.7" -> 3, "12abc" -> 12),
    truncates finite numbers, and falls back to 0 for anything else,
    including negative values and quantities above 10**16 - 1.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, (float, Decimal)):
        dec = _finite_decimal(raw)
        if dec is None:
            return 0
        value = int(dec)
    else:
        match = _INT_PREFIX.match(str(raw))
        if not match:
            return 0
        digits = match.group(1)
        if len(digits.lstrip("+-").lstrip("0")) > _MAX_ADJUSTED_EXPONENT + 1:
            return 0
        value = int(digits)
    return value if 0 <= value <= _MAX_QUANTITY else 0


def parse_decimal(raw) -> Decimal:
    """Parse a price or tax rate. Unreadable, negative or non-finite input gives 0."""
    if raw is None or isinstance(raw, bool):
        return ZERO
    if isinstance(raw, (int, float, Decimal)):
        value = _finite_decimal(raw)
    else:
        match = _DECIMAL_PREFIX.match(str(raw))
        value = _finite_decimal(match.group(1)) if match else None
    if value is None or value < 0:
        return ZERO
    return value


def _finite_decimal(raw) -> Decimal | None:
    if isinstance(raw, float):
        if not math.isfinite(raw):
            return None
        raw = repr(raw)
    try:
        value = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value.adjusted() > _MAX_ADJUSTED_EXPONENT:
        return None
    return value


def price_with_tax(price_per_unit: Decimal, gst_rate: Decimal) -> Decimal:
    return price_per_unit + price_per_unit * gst_rate / HUNDRED


def line_amount(quantity: int, unit_price_with_tax: Decimal) -> Decimal:
    return quantity * unit_price_with_tax


def round_total(amount: Decimal) -> Decimal:
    """Round to whole currency units, ties away from zero."""
    with localcontext() as ctx:
        ctx.prec = _TOTALS_PRECISION
        return amount.quantize(Decimal("1"), rounding=TOTALS_ROUNDING)


def make_line_item(
    item_id: str,
    *,
    name: str = "",
    quantity: int = 1,
    unit: str,
    price_per_unit: Decimal = ZERO,
    gst_rate: Decimal = Decimal("5"),
) -> LineItem:
    """Build a LineItem with both derived fields computed from the inputs."""
    with_tax = price_with_tax(price_per_unit, gst_rate)
    return LineItem(
        id=item_id,
        name=name,
        quantity=quantity,
        unit=unit,
        price_per_unit=price_per_unit,
        gst_rate=gst_rate,
        price_with_tax=with_tax,
        amount=line_amount(quantity, with_tax),
    )


def reprice(item: LineItem, **changes) -> LineItem:
    """
    Return a copy of *item* with *changes* applied and the derived fields
    recomputed. Only quantity, price_per_unit and gst_rate affect pricing.
    """
    quantity = changes.get("quantity", item.quantity)
    price = changes.get("price_per_unit", item.price_per_unit)
    rate = changes.get("gst_rate", item.gst_rate)
    with_tax = price_with_tax(price, rate)
    return item.model_copy(update={
        **changes,
        "price_with_tax": with_tax,
        "amount": line_amount(quantity, with_tax),
    })


def compute_totals(items: Iterable[LineItem]) -> PurchaseTotals:
    """
    Sum quantities (unrounded) and amounts across *items*, rounding only the
    amount sum. Pure: the items are not touched.
    """
    quantity = 0
    amount = ZERO
    for item in items:
        quantity += item.quantity
        amount += item.amount
    return PurchaseTotals(quantity=quantity, amount=round_total(amount))
