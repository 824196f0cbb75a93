"""
Export service for purchase snapshots: JSON-ready payloads and printable
renderings.
"""
from decimal import Decimal
from pathlib import Path

from jinja2 import BaseLoader, Environment, FileSystemLoader

from models.purchase import PurchaseInvoice

# Default plain-text print template (CLI, thermal printers)
DEFAULT_PRINT_TEXT_TEMPLATE = """\
PURCHASE INVOICE {{ invoice_number }}
Supplier : {{ supplier_name or '-' }}
Address  : {{ billing_address or '-' }}
Date     : {{ billing_date_display or '-' }}
{{ '-' * 78 }}
{{ '%-3s %-20s %6s %-4s %10s %5s %12s %12s' | format('#', 'Product', 'Qty', 'Unit', 'Price', 'GST%', 'With tax', 'Amount') }}
{% for item in line_items -%}
{{ '%-3s %-20s %6s %-4s %10s %5s %12s %12s' | format(item.line_number, item.name[:20], item.quantity, item.unit, item.price_per_unit, item.gst_rate, item.price_with_tax, item.amount) }}
{% endfor -%}
{{ '-' * 78 }}
Total quantity : {{ totals.quantity }}
Total amount   : {{ totals.amount_display }}
"""

# Default HTML print template (dashboard "Print" button)
DEFAULT_PRINT_HTML_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Purchase {{ invoice_number }}</title>
</head>
<body>
  <h1>Purchase {{ invoice_number }}</h1>
  <p>
    <strong>Supplier:</strong> {{ supplier_name }}<br>
    <strong>Billing date:</strong> {{ billing_date_display }}<br>
    {% if billing_address %}<strong>Billing address:</strong> {{ billing_address }}<br>{% endif %}
  </p>
  <table>
    <thead>
      <tr>
        <th>#</th><th>Product</th><th>Quantity</th><th>Unit</th>
        <th>Price/Unit</th><th>GST%</th><th>Price with Tax</th><th>Amount</th>
      </tr>
    </thead>
    <tbody>
      {% for item in line_items %}
      <tr>
        <td>{{ item.line_number }}</td>
        <td>{{ item.name }}</td>
        <td>{{ item.quantity }}</td>
        <td>{{ item.unit }}</td>
        <td>{{ currency_symbol }}{{ item.price_per_unit }}</td>
        <td>{{ item.gst_rate }}%</td>
        <td>{{ currency_symbol }}{{ item.price_with_tax }}</td>
        <td>{{ currency_symbol }}{{ item.amount }}</td>
      </tr>
      {% endfor %}
    </tbody>
    <tfoot>
      <tr>
        <td colspan="2">Total</td>
        <td>{{ totals.quantity }}</td>
        <td colspan="4"></td>
        <td>{{ totals.amount_display }}</td>
      </tr>
    </tfoot>
  </table>
</body>
</html>
"""


def format_money(value: Decimal, places: int = 2) -> str:
    """Fixed-point string for a Decimal, e.g. Decimal("23.1") -> "23.10"."""
    return f"{value:.{places}f}"


def format_rate(value: Decimal) -> str:
    """GST rate without trailing zeros, e.g. Decimal("5.00") -> "5"."""
    return format(value.normalize(), "f")


def build_normalized_line_items(invoice: PurchaseInvoice) -> list[dict]:
    """
    Line items as plain dicts with a 1-based line_number and money rendered
    to two decimal places.
    """
    return [
        {
            "line_number":    idx + 1,
            "id":             item.id,
            "name":           item.name,
            "quantity":       item.quantity,
            "unit":           item.unit,
            "price_per_unit": format_money(item.price_per_unit),
            "gst_rate":       format_rate(item.gst_rate),
            "price_with_tax": format_money(item.price_with_tax),
            "amount":         format_money(item.amount),
        }
        for idx, item in enumerate(invoice.line_items)
    ]


def build_export_payload(invoice: PurchaseInvoice, currency_symbol: str = "₹") -> dict:
    """
    Flatten a snapshot into the dict handed to templates and JSON consumers.

    The total amount is already rounded to whole units by the ledger; it is
    shown without decimals.
    """
    billed = invoice.billing_date
    return {
        "invoice_number":       invoice.invoice_number,
        "supplier_name":        invoice.supplier_name,
        "billing_address":      invoice.billing_address,
        "billing_date":         billed.isoformat() if billed else None,
        "billing_date_display": billed.strftime("%d %b %Y") if billed else None,
        "currency":             invoice.currency,
        "currency_symbol":      currency_symbol,
        "line_items":           build_normalized_line_items(invoice),
        "totals": {
            "quantity":       invoice.totals.quantity,
            "amount":         format_money(invoice.totals.amount, places=0),
            "amount_display": f"{currency_symbol}{format_money(invoice.totals.amount, places=0)}",
        },
    }


def render_purchase(payload: dict, fmt: str = "text", template_file: Path | None = None) -> str:
    """
    Render *payload* with the operator template (or the built-in default).

    Args:
        payload: Output of build_export_payload
        fmt: "text" or "html"; html output is autoescaped
        template_file: Optional path to custom Jinja2 template file
    """
    if fmt not in ("text", "html"):
        raise ValueError(f"Unknown print format {fmt!r}. Must be 'text' or 'html'")
    autoescape = fmt == "html"

    if template_file and template_file.exists():
        env = Environment(
            loader=FileSystemLoader(str(template_file.parent)),
            autoescape=autoescape,
            keep_trailing_newline=True,
        )
        tmpl = env.get_template(template_file.name)
    else:
        env = Environment(loader=BaseLoader(), autoescape=autoescape, keep_trailing_newline=True)
        source = DEFAULT_PRINT_HTML_TEMPLATE if autoescape else DEFAULT_PRINT_TEXT_TEMPLATE
        tmpl = env.from_string(source)
    return tmpl.render(**payload)
