#!/usr/bin/env python3
"""
Purchasing back office: CLI entry point.

Usage examples:
  python main.py check                                   # Verify config and database
  python main.py quote --item "Rice:5:Kg:22:5"           # Price a purchase, save nothing
  python main.py purchase add --supplier "ABC Traders" \\
      --item "Rice:1:Kg:22:5" --item "Oil:2:L:140:12"     # Validate and save a purchase
  python main.py purchase list --search ABC
  python main.py purchase show PUR-000001
  python main.py payment add --invoice PUR-000001 --supplier "ABC Traders" \\
      --address "12 Market Rd" --amount 139
  python main.py supplier add --name "ABC Traders" --phone 9876543210
  python main.py supplier list --search abc

The dashboard API is served separately:
  uvicorn dashboard.app:app
"""
import logging
import sys
from datetime import date
from pathlib import Path

import click

from config import Config
from dashboard.services.export import build_export_payload, render_purchase
from models.payment import PaymentOut
from models.supplier import Supplier
from purchasing.database import Database
from purchasing.session import PurchaseEntrySession, build_ledger
from purchasing.supplier_directory import SupplierDirectory
from purchasing.validator import PurchaseValidator

ITEM_FIELDS = ("name", "quantity", "unit", "price_per_unit", "gst_rate")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_item(text: str) -> dict:
    """
    Turn "name:quantity:unit:price:gst" into a ledger seed. Trailing parts
    may be omitted and empty parts are skipped, e.g. "Rice:5::22".
    """
    parts = text.split(":")
    return {key: value for key, value in zip(ITEM_FIELDS, parts) if value != ""}


def _build_payload(supplier, address, billing_date, items) -> dict:
    payload: dict = {"line_items": [_parse_item(i) for i in items]}
    if supplier is not None:
        payload["supplier_name"] = supplier
    if address is not None:
        payload["billing_address"] = address
    if billing_date is not None:
        payload["billing_date"] = billing_date
    return payload


def _open_db(config: Config) -> Database:
    config.ensure_output_dir()
    return Database(config.db_path)


def _echo_issues(issues) -> None:
    for issue in issues:
        icon = "✗" if issue.severity == "error" else ("⚠" if issue.severity == "warning" else "ℹ")
        click.echo(f"    {icon} [{issue.severity.upper()}] {issue.description}")


def _purchase_options(func):
    func = click.option("--item", "-i", "items", multiple=True,
                        help='Line item as "name:qty:unit:price:gst" (repeatable)')(func)
    func = click.option("--date", "billing_date", default=None,
                        help="Billing date YYYY-MM-DD (default: today)")(func)
    func = click.option("--address", default=None, help="Billing address")(func)
    func = click.option("--supplier", "-s", default=None, help="Supplier name")(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--db", "db_path", default=None, type=click.Path(), help="Path to the SQLite database")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, db_path: str | None) -> None:
    """Purchasing back office: purchases, payments out and suppliers."""
    ctx.ensure_object(dict)
    _setup_logging(verbose)
    config = Config()
    if db_path:
        config.db_path = Path(db_path)
    ctx.obj["config"] = config


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Show configuration and database status."""
    config: Config = ctx.obj["config"]

    click.echo("\n=== Purchasing Setup Check ===\n")
    click.echo(f"  Units:      {', '.join(config.units)}  (default {config.default_unit})")
    click.echo(f"  GST tiers:  {', '.join(str(r) for r in config.gst_rates)}  "
               f"(default {config.default_gst_rate})")
    click.echo(f"  Currency:   {config.currency} ({config.currency_symbol})")
    click.echo()

    exists = config.db_path.exists()
    click.echo(f"  Database:   {'✓' if exists else '✗'}  {config.db_path}")
    if exists:
        stats = Database(config.db_path).get_stats()
        click.echo(f"    {stats['purchases']} purchases, {stats['payments']} payments, "
                   f"{stats['suppliers']} suppliers")
    else:
        click.echo("    → Created on first write")
    click.echo()


# --------------------------------------------------------------------
# quote command
# --------------------------------------------------------------------

@cli.command()
@_purchase_options
@click.pass_context
def quote(ctx: click.Context, supplier, address, billing_date, items) -> None:
    """Price a purchase and print it without saving anything."""
    config: Config = ctx.obj["config"]
    try:
        ledger = build_ledger(_build_payload(supplier, address, billing_date, items), config)
    except ValueError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    invoice = ledger.snapshot()

    click.echo()
    click.echo(render_purchase(build_export_payload(invoice, config.currency_symbol)))

    validator = PurchaseValidator(
        max_days_past=config.max_purchase_age_days,
        max_days_future=config.max_future_days,
    )
    issues = validator.validate(invoice)
    if issues:
        click.echo("  On submission:")
        _echo_issues(issues)
        click.echo()


# --------------------------------------------------------------------
# purchase commands
# --------------------------------------------------------------------

@cli.group()
def purchase() -> None:
    """Record and inspect purchases."""


@purchase.command("add")
@_purchase_options
@click.pass_context
def purchase_add(ctx: click.Context, supplier, address, billing_date, items) -> None:
    """Validate a purchase and save it."""
    config: Config = ctx.obj["config"]
    db = _open_db(config)
    try:
        session = PurchaseEntrySession(
            db, config, payload=_build_payload(supplier, address, billing_date, items),
        )
    except ValueError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    result = session.submit()

    click.echo()
    if not result.accepted:
        session.cancel()
        click.echo(f"  ✗ Purchase not saved ({result.error_count} errors):", err=True)
        _echo_issues(result.issues)
        sys.exit(1)

    click.echo(render_purchase(build_export_payload(result.invoice, config.currency_symbol)))
    if result.issues:
        _echo_issues(result.issues)
        click.echo()
    click.echo(f"  ✓ Saved purchase {result.invoice_number}")


@purchase.command("list")
@click.option("--search", default=None, help="Match invoice number or supplier name")
@click.option("--limit", default=50, show_default=True, type=int)
@click.pass_context
def purchase_list(ctx: click.Context, search: str | None, limit: int) -> None:
    """List saved purchases, newest first."""
    config: Config = ctx.obj["config"]
    rows = _open_db(config).list_purchases(search=search, limit=limit)
    if not rows:
        click.echo("No purchases found.")
        return
    for r in rows:
        click.echo(
            f"  {r['invoice_number']:<12} {r['billing_date'] or '':<10}  "
            f"{r['supplier_name'][:30]:<30} qty {r['total_quantity']:>6}  "
            f"{config.currency_symbol}{r['total_amount']}"
        )


@purchase.command("show")
@click.argument("invoice_number")
@click.option("--html", is_flag=True, help="Print the HTML rendering")
@click.pass_context
def purchase_show(ctx: click.Context, invoice_number: str, html: bool) -> None:
    """Print a saved purchase."""
    config: Config = ctx.obj["config"]
    invoice = _open_db(config).get_purchase(invoice_number)
    if invoice is None:
        click.echo(f"Error: purchase '{invoice_number}' not found.", err=True)
        sys.exit(1)
    payload = build_export_payload(invoice, config.currency_symbol)
    click.echo(render_purchase(payload, fmt="html" if html else "text"))


# --------------------------------------------------------------------
# payment commands
# --------------------------------------------------------------------

@cli.group()
def payment() -> None:
    """Record and inspect payments out."""


@payment.command("add")
@click.option("--invoice", "invoice_number", required=True, help="Purchase invoice number")
@click.option("--supplier", "supplier_name", required=True)
@click.option("--address", "billing_address", required=True)
@click.option("--date", "payment_date", default=None, help="YYYY-MM-DD (default: today)")
@click.option("--amount", "amount_paid", required=True, type=float)
@click.pass_context
def payment_add(ctx: click.Context, invoice_number, supplier_name, billing_address,
                payment_date, amount_paid) -> None:
    """Record a payment made to a supplier."""
    config: Config = ctx.obj["config"]
    try:
        record = PaymentOut(
            invoice_number=invoice_number,
            supplier_name=supplier_name,
            billing_address=billing_address,
            payment_date=payment_date or date.today(),
            amount_paid=amount_paid,
        )
    except ValueError as e:
        click.echo(f"✗ Error recording payment: {e}", err=True)
        sys.exit(1)
    saved = _open_db(config).create_payment(record)
    click.echo(f"✓ Payment {saved.id} recorded: {config.currency_symbol}{saved.amount_paid:.2f} "
               f"against {saved.invoice_number}")


@payment.command("list")
@click.option("--search", default=None, help="Match invoice number or supplier name")
@click.pass_context
def payment_list(ctx: click.Context, search: str | None) -> None:
    """List payments out, newest first."""
    config: Config = ctx.obj["config"]
    payments = _open_db(config).list_payments(search=search)
    if not payments:
        click.echo("No payments found.")
        return
    for p in payments:
        click.echo(
            f"  #{p.id:<5} {p.payment_date.isoformat()}  {p.invoice_number:<12} "
            f"{p.supplier_name[:30]:<30} {config.currency_symbol}{p.amount_paid:.2f}"
        )


# --------------------------------------------------------------------
# supplier commands
# --------------------------------------------------------------------

@cli.group()
def supplier() -> None:
    """Manage the supplier list."""


@supplier.command("add")
@click.option("--name", required=True)
@click.option("--phone", required=True)
@click.option("--email", default=None)
@click.option("--address", default=None)
@click.option("--gstin", default=None)
@click.pass_context
def supplier_add(ctx: click.Context, name, phone, email, address, gstin) -> None:
    """Add a supplier."""
    config: Config = ctx.obj["config"]
    try:
        record = Supplier(name=name, phone=phone, email=email, address=address, gstin=gstin)
    except ValueError as e:
        click.echo(f"✗ Error creating supplier: {e}", err=True)
        sys.exit(1)
    saved = _open_db(config).create_supplier(record)
    click.echo(f"✓ Supplier {saved.id} created: {saved.name}")


@supplier.command("list")
@click.option("--search", default=None, help="Substring or fuzzy name match")
@click.option("--page", default=1, show_default=True, type=int)
@click.option("--limit", default=10, show_default=True, type=int)
@click.pass_context
def supplier_list(ctx: click.Context, search: str | None, page: int, limit: int) -> None:
    """List suppliers by name, a page at a time."""
    config: Config = ctx.obj["config"]
    db = _open_db(config)
    result = db.list_suppliers(page=page, limit=limit, search=search)
    suppliers = result["data"]
    if not suppliers and search:
        # Nothing by substring; fall back to fuzzy name ranking
        directory = SupplierDirectory(
            db.all_suppliers(), fuzzy_threshold=config.supplier_fuzzy_threshold,
        )
        suppliers = directory.search(search, limit=limit)
    if not suppliers:
        click.echo("No suppliers found.")
        return
    for s in suppliers:
        click.echo(f"  #{s.id:<5} {s.name[:30]:<30} {s.phone:<14} {s.gstin or ''}")
    if result["pages"] > 1:
        click.echo(f"\n  Page {result['page']} of {result['pages']} ({result['total']} suppliers)")


if __name__ == "__main__":
    cli()
