"""
Purchasing back office: FastAPI backend.

REST endpoints over the SQLite database for purchases, payments out and
suppliers. Purchases are priced by the same PurchaseLedger the CLI uses, so
a payload posted here produces exactly the totals the entry form shows.

Endpoints
---------
  GET    /api/health                          → liveness check
  GET    /api/stats                           → record counts and totals
  GET    /api/options                         → units, GST tiers, currency
  POST   /api/purchases/quote                 → price a purchase without saving
  POST   /api/purchases                       → validate + save a purchase
  GET    /api/purchases                       → list summaries (?search=)
  GET    /api/purchases/{invoice_number}      → full snapshot
  GET    /api/purchases/{invoice_number}/print → printable HTML
  DELETE /api/purchases/{invoice_number}      → delete a purchase
  POST   /api/payments-out                    → record a payment
  GET    /api/payments-out                    → list payments (?search=)
  GET    /api/payments-out/{id}               → one payment
  PUT    /api/payments-out/{id}               → update a payment
  DELETE /api/payments-out/{id}               → delete a payment
  POST   /api/suppliers                       → create a supplier
  GET    /api/suppliers                       → paginated list (?page=&limit=&search=)
  GET    /api/suppliers/match                 → best supplier for a name (?name=&gstin=)
  GET    /api/suppliers/{id}                  → one supplier
  PUT    /api/suppliers/{id}                  → update a supplier
  DELETE /api/suppliers/{id}                  → delete a supplier
"""
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import ValidationError

from config import Config
from dashboard.models import (
    PaymentCreate,
    PaymentUpdate,
    PurchaseCreate,
    SupplierCreate,
    SupplierUpdate,
)
from dashboard.services.export import build_export_payload, render_purchase
from models.payment import PaymentOut
from models.supplier import Supplier
from purchasing.database import Database
from purchasing.session import PurchaseEntrySession, build_ledger
from purchasing.supplier_directory import SupplierDirectory
from purchasing.validator import PurchaseValidator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config and database (opened on first request)
# ---------------------------------------------------------------------------
_config: Optional[Config] = None
_db: Optional[Database] = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_db() -> Database:
    global _db
    if _db is None:
        config = get_config()
        config.ensure_output_dir()
        _db = Database(config.db_path)
    return _db


def _directory() -> SupplierDirectory:
    return SupplierDirectory(
        get_db().all_suppliers(),
        fuzzy_threshold=get_config().supplier_fuzzy_threshold,
    )


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Purchasing Back Office", docs_url=None, redoc_url=None)


# ── General ──────────────────────────────────────────────────────────────────

@app.get("/api/health")
def health():
    config = get_config()
    return {
        "status":    "ok",
        "db_path":   str(config.db_path),
        "db_exists": config.db_path.exists(),
    }


@app.get("/api/stats")
def stats():
    return get_db().get_stats()


@app.get("/api/options")
def options():
    """Enumerated values for the purchase entry form."""
    config = get_config()
    return {
        "units":            config.units,
        "gst_rates":        [str(r) for r in config.gst_rates],
        "default_unit":     config.default_unit,
        "default_gst_rate": str(config.default_gst_rate),
        "currency":         config.currency,
        "currency_symbol":  config.currency_symbol,
    }


# ── Purchases ────────────────────────────────────────────────────────────────

@app.post("/api/purchases/quote")
def quote_purchase(body: PurchaseCreate):
    """
    Price a purchase payload and report what submission would flag.
    Nothing is saved and no invoice number is consumed.
    """
    config = get_config()
    try:
        ledger = build_ledger(body.to_payload(), config)
    except ValueError as e:
        raise HTTPException(422, str(e))
    invoice = ledger.snapshot()
    validator = PurchaseValidator(
        max_days_past=config.max_purchase_age_days,
        max_days_future=config.max_future_days,
    )
    issues = validator.validate(invoice, _directory())
    return {
        "invoice": invoice.model_dump(mode="json"),
        "issues":  [i.model_dump() for i in issues],
    }


@app.post("/api/purchases", status_code=201)
def create_purchase(body: PurchaseCreate):
    try:
        session = PurchaseEntrySession(get_db(), get_config(), payload=body.to_payload())
    except ValueError as e:
        raise HTTPException(422, str(e))
    result = session.submit()
    if not result.accepted:
        session.cancel()
        return JSONResponse(status_code=422, content=result.model_dump(mode="json"))
    logger.info("Purchase created via API: %s", result.invoice_number)
    return result.model_dump(mode="json")


@app.get("/api/purchases")
def list_purchases(
    search: Optional[str] = Query(default=None),
    limit: int = Query(default=500, le=2000),
    offset: int = Query(default=0, ge=0),
):
    return get_db().list_purchases(search=search or None, limit=limit, offset=offset)


@app.get("/api/purchases/{invoice_number}")
def get_purchase(invoice_number: str):
    invoice = get_db().get_purchase(invoice_number)
    if invoice is None:
        raise HTTPException(status_code=404, detail=f"Purchase not found: {invoice_number}")
    return invoice.model_dump(mode="json")


@app.get("/api/purchases/{invoice_number}/print")
def print_purchase(invoice_number: str):
    invoice = get_db().get_purchase(invoice_number)
    if invoice is None:
        raise HTTPException(status_code=404, detail=f"Purchase not found: {invoice_number}")
    payload = build_export_payload(invoice, get_config().currency_symbol)
    return HTMLResponse(content=render_purchase(payload, fmt="html"))


@app.delete("/api/purchases/{invoice_number}")
def delete_purchase(invoice_number: str):
    if not get_db().delete_purchase(invoice_number):
        raise HTTPException(404, f"Purchase not found: {invoice_number}")
    return {"invoice_number": invoice_number, "deleted": True}


# ── Payments out ─────────────────────────────────────────────────────────────

@app.post("/api/payments-out", status_code=201)
def create_payment(body: PaymentCreate):
    try:
        payment = PaymentOut.model_validate(body.model_dump())
    except ValidationError as e:
        raise HTTPException(400, f"Error recording payment: {e.errors()[0]['msg']}")
    saved = get_db().create_payment(payment)
    return {"message": "Payment recorded successfully", "payment": saved.model_dump(mode="json")}


@app.get("/api/payments-out")
def list_payments(
    search: Optional[str] = Query(default=None),
    limit: int = Query(default=500, le=2000),
    offset: int = Query(default=0, ge=0),
):
    payments = get_db().list_payments(search=search or None, limit=limit, offset=offset)
    return [p.model_dump(mode="json") for p in payments]


@app.get("/api/payments-out/{payment_id}")
def get_payment(payment_id: int):
    payment = get_db().get_payment(payment_id)
    if payment is None:
        raise HTTPException(404, "Payment not found")
    return payment.model_dump(mode="json")


@app.put("/api/payments-out/{payment_id}")
def update_payment(payment_id: int, body: PaymentUpdate):
    changes = body.model_dump(exclude_unset=True)
    try:
        updated = get_db().update_payment(payment_id, changes)
    except ValidationError as e:
        raise HTTPException(400, f"Error updating payment: {e.errors()[0]['msg']}")
    if updated is None:
        raise HTTPException(404, "Payment not found")
    return {"message": "Payment updated successfully", "payment": updated.model_dump(mode="json")}


@app.delete("/api/payments-out/{payment_id}")
def delete_payment(payment_id: int):
    if not get_db().delete_payment(payment_id):
        raise HTTPException(404, "Payment not found")
    return {"message": "Payment deleted successfully"}


# ── Suppliers ────────────────────────────────────────────────────────────────

@app.post("/api/suppliers", status_code=201)
def create_supplier(body: SupplierCreate):
    try:
        supplier = Supplier.model_validate(body.model_dump())
    except ValidationError as e:
        raise HTTPException(400, f"Error creating supplier: {e.errors()[0]['msg']}")
    return get_db().create_supplier(supplier).model_dump(mode="json")


@app.get("/api/suppliers")
def list_suppliers(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=500),
    search: Optional[str] = Query(default=None),
):
    result = get_db().list_suppliers(page=page, limit=limit, search=search or None)
    return {
        "success": True,
        **result,
        "data": [s.model_dump(mode="json") for s in result["data"]],
    }


@app.get("/api/suppliers/match")
def match_supplier(
    name: Optional[str] = Query(default=None),
    gstin: Optional[str] = Query(default=None),
):
    supplier = _directory().match(name, gstin=gstin)
    if supplier is None:
        raise HTTPException(404, f"No supplier matches: {name or gstin}")
    return supplier.model_dump(mode="json")


@app.get("/api/suppliers/{supplier_id}")
def get_supplier(supplier_id: int):
    supplier = get_db().get_supplier(supplier_id)
    if supplier is None:
        raise HTTPException(404, "Supplier not found")
    return supplier.model_dump(mode="json")


@app.put("/api/suppliers/{supplier_id}")
def update_supplier(supplier_id: int, body: SupplierUpdate):
    changes = body.model_dump(exclude_unset=True)
    try:
        updated = get_db().update_supplier(supplier_id, changes)
    except ValidationError as e:
        raise HTTPException(400, f"Error updating supplier: {e.errors()[0]['msg']}")
    if updated is None:
        raise HTTPException(404, "Supplier not found")
    return updated.model_dump(mode="json")


@app.delete("/api/suppliers/{supplier_id}")
def delete_supplier(supplier_id: int):
    if not get_db().delete_supplier(supplier_id):
        raise HTTPException(404, "Supplier not found")
    return {"message": "Supplier deleted successfully"}
