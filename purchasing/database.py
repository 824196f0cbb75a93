"""
SQLite persistence layer for purchases, payments out and suppliers.

A single database file (output/purchasing.db) that:

  - Issues invoice numbers from a monotonic sequence (PUR-000001, ...)
  - Stores each submitted purchase as a full JSON snapshot plus denormalised
    key columns for listing and search
  - Holds the payment-out and supplier records behind the dashboard API
  - Keeps an append-only audit log of every write
"""
import json
import logging
import math
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Optional

from models.payment import PaymentOut
from models.purchase import PurchaseInvoice
from models.supplier import Supplier

logger = logging.getLogger(__name__)

INVOICE_SEQUENCE = "invoice_number"
INVOICE_PREFIX   = "PUR-"

PAYMENT_FIELDS  = {"invoice_number", "supplier_name", "billing_address", "payment_date", "amount_paid"}
SUPPLIER_FIELDS = {"name", "phone", "email", "address", "gstin", "amount_payable"}

_SCHEMA = """
CREATE TABLE IF NOT EXISTS purchases (
    invoice_number    TEXT PRIMARY KEY,

    -- Key fields (denormalised for fast filtering / sorting)
    supplier_name     TEXT NOT NULL,
    billing_address   TEXT,
    billing_date      TEXT,
    line_count        INTEGER NOT NULL DEFAULT 0,
    total_quantity    INTEGER NOT NULL DEFAULT 0,
    total_amount      TEXT NOT NULL DEFAULT '0',
    currency          TEXT,

    -- Full snapshot (PurchaseInvoice serialised as JSON)
    snapshot          TEXT NOT NULL,

    submitted_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_purchases_supplier     ON purchases (supplier_name);
CREATE INDEX IF NOT EXISTS idx_purchases_billing_date ON purchases (billing_date DESC);

CREATE TABLE IF NOT EXISTS payments_out (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_number    TEXT NOT NULL,
    supplier_name     TEXT NOT NULL,
    billing_address   TEXT NOT NULL,
    payment_date      TEXT NOT NULL,
    amount_paid       REAL NOT NULL,
    created_at        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_payments_invoice ON payments_out (invoice_number);

CREATE TABLE IF NOT EXISTS suppliers (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    name              TEXT NOT NULL,
    phone             TEXT NOT NULL,
    email             TEXT,
    address           TEXT,
    gstin             TEXT,
    amount_payable    REAL NOT NULL DEFAULT 0,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_suppliers_name ON suppliers (name);

CREATE TABLE IF NOT EXISTS sequences (
    name   TEXT PRIMARY KEY,
    value  INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS audit_log (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    entity      TEXT    NOT NULL,   -- purchase | payment | supplier
    entity_key  TEXT    NOT NULL,
    timestamp   TEXT    NOT NULL,   -- ISO-8601 UTC
    action      TEXT    NOT NULL,   -- created | updated | deleted
    actor       TEXT    NOT NULL DEFAULT 'system',
    detail      TEXT                -- optional JSON blob with action-specific context
);

CREATE INDEX IF NOT EXISTS idx_audit_entity    ON audit_log (entity, entity_key);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log (timestamp DESC);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """Thin wrapper around an SQLite database file for purchasing records."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @contextmanager
    def _conn(self):
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._conn() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Invoice numbers
    # ------------------------------------------------------------------

    def next_invoice_number(self) -> str:
        """Return the next invoice number. Numbers are never handed out twice."""
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO sequences (name, value) VALUES (?, 1)
                ON CONFLICT(name) DO UPDATE SET value = value + 1
                """,
                (INVOICE_SEQUENCE,),
            )
            value = conn.execute(
                "SELECT value FROM sequences WHERE name=?", (INVOICE_SEQUENCE,)
            ).fetchone()[0]
        return f"{INVOICE_PREFIX}{value:06d}"

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    def save_purchase(self, invoice: PurchaseInvoice, actor: str = "system") -> None:
        """
        Insert a submitted purchase. Raises ValueError if the invoice number
        has already been saved.
        """
        try:
            with self._conn() as conn:
                conn.execute(
                    """
                    INSERT INTO purchases (
                        invoice_number, supplier_name, billing_address, billing_date,
                        line_count, total_quantity, total_amount, currency,
                        snapshot, submitted_at
                    ) VALUES (
                        :invoice_number, :supplier_name, :billing_address, :billing_date,
                        :line_count, :total_quantity, :total_amount, :currency,
                        :snapshot, :submitted_at
                    )
                    """,
                    {
                        "invoice_number":  invoice.invoice_number,
                        "supplier_name":   invoice.supplier_name,
                        "billing_address": invoice.billing_address,
                        "billing_date":    invoice.billing_date.isoformat() if invoice.billing_date else None,
                        "line_count":      len(invoice.line_items),
                        "total_quantity":  invoice.totals.quantity,
                        "total_amount":    str(invoice.totals.amount),
                        "currency":        invoice.currency,
                        "snapshot":        invoice.model_dump_json(),
                        "submitted_at":    _now(),
                    },
                )
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"Purchase {invoice.invoice_number} already exists") from exc

        logger.info(
            "DB saved purchase: %s  supplier=%s  total=%s",
            invoice.invoice_number, invoice.supplier_name, invoice.totals.amount,
        )
        self.log_audit(
            "purchase", invoice.invoice_number, "created", actor=actor,
            detail={"total_amount": str(invoice.totals.amount)},
        )

    def get_purchase(self, invoice_number: str) -> Optional[PurchaseInvoice]:
        """Return the stored snapshot or None."""
        with self._conn() as conn:
            row = conn.execute(
                "SELECT snapshot FROM purchases WHERE invoice_number=?", (invoice_number,)
            ).fetchone()
        return PurchaseInvoice.model_validate_json(row["snapshot"]) if row else None

    def list_purchases(
        self,
        search: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[dict]:
        """
        Return purchase summaries (no snapshot blob) ordered newest-first.

        Args:
            search:  Case-insensitive substring match on invoice_number or
                     supplier_name.
            limit:   Max rows to return.
            offset:  Pagination offset.
        """
        where = ""
        params: list = []
        if search:
            where = "WHERE invoice_number LIKE ? OR supplier_name LIKE ?"
            like = f"%{search}%"
            params.extend([like, like])
        params.extend([limit, offset])

        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT
                    invoice_number, supplier_name, billing_address, billing_date,
                    line_count, total_quantity, total_amount, currency, submitted_at
                FROM purchases
                {where}
                ORDER BY submitted_at DESC, invoice_number DESC
                LIMIT ? OFFSET ?
                """,
                params,
            ).fetchall()
        return [dict(r) for r in rows]

    def delete_purchase(self, invoice_number: str, actor: str = "system") -> bool:
        """Delete a purchase record entirely."""
        with self._conn() as conn:
            conn.execute("DELETE FROM purchases WHERE invoice_number = ?", (invoice_number,))
            deleted = conn.execute("SELECT changes()").fetchone()[0] > 0
        if deleted:
            self.log_audit("purchase", invoice_number, "deleted", actor=actor)
        return deleted

    # ------------------------------------------------------------------
    # Payments out
    # ------------------------------------------------------------------

    def create_payment(self, payment: PaymentOut, actor: str = "system") -> PaymentOut:
        with self._conn() as conn:
            cur = conn.execute(
                """INSERT INTO payments_out (
                       invoice_number, supplier_name, billing_address,
                       payment_date, amount_paid, created_at
                   ) VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    payment.invoice_number,
                    payment.supplier_name,
                    payment.billing_address,
                    payment.payment_date.isoformat(),
                    payment.amount_paid,
                    _now(),
                ),
            )
            payment_id = cur.lastrowid
        logger.info("DB recorded payment %d against %s", payment_id, payment.invoice_number)
        self.log_audit("payment", str(payment_id), "created", actor=actor,
                       detail={"amount_paid": payment.amount_paid})
        return payment.model_copy(update={"id": payment_id})

    def get_payment(self, payment_id: int) -> Optional[PaymentOut]:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT id, {', '.join(sorted(PAYMENT_FIELDS))} FROM payments_out WHERE id=?",
                (payment_id,),
            ).fetchone()
        return PaymentOut.model_validate(dict(row)) if row else None

    def list_payments(
        self,
        search: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[PaymentOut]:
        """Payments newest-first; search matches invoice number or supplier name."""
        where = ""
        params: list = []
        if search:
            where = "WHERE invoice_number LIKE ? OR supplier_name LIKE ?"
            like = f"%{search}%"
            params.extend([like, like])
        params.extend([limit, offset])

        with self._conn() as conn:
            rows = conn.execute(
                f"""SELECT id, {', '.join(sorted(PAYMENT_FIELDS))}
                    FROM payments_out {where}
                    ORDER BY payment_date DESC, id DESC
                    LIMIT ? OFFSET ?""",
                params,
            ).fetchall()
        return [PaymentOut.model_validate(dict(r)) for r in rows]

    def update_payment(self, payment_id: int, changes: dict, actor: str = "system") -> Optional[PaymentOut]:
        """
        Apply *changes* to a payment and return the updated record, or None
        if it does not exist. The merged record is validated before writing.
        """
        unknown = set(changes) - PAYMENT_FIELDS
        if unknown:
            raise ValueError(f"Unknown payment field(s): {', '.join(sorted(unknown))}")

        current = self.get_payment(payment_id)
        if current is None:
            return None
        updated = PaymentOut.model_validate({**current.model_dump(), **changes})

        with self._conn() as conn:
            conn.execute(
                """UPDATE payments_out SET
                       invoice_number=?, supplier_name=?, billing_address=?,
                       payment_date=?, amount_paid=?
                   WHERE id=?""",
                (
                    updated.invoice_number,
                    updated.supplier_name,
                    updated.billing_address,
                    updated.payment_date.isoformat(),
                    updated.amount_paid,
                    payment_id,
                ),
            )
        self.log_audit("payment", str(payment_id), "updated", actor=actor,
                       detail={"fields": sorted(changes)})
        return updated

    def delete_payment(self, payment_id: int, actor: str = "system") -> bool:
        with self._conn() as conn:
            conn.execute("DELETE FROM payments_out WHERE id = ?", (payment_id,))
            deleted = conn.execute("SELECT changes()").fetchone()[0] > 0
        if deleted:
            self.log_audit("payment", str(payment_id), "deleted", actor=actor)
        return deleted

    # ------------------------------------------------------------------
    # Suppliers
    # ------------------------------------------------------------------

    def create_supplier(self, supplier: Supplier, actor: str = "system") -> Supplier:
        now = _now()
        with self._conn() as conn:
            cur = conn.execute(
                """INSERT INTO suppliers (
                       name, phone, email, address, gstin, amount_payable,
                       created_at, updated_at
                   ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    supplier.name,
                    supplier.phone,
                    supplier.email,
                    supplier.address,
                    supplier.gstin,
                    supplier.amount_payable,
                    now,
                    now,
                ),
            )
            supplier_id = cur.lastrowid
        logger.info("DB created supplier %d: %s", supplier_id, supplier.name)
        self.log_audit("supplier", str(supplier_id), "created", actor=actor)
        return self.get_supplier(supplier_id)

    def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM suppliers WHERE id=?", (supplier_id,)).fetchone()
        return Supplier.model_validate(dict(row)) if row else None

    def all_suppliers(self) -> list[Supplier]:
        with self._conn() as conn:
            rows = conn.execute("SELECT * FROM suppliers ORDER BY name COLLATE NOCASE").fetchall()
        return [Supplier.model_validate(dict(r)) for r in rows]

    def list_suppliers(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
    ) -> dict:
        """
        Return one page of suppliers ordered by name.

        Returns:
            dict with keys: count, total, page, pages, data
        """
        page = max(page, 1)
        limit = max(limit, 1)
        where = ""
        params: list = []
        if search:
            where = "WHERE name LIKE ? OR phone LIKE ? OR email LIKE ? OR gstin LIKE ?"
            like = f"%{search}%"
            params.extend([like, like, like, like])

        with self._conn() as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM suppliers {where}", params).fetchone()[0]
            rows = conn.execute(
                f"""SELECT * FROM suppliers {where}
                    ORDER BY name COLLATE NOCASE, id
                    LIMIT ? OFFSET ?""",
                [*params, limit, (page - 1) * limit],
            ).fetchall()

        data = [Supplier.model_validate(dict(r)) for r in rows]
        return {
            "count": len(data),
            "total": total,
            "page":  page,
            "pages": math.ceil(total / limit) if total else 0,
            "data":  data,
        }

    def update_supplier(self, supplier_id: int, changes: dict, actor: str = "system") -> Optional[Supplier]:
        """Apply *changes* to a supplier; returns the updated record or None."""
        unknown = set(changes) - SUPPLIER_FIELDS
        if unknown:
            raise ValueError(f"Unknown supplier field(s): {', '.join(sorted(unknown))}")

        current = self.get_supplier(supplier_id)
        if current is None:
            return None
        updated = Supplier.model_validate({**current.model_dump(), **changes})

        with self._conn() as conn:
            conn.execute(
                """UPDATE suppliers SET
                       name=?, phone=?, email=?, address=?, gstin=?,
                       amount_payable=?, updated_at=?
                   WHERE id=?""",
                (
                    updated.name,
                    updated.phone,
                    updated.email,
                    updated.address,
                    updated.gstin,
                    updated.amount_payable,
                    _now(),
                    supplier_id,
                ),
            )
        self.log_audit("supplier", str(supplier_id), "updated", actor=actor,
                       detail={"fields": sorted(changes)})
        return self.get_supplier(supplier_id)

    def delete_supplier(self, supplier_id: int, actor: str = "system") -> bool:
        with self._conn() as conn:
            conn.execute("DELETE FROM suppliers WHERE id = ?", (supplier_id,))
            deleted = conn.execute("SELECT changes()").fetchone()[0] > 0
        if deleted:
            self.log_audit("supplier", str(supplier_id), "deleted", actor=actor)
        return deleted

    # ------------------------------------------------------------------
    # Audit and stats
    # ------------------------------------------------------------------

    def log_audit(
        self,
        entity: str,
        entity_key: str,
        action: str,
        actor: str = "system",
        detail: Optional[dict] = None,
    ) -> None:
        """Append one entry to the audit log."""
        with self._conn() as conn:
            conn.execute(
                """INSERT INTO audit_log (entity, entity_key, timestamp, action, actor, detail)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    entity,
                    entity_key,
                    _now(),
                    action,
                    actor,
                    json.dumps(detail) if detail is not None else None,
                ),
            )

    def get_audit_log(self, entity: str, entity_key: str) -> list[dict]:
        """Return all audit entries for one record, oldest first."""
        with self._conn() as conn:
            rows = conn.execute(
                """SELECT id, timestamp, action, actor, detail
                   FROM audit_log WHERE entity = ? AND entity_key = ?
                   ORDER BY timestamp ASC, id ASC""",
                (entity, entity_key),
            ).fetchall()
        return [dict(r) for r in rows]

    def get_stats(self) -> dict:
        """Return record counts plus purchase and payment totals."""
        with self._conn() as conn:
            purchases = conn.execute("SELECT total_amount FROM purchases").fetchall()
            payments = conn.execute(
                "SELECT COUNT(*) AS n, COALESCE(SUM(amount_paid), 0) AS paid FROM payments_out"
            ).fetchone()
            suppliers = conn.execute("SELECT COUNT(*) FROM suppliers").fetchone()[0]

        # total_amount is stored as text, summed as Decimal
        purchased = sum((Decimal(r["total_amount"]) for r in purchases), Decimal("0"))
        return {
            "purchases":       len(purchases),
            "purchased_total": str(purchased),
            "payments":        payments["n"],
            "paid_total":      payments["paid"],
            "suppliers":       suppliers,
        }
