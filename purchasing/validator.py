"""
Submission-time purchase validation.

The ledger accepts any input while a purchase is being edited; these checks
run once, on the snapshot, when the purchase is handed to persistence.

Checks:
  Required fields: supplier name, billing date, product names
  Dates:           billing date too far in the future, very old
  Amounts:         zero quantity, zero price, zero invoice total
  Supplier:        not in the supplier master list
"""
import logging
from datetime import date, timedelta
from typing import Optional

from models.purchase import PurchaseInvoice
from models.result import SubmissionIssue
from .supplier_directory import SupplierDirectory

logger = logging.getLogger(__name__)

# Configurable thresholds (can be overridden via Config)
MAX_DAYS_IN_PAST = 365      # warn if billing date > this many days ago
MAX_DAYS_IN_FUTURE = 7      # error if billing date > this many days ahead


class PurchaseValidator:
    """
    Produces a list of SubmissionIssue objects for a purchase snapshot.

    Usage:
        validator = PurchaseValidator()
        issues = validator.validate(invoice, directory)
    """

    def __init__(
        self,
        max_days_past: int = MAX_DAYS_IN_PAST,
        max_days_future: int = MAX_DAYS_IN_FUTURE,
    ):
        self.max_days_past = max_days_past
        self.max_days_future = max_days_future

    def validate(
        self,
        invoice: PurchaseInvoice,
        directory: Optional[SupplierDirectory] = None,
        today: Optional[date] = None,
    ) -> list[SubmissionIssue]:
        """Run all checks and return combined issues list."""
        issues: list[SubmissionIssue] = []
        issues.extend(self._check_required(invoice))
        issues.extend(self._check_dates(invoice, today or date.today()))
        issues.extend(self._check_amounts(invoice))
        issues.extend(self._check_supplier(invoice, directory))
        if issues:
            logger.debug("Purchase %s: %d issue(s)", invoice.invoice_number, len(issues))
        return issues

    # ------------------------------------------------------------------
    # Required fields
    # ------------------------------------------------------------------

    def _check_required(self, inv: PurchaseInvoice) -> list[SubmissionIssue]:
        issues = []

        if not inv.supplier_name.strip():
            issues.append(SubmissionIssue(
                type="missing_supplier_name",
                severity="error",
                description="Supplier name is required",
                field="supplier_name",
            ))

        if inv.billing_date is None:
            issues.append(SubmissionIssue(
                type="missing_billing_date",
                severity="error",
                description="Billing date is required",
                field="billing_date",
            ))

        if not inv.billing_address.strip():
            issues.append(SubmissionIssue(
                type="missing_billing_address",
                severity="info",
                description="No billing address entered",
                field="billing_address",
            ))

        for i, item in enumerate(inv.line_items):
            if not item.name.strip():
                issues.append(SubmissionIssue(
                    type="missing_product_name",
                    severity="error",
                    description=f"Line item {i + 1} has no product name",
                    field=f"line_items[{i}].name",
                ))

        return issues

    # ------------------------------------------------------------------
    # Date checks
    # ------------------------------------------------------------------

    def _check_dates(self, inv: PurchaseInvoice, today: date) -> list[SubmissionIssue]:
        issues = []
        billed = inv.billing_date
        if billed is None:
            return issues

        days_ahead = (billed - today).days
        days_ago = (today - billed).days

        if days_ahead > self.max_days_future:
            issues.append(SubmissionIssue(
                type="billing_date_future",
                severity="error",
                description=f"Billing date {billed.isoformat()} is {days_ahead} days in the future",
                field="billing_date",
                value=billed.isoformat(),
            ))

        if days_ago > self.max_days_past:
            issues.append(SubmissionIssue(
                type="billing_date_too_old",
                severity="warning",
                description=(
                    f"Billing date {billed.isoformat()} is {days_ago} days in the past "
                    f"(threshold: {self.max_days_past} days, "
                    f"earliest {(today - timedelta(days=self.max_days_past)).isoformat()})"
                ),
                field="billing_date",
                value=billed.isoformat(),
            ))

        return issues

    # ------------------------------------------------------------------
    # Amount checks
    # ------------------------------------------------------------------

    def _check_amounts(self, inv: PurchaseInvoice) -> list[SubmissionIssue]:
        issues = []

        for i, item in enumerate(inv.line_items):
            label = item.name or f"line {i + 1}"
            if item.quantity == 0:
                issues.append(SubmissionIssue(
                    type="zero_quantity",
                    severity="warning",
                    description=f"Line item {i + 1} ({label}) has zero quantity",
                    field=f"line_items[{i}].quantity",
                    value="0",
                ))
            if item.price_per_unit == 0:
                issues.append(SubmissionIssue(
                    type="zero_price",
                    severity="warning",
                    description=f"Line item {i + 1} ({label}) has zero price per unit",
                    field=f"line_items[{i}].price_per_unit",
                    value="0",
                ))

        if inv.totals.amount == 0:
            issues.append(SubmissionIssue(
                type="zero_total",
                severity="warning",
                description="Purchase total is zero",
                field="totals.amount",
                value="0",
            ))

        return issues

    # ------------------------------------------------------------------
    # Supplier checks
    # ------------------------------------------------------------------

    def _check_supplier(
        self,
        inv: PurchaseInvoice,
        directory: Optional[SupplierDirectory],
    ) -> list[SubmissionIssue]:
        if directory is None or not inv.supplier_name.strip():
            return []
        if directory.match(inv.supplier_name) is not None:
            return []
        return [SubmissionIssue(
            type="supplier_not_found",
            severity="info",
            description=(
                f"Supplier '{inv.supplier_name}' is not in the supplier list"
            ),
            field="supplier_name",
            value=inv.supplier_name,
        )]
