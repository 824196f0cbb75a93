from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from .purchase import PurchaseInvoice


IssueType = Literal[
    # Required fields
    "missing_supplier_name",
    "missing_billing_date",
    "missing_billing_address",
    "missing_product_name",
    # Dates
    "billing_date_future",
    "billing_date_too_old",
    # Amounts
    "zero_quantity",
    "zero_price",
    "zero_total",
    # Supplier
    "supplier_not_found",
]

SeverityLevel = Literal["error", "warning", "info"]


class SubmissionIssue(BaseModel):
    """A single problem found when a purchase is submitted."""
    type: str                               # One of IssueType values
    severity: SeverityLevel                 # error / warning / info
    description: str                        # Human-readable explanation
    field: Optional[str] = None             # Which field is affected
    value: Optional[str] = None             # What the purchase shows


class SubmissionResult(BaseModel):
    """
    Outcome of handing a purchase snapshot to persistence.
    accepted is False whenever at least one issue has severity "error".
    """
    invoice_number: str
    accepted: bool = False
    invoice: Optional[PurchaseInvoice] = None    # The snapshot that was checked
    issues: List[SubmissionIssue] = Field(default_factory=list)
    error_count: int = 0
    warning_count: int = 0

    def compute_summary(self) -> None:
        """Populate summary fields from the issues list."""
        self.error_count = sum(1 for i in self.issues if i.severity == "error")
        self.warning_count = sum(1 for i in self.issues if i.severity == "warning")
        self.accepted = self.error_count == 0
