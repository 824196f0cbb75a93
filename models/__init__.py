from .purchase import LineItem, PurchaseTotals, PurchaseInvoice
from .payment import PaymentOut
from .supplier import Supplier
from .result import SubmissionIssue, SubmissionResult

__all__ = [
    "LineItem", "PurchaseTotals", "PurchaseInvoice",
    "PaymentOut",
    "Supplier",
    "SubmissionIssue", "SubmissionResult",
]
