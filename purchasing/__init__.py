from .ledger import PurchaseLedger
from .supplier_directory import SupplierDirectory
from .validator import PurchaseValidator
from .database import Database
from .session import PurchaseEntrySession, SessionClosedError, build_ledger

__all__ = [
    "PurchaseLedger", "SupplierDirectory", "PurchaseValidator",
    "Database", "PurchaseEntrySession", "SessionClosedError", "build_ledger",
]
