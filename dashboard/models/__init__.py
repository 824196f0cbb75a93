"""
Pydantic models for dashboard API requests.
"""
from datetime import date
from typing import Optional, Union

from pydantic import BaseModel, Field

# Numeric form fields arrive as typed text or as JSON numbers; the ledger
# parses both.
RawNumber = Union[int, float, str, None]


class LineItemInput(BaseModel):
    name: str = ""
    quantity: RawNumber = 1
    unit: Optional[str] = None
    price_per_unit: RawNumber = 0
    gst_rate: RawNumber = 5

    def to_seed(self) -> dict:
        seed = self.model_dump()
        if seed["unit"] is None:
            del seed["unit"]
        return seed


class PurchaseCreate(BaseModel):
    supplier_name: str = ""
    billing_address: str = ""
    billing_date: Optional[str] = None      # YYYY-MM-DD, defaults to today
    line_items: list[LineItemInput] = Field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "supplier_name":   self.supplier_name,
            "billing_address": self.billing_address,
            "billing_date":    self.billing_date,
            "line_items":      [li.to_seed() for li in self.line_items],
        }


class PaymentCreate(BaseModel):
    invoice_number: str
    supplier_name: str
    billing_address: str
    payment_date: date
    amount_paid: float


class PaymentUpdate(BaseModel):
    invoice_number: Optional[str] = None
    supplier_name: Optional[str] = None
    billing_address: Optional[str] = None
    payment_date: Optional[date] = None
    amount_paid: Optional[float] = None


class SupplierCreate(BaseModel):
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None
    gstin: Optional[str] = None
    amount_payable: float = 0.0


class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gstin: Optional[str] = None
    amount_payable: Optional[float] = None
