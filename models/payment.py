from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class PaymentOut(BaseModel):
    """
    A payment made to a supplier against a purchase invoice.
    invoice_number links the payment to the purchase it settles.
    """
    id: Optional[int] = None
    invoice_number: str = Field(min_length=1)
    supplier_name: str = Field(min_length=1)
    billing_address: str = Field(min_length=1)
    payment_date: date
    amount_paid: float = Field(gt=0)
