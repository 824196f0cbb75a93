from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Supplier(BaseModel):
    """
    A supplier from the supplier master list.
    amount_payable is the outstanding balance owed to the supplier.
    """
    id: Optional[int] = None
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: Optional[str] = None
    address: Optional[str] = None
    gstin: Optional[str] = None        # GST identification number, e.g. "27AAPFU0939F1ZV"
    amount_payable: float = Field(default=0.0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def gstin_normalised(self) -> Optional[str]:
        """Return the GSTIN uppercased with spaces and punctuation removed."""
        if self.gstin:
            return "".join(c for c in self.gstin if c.isalnum()).upper()
        return None
