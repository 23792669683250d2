"""
Settlement Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List

# Price per guest in integer currency units
MAX_UNIT_PRICE = 10_000_000


class PrepareSettlementRequest(BaseModel):
    """Entries the counter ticked for settlement."""
    entry_ids: List[int] = Field(..., min_length=1)


class SettlementProposal(BaseModel):
    """Default billing parameters shown before the user confirms."""
    company_id: int
    company_name: str
    from_date: date
    to_date: date
    total_count: int
    unit_price: int


class SettlementResult(BaseModel):
    """Outcome of a completed settlement."""
    payment_id: int
    company_id: int
    from_date: date
    to_date: date
    total_count: int
    unit_price: int
    total_amount: int
    receipt_path: Optional[str] = None
    message: str


class ReceiptUrlResponse(BaseModel):
    url: str
    expires_in: int


class PaymentResponse(BaseModel):
    """Schema for displaying payments."""
    id: int
    company_id: int
    from_date: date
    to_date: date
    total_count: int
    unit_price: int
    total_amount: int
    paid_at: datetime
    paid_by: Optional[int] = None
    has_receipt: bool = False

    class Config:
        from_attributes = True
