"""
Ledger entry Pydantic schemas.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Optional

MAX_VISIT_COUNT = 20
MAX_SIGNER_LENGTH = 50


class EntryCreate(BaseModel):
    """
    Schema for recording a visit.

    Used by POST /entries. `code` is the company code the counter types in.
    """
    company_id: int = Field(..., description="Company the visit belongs to")
    code: str = Field(..., min_length=4, max_length=4, description="4-character company code")
    entry_date: date = Field(..., description="Visit date (YYYY-MM-DD)")
    count: int = Field(..., ge=1, le=MAX_VISIT_COUNT, description="Headcount (1-20)")
    signer: Optional[str] = Field(default=None, description="Name of the person who signed")

    @field_validator("signer")
    @classmethod
    def normalize_signer(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if len(value) > MAX_SIGNER_LENGTH:
            raise ValueError(f"Signer must be at most {MAX_SIGNER_LENGTH} characters")
        return value or None


class EntryCreatedResponse(BaseModel):
    entry_id: int
    message: str = "Entry recorded."


class EntryResponse(BaseModel):
    """Schema for displaying entries."""
    id: int
    company_id: int
    entry_date: date
    count: int
    signer: Optional[str] = None
    is_paid: bool
    payment_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
