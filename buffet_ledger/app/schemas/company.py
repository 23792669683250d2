"""
Company Schemas.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional


class CompanyBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=4, max_length=4, description="4-character company code")
    contact_name: Optional[str] = Field(default=None, max_length=50)
    contact_phone: Optional[str] = Field(default=None, max_length=30)
    business_number: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=200)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Company name is required")
        return value

    @field_validator("contact_name", "contact_phone", "business_number", "address")
    @classmethod
    def blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class CompanyCreate(CompanyBase):
    """Schema for creating a company (admin)."""


class CompanyUpdate(CompanyBase):
    """Schema for replacing a company's details (admin)."""


class CompanySummary(BaseModel):
    """Company list item; code is only filled in for admins."""
    id: int
    name: str
    code: Optional[str] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None

    class Config:
        from_attributes = True


class CompanyResponse(BaseModel):
    """Full company record (admin)."""
    id: int
    name: str
    code: str
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    business_number: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
