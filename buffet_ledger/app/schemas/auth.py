"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
"""

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Optional
from buffet_ledger.app.models.enums import UserRole

PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 16


class SessionData(BaseModel):
    """
    Authenticated identity carried by the session token.

    Returned by GET /auth/me and injected into protected endpoints.
    """
    subject_id: int
    role: UserRole
    name: Optional[str] = None
    issued_at: datetime
    expires_at: datetime


class LoginRequest(BaseModel):
    """
    Schema for PIN login.

    Used by POST /auth/login endpoint.
    """
    user_id: int = Field(..., description="ID of the user picked on the login screen")
    pin: str = Field(..., min_length=PIN_MIN_LENGTH, max_length=PIN_MAX_LENGTH, description="PIN (4-16 characters)")


class LoginResponse(BaseModel):
    """Returned by a successful login; the token itself travels in the cookie."""
    session: SessionData
    message: str = "Signed in"


class LoginUser(BaseModel):
    """Public user entry for the login screen picker."""
    id: int
    name: Optional[str] = None
    role: UserRole

    class Config:
        from_attributes = True


class ChangePinRequest(BaseModel):
    """Schema for POST /auth/pin (self-service PIN change)."""
    current_pin: str = Field(..., min_length=PIN_MIN_LENGTH, max_length=PIN_MAX_LENGTH)
    new_pin: str = Field(..., min_length=PIN_MIN_LENGTH, max_length=PIN_MAX_LENGTH)
    confirm_pin: str = Field(..., min_length=PIN_MIN_LENGTH, max_length=PIN_MAX_LENGTH)

    @model_validator(mode="after")
    def pins_match(self):
        if self.new_pin != self.confirm_pin:
            raise ValueError("New PIN and confirmation do not match")
        return self


class SetPinRequest(BaseModel):
    """Schema for admin PIN reset."""
    pin: str = Field(..., min_length=PIN_MIN_LENGTH, max_length=PIN_MAX_LENGTH)


class MessageResponse(BaseModel):
    """Plain confirmation message."""
    message: str
