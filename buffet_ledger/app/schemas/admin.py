"""
Admin API Schema Definitions.

Pydantic schemas for admin endpoints.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List
from buffet_ledger.app.models.enums import UserRole


class AdminUserItem(BaseModel):
    """Staff user as shown in the PIN manager."""
    id: int
    name: Optional[str] = None
    role: UserRole
    has_pin: bool
    failed_attempts: int
    locked_until: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "AdminUserItem":
        return cls(
            id=user.id,
            name=user.name,
            role=user.role,
            has_pin=bool(user.password_hash),
            failed_attempts=user.failed_attempts or 0,
            locked_until=user.locked_until,
        )


class AuditLogResponse(BaseModel):
    """Schema for audit log entry."""
    id: int
    actor_id: Optional[int]
    actor_name: Optional[str]
    action: str
    description: str
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditTrailResponse(BaseModel):
    """Schema for audit trail list."""
    logs: List[AuditLogResponse]
    total: int
