"""
Security guards for role-based access control.

Roles form a closed set; every checkpoint goes through `has_capability`,
which handles each role explicitly and rejects anything else.
"""

import enum
from typing import List
from fastapi import Depends
from buffet_ledger.app.core.dependencies import get_current_session
from buffet_ledger.app.core.exceptions import InsufficientPermissionsError
from buffet_ledger.app.models.enums import UserRole
from buffet_ledger.app.schemas.auth import SessionData


class Capability(str, enum.Enum):
    """Things a signed-in user may do."""
    RECORD_ENTRIES = "record_entries"
    SETTLE_PAYMENTS = "settle_payments"
    VIEW_RECEIPTS = "view_receipts"
    VIEW_COMPANY_CODES = "view_company_codes"
    MANAGE_COMPANIES = "manage_companies"
    MANAGE_PINS = "manage_pins"
    VIEW_REPORTS = "view_reports"


COUNTER_CAPABILITIES = frozenset({
    Capability.RECORD_ENTRIES,
    Capability.SETTLE_PAYMENTS,
    Capability.VIEW_RECEIPTS,
})


def has_capability(role: UserRole, capability: Capability) -> bool:
    """
    Decide whether a role grants a capability.

    Raises:
        ValueError: for a role outside the known set
    """
    if role is UserRole.ADMIN:
        return True
    if role is UserRole.COUNTER:
        return capability in COUNTER_CAPABILITIES
    raise ValueError(f"Unknown role: {role!r}")


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin/payments")
        async def list_payments(session: SessionData = Depends(require_role([UserRole.ADMIN]))):
            ...

    Raises:
        InsufficientPermissionsError 403 if the session role is not in allowed_roles
    """
    async def role_checker(session: SessionData = Depends(get_current_session)) -> SessionData:
        if session.role not in allowed_roles:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {', '.join(r.value for r in allowed_roles)}"
            )
        return session

    return role_checker


def require_capability(capability: Capability):
    """Dependency factory checking a single capability."""
    async def capability_checker(session: SessionData = Depends(get_current_session)) -> SessionData:
        if not has_capability(session.role, capability):
            raise InsufficientPermissionsError(
                f"Access denied. Missing capability: {capability.value}"
            )
        return session

    return capability_checker


require_admin = require_role([UserRole.ADMIN])
