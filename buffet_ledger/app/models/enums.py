"""
User roles enumeration.

Defines the role types for the buffet ledger.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Manages companies, PINs, payments and statistics
        COUNTER: Front-desk staff recording visits and settling payments
    """
    ADMIN = "admin"
    COUNTER = "counter"
