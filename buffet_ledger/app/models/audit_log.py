"""
Audit Log Database Model.

Append-only record of sign-ins, ledger writes, settlements and admin changes.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from buffet_ledger.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - login_success / login_failed / logout
    - entry_created
    - payment_completed
    - company_created / company_updated / company_deleted
    - pin_changed / pin_reset
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for anonymous sign-in attempts)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_name = Column(String(100), nullable=True)

    # What happened
    action = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=False)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # IP address for login tracking
    ip_address = Column(String(50), nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_name})>"
