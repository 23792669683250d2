"""
Audit logging service.

Append-only event log for sign-ins, ledger writes, settlements and admin
changes. Recording an event never fails the calling operation: errors are
logged and swallowed after rolling back the audit insert.
"""

import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, desc
from buffet_ledger.app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    PIN_CHANGED = "pin_changed"
    PIN_RESET = "pin_reset"

    ENTRY_CREATED = "entry_created"
    PAYMENT_COMPLETED = "payment_completed"

    COMPANY_CREATED = "company_created"
    COMPANY_UPDATED = "company_updated"
    COMPANY_DELETED = "company_deleted"


async def log_event(
    db: AsyncSession,
    action: str,
    description: str,
    actor_id: Optional[int] = None,
    actor_name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> Optional[AuditLog]:
    """
    Record an event in the audit log.

    Args:
        db: Database session
        action: Action being recorded (use AuditAction constants)
        description: Human-readable summary
        actor_id: ID of user performing the action
        actor_name: Display name of actor
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance, or None if it could not be stored
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_name=actor_name,
        action=action,
        description=description,
        meta_data=metadata,
        ip_address=ip_address
    )

    try:
        db.add(audit_log)
        await db.commit()
        await db.refresh(audit_log)
    except SQLAlchemyError:
        logger.exception("Failed to record audit event %s", action)
        await db.rollback()
        return None

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    actor_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 50,
    offset: int = 0
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        db: Database session
        actor_id: Filter by acting user
        action: Filter by action type
        limit: Maximum number of records to return
        offset: Number of records to skip

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if actor_id:
        query = query.where(AuditLog.actor_id == actor_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.offset(offset).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
