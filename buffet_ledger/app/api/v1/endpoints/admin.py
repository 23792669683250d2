"""
Admin API Endpoints.

Company management, PIN resets, payment reports, visit statistics and
the audit trail. Every route requires the admin role.
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from buffet_ledger.app.db.session import get_db
from buffet_ledger.app.models.audit_log import AuditLog
from buffet_ledger.app.core.clock import utc_today
from buffet_ledger.app.core.dependencies import client_ip, get_company_service, get_session_manager
from buffet_ledger.app.core.exceptions import ValidationError
from buffet_ledger.app.core.guards import require_admin
from buffet_ledger.app.schemas.admin import AdminUserItem, AuditLogResponse, AuditTrailResponse
from buffet_ledger.app.schemas.auth import MessageResponse, SessionData, SetPinRequest
from buffet_ledger.app.schemas.company import CompanyCreate, CompanyResponse, CompanyUpdate
from buffet_ledger.app.schemas.reporting import CompanyVisitStats, PaymentDetail, PaymentListItem, SummaryStats
from buffet_ledger.app.services.audit import AuditAction, get_audit_trail, log_event
from buffet_ledger.app.services.company_service import CompanyService
from buffet_ledger.app.services.reporting import ReportingService
from buffet_ledger.app.services.session_manager import SessionManager

router = APIRouter(prefix="/admin", tags=["Admin"])


# Companies

@router.post("/companies", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    payload: CompanyCreate,
    request: Request,
    admin: SessionData = Depends(require_admin),
    service: CompanyService = Depends(get_company_service),
    db: AsyncSession = Depends(get_db)
):
    """Register a company. 409 when the code is already taken."""
    company = await service.create_company(payload)

    await log_event(
        db=db,
        action=AuditAction.COMPANY_CREATED,
        description=f"Company '{company.name}' created",
        actor_id=admin.subject_id,
        actor_name=admin.name,
        metadata={"company_id": company.id, "code": company.code},
        ip_address=client_ip(request),
    )

    return CompanyResponse.model_validate(company)


@router.put("/companies/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: int,
    payload: CompanyUpdate,
    request: Request,
    admin: SessionData = Depends(require_admin),
    service: CompanyService = Depends(get_company_service),
    db: AsyncSession = Depends(get_db)
):
    company = await service.update_company(company_id, payload)

    await log_event(
        db=db,
        action=AuditAction.COMPANY_UPDATED,
        description=f"Company '{company.name}' updated",
        actor_id=admin.subject_id,
        actor_name=admin.name,
        metadata={"company_id": company.id, "changes": payload.model_dump()},
        ip_address=client_ip(request),
    )

    return CompanyResponse.model_validate(company)


@router.delete("/companies/{company_id}", response_model=MessageResponse)
async def delete_company(
    company_id: int,
    request: Request,
    admin: SessionData = Depends(require_admin),
    service: CompanyService = Depends(get_company_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a company together with its entries, payments and receipts.

    Stored receipt files are left in place.
    """
    company = await service.delete_company(company_id)

    await log_event(
        db=db,
        action=AuditAction.COMPANY_DELETED,
        description=f"Company '{company.name}' deleted",
        actor_id=admin.subject_id,
        actor_name=admin.name,
        metadata={"company_id": company_id, "code": company.code},
        ip_address=client_ip(request),
    )

    return MessageResponse(message=f"Company '{company.name}' deleted")


# Users / PINs

@router.get("/users", response_model=List[AdminUserItem])
async def list_users(
    admin: SessionData = Depends(require_admin),
    manager: SessionManager = Depends(get_session_manager)
):
    """Staff users with PIN and lockout state."""
    users = await manager.list_login_users()
    return [AdminUserItem.from_user(user) for user in users]


@router.put("/users/{user_id}/pin", response_model=MessageResponse)
async def reset_user_pin(
    user_id: int,
    payload: SetPinRequest,
    request: Request,
    admin: SessionData = Depends(require_admin),
    manager: SessionManager = Depends(get_session_manager),
    db: AsyncSession = Depends(get_db)
):
    """Set a user's PIN and lift any lockout."""
    user = await manager.set_pin(user_id, payload.pin)

    await log_event(
        db=db,
        action=AuditAction.PIN_RESET,
        description=f"PIN reset for {user.name or user.id}",
        actor_id=admin.subject_id,
        actor_name=admin.name,
        metadata={"target_user_id": user.id},
        ip_address=client_ip(request),
    )

    return MessageResponse(message=f"PIN updated for {user.name or user.id}")


# Payments

@router.get("/payments", response_model=List[PaymentListItem])
async def list_payments(
    start_date: Optional[date] = Query(None, description="First paid day (default: start of month)"),
    end_date: Optional[date] = Query(None, description="Last paid day (default: today)"),
    admin: SessionData = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Payments made within a paid_at day range, newest first."""
    today = utc_today()
    start_date = start_date or today.replace(day=1)
    end_date = end_date or today
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date.", field="start_date")

    return await ReportingService.list_payments_by_paid_at(db, start_date, end_date)


@router.get("/payments/{payment_id}", response_model=PaymentDetail)
async def get_payment_detail(
    payment_id: int,
    admin: SessionData = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await ReportingService.get_payment_detail(db, payment_id)


# Statistics

@router.get("/stats/visits", response_model=List[CompanyVisitStats])
async def get_visit_stats(
    admin: SessionData = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Headcount per company for today and this month."""
    return await ReportingService.get_visit_stats(db, utc_today())


@router.get("/stats/summary", response_model=SummaryStats)
async def get_summary_stats(
    admin: SessionData = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await ReportingService.get_summary(db, utc_today())


# Audit trail

@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by acting user ID"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    limit: int = Query(50, ge=1, le=500, description="Maximum records to return"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    admin: SessionData = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Get audit trail with optional filtering (admin-only).

    `total` counts every matching record, not just the returned page.
    """
    logs = await get_audit_trail(db=db, actor_id=user_id, action=action, limit=limit, offset=offset)

    count_query = select(func.count(AuditLog.id))
    if user_id:
        count_query = count_query.where(AuditLog.actor_id == user_id)
    if action:
        count_query = count_query.where(AuditLog.action == action)
    total = (await db.execute(count_query)).scalar() or 0

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=total
    )
