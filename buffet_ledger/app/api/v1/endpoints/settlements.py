"""
Settlement API endpoints.

Prepare and complete settlements from the counter, browse payments and
hand out time-limited receipt links.
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from buffet_ledger.app.db.session import get_db
from buffet_ledger.app.core.config import settings
from buffet_ledger.app.core.dependencies import client_ip, get_settlement_service
from buffet_ledger.app.core.guards import Capability, require_capability
from buffet_ledger.app.domain.settlement.settlement_service import ReceiptUpload, SettlementService
from buffet_ledger.app.schemas.auth import SessionData
from buffet_ledger.app.schemas.reporting import PaymentListItem
from buffet_ledger.app.schemas.settlement import (
    MAX_UNIT_PRICE, PrepareSettlementRequest, ReceiptUrlResponse, SettlementProposal, SettlementResult
)
from buffet_ledger.app.services.audit import AuditAction, log_event
from buffet_ledger.app.services.reporting import ReportingService

router = APIRouter(prefix="/settlements", tags=["Settlements"])
payments_router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/prepare", response_model=SettlementProposal)
async def prepare_settlement(
    payload: PrepareSettlementRequest,
    session: SessionData = Depends(require_capability(Capability.SETTLE_PAYMENTS)),
    service: SettlementService = Depends(get_settlement_service)
):
    """
    Propose the billing period and totals for the ticked entries.

    Read-only: calling it repeatedly on unchanged data gives the same answer.
    """
    return await service.prepare(payload.entry_ids)


@router.post("/complete", response_model=SettlementResult, status_code=status.HTTP_201_CREATED)
async def complete_settlement(
    request: Request,
    entry_ids: List[int] = Form(..., description="Entries to settle"),
    to_date: date = Form(..., description="Last day of the billing period"),
    unit_price: int = Form(..., ge=0, le=MAX_UNIT_PRICE, description="Price per guest"),
    receipt: Optional[UploadFile] = File(None, description="Receipt image"),
    session: SessionData = Depends(require_capability(Capability.SETTLE_PAYMENTS)),
    service: SettlementService = Depends(get_settlement_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Settle entries into a payment, optionally attaching a receipt file.

    Returns 409 ERR_SETTLE_002 when any entry was paid in the meantime.
    """
    upload = None
    if receipt is not None:
        content = await receipt.read()
        if content:
            upload = ReceiptUpload(
                content=content,
                filename=receipt.filename,
                content_type=receipt.content_type,
            )

    result = await service.complete(
        actor=session,
        entry_ids=entry_ids,
        to_date=to_date,
        unit_price=unit_price,
        receipt=upload,
    )

    await log_event(
        db=db,
        action=AuditAction.PAYMENT_COMPLETED,
        description=(
            f"Payment {result.payment_id}: {result.total_count} guest(s), "
            f"{result.from_date.isoformat()}..{result.to_date.isoformat()}, amount {result.total_amount}"
        ),
        actor_id=session.subject_id,
        actor_name=session.name,
        metadata={
            "payment_id": result.payment_id,
            "company_id": result.company_id,
            "entry_ids": sorted(set(entry_ids)),
            "total_amount": result.total_amount,
            "receipt": result.receipt_path is not None,
        },
        ip_address=client_ip(request),
    )

    return result


@payments_router.get("", response_model=List[PaymentListItem])
async def list_payments(
    start_date: Optional[date] = Query(None, description="Periods ending on or after this day"),
    end_date: Optional[date] = Query(None, description="Periods starting on or before this day"),
    company_id: Optional[int] = Query(None),
    session: SessionData = Depends(require_capability(Capability.VIEW_RECEIPTS)),
    db: AsyncSession = Depends(get_db)
):
    """Payments whose billing period overlaps the given range."""
    return await ReportingService.list_payments_by_period(
        db, start_date=start_date, end_date=end_date, company_id=company_id
    )


@payments_router.get("/{payment_id}/receipt-url", response_model=ReceiptUrlResponse)
async def get_receipt_url(
    payment_id: int,
    session: SessionData = Depends(require_capability(Capability.VIEW_RECEIPTS)),
    service: SettlementService = Depends(get_settlement_service)
):
    """Short-lived download link for a payment's receipt."""
    url = await service.issue_receipt_access_url(session, payment_id)
    return ReceiptUrlResponse(url=url, expires_in=settings.receipt_url_expire_seconds)
