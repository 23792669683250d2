"""
Ledger entry API endpoints.

Recording visits at the counter and listing entries for settlement.
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from buffet_ledger.app.db.session import get_db
from buffet_ledger.app.core.dependencies import client_ip, get_ledger_service
from buffet_ledger.app.core.guards import Capability, require_capability
from buffet_ledger.app.schemas.auth import SessionData
from buffet_ledger.app.schemas.entry import EntryCreate, EntryCreatedResponse, EntryResponse
from buffet_ledger.app.services.audit import AuditAction, log_event
from buffet_ledger.app.services.ledger_service import LedgerService

router = APIRouter(prefix="/entries", tags=["Ledger Entries"])


@router.post("", response_model=EntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def record_entry(
    payload: EntryCreate,
    request: Request,
    session: SessionData = Depends(require_capability(Capability.RECORD_ENTRIES)),
    service: LedgerService = Depends(get_ledger_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Record a visit.

    The company code typed at the counter must match the stored code
    (403 ERR_ENTRY_001 otherwise).
    """
    entry, company = await service.record_visit(
        session=session,
        company_id=payload.company_id,
        code=payload.code,
        entry_date=payload.entry_date,
        count=payload.count,
        signer=payload.signer,
    )

    await log_event(
        db=db,
        action=AuditAction.ENTRY_CREATED,
        description=f"{company.name}: {entry.count} guest(s) on {entry.entry_date.isoformat()}",
        actor_id=session.subject_id,
        actor_name=session.name,
        metadata={
            "entry_id": entry.id,
            "company_id": company.id,
            "entry_date": entry.entry_date.isoformat(),
            "count": entry.count,
            "signer": entry.signer,
        },
        ip_address=client_ip(request),
    )

    return EntryCreatedResponse(entry_id=entry.id)


@router.get("", response_model=List[EntryResponse])
async def list_entries(
    start_date: Optional[date] = Query(None, description="First entry date (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last entry date (inclusive)"),
    company_id: Optional[int] = Query(None),
    session: SessionData = Depends(require_capability(Capability.RECORD_ENTRIES)),
    service: LedgerService = Depends(get_ledger_service)
):
    """Entries in a date range, newest first."""
    entries = await service.list_entries(start_date=start_date, end_date=end_date, company_id=company_id)
    return [EntryResponse.model_validate(e) for e in entries]


@router.get("/unpaid", response_model=List[EntryResponse])
async def list_unpaid_entries(
    company_id: Optional[int] = Query(None),
    session: SessionData = Depends(require_capability(Capability.SETTLE_PAYMENTS)),
    service: LedgerService = Depends(get_ledger_service)
):
    """Entries still open for settlement."""
    entries = await service.list_entries(company_id=company_id, unpaid_only=True)
    return [EntryResponse.model_validate(e) for e in entries]
