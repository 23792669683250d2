"""
Company listing for signed-in staff.

Counter staff get the company list without codes; the code must be typed
in when recording a visit.
"""

from typing import List
from fastapi import APIRouter, Depends
from buffet_ledger.app.core.dependencies import get_company_service, get_current_session
from buffet_ledger.app.core.guards import Capability, has_capability
from buffet_ledger.app.schemas.auth import SessionData
from buffet_ledger.app.schemas.company import CompanySummary
from buffet_ledger.app.services.company_service import CompanyService

router = APIRouter(prefix="/companies", tags=["Companies"])


@router.get("", response_model=List[CompanySummary])
async def list_companies(
    session: SessionData = Depends(get_current_session),
    service: CompanyService = Depends(get_company_service)
):
    companies = [CompanySummary.model_validate(c) for c in await service.list_companies()]
    if has_capability(session.role, Capability.VIEW_COMPANY_CODES):
        return companies
    return [c.model_copy(update={"code": None}) for c in companies]
