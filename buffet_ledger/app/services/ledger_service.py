"""
Ledger entry service.

Records visits after checking the company code, and lists entries for the
counter screens.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buffet_ledger.app.core.exceptions import (
    CodeMismatchError,
    ResourceNotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from buffet_ledger.app.models.company import Company
from buffet_ledger.app.models.ledger_entry import LedgerEntry
from buffet_ledger.app.schemas.auth import SessionData
from buffet_ledger.app.schemas.entry import MAX_SIGNER_LENGTH, MAX_VISIT_COUNT

logger = logging.getLogger(__name__)


def _parse_entry_date(value) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError("Entry date must be a calendar date (YYYY-MM-DD).", field="entry_date")


def _normalize_signer(signer: Optional[str]) -> Optional[str]:
    if signer is None:
        return None
    signer = signer.strip()
    if len(signer) > MAX_SIGNER_LENGTH:
        raise ValidationError(f"Signer must be at most {MAX_SIGNER_LENGTH} characters.", field="signer")
    return signer or None


class LedgerService:
    """Ledger entry operations for one request."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_visit(
        self,
        session: Optional[SessionData],
        company_id: int,
        code: str,
        entry_date,
        count: int,
        signer: Optional[str] = None,
    ) -> tuple[LedgerEntry, Company]:
        """
        Record one visit for a company.

        The attested code must equal the company's stored code.

        Returns:
            (created entry, its company)

        Raises:
            UnauthenticatedError: no session
            ResourceNotFoundError: unknown company
            CodeMismatchError: wrong company code
            ValidationError: bad date, count outside 1-20, signer too long
        """
        if session is None:
            raise UnauthenticatedError()

        company = await self.db.get(Company, company_id)
        if not company:
            raise ResourceNotFoundError("Company", company_id)

        if company.code != code:
            logger.info("Code mismatch recording visit for company %s by user %s", company_id, session.subject_id)
            raise CodeMismatchError()

        visit_date = _parse_entry_date(entry_date)

        if isinstance(count, bool) or not isinstance(count, int) or not 1 <= count <= MAX_VISIT_COUNT:
            raise ValidationError(f"Headcount must be between 1 and {MAX_VISIT_COUNT}.", field="count")

        entry = LedgerEntry(
            company_id=company.id,
            entry_date=visit_date,
            count=count,
            signer=_normalize_signer(signer),
            is_paid=False,
            payment_id=None,
            created_by=session.subject_id,
        )
        self.db.add(entry)
        await self.db.commit()
        await self.db.refresh(entry)

        return entry, company

    async def list_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        company_id: Optional[int] = None,
        unpaid_only: bool = False,
    ) -> list[LedgerEntry]:
        """Entries filtered by date range/company, newest first."""
        query = select(LedgerEntry).order_by(LedgerEntry.entry_date.desc(), LedgerEntry.id.desc())

        if start_date:
            query = query.where(LedgerEntry.entry_date >= start_date)
        if end_date:
            query = query.where(LedgerEntry.entry_date <= end_date)
        if company_id:
            query = query.where(LedgerEntry.company_id == company_id)
        if unpaid_only:
            query = query.where(LedgerEntry.is_paid.is_(False))

        result = await self.db.execute(query)
        return list(result.scalars().all())
