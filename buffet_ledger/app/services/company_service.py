"""
Company management service.

Admin-side create/update/delete plus the shared company listing.
Deleting a company is irreversible and removes its entries, payments
and receipts.
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from buffet_ledger.app.core.exceptions import ConflictError, ResourceNotFoundError
from buffet_ledger.app.models.company import Company
from buffet_ledger.app.models.ledger_entry import LedgerEntry
from buffet_ledger.app.schemas.company import CompanyBase

logger = logging.getLogger(__name__)

DUPLICATE_CODE_MESSAGE = "This company code is already in use."


class CompanyService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_companies(self) -> list[Company]:
        result = await self.db.execute(select(Company).order_by(Company.name, Company.id))
        return list(result.scalars().all())

    async def get_company(self, company_id: int) -> Company:
        company = await self.db.get(Company, company_id)
        if not company:
            raise ResourceNotFoundError("Company", company_id)
        return company

    async def _ensure_code_free(self, code: str, exclude_id: int = None) -> None:
        query = select(Company.id).where(Company.code == code)
        if exclude_id is not None:
            query = query.where(Company.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise ConflictError(DUPLICATE_CODE_MESSAGE, error_code="ERR_COMPANY_CODE_TAKEN")

    async def _commit_unique(self) -> None:
        # The unique index still guards against a concurrent insert
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(DUPLICATE_CODE_MESSAGE, error_code="ERR_COMPANY_CODE_TAKEN") from exc

    async def create_company(self, data: CompanyBase) -> Company:
        await self._ensure_code_free(data.code)

        company = Company(**data.model_dump())
        self.db.add(company)
        await self._commit_unique()
        await self.db.refresh(company)

        logger.info("Company %s created (%s)", company.id, company.name)
        return company

    async def update_company(self, company_id: int, data: CompanyBase) -> Company:
        company = await self.get_company(company_id)
        await self._ensure_code_free(data.code, exclude_id=company_id)

        for field, value in data.model_dump().items():
            setattr(company, field, value)
        await self._commit_unique()
        await self.db.refresh(company)

        return company

    async def delete_company(self, company_id: int) -> Company:
        """Delete a company with its entries; the database cascades to payments and receipts."""
        company = await self.get_company(company_id)
        # Entries go first; a paid entry must never see its payment_id nulled
        await self.db.execute(delete(LedgerEntry).where(LedgerEntry.company_id == company_id))
        await self.db.delete(company)
        await self.db.commit()

        logger.warning("Company %s (%s) deleted with all ledger data", company_id, company.name)
        return company
