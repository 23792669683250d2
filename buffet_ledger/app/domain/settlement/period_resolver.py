"""
Billing Period Resolver.

Determines where a company's next billing period starts.
Follows priority:
1. Day after the latest previous payment's to_date
2. Earliest date among the entries being settled (first-ever settlement)
"""

from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buffet_ledger.app.models.payment import Payment


class PeriodResolver:

    @staticmethod
    def next_period_start(last_to_date: Optional[date], entry_dates: Iterable[date]) -> date:
        """
        Compute a period's from_date.

        Calendar-date arithmetic only, so there is no timezone drift.

        Raises:
            ValueError: if there is no previous payment and no entry dates.
        """
        if last_to_date is not None:
            return last_to_date + timedelta(days=1)

        dates = list(entry_dates)
        if not dates:
            raise ValueError("Cannot derive a billing period without entries.")
        return min(dates)

    @staticmethod
    async def last_paid_through(db: AsyncSession, company_id: int) -> Optional[date]:
        """to_date of the company's most recent payment, ordered by to_date."""
        query = (
            select(Payment.to_date)
            .where(Payment.company_id == company_id)
            .order_by(Payment.to_date.desc(), Payment.id.desc())
            .limit(1)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def resolve_from_date(db: AsyncSession, company_id: int, entry_dates: Iterable[date]) -> date:
        last_to_date = await PeriodResolver.last_paid_through(db, company_id)
        return PeriodResolver.next_period_start(last_to_date, entry_dates)
