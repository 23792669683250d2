"""
Reporting Service.

Read-only aggregation for the admin dashboard and the payment history
screens.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select, func, and_, case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from buffet_ledger.app.core.exceptions import ResourceNotFoundError
from buffet_ledger.app.models.company import Company
from buffet_ledger.app.models.ledger_entry import LedgerEntry
from buffet_ledger.app.models.payment import Payment
from buffet_ledger.app.schemas.reporting import (
    CompanyVisitStats, PaymentDetail, PaymentDetailEntry, PaymentListItem, SummaryStats
)

UNREGISTERED_COMPANY_NAME = "Unregistered company"
UNKNOWN_COMPANY_CODE = "----"
RECENT_PAYMENTS_LIMIT = 12


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def to_list_item(payment: Payment) -> PaymentListItem:
    company = payment.company
    return PaymentListItem(
        id=payment.id,
        company_id=payment.company_id,
        company_name=company.name if company else UNREGISTERED_COMPANY_NAME,
        company_code=company.code if company else UNKNOWN_COMPANY_CODE,
        from_date=payment.from_date,
        to_date=payment.to_date,
        total_count=payment.total_count,
        unit_price=payment.unit_price,
        total_amount=payment.total_amount,
        paid_at=payment.paid_at,
        paid_by=payment.paid_by,
        has_receipt=bool(payment.receipt_path),
    )


class ReportingService:

    @staticmethod
    async def list_payments_by_period(
        db: AsyncSession,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        company_id: Optional[int] = None,
    ) -> List[PaymentListItem]:
        """Payments whose billing period overlaps [start_date, end_date], latest period first."""
        query = (
            select(Payment)
            .options(selectinload(Payment.company))
            .order_by(Payment.to_date.desc(), Payment.id.desc())
        )
        if start_date:
            query = query.where(Payment.to_date >= start_date)
        if end_date:
            query = query.where(Payment.from_date <= end_date)
        if company_id:
            query = query.where(Payment.company_id == company_id)

        result = await db.execute(query)
        return [to_list_item(p) for p in result.scalars().all()]

    @staticmethod
    async def list_payments_by_paid_at(
        db: AsyncSession,
        start_date: date,
        end_date: date,
    ) -> List[PaymentListItem]:
        """Payments made between two calendar days (inclusive, UTC), newest first."""
        query = (
            select(Payment)
            .options(selectinload(Payment.company))
            .where(
                Payment.paid_at >= _day_start(start_date),
                Payment.paid_at < _day_start(end_date + timedelta(days=1)),
            )
            .order_by(Payment.paid_at.desc(), Payment.id.desc())
        )
        result = await db.execute(query)
        return [to_list_item(p) for p in result.scalars().all()]

    @staticmethod
    async def get_payment_detail(db: AsyncSession, payment_id: int) -> PaymentDetail:
        """Payment with its settled entries in date order."""
        result = await db.execute(
            select(Payment).options(selectinload(Payment.company)).where(Payment.id == payment_id)
        )
        payment = result.scalar_one_or_none()
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)

        entries_result = await db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.payment_id == payment_id)
            .order_by(LedgerEntry.entry_date, LedgerEntry.id)
        )

        item = to_list_item(payment)
        return PaymentDetail(
            **item.model_dump(exclude={"paid_by"}),
            entries=[
                PaymentDetailEntry(
                    id=entry.id,
                    entry_date=entry.entry_date,
                    count=entry.count,
                    signer=entry.signer,
                    unit_price=payment.unit_price,
                    amount=entry.count * payment.unit_price,
                )
                for entry in entries_result.scalars().all()
            ],
        )

    @staticmethod
    async def get_visit_stats(db: AsyncSession, today: date) -> List[CompanyVisitStats]:
        """
        Headcount per company for today and month-to-date.

        Companies with no visits this month are left out; the busiest
        company today comes first.
        """
        month_start = today.replace(day=1)

        today_sum = func.coalesce(
            func.sum(case((LedgerEntry.entry_date == today, LedgerEntry.count), else_=0)), 0
        )
        month_sum = func.coalesce(func.sum(LedgerEntry.count), 0)

        stmt = (
            select(
                Company.id,
                Company.name,
                today_sum.label("today_count"),
                month_sum.label("month_count"),
            )
            .join(
                LedgerEntry,
                and_(
                    LedgerEntry.company_id == Company.id,
                    LedgerEntry.entry_date >= month_start,
                    LedgerEntry.entry_date <= today,
                ),
            )
            .group_by(Company.id, Company.name)
        )
        rows = (await db.execute(stmt)).all()

        stats = [
            CompanyVisitStats(
                company_id=row.id,
                company_name=row.name,
                today_count=row.today_count,
                month_count=row.month_count,
            )
            for row in rows
            if row.month_count > 0
        ]
        # Stable on name so ties keep alphabetical order
        stats.sort(key=lambda s: s.company_name)
        stats.sort(key=lambda s: s.today_count, reverse=True)
        return stats

    @staticmethod
    async def get_summary(db: AsyncSession, today: date) -> SummaryStats:
        """Month-to-date and all-time paid amounts plus the latest payments."""
        month_start = _day_start(today.replace(day=1))

        month_total = (await db.execute(
            select(func.coalesce(func.sum(Payment.total_amount), 0)).where(Payment.paid_at >= month_start)
        )).scalar() or 0

        all_time_total = (await db.execute(
            select(func.coalesce(func.sum(Payment.total_amount), 0))
        )).scalar() or 0

        recent = await db.execute(
            select(Payment)
            .options(selectinload(Payment.company))
            .order_by(Payment.paid_at.desc(), Payment.id.desc())
            .limit(RECENT_PAYMENTS_LIMIT)
        )

        return SummaryStats(
            month_total_amount=month_total,
            all_time_total_amount=all_time_total,
            recent_payments=[to_list_item(p) for p in recent.scalars().all()],
        )
