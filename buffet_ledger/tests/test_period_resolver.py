"""
Billing period resolution tests.
"""

from datetime import date, datetime, timezone

import pytest

from buffet_ledger.app.domain.settlement.period_resolver import PeriodResolver
from buffet_ledger.app.models.payment import Payment


def test_first_settlement_starts_at_earliest_entry():
    dates = [date(2026, 3, 9), date(2026, 3, 2), date(2026, 3, 5)]
    assert PeriodResolver.next_period_start(None, dates) == date(2026, 3, 2)


def test_follows_previous_payment():
    assert PeriodResolver.next_period_start(date(2026, 2, 28), [date(2026, 3, 9)]) == date(2026, 3, 1)


def test_previous_payment_wins_over_earlier_entries():
    # A late-recorded entry older than the last period does not pull from_date back
    assert PeriodResolver.next_period_start(date(2026, 3, 10), [date(2026, 3, 1)]) == date(2026, 3, 11)


def test_crosses_year_boundary():
    assert PeriodResolver.next_period_start(date(2025, 12, 31), []) == date(2026, 1, 1)


def test_no_payment_and_no_entries():
    with pytest.raises(ValueError):
        PeriodResolver.next_period_start(None, [])


async def test_last_paid_through_orders_by_to_date(db_session, company, other_company):
    paid_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
    for from_date, to_date in [(date(2026, 2, 1), date(2026, 2, 28)), (date(2026, 1, 1), date(2026, 1, 31))]:
        db_session.add(Payment(
            company_id=company.id, from_date=from_date, to_date=to_date,
            total_count=1, unit_price=8000, total_amount=8000, paid_at=paid_at,
        ))
    db_session.add(Payment(
        company_id=other_company.id, from_date=date(2026, 3, 1), to_date=date(2026, 3, 31),
        total_count=1, unit_price=8000, total_amount=8000, paid_at=paid_at,
    ))
    await db_session.commit()

    assert await PeriodResolver.last_paid_through(db_session, company.id) == date(2026, 2, 28)
    assert await PeriodResolver.resolve_from_date(db_session, company.id, [date(2026, 3, 4)]) == date(2026, 3, 1)


async def test_resolve_without_history(db_session, company):
    assert await PeriodResolver.last_paid_through(db_session, company.id) is None
    assert await PeriodResolver.resolve_from_date(
        db_session, company.id, [date(2026, 3, 4), date(2026, 3, 3)]
    ) == date(2026, 3, 3)
