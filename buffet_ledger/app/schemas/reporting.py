"""
Reporting Schemas for the admin dashboard.
"""

from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime

from buffet_ledger.app.schemas.settlement import PaymentResponse


class PaymentListItem(PaymentResponse):
    """Payment row with its company, as shown in admin tables."""
    company_name: str
    company_code: str


class PaymentDetailEntry(BaseModel):
    id: int
    entry_date: date
    count: int
    signer: Optional[str] = None
    unit_price: int
    amount: int


class PaymentDetail(BaseModel):
    """A payment together with the entries it settled."""
    id: int
    company_id: int
    company_name: str
    company_code: str
    from_date: date
    to_date: date
    paid_at: datetime
    total_count: int
    unit_price: int
    total_amount: int
    has_receipt: bool
    entries: List[PaymentDetailEntry]


class CompanyVisitStats(BaseModel):
    """Headcount per company for today and the current month."""
    company_id: int
    company_name: str
    today_count: int
    month_count: int


class SummaryStats(BaseModel):
    """Amount totals and the most recent payments."""
    month_total_amount: int
    all_time_total_amount: int
    recent_payments: List[PaymentListItem]

