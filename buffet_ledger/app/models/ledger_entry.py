"""
Ledger Entry database model.

One recorded visit: a headcount for a company on a given day.
"""

from sqlalchemy import Column, Integer, Boolean, ForeignKey, Date, DateTime, String, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buffet_ledger.app.db.session import Base


class LedgerEntry(Base):
    """
    Ledger Entry model.

    Created unpaid. The settlement engine flips is_paid and sets payment_id
    exactly once; a paid entry always has a payment_id.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint("count >= 1 AND count <= 20", name="ck_ledger_entries_count_range"),
        CheckConstraint("is_paid = false OR payment_id IS NOT NULL", name="ck_ledger_entries_paid_has_payment"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Linkage
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Visit details
    entry_date = Column(Date, nullable=False, index=True)
    count = Column(Integer, nullable=False)
    signer = Column(String(50), nullable=True)

    is_paid = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    company = relationship("Company", back_populates="entries")

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, date={self.entry_date}, count={self.count}, paid={self.is_paid})>"
