"""
Payment database model.

A settled billing period for one company.
"""

from sqlalchemy import BigInteger, Column, Integer, ForeignKey, Date, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buffet_ledger.app.db.session import Base


class Payment(Base):
    """
    Payment model.

    Covers the inclusive period [from_date, to_date]. total_amount is
    total_count * unit_price, computed at settlement and persisted.
    Only receipt_path may change after creation.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)

    # Billing period
    from_date = Column(Date, nullable=False)
    to_date = Column(Date, nullable=False, index=True)

    # Financials (integer currency units)
    total_count = Column(Integer, nullable=False)
    unit_price = Column(BigInteger, nullable=False)
    total_amount = Column(BigInteger, nullable=False)

    paid_at = Column(DateTime(timezone=True), nullable=False, index=True)
    paid_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    receipt_path = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    company = relationship("Company", back_populates="payments")
    receipt = relationship(
        "Receipt", back_populates="payment", uselist=False, cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<Payment(id={self.id}, company={self.company_id}, {self.from_date}..{self.to_date}, amount={self.total_amount})>"
