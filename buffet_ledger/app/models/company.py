"""
Company database model.

Client companies whose employees eat at the buffet.
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buffet_ledger.app.db.session import Base


class Company(Base):
    """
    Client company.

    The 4-character code is a shared secret the counter must type in to
    record a visit for the company. Deleting a company removes its entries,
    payments and receipts.
    """
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    code = Column(String(4), unique=True, index=True, nullable=False)

    # Contact details
    contact_name = Column(String(50), nullable=True)
    contact_phone = Column(String(30), nullable=True)
    business_number = Column(String(20), nullable=True)
    address = Column(String(200), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    entries = relationship(
        "LedgerEntry", back_populates="company", cascade="all, delete-orphan", passive_deletes=True
    )
    payments = relationship(
        "Payment", back_populates="company", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}', code='{self.code}')>"
