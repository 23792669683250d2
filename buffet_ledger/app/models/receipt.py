"""
Receipt database model.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from buffet_ledger.app.db.session import Base


class Receipt(Base):
    """Uploaded receipt file for a payment. At most one per payment, never modified."""
    __tablename__ = "receipts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="CASCADE"), unique=True, nullable=False)
    file_path = Column(String(255), nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    payment = relationship("Payment", back_populates="receipt")

    def __repr__(self):
        return f"<Receipt(id={self.id}, payment={self.payment_id}, path='{self.file_path}')>"
