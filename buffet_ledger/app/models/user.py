"""
User database model.

Staff accounts that sign in with a PIN.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from buffet_ledger.app.db.session import Base
from buffet_ledger.app.models.enums import UserRole


class User(Base):
    """
    Staff user.

    password_hash is nullable: a user without one cannot sign in until an
    admin sets a PIN. failed_attempts/locked_until drive the PIN lockout.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, nullable=True)
    role = Column(
        Enum(UserRole, values_callable=lambda roles: [r.value for r in roles]),
        default=UserRole.COUNTER,
        nullable=False,
    )
    password_hash = Column(String(255), nullable=True)

    # Lockout state
    failed_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', role='{self.role.value}')>"
