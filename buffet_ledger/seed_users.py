"""
Database seeding script for initial users.

Creates an ADMIN and a COUNTER user plus one sample company for
development. Run this script after the database is set up but before
first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from buffet_ledger.app.db.session import AsyncSessionLocal, engine, Base
from buffet_ledger.app.models.user import User
from buffet_ledger.app.models.company import Company
from buffet_ledger.app.models.enums import UserRole
from buffet_ledger.app.core.security import get_password_hash
from sqlalchemy import select


async def seed_users():
    """
    Seed initial users with different roles.

    Creates:
    - 1 ADMIN user (PIN 1234)
    - 1 COUNTER user (PIN 0000)
    - 1 sample company (code ABCD)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting user seeding...")

        result = await db.execute(select(User).where(User.role == UserRole.ADMIN))
        if result.scalars().first():
            print("ℹ️  ADMIN user already exists, skipping seeding")
            return

        db.add(User(
            name="Admin",
            email="admin@buffet.local",
            role=UserRole.ADMIN,
            password_hash=get_password_hash("1234"),
        ))
        print("✅ Created ADMIN user (name: Admin, PIN: 1234)")

        db.add(User(
            name="Counter",
            role=UserRole.COUNTER,
            password_hash=get_password_hash("0000"),
        ))
        print("✅ Created COUNTER user (name: Counter, PIN: 0000)")

        db.add(Company(name="Sample Company", code="ABCD", contact_name="Kim"))
        print("✅ Created sample company (code: ABCD)")

        await db.commit()

        print("\n🎉 Seeding completed successfully!")
        print("\nChange both PINs after the first sign-in (POST /v1/auth/pin).")


if __name__ == "__main__":
    asyncio.run(seed_users())
