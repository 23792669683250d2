"""
Centralized Test Configuration.
"""

from datetime import date, datetime, timezone

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from buffet_ledger.app.main import app
from buffet_ledger.app.db.session import get_db, Base
from buffet_ledger.app.core.redis_client import get_redis
from buffet_ledger.app.core.security import get_password_hash
from buffet_ledger.app.models.company import Company
from buffet_ledger.app.models.enums import UserRole
from buffet_ledger.app.models.ledger_entry import LedgerEntry
from buffet_ledger.app.models.user import User
from buffet_ledger.app.services.receipt_storage import LocalReceiptStorage, get_receipt_storage
import buffet_ledger.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_PIN = "1234"
COUNTER_PIN = "0000"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}

# Redis Fixture (Session Scope)
@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()

@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session.
    Global override is safer here than per-test override to avoid app state flux.
    """
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    # Restore and clear
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client

@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture(autouse=True)
def receipt_storage(tmp_path):
    """Receipts go to a per-test directory."""
    storage = LocalReceiptStorage(tmp_path / "receipts", "http://test")
    app.dependency_overrides[get_receipt_storage] = lambda: storage
    yield storage
    app.dependency_overrides.pop(get_receipt_storage, None)

@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


# Data fixtures

@pytest.fixture
async def admin_user(db_session):
    user = User(name="Admin", role=UserRole.ADMIN, password_hash=get_password_hash(ADMIN_PIN))
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user

@pytest.fixture
async def counter_user(db_session):
    user = User(name="Counter", role=UserRole.COUNTER, password_hash=get_password_hash(COUNTER_PIN))
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user

@pytest.fixture
async def company(db_session):
    company = Company(name="Alpha Corp", code="AB12", contact_name="Lee")
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company

@pytest.fixture
async def other_company(db_session):
    company = Company(name="Beta Ltd", code="ZZ99")
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company

@pytest.fixture
def make_entry(db_session, counter_user):
    """Factory inserting an unpaid entry straight into the database."""
    async def _make(company, entry_date: date, count: int = 1, signer=None):
        entry = LedgerEntry(
            company_id=company.id,
            entry_date=entry_date,
            count=count,
            signer=signer,
            is_paid=False,
            created_by=counter_user.id,
        )
        db_session.add(entry)
        await db_session.commit()
        await db_session.refresh(entry)
        return entry
    return _make


class FixedClock:
    """Settable clock for services that take a `clock` callable."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta):
        self.now = self.now + delta

@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 3, 15, 9, 0, tzinfo=timezone.utc))


async def login(ac: AsyncClient, user_id: int, pin: str):
    return await ac.post("/v1/auth/login", json={"user_id": user_id, "pin": pin})

@pytest.fixture
async def counter_client(counter_user):
    """Client signed in as counter staff."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await login(ac, counter_user.id, COUNTER_PIN)
        assert response.status_code == 200, response.text
        yield ac

@pytest.fixture
async def admin_client(admin_user):
    """Client signed in as admin."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await login(ac, admin_user.id, ADMIN_PIN)
        assert response.status_code == 200, response.text
        yield ac
