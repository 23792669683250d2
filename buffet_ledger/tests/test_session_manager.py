"""
Session manager tests: PIN lockout and token lifecycle.
"""

from datetime import datetime, timedelta, timezone

import pytest

from buffet_ledger.app.core.exceptions import (
    AccountLockedError,
    InvalidPinError,
    PinNotConfiguredError,
    ResourceNotFoundError,
    ValidationError,
)
from buffet_ledger.app.core.guards import Capability, has_capability
from buffet_ledger.app.core.jwt import create_receipt_link_token
from buffet_ledger.app.models.enums import UserRole
from buffet_ledger.app.models.user import User
from buffet_ledger.app.services.session_manager import SessionManager, remaining_lock_minutes

from conftest import ADMIN_PIN, COUNTER_PIN


@pytest.fixture
def manager(db_session, redis_client_session, clock):
    return SessionManager(db_session, redis_client_session, clock=clock)


async def test_successful_sign_in_issues_seven_day_session(manager, counter_user, clock):
    session, token = await manager.authenticate(counter_user.id, COUNTER_PIN)

    assert token
    assert session.subject_id == counter_user.id
    assert session.role == UserRole.COUNTER
    assert session.name == "Counter"
    assert session.expires_at - session.issued_at == timedelta(days=7)
    assert session.issued_at == clock.now


async def test_success_resets_failure_counter(manager, db_session, counter_user):
    with pytest.raises(InvalidPinError):
        await manager.authenticate(counter_user.id, "9999")
    await db_session.refresh(counter_user)
    assert counter_user.failed_attempts == 1

    await manager.authenticate(counter_user.id, COUNTER_PIN)

    await db_session.refresh(counter_user)
    assert counter_user.failed_attempts == 0
    assert counter_user.locked_until is None


async def test_third_failure_locks_for_five_minutes(manager, db_session, counter_user, clock):
    for expected in (1, 2):
        with pytest.raises(InvalidPinError) as exc_info:
            await manager.authenticate(counter_user.id, "9999")
        assert exc_info.value.details["locked"] is False
        await db_session.refresh(counter_user)
        assert counter_user.failed_attempts == expected
        assert counter_user.locked_until is None

    with pytest.raises(InvalidPinError) as exc_info:
        await manager.authenticate(counter_user.id, "9999")
    assert exc_info.value.details["locked"] is True
    assert "5 minutes" in exc_info.value.message

    await db_session.refresh(counter_user)
    assert counter_user.failed_attempts == 0
    locked_until = counter_user.locked_until.replace(tzinfo=timezone.utc)
    assert locked_until == clock.now + timedelta(minutes=5)


async def test_correct_pin_rejected_while_locked(manager, db_session, counter_user, clock):
    for _ in range(3):
        with pytest.raises(InvalidPinError):
            await manager.authenticate(counter_user.id, "9999")

    with pytest.raises(AccountLockedError) as exc_info:
        await manager.authenticate(counter_user.id, COUNTER_PIN)
    assert exc_info.value.remaining_minutes == 5
    assert exc_info.value.status_code == 423

    # Rejected attempts during the lockout leave the counters alone
    await db_session.refresh(counter_user)
    assert counter_user.failed_attempts == 0

    clock.advance(timedelta(minutes=4, seconds=1))
    with pytest.raises(AccountLockedError) as exc_info:
        await manager.authenticate(counter_user.id, COUNTER_PIN)
    assert exc_info.value.remaining_minutes == 1

    clock.advance(timedelta(minutes=1))
    session, _ = await manager.authenticate(counter_user.id, COUNTER_PIN)
    assert session.subject_id == counter_user.id


async def test_unknown_user(manager):
    with pytest.raises(ResourceNotFoundError):
        await manager.authenticate(4242, "1234")


async def test_user_without_pin(manager, db_session):
    user = User(name="New hire", role=UserRole.COUNTER, password_hash=None)
    db_session.add(user)
    await db_session.commit()

    with pytest.raises(PinNotConfiguredError):
        await manager.authenticate(user.id, "1234")


async def test_pin_length_is_enforced(manager, counter_user):
    with pytest.raises(ValidationError):
        await manager.authenticate(counter_user.id, "12")
    with pytest.raises(ValidationError):
        await manager.authenticate(counter_user.id, "1" * 17)


async def test_validate_round_trip(manager, admin_user):
    session, token = await manager.authenticate(admin_user.id, ADMIN_PIN)

    validated = await manager.validate(token)

    assert validated is not None
    assert validated.subject_id == admin_user.id
    assert validated.role == UserRole.ADMIN
    assert validated.expires_at == session.expires_at


async def test_validate_rejects_expired_token(manager, admin_user, clock):
    _, token = await manager.authenticate(admin_user.id, ADMIN_PIN)

    clock.advance(timedelta(days=7, seconds=1))

    assert await manager.validate(token) is None


async def test_validate_rejects_garbage_and_foreign_tokens(manager, clock):
    assert await manager.validate(None) is None
    assert await manager.validate("") is None
    assert await manager.validate("not-a-token") is None

    receipt_token = create_receipt_link_token("1/1.jpg", 600, clock.now)
    assert await manager.validate(receipt_token) is None


async def test_validate_rejects_tampered_token(manager, admin_user):
    _, token = await manager.authenticate(admin_user.id, ADMIN_PIN)
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    assert await manager.validate(tampered) is None


async def test_invalidate_revokes_token(manager, admin_user, redis_client_session):
    _, token = await manager.authenticate(admin_user.id, ADMIN_PIN)

    await manager.invalidate(token)

    assert await manager.validate(token) is None
    assert len(redis_client_session.store) == 1


async def test_set_pin_clears_lockout(manager, db_session, counter_user):
    for _ in range(3):
        with pytest.raises(InvalidPinError):
            await manager.authenticate(counter_user.id, "9999")

    await manager.set_pin(counter_user.id, "5678")

    session, _ = await manager.authenticate(counter_user.id, "5678")
    assert session.subject_id == counter_user.id


async def test_change_pin_requires_current_pin(manager, counter_user):
    session, _ = await manager.authenticate(counter_user.id, COUNTER_PIN)

    with pytest.raises(InvalidPinError):
        await manager.change_pin(session, "1111", "2222")

    await manager.change_pin(session, COUNTER_PIN, "2222")

    with pytest.raises(InvalidPinError):
        await manager.authenticate(counter_user.id, COUNTER_PIN)
    renewed, _ = await manager.authenticate(counter_user.id, "2222")
    assert renewed.subject_id == counter_user.id


async def test_wrong_current_pin_counts_toward_lockout(manager, db_session, counter_user, clock):
    session, _ = await manager.authenticate(counter_user.id, COUNTER_PIN)

    for _ in range(2):
        with pytest.raises(InvalidPinError) as exc_info:
            await manager.change_pin(session, "1111", "2222")
        assert exc_info.value.details["locked"] is False

    with pytest.raises(InvalidPinError) as exc_info:
        await manager.change_pin(session, "1111", "2222")
    assert exc_info.value.details["locked"] is True

    await db_session.refresh(counter_user)
    assert counter_user.failed_attempts == 0
    assert counter_user.locked_until is not None

    # Locked: even the right PIN is refused on both paths
    with pytest.raises(AccountLockedError):
        await manager.change_pin(session, COUNTER_PIN, "2222")
    with pytest.raises(AccountLockedError):
        await manager.authenticate(counter_user.id, COUNTER_PIN)

    clock.advance(timedelta(minutes=5, seconds=1))
    await manager.change_pin(session, COUNTER_PIN, "2222")


def test_remaining_lock_minutes_rounds_up():
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert remaining_lock_minutes(now + timedelta(minutes=5), now) == 5
    assert remaining_lock_minutes(now + timedelta(minutes=4, seconds=1), now) == 5
    assert remaining_lock_minutes(now + timedelta(seconds=1), now) == 1
    assert remaining_lock_minutes(now, now) == 1


def test_capabilities_per_role():
    assert has_capability(UserRole.COUNTER, Capability.SETTLE_PAYMENTS)
    assert not has_capability(UserRole.COUNTER, Capability.VIEW_COMPANY_CODES)
    assert not has_capability(UserRole.COUNTER, Capability.MANAGE_COMPANIES)
    assert all(has_capability(UserRole.ADMIN, cap) for cap in Capability)

    with pytest.raises(ValueError):
        has_capability("owner", Capability.RECORD_ENTRIES)
