"""
Session manager.

PIN authentication with temporary lockout, and issuance/validation/
invalidation of the signed session token.

Lockout rules:
- A sign-in attempt during an active lockout is rejected without touching
  the stored counters.
- Every PIN comparison writes the user row exactly once: either the reset
  on success or the updated counter/lockout on failure.
- The failure that brings the counter to the threshold locks the account
  for settings.lockout_minutes and resets the counter to 0.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buffet_ledger.app.core.clock import Clock, as_utc, utcnow
from buffet_ledger.app.core.config import settings
from buffet_ledger.app.core.exceptions import (
    AccountLockedError,
    InvalidPinError,
    PinNotConfiguredError,
    ResourceNotFoundError,
    ValidationError,
)
from buffet_ledger.app.core.jwt import create_session_token, decode_session_token
from buffet_ledger.app.core.security import get_password_hash, verify_password
from buffet_ledger.app.core.token_revocation import is_token_revoked, revoke_token
from buffet_ledger.app.models.enums import UserRole
from buffet_ledger.app.models.user import User
from buffet_ledger.app.schemas.auth import PIN_MAX_LENGTH, PIN_MIN_LENGTH, SessionData

logger = logging.getLogger(__name__)


def remaining_lock_minutes(locked_until: datetime, now: datetime) -> int:
    """Whole minutes left in a lockout window, rounded up."""
    remaining_ms = (locked_until - now).total_seconds() * 1000
    return max(1, math.ceil(remaining_ms / 60000))


def _check_pin_shape(pin: str) -> None:
    if not isinstance(pin, str) or not (PIN_MIN_LENGTH <= len(pin) <= PIN_MAX_LENGTH):
        raise ValidationError(
            f"PIN must be {PIN_MIN_LENGTH}-{PIN_MAX_LENGTH} characters long",
            field="pin",
        )


class SessionManager:
    """
    Issues and validates session tokens for one request.

    Args:
        db: Database session
        redis_client: Async Redis client holding the revocation list
        clock: Returns the current UTC time
    """

    def __init__(self, db: AsyncSession, redis_client, clock: Clock = utcnow):
        self.db = db
        self.redis = redis_client
        self.clock = clock

    async def _get_user(self, user_id: int) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise ResourceNotFoundError("User", user_id)
        return user

    async def authenticate(self, user_id: int, pin: str) -> tuple[SessionData, str]:
        """
        Verify a PIN and open a session.

        Returns:
            (session data, signed token)

        Raises:
            ResourceNotFoundError: unknown user
            AccountLockedError: lockout window still active
            PinNotConfiguredError: user has no PIN hash
            InvalidPinError: PIN mismatch (details.locked tells if this attempt locked the account)
        """
        _check_pin_shape(pin)
        user = await self._get_user(user_id)
        now = as_utc(self.clock())

        self._ensure_not_locked(user, now)

        if not user.password_hash:
            raise PinNotConfiguredError()

        if verify_password(pin, user.password_hash):
            user.failed_attempts = 0
            user.locked_until = None
            await self.db.commit()
            return self.issue(user, now)

        await self._register_failure(user, now)

    def _ensure_not_locked(self, user: User, now: datetime) -> None:
        locked_until = as_utc(user.locked_until)
        if locked_until and locked_until > now:
            raise AccountLockedError(remaining_lock_minutes(locked_until, now))

    async def _register_failure(self, user: User, now: datetime) -> None:
        """Count a PIN mismatch, lock at the threshold, commit and raise InvalidPinError."""
        attempts = (user.failed_attempts or 0) + 1
        locked = attempts >= settings.max_failed_attempts
        if locked:
            user.locked_until = now + timedelta(minutes=settings.lockout_minutes)
            user.failed_attempts = 0
            logger.warning("User %s locked out after %s failed PIN attempts", user.id, attempts)
        else:
            user.failed_attempts = attempts
            user.locked_until = None
        await self.db.commit()

        raise InvalidPinError(locked=locked, lockout_minutes=settings.lockout_minutes)

    def issue(self, user: User, now: Optional[datetime] = None) -> tuple[SessionData, str]:
        """Sign a session token for the user."""
        issued_at = as_utc(now or self.clock())
        token, expires = create_session_token(
            subject=user.id,
            role=user.role.value,
            name=user.name,
            issued_at=issued_at,
        )
        session = SessionData(
            subject_id=user.id,
            role=user.role,
            name=user.name,
            issued_at=issued_at.replace(microsecond=0),
            expires_at=datetime.fromtimestamp(expires, tz=timezone.utc),
        )
        return session, token

    async def validate(self, token: Optional[str]) -> Optional[SessionData]:
        """
        Resolve a token to its session.

        Any failure (bad signature, expiry, malformed claims, revocation)
        yields None; nothing is raised.
        """
        if not token:
            return None

        payload = decode_session_token(token)
        if payload is None:
            return None

        try:
            subject_id = int(payload["sub"])
            role = UserRole(payload["role"])
            issued_at = datetime.fromtimestamp(int(payload.get("issuedAt", 0)), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["expiresAt"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError):
            logger.info("Rejected session token with malformed claims")
            return None

        if expires_at <= as_utc(self.clock()):
            return None

        if await is_token_revoked(self.redis, token):
            return None

        return SessionData(
            subject_id=subject_id,
            role=role,
            name=payload.get("name"),
            issued_at=issued_at,
            expires_at=expires_at,
        )

    async def invalidate(self, token: Optional[str]) -> None:
        """Revoke the token for its remaining lifetime. Cookie removal is the caller's job."""
        if not token:
            return

        payload = decode_session_token(token)
        if payload is None:
            return

        try:
            expires = int(payload["expiresAt"])
            subject_id = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            return

        ttl = expires - int(as_utc(self.clock()).timestamp())
        await revoke_token(self.redis, token, subject_id, ttl)

    async def list_login_users(self) -> list[User]:
        """Users shown on the login screen, admins first then by name."""
        result = await self.db.execute(
            select(User).order_by(User.role, User.name, User.id)
        )
        return list(result.scalars().all())

    async def set_pin(self, user_id: int, pin: str) -> User:
        """Admin reset: store a new PIN and clear any lockout."""
        _check_pin_shape(pin)
        user = await self._get_user(user_id)
        user.password_hash = get_password_hash(pin)
        user.failed_attempts = 0
        user.locked_until = None
        await self.db.commit()
        return user

    async def change_pin(self, session: SessionData, current_pin: str, new_pin: str) -> User:
        """
        Self-service PIN change; the current PIN must match.

        A wrong current PIN counts toward the same lockout as sign-in.
        """
        _check_pin_shape(new_pin)
        user = await self._get_user(session.subject_id)
        now = as_utc(self.clock())

        self._ensure_not_locked(user, now)

        if not user.password_hash:
            raise PinNotConfiguredError()

        if not verify_password(current_pin, user.password_hash):
            await self._register_failure(user, now)

        user.password_hash = get_password_hash(new_pin)
        user.failed_attempts = 0
        user.locked_until = None
        await self.db.commit()
        return user
