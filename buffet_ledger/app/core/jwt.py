"""
JWT token utilities.

Two kinds of HS256 tokens are signed with the same secret:
session tokens (stored in the session cookie) and receipt link tokens
(embedded in time-limited receipt download URLs). The "typ" claim keeps
one from being accepted as the other.
"""

from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from buffet_ledger.app.core.config import settings

SESSION_TOKEN_TYPE = "session"
RECEIPT_TOKEN_TYPE = "receipt"


def create_session_token(
    subject: int,
    role: str,
    name: Optional[str],
    issued_at: datetime,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, int]:
    """
    Create a signed session token.

    Args:
        subject: User ID
        role: Role value ("admin" or "counter")
        name: Display name, may be None
        issued_at: Issue time (timezone-aware UTC)
        expires_delta: Optional custom lifetime, defaults to settings.session_expire_days

    Returns:
        (encoded token, expiry as unix seconds)

    Example payload:
        {
            "sub": "12",
            "role": "counter",
            "name": "Front desk",
            "issuedAt": 1700000000,
            "expiresAt": 1700604800,
            "typ": "session"
        }
    """
    lifetime = expires_delta or timedelta(days=settings.session_expire_days)
    issued = int(issued_at.timestamp())
    expires = int((issued_at + lifetime).timestamp())

    to_encode = {
        "sub": str(subject),
        "role": role,
        "name": name,
        "issuedAt": issued,
        "expiresAt": expires,
        "iat": issued,
        "exp": expires,
        "typ": SESSION_TOKEN_TYPE,
    }
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

    return encoded_jwt, expires


def decode_session_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a session token.

    Returns:
        Decoded payload if the signature and type are valid, None otherwise
    """
    try:
        # Expiry is compared against the caller's clock (SessionManager.validate)
        payload = jwt.decode(
            token, settings.secret_key, algorithms=[settings.algorithm], options={"verify_exp": False}
        )
    except JWTError:
        return None

    if payload.get("typ") != SESSION_TOKEN_TYPE:
        return None

    return payload


def create_receipt_link_token(file_path: str, expires_in_seconds: int, now: datetime) -> str:
    """Sign a short-lived token granting read access to one stored receipt."""
    expires = now + timedelta(seconds=expires_in_seconds)
    to_encode = {
        "path": file_path,
        "exp": int(expires.timestamp()),
        "typ": RECEIPT_TOKEN_TYPE,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_receipt_link_token(token: str) -> Optional[str]:
    """Return the file path a receipt link token grants, or None if invalid/expired."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if payload.get("typ") != RECEIPT_TOKEN_TYPE:
        return None

    return payload.get("path")
