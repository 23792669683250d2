"""
Request dependencies for FastAPI: session resolution and per-request services.

The session token travels in an HTTP-only cookie. Every protected route
resolves it through SessionManager.validate; a cookie that fails validation
is cleared on the way out.
"""

from typing import Optional
from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from buffet_ledger.app.core.config import settings
from buffet_ledger.app.core.exceptions import UnauthenticatedError
from buffet_ledger.app.core.redis_client import get_redis
from buffet_ledger.app.db.session import get_db
from buffet_ledger.app.schemas.auth import SessionData
from buffet_ledger.app.domain.settlement.settlement_service import SettlementService
from buffet_ledger.app.services.company_service import CompanyService
from buffet_ledger.app.services.ledger_service import LedgerService
from buffet_ledger.app.services.receipt_storage import ReceiptStorage, get_receipt_storage
from buffet_ledger.app.services.session_manager import SessionManager


async def get_session_manager(
    db: AsyncSession = Depends(get_db),
    redis_client=Depends(get_redis),
) -> SessionManager:
    """Build the request's SessionManager from its collaborators."""
    return SessionManager(db, redis_client)


def get_session_token(request: Request) -> Optional[str]:
    """Raw session token from the cookie, if any."""
    return request.cookies.get(settings.session_cookie_name)


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the session cookie (HTTP-only, SameSite=Lax, 7-day max age)."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_expire_days * 24 * 60 * 60,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
    )


async def get_optional_session(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    manager: SessionManager = Depends(get_session_manager),
) -> Optional[SessionData]:
    """Session for the request, or None when absent or invalid."""
    session = await manager.validate(token)
    if token and session is None:
        clear_session_cookie(response)
    return session


async def get_current_session(
    session: Optional[SessionData] = Depends(get_optional_session),
) -> SessionData:
    """
    FastAPI dependency for authenticated routes.

    Raises:
        UnauthenticatedError: 401, also clears the session cookie
    """
    if session is None:
        raise UnauthenticatedError()
    return session


def client_ip(request: Request) -> Optional[str]:
    """Remote address recorded on audit events."""
    return request.client.host if request.client else None


async def get_ledger_service(db: AsyncSession = Depends(get_db)) -> LedgerService:
    return LedgerService(db)


async def get_company_service(db: AsyncSession = Depends(get_db)) -> CompanyService:
    return CompanyService(db)


async def get_settlement_service(
    db: AsyncSession = Depends(get_db),
    storage: ReceiptStorage = Depends(get_receipt_storage),
) -> SettlementService:
    return SettlementService(db, storage)
