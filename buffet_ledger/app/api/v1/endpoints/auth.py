"""
Authentication API endpoints.

PIN sign-in for counter staff and admins. The session token is never
returned in the body; it travels in the HTTP-only session cookie.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from buffet_ledger.app.db.session import get_db
from buffet_ledger.app.schemas.auth import (
    ChangePinRequest, LoginRequest, LoginResponse, LoginUser, MessageResponse, SessionData
)
from buffet_ledger.app.core.dependencies import (
    clear_session_cookie,
    client_ip,
    get_current_session,
    get_optional_session,
    get_session_manager,
    get_session_token,
    set_session_cookie,
)
from buffet_ledger.app.core.exceptions import (
    AccountLockedError, InvalidPinError, PinNotConfiguredError, ResourceNotFoundError
)
from buffet_ledger.app.services.audit import AuditAction, log_event
from buffet_ledger.app.services.session_manager import SessionManager

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/users", response_model=List[LoginUser])
async def list_login_users(manager: SessionManager = Depends(get_session_manager)):
    """Users offered on the login screen."""
    users = await manager.list_login_users()
    return [LoginUser.model_validate(user) for user in users]


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
    db: AsyncSession = Depends(get_db)
):
    """
    Sign in with a PIN and set the session cookie.

    Failed attempts are written to the audit log with the reason.
    """
    try:
        session, token = await manager.authenticate(credentials.user_id, credentials.pin)
    except (ResourceNotFoundError, AccountLockedError, PinNotConfiguredError, InvalidPinError) as exc:
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            description=f"Sign-in failed for user {credentials.user_id}: {exc.message}",
            actor_id=credentials.user_id if not isinstance(exc, ResourceNotFoundError) else None,
            metadata={"reason": exc.error_code, **exc.details},
            ip_address=client_ip(request),
        )
        raise

    set_session_cookie(response, token)

    await log_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        description=f"{session.name or session.subject_id} signed in",
        actor_id=session.subject_id,
        actor_name=session.name,
        metadata={"role": session.role.value},
        ip_address=client_ip(request),
    )

    return LoginResponse(session=session)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    session: Optional[SessionData] = Depends(get_optional_session),
    manager: SessionManager = Depends(get_session_manager),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the current token and clear the cookie, signed in or not."""
    await manager.invalidate(token)
    clear_session_cookie(response)

    if session is not None:
        await log_event(
            db=db,
            action=AuditAction.LOGOUT,
            description=f"{session.name or session.subject_id} signed out",
            actor_id=session.subject_id,
            actor_name=session.name,
            ip_address=client_ip(request),
        )

    return MessageResponse(message="Signed out")


@router.get("/me", response_model=SessionData)
async def get_current_session_info(session: SessionData = Depends(get_current_session)):
    """Current session (401 and cookie cleared when missing or invalid)."""
    return session


@router.post("/pin", response_model=MessageResponse)
async def change_own_pin(
    payload: ChangePinRequest,
    request: Request,
    session: SessionData = Depends(get_current_session),
    manager: SessionManager = Depends(get_session_manager),
    db: AsyncSession = Depends(get_db)
):
    """Change the signed-in user's PIN."""
    await manager.change_pin(session, payload.current_pin, payload.new_pin)

    await log_event(
        db=db,
        action=AuditAction.PIN_CHANGED,
        description=f"{session.name or session.subject_id} changed their PIN",
        actor_id=session.subject_id,
        actor_name=session.name,
        ip_address=client_ip(request),
    )

    return MessageResponse(message="PIN changed")
