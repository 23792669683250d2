"""
Integration tests for the PIN sign-in flow.

Verifies Login -> Me -> Logout over HTTP, the session cookie, the error
envelope and the audit trail.
"""

import pytest
from sqlalchemy import select

from buffet_ledger.app.core.config import settings
from buffet_ledger.app.models.audit_log import AuditLog
from buffet_ledger.app.services.audit import AuditAction

from conftest import ADMIN_PIN, COUNTER_PIN, login


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_login_user_list_is_public(client, admin_user, counter_user):
    response = await client.get("/v1/auth/users")

    assert response.status_code == 200
    users = response.json()
    assert [u["role"] for u in users] == ["admin", "counter"]
    assert all("password_hash" not in u for u in users)


@pytest.mark.asyncio
async def test_login_sets_http_only_cookie(client, counter_user):
    response = await login(client, counter_user.id, COUNTER_PIN)

    assert response.status_code == 200
    body = response.json()
    assert body["session"]["subject_id"] == counter_user.id
    assert body["session"]["role"] == "counter"

    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.session_cookie_name}=")
    assert "HttpOnly" in set_cookie
    assert "samesite=lax" in set_cookie.lower()
    assert "Max-Age=604800" in set_cookie


@pytest.mark.asyncio
async def test_me_returns_current_session(counter_client, counter_user):
    response = await counter_client.get("/v1/auth/me")

    assert response.status_code == 200
    assert response.json()["subject_id"] == counter_user.id


@pytest.mark.asyncio
async def test_me_without_cookie_is_unauthenticated(client):
    response = await client.get("/v1/auth/me")

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_002"


@pytest.mark.asyncio
async def test_invalid_cookie_is_cleared(client):
    client.cookies.set(settings.session_cookie_name, "forged.token.value")

    response = await client.get("/v1/auth/me")

    assert response.status_code == 401
    set_cookie = response.headers.get("set-cookie", "")
    assert settings.session_cookie_name in set_cookie
    assert "Max-Age=0" in set_cookie


@pytest.mark.asyncio
async def test_wrong_pin_then_lockout(client, counter_user):
    for _ in range(2):
        response = await login(client, counter_user.id, "9999")
        assert response.status_code == 401
        assert response.json()["error_code"] == "ERR_AUTH_003"
        assert response.json()["details"]["locked"] is False

    response = await login(client, counter_user.id, "9999")
    assert response.status_code == 401
    assert response.json()["details"]["locked"] is True

    response = await login(client, counter_user.id, COUNTER_PIN)
    assert response.status_code == 423
    body = response.json()
    assert body["error_code"] == "ERR_AUTH_004"
    assert body["details"]["remaining_minutes"] == 5


@pytest.mark.asyncio
async def test_login_unknown_user(client):
    response = await login(client, 999, "1234")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_short_pin_is_rejected_by_schema(client, counter_user):
    response = await login(client, counter_user.id, "12")

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_logout_revokes_token(client, counter_user):
    response = await login(client, counter_user.id, COUNTER_PIN)
    token = response.cookies[settings.session_cookie_name]

    response = await client.post("/v1/auth/logout")
    assert response.status_code == 200
    assert "Max-Age=0" in response.headers["set-cookie"]

    # Replaying the old token does not work anymore
    client.cookies.set(settings.session_cookie_name, token)
    response = await client.get("/v1/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_logout_without_session_still_clears_cookie(client):
    response = await client.post("/v1/auth/logout")

    assert response.status_code == 200
    assert "Max-Age=0" in response.headers["set-cookie"]


@pytest.mark.asyncio
async def test_change_own_pin(counter_client, counter_user):
    response = await counter_client.post(
        "/v1/auth/pin",
        json={"current_pin": COUNTER_PIN, "new_pin": "4321", "confirm_pin": "4321"},
    )
    assert response.status_code == 200

    response = await login(counter_client, counter_user.id, "4321")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_change_pin_confirmation_mismatch(counter_client):
    response = await counter_client.post(
        "/v1/auth/pin",
        json={"current_pin": COUNTER_PIN, "new_pin": "4321", "confirm_pin": "4322"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_sign_in_events_are_audited(client, db_session, admin_user):
    await login(client, admin_user.id, "0001")
    await login(client, admin_user.id, ADMIN_PIN)

    result = await db_session.execute(select(AuditLog).order_by(AuditLog.id))
    actions = [log.action for log in result.scalars().all()]

    assert actions == [AuditAction.LOGIN_FAILED, AuditAction.LOGIN_SUCCESS]
