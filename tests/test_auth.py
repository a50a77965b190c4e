"""Auth module tests — Google sign-in, JWT, sessions, refresh rotation, RBAC."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from jose import jwt
from sqlalchemy import select

from backoffice.auth.dependencies import hash_token
from backoffice.auth.models import UserSession
from backoffice.common.constants import PERMISSIONS, UserRole, UserStatus
from backoffice.config import settings
from tests.conftest import (
    TestSessionFactory,
    create_access_token,
    create_refresh_token,
    seed_user,
)

CALLBACK = {"code": "valid-auth-code", "redirect_uri": "http://localhost:3000/callback"}


# ── Google sign-in ──────────────────────────────────────────────────


async def test_google_sign_in_registered_user(client, employee, mock_google_oauth):
    """Registered active user → 200 with token pair and profile."""
    with mock_google_oauth(email=employee.email):
        resp = await client.post("/api/v1/auth/google", json=CALLBACK)
    assert resp.status_code == 200
    data = resp.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"] and data["refresh_token"]
    assert data["user"]["email"] == employee.email
    assert data["user"]["role"] == "employee"


async def test_google_sign_in_unknown_email(client, tenant, mock_google_oauth):
    """Nobody registered with that address → 404."""
    with mock_google_oauth(email="stranger@gmail.com"):
        resp = await client.post("/api/v1/auth/google", json=CALLBACK)
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")


async def test_google_sign_in_retired_user(client, db, tenant, mock_google_oauth):
    """Retired accounts cannot sign in → 403."""
    user = await seed_user(
        db, tenant.id, email="old.timer@sakura.example.com", status=UserStatus.retired,
    )
    await db.commit()
    with mock_google_oauth(email=user.email):
        resp = await client.post("/api/v1/auth/google", json=CALLBACK)
    assert resp.status_code == 403


async def test_google_token_exchange_failure(client):
    """Google rejects the authorization code → 403."""
    from backoffice.common.exceptions import ForbiddenException

    with patch(
        "backoffice.auth.router.verify_google_token",
        new_callable=AsyncMock,
        side_effect=ForbiddenException(detail="Google token exchange failed: invalid_grant"),
    ):
        resp = await client.post("/api/v1/auth/google", json=CALLBACK)
    assert resp.status_code == 403


async def test_sign_in_stores_google_id(client, db, employee, mock_google_oauth):
    with mock_google_oauth(email=employee.email):
        await client.post("/api/v1/auth/google", json=CALLBACK)

    from backoffice.users.models import User

    async with TestSessionFactory() as session:
        user = (await session.execute(select(User).where(User.id == employee.id))).scalar_one()
    assert user.google_id is not None


# ── JWT ─────────────────────────────────────────────────────────────


async def test_access_token_claims(client, employee, mock_google_oauth):
    """Access token carries sub, role, type and exp."""
    with mock_google_oauth(email=employee.email):
        resp = await client.post("/api/v1/auth/google", json=CALLBACK)
    payload = jwt.decode(
        resp.json()["access_token"], settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM],
    )
    assert payload["sub"] == str(employee.id)
    assert payload["role"] == UserRole.employee.value
    assert payload["type"] == "access"
    assert "exp" in payload


async def test_expired_token_rejected(client, employee):
    expired_token = create_access_token(employee.id, expired=True)
    async with TestSessionFactory() as session:
        session.add(
            UserSession(
                id=uuid.uuid4(),
                user_id=employee.id,
                token_hash=hash_token(expired_token),
                expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
                is_revoked=False,
            )
        )
        await session.commit()

    resp = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {expired_token}"},
    )
    assert resp.status_code == 401


async def test_token_without_session_rejected(client, employee):
    """A well-formed JWT with no persisted session → 401."""
    token = create_access_token(employee.id)
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


async def test_missing_bearer_header(client):
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401


async def test_refresh_token_not_accepted_as_access(client, employee):
    token = create_refresh_token(employee.id)
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# ── Refresh rotation ────────────────────────────────────────────────


async def test_refresh_rotates_token_pair(client, employee, mock_google_oauth):
    with mock_google_oauth(email=employee.email):
        login = await client.post("/api/v1/auth/google", json=CALLBACK)
    refresh = login.json()["refresh_token"]

    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})
    assert resp.status_code == 200
    data = resp.json()
    assert data["refresh_token"] != refresh
    assert data["expires_in"] == settings.JWT_EXPIRY_HOURS * 3600


async def test_refresh_reuse_revokes_all_sessions(client, employee, mock_google_oauth):
    """Presenting a consumed refresh token revokes every session of the user."""
    with mock_google_oauth(email=employee.email):
        login = await client.post("/api/v1/auth/google", json=CALLBACK)
    refresh = login.json()["refresh_token"]

    first = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})
    assert first.status_code == 200
    replay = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})
    assert replay.status_code == 403

    async with TestSessionFactory() as session:
        sessions = (
            await session.execute(select(UserSession).where(UserSession.user_id == employee.id))
        ).scalars().all()
    assert sessions and all(s.is_revoked for s in sessions)


async def test_refresh_unknown_token(client, employee):
    """Valid signature but never issued → 403."""
    resp = await client.post(
        "/api/v1/auth/refresh", json={"refresh_token": create_refresh_token(employee.id)},
    )
    assert resp.status_code == 403


async def test_refresh_expired_token(client, employee):
    resp = await client.post(
        "/api/v1/auth/refresh",
        json={"refresh_token": create_refresh_token(employee.id, expired=True)},
    )
    assert resp.status_code == 403


# ── Logout / me ─────────────────────────────────────────────────────


async def test_logout_revokes_session(client, auth_headers):
    resp = await client.post("/api/v1/auth/logout", headers=auth_headers)
    assert resp.status_code == 200

    again = await client.get("/api/v1/auth/me", headers=auth_headers)
    assert again.status_code == 401


async def test_me_returns_tenant_and_permissions(client, tenant, hr_headers):
    resp = await client.get("/api/v1/auth/me", headers=hr_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["tenant"]["id"] == str(tenant.id)
    assert set(data["permissions"]) == set(PERMISSIONS[UserRole.hr])


async def test_stored_role_wins_over_token_claim(client, db, employee):
    """Token minted with an admin claim still acts as an employee."""
    token = create_access_token(employee.id, role=UserRole.admin)
    db.add(
        UserSession(
            id=uuid.uuid4(),
            user_id=employee.id,
            token_hash=hash_token(token),
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
            is_revoked=False,
        )
    )
    await db.commit()

    resp = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 200
    assert "tenant:configure" not in resp.json()["permissions"]
