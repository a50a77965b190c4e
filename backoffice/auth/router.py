"""Auth router — Google OAuth, token refresh, logout, current user profile."""


from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import get_current_user, hash_token
from backoffice.auth.schemas import (
    GoogleAuthRequest,
    MeResponse,
    RefreshRequest,
    RefreshResponse,
    TenantBrief,
    TokenResponse,
    UserInfo,
)
from backoffice.auth.service import (
    create_session,
    get_login_user,
    refresh_access_token,
    revoke_session,
    verify_google_token,
)
from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import PERMISSIONS
from backoffice.common.rate_limit import AUTH_RATE_LIMIT, limiter
from backoffice.database import get_db
from backoffice.tenants.service import TenantService
from backoffice.users.models import User

router = APIRouter(prefix="", tags=["auth"])


def _user_info(user: User) -> UserInfo:
    return UserInfo(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role.value,
        employee_number=user.employee_number,
        profile_photo_url=user.profile_photo_url,
        unit_id=user.unit_id,
    )


# ── POST /google — Google OAuth callback ────────────────────────────

@router.post("/google", response_model=TokenResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def google_auth(
    body: GoogleAuthRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    # 1. Exchange code for Google user info
    google_info = await verify_google_token(body.code, body.redirect_uri)

    # 2. Registered, active user only
    user = await get_login_user(db, google_info["email"])

    if not user.google_id:
        user.google_id = google_info["google_id"]
    if not user.profile_photo_url and google_info.get("picture"):
        user.profile_photo_url = google_info["picture"]
    await db.flush()

    # 3. Create session (JWT pair)
    ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    access_token, refresh_token, expires_in = await create_session(db, user, ip, user_agent)

    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=user.id,
        tenant_id=user.tenant_id,
        actor_id=user.id,
        new_values={"ip": ip, "user_agent": user_agent},
        ip_address=ip,
    )

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
        user=_user_info(user),
    )


# ── POST /refresh — Rotate the token pair ──────────────────────────

@router.post("/refresh", response_model=RefreshResponse)
@limiter.limit(AUTH_RATE_LIMIT)
async def refresh_token(
    body: RefreshRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    access_token, new_refresh, expires_in = await refresh_access_token(db, body.refresh_token)
    return RefreshResponse(
        access_token=access_token,
        refresh_token=new_refresh,
        expires_in=expires_in,
    )


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    token = request.headers.get("Authorization", "").removeprefix("Bearer ")
    await revoke_session(db, hash_token(token))

    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=user.id,
        tenant_id=user.tenant_id,
        actor_id=user.id,
        ip_address=request.client.host if request.client else None,
    )

    return {"message": "Logged out successfully"}


# ── GET /me — Current user, tenant and permissions ─────────────────

@router.get("/me", response_model=MeResponse)
async def me(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tenant = await TenantService.get_tenant(db, user.tenant_id)
    return MeResponse(
        user=_user_info(user),
        tenant=TenantBrief(id=tenant.id, name=tenant.name, timezone=tenant.timezone),
        permissions=PERMISSIONS.get(request.state.user_role, []),
    )
