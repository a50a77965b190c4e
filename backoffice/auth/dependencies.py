"""Auth dependencies — JWT validation, tenant scoping, RBAC enforcement."""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.models import UserSession
from backoffice.common.constants import PERMISSIONS, UserRole, UserStatus
from backoffice.common.exceptions import ForbiddenException
from backoffice.config import settings
from backoffice.database import get_db
from backoffice.users.models import User

# Role hierarchy — each role implicitly includes the roles listed for it
ROLE_HIERARCHY: dict[UserRole, set[UserRole]] = {
    UserRole.admin: {
        UserRole.admin, UserRole.hr, UserRole.executive, UserRole.manager, UserRole.employee,
    },
    UserRole.hr: {UserRole.hr, UserRole.manager, UserRole.employee},
    UserRole.executive: {UserRole.executive, UserRole.manager, UserRole.employee},
    UserRole.manager: {UserRole.manager, UserRole.employee},
    UserRole.employee: {UserRole.employee},
    UserRole.applicant: {UserRole.applicant},
}


def has_role(user: User, *allowed_roles: UserRole) -> bool:
    """True when *user*'s role (expanded via hierarchy) covers any of *allowed_roles*."""
    effective = ROLE_HIERARCHY.get(user.role, {user.role})
    return bool(effective.intersection(allowed_roles))


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate JWT, verify session, return the authenticated User."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")

    # Session must exist, not revoked, not expired
    result = await db.execute(
        select(UserSession).where(
            UserSession.token_hash == hash_token(token),
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    if result.scalars().first() is None:
        raise HTTPException(status_code=401, detail="Session invalid or expired.")

    user_result = await db.execute(
        select(User).where(
            User.id == uuid.UUID(payload["sub"]),
            User.status == UserStatus.active,
        ),
    )
    user = user_result.scalars().first()
    if user is None:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    # The stored role wins over the claim so demotions apply immediately
    request.state.user_role = user.role
    request.state.tenant_id = user.tenant_id

    return user


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Return a FastAPI dependency that enforces role membership.

    Respects hierarchy — e.g. admin can access manager endpoints.
    """

    async def _check(user: User = Depends(get_current_user)) -> User:
        if not has_role(user, *allowed_roles):
            raise ForbiddenException(
                detail=f"Role '{user.role.value}' is not permitted. Required: {[r.value for r in allowed_roles]}.",
            )
        return user

    return _check


# ── Permission-based dependency ─────────────────────────────────────

def require_permission(permission: str) -> Callable:
    """Return a FastAPI dependency that enforces a specific permission string."""

    async def _check(user: User = Depends(get_current_user)) -> User:
        if permission not in PERMISSIONS.get(user.role, []):
            raise ForbiddenException(
                detail=f"Permission '{permission}' is not granted to role '{user.role.value}'.",
            )
        return user

    return _check
