"""Users router — directory listing, profile CRUD, retirement."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import get_current_user, require_role
from backoffice.common.constants import UserRole, UserStatus
from backoffice.common.pagination import PaginationParams
from backoffice.database import get_db
from backoffice.users.models import User
from backoffice.users.schemas import (
    UserCreate,
    UserOut,
    UserRetireRequest,
    UserUpdate,
)
from backoffice.users.service import UserService

router = APIRouter(prefix="", tags=["users"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("")
async def list_users(
    role: Optional[UserRole] = Query(None),
    status: Optional[UserStatus] = Query(None),
    unit_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List users of the caller's tenant (paginated, filterable)."""
    return await UserService.list_users(
        db,
        user.tenant_id,
        pagination,
        role=role,
        status=status,
        unit_id=unit_id,
        search=search,
    )


# ── GET /me ─────────────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def get_me(user: User = Depends(get_current_user)):
    return UserOut.model_validate(user)


# ── GET /by-unit/{unit_id} ──────────────────────────────────────────

@router.get("/by-unit/{unit_id}", response_model=list[UserOut])
async def list_by_unit(
    unit_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    users = await UserService.list_users_by_unit(db, user.tenant_id, unit_id)
    return [UserOut.model_validate(u) for u in users]


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=UserOut, status_code=201)
async def create_user(
    body: UserCreate,
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    created = await UserService.create_user(db, user.tenant_id, body, actor_id=user.id)
    return UserOut.model_validate(created)


# ── GET /{user_id} ──────────────────────────────────────────────────

@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    found = await UserService.get_user(db, user.tenant_id, user_id)
    return UserOut.model_validate(found)


# ── PATCH /{user_id} ────────────────────────────────────────────────

@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Partial update — fields omitted from the body are left untouched."""
    updated = await UserService.update_user(db, user.tenant_id, user_id, body, actor_id=user.id)
    return UserOut.model_validate(updated)


# ── POST /{user_id}/retire ──────────────────────────────────────────

@router.post("/{user_id}/retire", response_model=UserOut)
async def retire_user(
    user_id: uuid.UUID,
    body: UserRetireRequest,
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    retired = await UserService.retire_user(db, user.tenant_id, user_id, body, actor_id=user.id)
    return UserOut.model_validate(retired)


# ── DELETE /{user_id} ───────────────────────────────────────────────

@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    user: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await UserService.delete_user(db, user.tenant_id, user_id, actor_id=user.id)
    return Response(status_code=204)
