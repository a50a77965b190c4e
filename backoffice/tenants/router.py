"""Tenants router — tenant settings and organisation units."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import get_current_user, require_permission, require_role
from backoffice.common.constants import UserRole
from backoffice.common.pagination import PaginationParams
from backoffice.database import get_db
from backoffice.tenants.schemas import (
    OrgUnitCreate,
    OrgUnitOut,
    OrgUnitUpdate,
    TenantCreate,
    TenantOut,
    TenantUpdate,
)
from backoffice.tenants.service import TenantService
from backoffice.users.models import User

router = APIRouter(prefix="", tags=["tenants"])


# ── GET /current ────────────────────────────────────────────────────

@router.get("/current", response_model=TenantOut)
async def get_current_tenant(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tenant = await TenantService.get_tenant(db, user.tenant_id)
    return TenantOut.model_validate(tenant)


# ── PATCH /current ──────────────────────────────────────────────────

@router.patch("/current", response_model=TenantOut)
async def update_current_tenant(
    body: TenantUpdate,
    user: User = Depends(require_permission("tenant:configure")),
    db: AsyncSession = Depends(get_db),
):
    tenant = await TenantService.update_tenant(db, user.tenant_id, body, actor_id=user.id)
    return TenantOut.model_validate(tenant)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=TenantOut, status_code=201)
async def create_tenant(
    body: TenantCreate,
    user: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Bootstrap a new tenant with its root company unit."""
    tenant = await TenantService.create_tenant(db, body, actor_id=user.id)
    return TenantOut.model_validate(tenant)


# ── Units ───────────────────────────────────────────────────────────

@router.get("/units", response_model=list[OrgUnitOut])
async def list_units(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await TenantService.list_units(db, user.tenant_id)


@router.post("/units", response_model=OrgUnitOut, status_code=201)
async def create_unit(
    body: OrgUnitCreate,
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    unit = await TenantService.create_unit(db, user.tenant_id, body, actor_id=user.id)
    return OrgUnitOut.model_validate(unit)


@router.get("/units/{unit_id}", response_model=OrgUnitOut)
async def get_unit(
    unit_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    unit = await TenantService.get_unit(db, user.tenant_id, unit_id)
    return OrgUnitOut.model_validate(unit)


@router.patch("/units/{unit_id}", response_model=OrgUnitOut)
async def update_unit(
    unit_id: uuid.UUID,
    body: OrgUnitUpdate,
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    unit = await TenantService.update_unit(db, user.tenant_id, unit_id, body, actor_id=user.id)
    return OrgUnitOut.model_validate(unit)


@router.delete("/units/{unit_id}", status_code=204)
async def delete_unit(
    unit_id: uuid.UUID,
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    await TenantService.delete_unit(db, user.tenant_id, unit_id, actor_id=user.id)
    return Response(status_code=204)


# ── GET /audit ──────────────────────────────────────────────────────

@router.get("/audit")
async def list_audit_entries(
    entity_type: Optional[str] = Query(default=None),
    entity_id: Optional[uuid.UUID] = Query(default=None),
    actor_id: Optional[uuid.UUID] = Query(default=None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(require_permission("audit:read")),
    db: AsyncSession = Depends(get_db),
):
    return await TenantService.list_audit_entries(
        db,
        user.tenant_id,
        pagination,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
    )
