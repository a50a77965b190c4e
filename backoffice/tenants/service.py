"""Tenant service — tenant settings and the organisation-unit tree."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.audit import AuditTrail, create_audit_entry
from backoffice.common.constants import OrgUnitType
from backoffice.common.exceptions import ConflictError, NotFoundException
from backoffice.common.filters import apply_filters
from backoffice.common.pagination import PaginatedResponse, PaginationParams, paginate
from backoffice.tenants.models import OrgUnit, Tenant
from backoffice.tenants.schemas import (
    AuditEntryOut,
    OrgUnitCreate,
    OrgUnitOut,
    OrgUnitUpdate,
    TenantCreate,
    TenantUpdate,
)
from backoffice.users.models import User

logger = logging.getLogger(__name__)


class TenantService:
    """Async tenant and org-unit operations."""

    # ── Tenant ──────────────────────────────────────────────────────

    @staticmethod
    async def get_tenant(db: AsyncSession, tenant_id: uuid.UUID) -> Tenant:
        tenant = await db.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundException("Tenant", tenant_id)
        return tenant

    @staticmethod
    async def create_tenant(
        db: AsyncSession,
        data: TenantCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Tenant:
        """Create a tenant together with its root company unit."""
        tenant = Tenant(**data.model_dump())
        db.add(tenant)
        await db.flush()

        db.add(
            OrgUnit(
                tenant_id=tenant.id,
                name=tenant.name,
                unit_type=OrgUnitType.company,
                level=0,
            )
        )
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="tenant",
            entity_id=tenant.id,
            tenant_id=tenant.id,
            actor_id=actor_id,
            new_values={"name": tenant.name},
        )
        logger.info("Tenant %s (%s) created", tenant.name, tenant.id)
        return tenant

    @staticmethod
    async def update_tenant(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        data: TenantUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> Tenant:
        tenant = await TenantService.get_tenant(db, tenant_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        old_values = {field: getattr(tenant, field) for field in changes}
        for field, value in changes.items():
            setattr(tenant, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="tenant",
            entity_id=tenant.id,
            tenant_id=tenant.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return tenant

    # ── Org units ───────────────────────────────────────────────────

    @staticmethod
    async def get_unit(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        unit_id: uuid.UUID,
    ) -> OrgUnit:
        result = await db.execute(
            select(OrgUnit).where(OrgUnit.id == unit_id, OrgUnit.tenant_id == tenant_id)
        )
        unit = result.scalars().first()
        if unit is None:
            raise NotFoundException("OrgUnit", unit_id)
        return unit

    @staticmethod
    async def get_unit_by_name(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        name: str,
    ) -> Optional[OrgUnit]:
        result = await db.execute(
            select(OrgUnit)
            .where(OrgUnit.tenant_id == tenant_id, OrgUnit.name == name)
            .order_by(OrgUnit.level.desc())
        )
        return result.scalars().first()

    @staticmethod
    async def _member_counts(db: AsyncSession, tenant_id: uuid.UUID) -> dict[uuid.UUID, int]:
        result = await db.execute(
            select(User.unit_id, func.count())
            .where(User.tenant_id == tenant_id, User.unit_id.is_not(None))
            .group_by(User.unit_id)
        )
        return {unit_id: count for unit_id, count in result.all()}

    @staticmethod
    async def list_units(db: AsyncSession, tenant_id: uuid.UUID) -> list[OrgUnitOut]:
        """All units of the tenant, shallowest first, with member counts."""
        result = await db.execute(
            select(OrgUnit)
            .where(OrgUnit.tenant_id == tenant_id)
            .order_by(OrgUnit.level, OrgUnit.name)
        )
        counts = await TenantService._member_counts(db, tenant_id)
        output: list[OrgUnitOut] = []
        for unit in result.scalars().all():
            out = OrgUnitOut.model_validate(unit)
            out.member_count = counts.get(unit.id, 0)
            output.append(out)
        return output

    @staticmethod
    async def create_unit(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        data: OrgUnitCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> OrgUnit:
        level = 0
        if data.parent_id is not None:
            parent = await TenantService.get_unit(db, tenant_id, data.parent_id)
            level = parent.level + 1

        duplicate = await db.execute(
            select(OrgUnit.id).where(
                OrgUnit.tenant_id == tenant_id,
                OrgUnit.name == data.name,
                OrgUnit.parent_id == data.parent_id
                if data.parent_id is not None
                else OrgUnit.parent_id.is_(None),
            )
        )
        if duplicate.scalar() is not None:
            raise ConflictError("name", data.name)

        unit = OrgUnit(tenant_id=tenant_id, level=level, **data.model_dump())
        db.add(unit)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="org_unit",
            entity_id=unit.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            new_values={"name": unit.name, "parent_id": unit.parent_id},
        )
        return unit

    @staticmethod
    async def update_unit(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        unit_id: uuid.UUID,
        data: OrgUnitUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> OrgUnit:
        unit = await TenantService.get_unit(db, tenant_id, unit_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        old_values = {field: getattr(unit, field) for field in changes}
        for field, value in changes.items():
            setattr(unit, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="org_unit",
            entity_id=unit.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return unit

    @staticmethod
    async def delete_unit(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        unit_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Delete an empty leaf unit."""
        unit = await TenantService.get_unit(db, tenant_id, unit_id)

        children = await db.execute(
            select(func.count()).select_from(OrgUnit).where(OrgUnit.parent_id == unit.id)
        )
        if children.scalar_one():
            raise ConflictError("unit_id", unit.id, detail="Unit still has child units.")

        members = await db.execute(
            select(func.count()).select_from(User).where(User.unit_id == unit.id)
        )
        if members.scalar_one():
            raise ConflictError("unit_id", unit.id, detail="Unit still has members.")

        await create_audit_entry(
            db,
            action="delete",
            entity_type="org_unit",
            entity_id=unit.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            old_values={"name": unit.name},
        )
        await db.delete(unit)
        await db.flush()

    # ── Audit trail ─────────────────────────────────────────────────

    @staticmethod
    async def list_audit_entries(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PaginatedResponse:
        query = apply_filters(
            select(AuditTrail).where(AuditTrail.tenant_id == tenant_id),
            AuditTrail,
            {"entity_type": entity_type, "entity_id": entity_id, "actor_id": actor_id},
        )
        return await paginate(
            db,
            query,
            pagination,
            model=AuditTrail,
            default_sort="-created_at",
            transform=AuditEntryOut.model_validate,
        )
