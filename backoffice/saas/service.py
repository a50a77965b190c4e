"""SaaS service — service / plan / license-assignment management and
monthly cost analytics.

Cost rules, all per month:

* user-based service → ``price_per_user`` per active assignment
* fixed service      → ``fixed_price``, split evenly over the active
  assignments of that service when attributed to users
* usage-based        → not costed
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import LicenseStatus, LicenseType, SaaSCategory
from backoffice.common.exceptions import (
    ConflictError,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from backoffice.common.models import as_utc, utcnow
from backoffice.saas.models import LicenseAssignment, LicensePlan, SaaSService
from backoffice.saas.schemas import (
    AssignmentCreate,
    PlanCreate,
    SaaSSummary,
    ServiceCreate,
    UnitCostRow,
    UserCostDetail,
    UserCostRow,
)
from backoffice.tenants.models import OrgUnit
from backoffice.tenants.service import TenantService
from backoffice.users.models import User
from backoffice.users.service import UserService

logger = logging.getLogger(__name__)

UNUSED_AFTER_DAYS = 30
PRICE_FIELDS = {"price_per_user", "fixed_price"}


def _prices(values: dict[str, Any]) -> dict[str, Any]:
    return {
        key: Decimal(str(value)) if key in PRICE_FIELDS and value is not None else value
        for key, value in values.items()
    }


def round_yen(value: Decimal) -> int:
    """Whole yen, halves rounded up (2.5 → 3)."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


@dataclass
class _Snapshot:
    """All SaaS rows of one tenant, indexed for the cost calculations."""

    services: dict[uuid.UUID, SaaSService]
    plans: dict[uuid.UUID, LicensePlan]
    assignments: list[LicenseAssignment]

    def active(self) -> list[LicenseAssignment]:
        return [a for a in self.assignments if a.status == LicenseStatus.active]

    def active_count(self, service_id: uuid.UUID) -> int:
        return sum(1 for a in self.active() if a.service_id == service_id)

    def first_active_plan(self, service_id: uuid.UUID) -> Optional[LicensePlan]:
        plans = sorted(
            (p for p in self.plans.values() if p.service_id == service_id and p.is_active),
            key=lambda p: as_utc(p.created_at),
        )
        return plans[0] if plans else None

    def assignment_cost(self, assignment: LicenseAssignment) -> Decimal:
        """Monthly cost attributed to one seat."""
        service = self.services.get(assignment.service_id)
        plan = self.plans.get(assignment.plan_id)
        if service is None or plan is None:
            return Decimal("0")
        if service.license_type == LicenseType.user_based and plan.price_per_user:
            return Decimal(plan.price_per_user)
        if service.license_type == LicenseType.fixed and plan.fixed_price:
            holders = self.active_count(service.id)
            if holders:
                return Decimal(plan.fixed_price) / holders
        return Decimal("0")


class SaaSManager:
    """Async SaaS operations, scoped to one tenant."""

    # ─────────────────────────────────────────────────────────────────
    # Services
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_service(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        service_id: uuid.UUID,
    ) -> SaaSService:
        result = await db.execute(
            select(SaaSService).where(
                SaaSService.id == service_id,
                SaaSService.tenant_id == tenant_id,
            )
        )
        service = result.scalars().first()
        if service is None:
            raise NotFoundException("SaaSService", service_id)
        return service

    @staticmethod
    async def list_services(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        *,
        category: Optional[SaaSCategory] = None,
        license_type: Optional[LicenseType] = None,
        is_active: Optional[bool] = None,
    ) -> list[SaaSService]:
        query = select(SaaSService).where(SaaSService.tenant_id == tenant_id)
        if category is not None:
            query = query.where(SaaSService.category == category)
        if license_type is not None:
            query = query.where(SaaSService.license_type == license_type)
        if is_active is not None:
            query = query.where(SaaSService.is_active == is_active)
        result = await db.execute(query.order_by(SaaSService.name))
        return list(result.scalars().all())

    @staticmethod
    async def create_service(db: AsyncSession, actor: User, data: ServiceCreate) -> SaaSService:
        service = SaaSService(tenant_id=actor.tenant_id, **data.model_dump())
        db.add(service)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="saas_service",
            entity_id=service.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={"name": service.name, "license_type": service.license_type},
        )
        logger.info("SaaS service %s registered in tenant %s", service.name, actor.tenant_id)
        return service

    @staticmethod
    async def update_service(
        db: AsyncSession,
        actor: User,
        service_id: uuid.UUID,
        data: Any,
    ) -> SaaSService:
        service = await SaaSManager.get_service(db, actor.tenant_id, service_id)
        changes = data.model_dump(exclude_unset=True)

        start = changes.get("contract_start", service.contract_start)
        end = changes.get("contract_end", service.contract_end)
        if start and end and end < start:
            raise ValidationException(
                {"contract_end": ["contract_end must not be before contract_start."]}
            )

        old_values = {field: getattr(service, field) for field in changes}
        for field, value in changes.items():
            setattr(service, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="saas_service",
            entity_id=service.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=changes,
        )
        return service

    @staticmethod
    async def delete_service(db: AsyncSession, actor: User, service_id: uuid.UUID) -> None:
        """Deletes the service with its plans and assignments."""
        service = await SaaSManager.get_service(db, actor.tenant_id, service_id)

        for model in (LicenseAssignment, LicensePlan):
            rows = await db.execute(select(model).where(model.service_id == service.id))
            for row in rows.scalars().all():
                await db.delete(row)
        await db.delete(service)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="saas_service",
            entity_id=service_id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"name": service.name},
        )

    # ─────────────────────────────────────────────────────────────────
    # Plans
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_plan(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        service_id: uuid.UUID,
        plan_id: uuid.UUID,
    ) -> LicensePlan:
        result = await db.execute(
            select(LicensePlan).where(
                LicensePlan.id == plan_id,
                LicensePlan.service_id == service_id,
                LicensePlan.tenant_id == tenant_id,
            )
        )
        plan = result.scalars().first()
        if plan is None:
            raise NotFoundException("LicensePlan", plan_id)
        return plan

    @staticmethod
    async def list_plans(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        service_id: uuid.UUID,
    ) -> list[LicensePlan]:
        await SaaSManager.get_service(db, tenant_id, service_id)
        result = await db.execute(
            select(LicensePlan)
            .where(LicensePlan.service_id == service_id)
            .order_by(LicensePlan.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_plan(
        db: AsyncSession,
        actor: User,
        service_id: uuid.UUID,
        data: PlanCreate,
    ) -> LicensePlan:
        service = await SaaSManager.get_service(db, actor.tenant_id, service_id)
        plan = LicensePlan(
            tenant_id=actor.tenant_id,
            service_id=service.id,
            **_prices(data.model_dump()),
        )
        db.add(plan)
        await db.flush()
        return plan

    @staticmethod
    async def update_plan(
        db: AsyncSession,
        actor: User,
        service_id: uuid.UUID,
        plan_id: uuid.UUID,
        data: Any,
    ) -> LicensePlan:
        plan = await SaaSManager.get_plan(db, actor.tenant_id, service_id, plan_id)
        for field, value in _prices(data.model_dump(exclude_unset=True)).items():
            setattr(plan, field, value)
        await db.flush()
        return plan

    @staticmethod
    async def delete_plan(
        db: AsyncSession,
        actor: User,
        service_id: uuid.UUID,
        plan_id: uuid.UUID,
    ) -> None:
        plan = await SaaSManager.get_plan(db, actor.tenant_id, service_id, plan_id)
        rows = await db.execute(
            select(LicenseAssignment).where(LicenseAssignment.plan_id == plan.id)
        )
        for row in rows.scalars().all():
            await db.delete(row)
        await db.delete(plan)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="license_plan",
            entity_id=plan_id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"plan_name": plan.plan_name},
        )

    # ─────────────────────────────────────────────────────────────────
    # Assignments
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_assignment(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        assignment_id: uuid.UUID,
    ) -> LicenseAssignment:
        result = await db.execute(
            select(LicenseAssignment).where(
                LicenseAssignment.id == assignment_id,
                LicenseAssignment.tenant_id == tenant_id,
            )
        )
        assignment = result.scalars().first()
        if assignment is None:
            raise NotFoundException("LicenseAssignment", assignment_id)
        return assignment

    @staticmethod
    async def list_assignments(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        *,
        service_id: Optional[uuid.UUID] = None,
        user_id: Optional[uuid.UUID] = None,
        status: Optional[LicenseStatus] = None,
    ) -> list[LicenseAssignment]:
        query = select(LicenseAssignment).where(LicenseAssignment.tenant_id == tenant_id)
        if service_id is not None:
            query = query.where(LicenseAssignment.service_id == service_id)
        if user_id is not None:
            query = query.where(LicenseAssignment.user_id == user_id)
        if status is not None:
            query = query.where(LicenseAssignment.status == status)
        result = await db.execute(query.order_by(LicenseAssignment.assigned_date.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def assign_license(
        db: AsyncSession,
        actor: User,
        service_id: uuid.UUID,
        data: AssignmentCreate,
    ) -> LicenseAssignment:
        """Give a seat of *data.plan_id* to a user or unit."""
        service = await SaaSManager.get_service(db, actor.tenant_id, service_id)
        plan = await SaaSManager.get_plan(db, actor.tenant_id, service.id, data.plan_id)

        if data.user_id is not None:
            await UserService.get_user(db, actor.tenant_id, data.user_id)
            held = await db.execute(
                select(LicenseAssignment.id).where(
                    LicenseAssignment.service_id == service.id,
                    LicenseAssignment.user_id == data.user_id,
                    LicenseAssignment.status == LicenseStatus.active,
                )
            )
            if held.scalar() is not None:
                raise ConflictError(
                    "user_id",
                    data.user_id,
                    detail=f"User already holds an active {service.name} license.",
                )
        if data.unit_id is not None:
            await TenantService.get_unit(db, actor.tenant_id, data.unit_id)

        if plan.max_users is not None:
            in_use = (
                await db.execute(
                    select(func.count()).select_from(LicenseAssignment).where(
                        LicenseAssignment.plan_id == plan.id,
                        LicenseAssignment.status == LicenseStatus.active,
                    )
                )
            ).scalar_one()
            if in_use >= plan.max_users:
                raise ValidationException(
                    {"plan_id": [f"Plan '{plan.plan_name}' is full ({plan.max_users} users)."]},
                    detail="License plan has no free seats.",
                )

        assignment = LicenseAssignment(
            tenant_id=actor.tenant_id,
            service_id=service.id,
            plan_id=plan.id,
            user_id=data.user_id,
            unit_id=data.unit_id,
            account_email=data.account_email,
            status=LicenseStatus.active,
            assigned_date=data.assigned_date or date.today(),
            usage_count=0,
            notes=data.notes,
        )
        db.add(assignment)
        await db.flush()

        await create_audit_entry(
            db,
            action="assign",
            entity_type="license_assignment",
            entity_id=assignment.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={
                "service_id": service.id,
                "plan_id": plan.id,
                "user_id": data.user_id,
                "unit_id": data.unit_id,
            },
        )
        logger.info("License for %s assigned (assignment %s)", service.name, assignment.id)
        return assignment

    @staticmethod
    async def update_assignment(
        db: AsyncSession,
        actor: User,
        assignment_id: uuid.UUID,
        data: Any,
    ) -> LicenseAssignment:
        assignment = await SaaSManager.get_assignment(db, actor.tenant_id, assignment_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(assignment, field, value)
        await db.flush()
        return assignment

    @staticmethod
    async def revoke_license(
        db: AsyncSession,
        actor: User,
        assignment_id: uuid.UUID,
    ) -> LicenseAssignment:
        assignment = await SaaSManager.get_assignment(db, actor.tenant_id, assignment_id)
        if assignment.status == LicenseStatus.inactive:
            raise InvalidTransitionException("license assignment", "inactive", "revoke")

        assignment.status = LicenseStatus.inactive
        assignment.revoked_date = date.today()
        await db.flush()

        await create_audit_entry(
            db,
            action="revoke",
            entity_type="license_assignment",
            entity_id=assignment.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={"status": assignment.status, "revoked_date": assignment.revoked_date},
        )
        return assignment

    @staticmethod
    async def delete_assignment(
        db: AsyncSession,
        actor: User,
        assignment_id: uuid.UUID,
    ) -> None:
        assignment = await SaaSManager.get_assignment(db, actor.tenant_id, assignment_id)
        await db.delete(assignment)
        await db.flush()

    @staticmethod
    async def record_usage(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        assignment_id: uuid.UUID,
        at: Optional[datetime] = None,
    ) -> LicenseAssignment:
        assignment = await SaaSManager.get_assignment(db, tenant_id, assignment_id)
        assignment.last_used_at = at or utcnow()
        assignment.usage_count = (assignment.usage_count or 0) + 1
        await db.flush()
        return assignment

    # ─────────────────────────────────────────────────────────────────
    # Analytics
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _snapshot(db: AsyncSession, tenant_id: uuid.UUID) -> _Snapshot:
        services = await db.execute(select(SaaSService).where(SaaSService.tenant_id == tenant_id))
        plans = await db.execute(select(LicensePlan).where(LicensePlan.tenant_id == tenant_id))
        assignments = await db.execute(
            select(LicenseAssignment).where(LicenseAssignment.tenant_id == tenant_id)
        )
        return _Snapshot(
            services={s.id: s for s in services.scalars().all()},
            plans={p.id: p for p in plans.scalars().all()},
            assignments=list(assignments.scalars().all()),
        )

    @staticmethod
    def _total_monthly_cost(snap: _Snapshot) -> Decimal:
        total = Decimal("0")
        for service in snap.services.values():
            plan = snap.first_active_plan(service.id)
            if plan is None:
                continue
            if service.license_type == LicenseType.user_based and plan.price_per_user:
                total += Decimal(plan.price_per_user) * snap.active_count(service.id)
            elif service.license_type == LicenseType.fixed and plan.fixed_price:
                total += Decimal(plan.fixed_price)
        return total

    @staticmethod
    def _unused_cost(snap: _Snapshot, now: datetime) -> Decimal:
        """Per-user price of active seats unused for 30+ days (or never)."""
        cutoff = now - timedelta(days=UNUSED_AFTER_DAYS)
        total = Decimal("0")
        for assignment in snap.active():
            last_used = as_utc(assignment.last_used_at)
            if last_used is not None and last_used > cutoff:
                continue
            plan = snap.plans.get(assignment.plan_id)
            if plan is not None and plan.price_per_user:
                total += Decimal(plan.price_per_user)
        return total

    @staticmethod
    async def total_monthly_cost(db: AsyncSession, tenant_id: uuid.UUID) -> float:
        snap = await SaaSManager._snapshot(db, tenant_id)
        return float(SaaSManager._total_monthly_cost(snap))

    @staticmethod
    async def unused_license_cost(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> float:
        snap = await SaaSManager._snapshot(db, tenant_id)
        return float(SaaSManager._unused_cost(snap, now or utcnow()))

    @staticmethod
    async def user_total_cost(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> int:
        snap = await SaaSManager._snapshot(db, tenant_id)
        total = sum(
            (snap.assignment_cost(a) for a in snap.active() if a.user_id == user_id),
            Decimal("0"),
        )
        return round_yen(total)

    @staticmethod
    async def user_cost_details(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> list[UserCostDetail]:
        """Every assignment of the user with its monthly cost, highest first."""
        snap = await SaaSManager._snapshot(db, tenant_id)
        details = []
        for assignment in snap.assignments:
            if assignment.user_id != user_id:
                continue
            service = snap.services.get(assignment.service_id)
            plan = snap.plans.get(assignment.plan_id)
            if service is None or plan is None:
                continue
            details.append(
                UserCostDetail(
                    assignment_id=assignment.id,
                    service_id=service.id,
                    service_name=service.name,
                    plan_id=plan.id,
                    plan_name=plan.plan_name,
                    status=assignment.status,
                    monthly_cost=round_yen(snap.assignment_cost(assignment)),
                )
            )
        details.sort(key=lambda d: d.monthly_cost, reverse=True)
        return details

    @staticmethod
    async def users_by_total_cost(db: AsyncSession, tenant_id: uuid.UUID) -> list[UserCostRow]:
        snap = await SaaSManager._snapshot(db, tenant_id)
        totals: dict[uuid.UUID, Decimal] = defaultdict(Decimal)
        counts: dict[uuid.UUID, int] = defaultdict(int)
        for assignment in snap.active():
            if assignment.user_id is None:
                continue
            totals[assignment.user_id] += snap.assignment_cost(assignment)
            counts[assignment.user_id] += 1

        if not totals:
            return []
        users = await db.execute(select(User.id, User.name).where(User.id.in_(list(totals))))
        names = {row.id: row.name for row in users}

        rows = [
            UserCostRow(
                user_id=user_id,
                user_name=names.get(user_id, ""),
                total_cost=round_yen(total),
                service_count=counts[user_id],
            )
            for user_id, total in totals.items()
        ]
        rows.sort(key=lambda r: r.total_cost, reverse=True)
        return rows

    @staticmethod
    async def unit_costs(db: AsyncSession, tenant_id: uuid.UUID) -> list[UnitCostRow]:
        """Active seat costs grouped by the holder's unit (a unit seat counts
        for that unit, a user seat for the user's current unit)."""
        snap = await SaaSManager._snapshot(db, tenant_id)
        holders = await db.execute(
            select(User.id, User.unit_id).where(User.tenant_id == tenant_id)
        )
        user_units = {row.id: row.unit_id for row in holders}
        units = await db.execute(
            select(OrgUnit.id, OrgUnit.name).where(OrgUnit.tenant_id == tenant_id)
        )
        unit_names = {row.id: row.name for row in units}

        totals: dict[Optional[uuid.UUID], Decimal] = defaultdict(Decimal)
        counts: dict[Optional[uuid.UUID], int] = defaultdict(int)
        for assignment in snap.active():
            unit_id = assignment.unit_id or user_units.get(assignment.user_id)
            totals[unit_id] += snap.assignment_cost(assignment)
            counts[unit_id] += 1

        rows = [
            UnitCostRow(
                unit_id=unit_id,
                unit_name=unit_names.get(unit_id, "Unassigned") if unit_id else "Unassigned",
                total_cost=round_yen(total),
                license_count=counts[unit_id],
            )
            for unit_id, total in totals.items()
        ]
        rows.sort(key=lambda r: r.total_cost, reverse=True)
        return rows

    @staticmethod
    async def summary(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> SaaSSummary:
        snap = await SaaSManager._snapshot(db, tenant_id)
        return SaaSSummary(
            total_services=len(snap.services),
            active_licenses=len(snap.active()),
            inactive_licenses=sum(
                1 for a in snap.assignments if a.status == LicenseStatus.inactive
            ),
            total_monthly_cost=float(SaaSManager._total_monthly_cost(snap)),
            unused_license_cost=float(SaaSManager._unused_cost(snap, now or utcnow())),
        )
