"""SaaS router — services, plans, license assignments and cost analytics."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import get_current_user, require_permission
from backoffice.common.constants import LicenseStatus, LicenseType, SaaSCategory
from backoffice.database import get_db
from backoffice.saas.schemas import (
    AssignmentCreate,
    AssignmentOut,
    AssignmentUpdate,
    PlanCreate,
    PlanOut,
    PlanUpdate,
    SaaSSummary,
    ServiceCreate,
    ServiceOut,
    ServiceUpdate,
    UnitCostRow,
    UserCostDetail,
    UserCostRow,
)
from backoffice.saas.service import SaaSManager
from backoffice.users.models import User

router = APIRouter(prefix="", tags=["saas"])

can_read = require_permission("saas:read")
can_manage = require_permission("saas:manage")


# ── Analytics ───────────────────────────────────────────────────────

@router.get("/summary", response_model=SaaSSummary)
async def get_summary(
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    return await SaaSManager.summary(db, user.tenant_id)


@router.get("/costs/users", response_model=list[UserCostRow])
async def users_by_cost(
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    return await SaaSManager.users_by_total_cost(db, user.tenant_id)


@router.get("/costs/units", response_model=list[UnitCostRow])
async def unit_costs(
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    return await SaaSManager.unit_costs(db, user.tenant_id)


@router.get("/costs/users/{user_id}")
async def user_costs(
    user_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    details = await SaaSManager.user_cost_details(db, user.tenant_id, user_id)
    total = await SaaSManager.user_total_cost(db, user.tenant_id, user_id)
    return {"data": {"user_id": user_id, "total_cost": total, "details": details}}


@router.get("/me", response_model=list[UserCostDetail])
async def my_licenses(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SaaSManager.user_cost_details(db, user.tenant_id, user.id)


# ── Services ────────────────────────────────────────────────────────

@router.get("/services", response_model=list[ServiceOut])
async def list_services(
    category: Optional[SaaSCategory] = Query(None),
    license_type: Optional[LicenseType] = Query(None),
    is_active: Optional[bool] = Query(None),
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    services = await SaaSManager.list_services(
        db, user.tenant_id, category=category, license_type=license_type, is_active=is_active,
    )
    return [ServiceOut.model_validate(s) for s in services]


@router.post("/services", response_model=ServiceOut, status_code=201)
async def create_service(
    body: ServiceCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    service = await SaaSManager.create_service(db, user, body)
    return ServiceOut.model_validate(service)


@router.get("/services/{service_id}", response_model=ServiceOut)
async def get_service(
    service_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    service = await SaaSManager.get_service(db, user.tenant_id, service_id)
    return ServiceOut.model_validate(service)


@router.patch("/services/{service_id}", response_model=ServiceOut)
async def update_service(
    service_id: uuid.UUID,
    body: ServiceUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    service = await SaaSManager.update_service(db, user, service_id, body)
    return ServiceOut.model_validate(service)


@router.delete("/services/{service_id}", status_code=204)
async def delete_service(
    service_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await SaaSManager.delete_service(db, user, service_id)
    return Response(status_code=204)


# ── Plans ───────────────────────────────────────────────────────────

@router.get("/services/{service_id}/plans", response_model=list[PlanOut])
async def list_plans(
    service_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    plans = await SaaSManager.list_plans(db, user.tenant_id, service_id)
    return [PlanOut.model_validate(p) for p in plans]


@router.post("/services/{service_id}/plans", response_model=PlanOut, status_code=201)
async def create_plan(
    service_id: uuid.UUID,
    body: PlanCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    plan = await SaaSManager.create_plan(db, user, service_id, body)
    return PlanOut.model_validate(plan)


@router.patch("/services/{service_id}/plans/{plan_id}", response_model=PlanOut)
async def update_plan(
    service_id: uuid.UUID,
    plan_id: uuid.UUID,
    body: PlanUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    plan = await SaaSManager.update_plan(db, user, service_id, plan_id, body)
    return PlanOut.model_validate(plan)


@router.delete("/services/{service_id}/plans/{plan_id}", status_code=204)
async def delete_plan(
    service_id: uuid.UUID,
    plan_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await SaaSManager.delete_plan(db, user, service_id, plan_id)
    return Response(status_code=204)


# ── Assignments ─────────────────────────────────────────────────────

@router.get("/assignments", response_model=list[AssignmentOut])
async def list_assignments(
    service_id: Optional[uuid.UUID] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LicenseStatus] = Query(None),
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    assignments = await SaaSManager.list_assignments(
        db, user.tenant_id, service_id=service_id, user_id=user_id, status=status,
    )
    return [AssignmentOut.model_validate(a) for a in assignments]


@router.post(
    "/services/{service_id}/assignments",
    response_model=AssignmentOut,
    status_code=201,
)
async def assign_license(
    service_id: uuid.UUID,
    body: AssignmentCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    assignment = await SaaSManager.assign_license(db, user, service_id, body)
    return AssignmentOut.model_validate(assignment)


@router.patch("/assignments/{assignment_id}", response_model=AssignmentOut)
async def update_assignment(
    assignment_id: uuid.UUID,
    body: AssignmentUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    assignment = await SaaSManager.update_assignment(db, user, assignment_id, body)
    return AssignmentOut.model_validate(assignment)


@router.post("/assignments/{assignment_id}/revoke", response_model=AssignmentOut)
async def revoke_license(
    assignment_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    assignment = await SaaSManager.revoke_license(db, user, assignment_id)
    return AssignmentOut.model_validate(assignment)


@router.post("/assignments/{assignment_id}/usage", response_model=AssignmentOut)
async def record_usage(
    assignment_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    assignment = await SaaSManager.record_usage(db, user.tenant_id, assignment_id)
    return AssignmentOut.model_validate(assignment)


@router.delete("/assignments/{assignment_id}", status_code=204)
async def delete_assignment(
    assignment_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await SaaSManager.delete_assignment(db, user, assignment_id)
    return Response(status_code=204)
