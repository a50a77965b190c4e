"""Payroll router — salary settings, pay items, insurance grades, pay runs, pay slips.

Employees read their own issued slips with ``payroll:read_own``; everything
else needs ``payroll:manage``.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import require_permission
from backoffice.common.constants import PayItemKind, PaySlipStatus
from backoffice.common.pagination import PaginationParams
from backoffice.database import get_db
from backoffice.payroll.schemas import (
    PERIOD_PATTERN,
    GradeIn,
    GradeOut,
    PayItemCreate,
    PayItemOut,
    PayItemUpdate,
    PayrollPeriodSummary,
    PayrollRunRequest,
    PayrollRunResult,
    PaySlipOut,
    SalarySettingCreate,
    SalarySettingOut,
    SalarySettingUpdate,
)
from backoffice.payroll.service import PayrollService
from backoffice.users.models import User

router = APIRouter(prefix="", tags=["payroll"])

can_manage = require_permission("payroll:manage")
can_read_own = require_permission("payroll:read_own")


# ── Salary settings ─────────────────────────────────────────────────

@router.get("/settings", response_model=list[SalarySettingOut])
async def list_settings(
    user_id: Optional[uuid.UUID] = Query(None),
    as_of: Optional[date] = Query(None, description="Only settings in force on this date"),
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    settings = await PayrollService.list_settings(db, user.tenant_id, user_id=user_id, as_of=as_of)
    return [SalarySettingOut.model_validate(s) for s in settings]


@router.post("/settings", response_model=SalarySettingOut, status_code=201)
async def create_setting(
    body: SalarySettingCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    return SalarySettingOut.model_validate(await PayrollService.create_setting(db, user, body))


@router.get("/settings/{setting_id}", response_model=SalarySettingOut)
async def get_setting(
    setting_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    return SalarySettingOut.model_validate(
        await PayrollService.get_setting(db, user.tenant_id, setting_id)
    )


@router.patch("/settings/{setting_id}", response_model=SalarySettingOut)
async def update_setting(
    setting_id: uuid.UUID,
    body: SalarySettingUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    return SalarySettingOut.model_validate(
        await PayrollService.update_setting(db, user, setting_id, body)
    )


@router.delete("/settings/{setting_id}", status_code=204)
async def delete_setting(
    setting_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await PayrollService.delete_setting(db, user, setting_id)
    return Response(status_code=204)


# ── Allowances and deductions ───────────────────────────────────────

@router.get("/items", response_model=list[PayItemOut])
async def list_items(
    user_id: Optional[uuid.UUID] = Query(None),
    kind: Optional[PayItemKind] = Query(None),
    as_of: Optional[date] = Query(None),
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    items = await PayrollService.list_items(
        db, user.tenant_id, user_id=user_id, kind=kind, as_of=as_of,
    )
    return [PayItemOut.model_validate(i) for i in items]


@router.post("/items", response_model=PayItemOut, status_code=201)
async def create_item(
    body: PayItemCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    return PayItemOut.model_validate(await PayrollService.create_item(db, user, body))


@router.patch("/items/{item_id}", response_model=PayItemOut)
async def update_item(
    item_id: uuid.UUID,
    body: PayItemUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    return PayItemOut.model_validate(await PayrollService.update_item(db, user, item_id, body))


@router.delete("/items/{item_id}", status_code=204)
async def delete_item(
    item_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await PayrollService.delete_item(db, user, item_id)
    return Response(status_code=204)


# ── Social-insurance grades ─────────────────────────────────────────

@router.get("/insurance-grades", response_model=list[GradeOut])
async def list_grades(
    fiscal_year: Optional[int] = Query(None, ge=2000, le=2100),
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    grades = await PayrollService.list_grades(db, user.tenant_id, fiscal_year)
    return [GradeOut.model_validate(g) for g in grades]


@router.put("/insurance-grades/{fiscal_year}", response_model=list[GradeOut])
async def replace_grades(
    fiscal_year: int,
    body: list[GradeIn],
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    rows = await PayrollService.replace_grades(db, user, fiscal_year, body)
    return [GradeOut.model_validate(g) for g in rows]


# ── Pay runs ────────────────────────────────────────────────────────

@router.post("/calculate", response_model=PayrollRunResult)
async def calculate(
    body: PayrollRunRequest,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    """Compute draft pay slips for the period; confirmed slips are reported as failures."""
    return await PayrollService.calculate(db, user, body)


@router.get("/summary", response_model=PayrollPeriodSummary)
async def period_summary(
    pay_period: str = Query(..., pattern=PERIOD_PATTERN),
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    return await PayrollService.period_summary(db, user.tenant_id, pay_period)


# ── Pay slips ───────────────────────────────────────────────────────

@router.get("/pay-slips")
async def list_pay_slips(
    user_id: Optional[uuid.UUID] = Query(None),
    pay_period: Optional[str] = Query(None, pattern=PERIOD_PATTERN),
    status: Optional[PaySlipStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    return await PayrollService.list_slips(
        db, user.tenant_id, pagination, user_id=user_id, pay_period=pay_period, status=status,
    )


@router.get("/pay-slips/me")
async def my_pay_slips(
    pagination: PaginationParams = Depends(),
    user: User = Depends(can_read_own),
    db: AsyncSession = Depends(get_db),
):
    return await PayrollService.list_my_slips(db, user, pagination)


@router.get("/pay-slips/{slip_id}", response_model=PaySlipOut)
async def get_pay_slip(
    slip_id: uuid.UUID,
    user: User = Depends(can_read_own),
    db: AsyncSession = Depends(get_db),
):
    return PaySlipOut.model_validate(await PayrollService.get_slip_for(db, user, slip_id))


@router.post("/pay-slips/{slip_id}/confirm", response_model=PaySlipOut)
async def confirm_pay_slip(
    slip_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    return PaySlipOut.model_validate(await PayrollService.confirm_slip(db, user, slip_id))


@router.post("/pay-slips/{slip_id}/pay", response_model=PaySlipOut)
async def pay_pay_slip(
    slip_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    return PaySlipOut.model_validate(await PayrollService.mark_paid(db, user, slip_id))


@router.delete("/pay-slips/{slip_id}", status_code=204)
async def delete_pay_slip(
    slip_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await PayrollService.delete_slip(db, user, slip_id)
    return Response(status_code=204)
