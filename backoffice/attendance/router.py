"""Attendance router — punches for the caller, day records and monthly views.

Reading or editing another user's records requires the matching
``attendance:*`` permission.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.attendance.schemas import (
    AttendanceOut,
    AttendanceUpsert,
    CheckInRequest,
    MonthlySummary,
)
from backoffice.attendance.service import AttendanceService, to_out
from backoffice.auth.dependencies import get_current_user, require_permission
from backoffice.common.constants import PERMISSIONS
from backoffice.common.exceptions import ForbiddenException
from backoffice.database import get_db
from backoffice.users.models import User
from backoffice.users.service import UserService

router = APIRouter(prefix="", tags=["attendance"])


async def _target_user(
    db: AsyncSession,
    caller: User,
    user_id: uuid.UUID,
    permission: str,
) -> User:
    """Resolve *user_id* in the caller's tenant; others need *permission*."""
    if user_id != caller.id and permission not in PERMISSIONS.get(caller.role, []):
        raise ForbiddenException(f"Permission '{permission}' is required for other users' attendance.")
    return await UserService.get_user(db, caller.tenant_id, user_id)


# ── Punches ─────────────────────────────────────────────────────────

@router.post("/check-in", response_model=AttendanceOut, status_code=201)
async def check_in(
    body: CheckInRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await AttendanceService.check_in(db, user, location=body.location, notes=body.notes)
    return to_out(record)


@router.post("/break/start", response_model=AttendanceOut)
async def start_break(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return to_out(await AttendanceService.start_break(db, user))


@router.post("/break/end", response_model=AttendanceOut)
async def end_break(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return to_out(await AttendanceService.end_break(db, user))


@router.post("/check-out", response_model=AttendanceOut)
async def check_out(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return to_out(await AttendanceService.check_out(db, user))


# ── Own records ─────────────────────────────────────────────────────

@router.get("/today", response_model=Optional[AttendanceOut])
async def get_today(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    record = await AttendanceService.get_today(db, user)
    return to_out(record) if record else None


@router.get("/me", response_model=list[AttendanceOut])
async def my_records(
    start: date = Query(...),
    end: date = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    records = await AttendanceService.list_range(db, user.tenant_id, user.id, start, end)
    return [to_out(r) for r in records]


# ── Per-user views ──────────────────────────────────────────────────

@router.get("/users/{user_id}", response_model=list[AttendanceOut])
async def user_records(
    user_id: uuid.UUID,
    start: date = Query(...),
    end: date = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await _target_user(db, user, user_id, "attendance:read_all")
    records = await AttendanceService.list_range(db, user.tenant_id, target.id, start, end)
    return [to_out(r) for r in records]


@router.get("/users/{user_id}/monthly", response_model=list[AttendanceOut])
async def user_monthly(
    user_id: uuid.UUID,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await _target_user(db, user, user_id, "attendance:read_all")
    records = await AttendanceService.get_monthly(db, user.tenant_id, target.id, year, month)
    return [to_out(r) for r in records]


@router.get("/users/{user_id}/summary", response_model=MonthlySummary)
async def user_summary(
    user_id: uuid.UUID,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await _target_user(db, user, user_id, "attendance:read_all")
    return await AttendanceService.monthly_summary(db, user.tenant_id, target.id, year, month)


@router.get("/users/{user_id}/days/{day}", response_model=AttendanceOut)
async def user_day(
    user_id: uuid.UUID,
    day: date,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await _target_user(db, user, user_id, "attendance:read_all")
    return to_out(await AttendanceService.get_by_date(db, user.tenant_id, target.id, day))


@router.put("/users/{user_id}/days/{day}", response_model=AttendanceOut)
async def upsert_day(
    user_id: uuid.UUID,
    day: date,
    body: AttendanceUpsert,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create or replace one day's record (self, or ``attendance:manage``)."""
    target = await _target_user(db, user, user_id, "attendance:manage")
    record = await AttendanceService.upsert_record(
        db, user.tenant_id, target.id, day, body, actor_id=user.id,
    )
    return to_out(record)


@router.delete("/{record_id}", status_code=204)
async def delete_record(
    record_id: uuid.UUID,
    user: User = Depends(require_permission("attendance:manage")),
    db: AsyncSession = Depends(get_db),
):
    await AttendanceService.delete_record(db, user.tenant_id, record_id, actor_id=user.id)
    return Response(status_code=204)
