"""Leave router — balances, request lifecycle, approval queue.

All endpoints require authentication. Approval and balance administration
endpoints enforce permission checks.
"""


import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import get_current_user, require_permission
from backoffice.common.constants import PERMISSIONS, LeaveStatus
from backoffice.common.exceptions import ForbiddenException
from backoffice.common.pagination import PaginationParams
from backoffice.database import get_db
from backoffice.leave.schemas import (
    BalanceAdjust,
    BalanceResetRequest,
    LeaveBalanceOut,
    LeaveDecisionRequest,
    LeaveRejectRequest,
    LeaveRequestCreate,
    LeaveRequestOut,
)
from backoffice.leave.service import LeaveService
from backoffice.users.models import User
from backoffice.users.service import UserService

router = APIRouter(prefix="", tags=["leave"])


def _current_year() -> int:
    return date.today().year


# ── Balances ────────────────────────────────────────────────────────

@router.get("/balances", response_model=list[LeaveBalanceOut])
async def my_balances(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_balances(db, user.tenant_id, user.id, year or _current_year())


@router.post("/balances/reset")
async def reset_balances(
    body: BalanceResetRequest,
    user: User = Depends(require_permission("leave:configure")),
    db: AsyncSession = Depends(get_db),
):
    """Open a new leave year for every active user of the tenant."""
    count = await LeaveService.reset_tenant_year(db, user.tenant_id, body.year, actor_id=user.id)
    return {"message": "Leave balances reset", "data": {"year": body.year, "users": count}}


@router.get("/balances/{user_id}", response_model=list[LeaveBalanceOut])
async def user_balances(
    user_id: uuid.UUID,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if user_id != user.id and "leave:read_all" not in PERMISSIONS.get(user.role, []):
        raise ForbiddenException("You can only view your own leave balances.")
    target = await UserService.get_user(db, user.tenant_id, user_id)
    return await LeaveService.get_balances(db, user.tenant_id, target.id, year or _current_year())


@router.put("/balances/{user_id}", response_model=LeaveBalanceOut)
async def adjust_balance(
    user_id: uuid.UUID,
    body: BalanceAdjust,
    user: User = Depends(require_permission("leave:configure")),
    db: AsyncSession = Depends(get_db),
):
    balance = await LeaveService.adjust_balance(
        db,
        user.tenant_id,
        user_id,
        body.year,
        body.category,
        Decimal(str(body.total)),
        actor_id=user.id,
    )
    return LeaveBalanceOut.model_validate(balance)


# ── Requests ────────────────────────────────────────────────────────

@router.post("/requests", response_model=LeaveRequestOut, status_code=201)
async def create_request(
    body: LeaveRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return LeaveRequestOut.model_validate(await LeaveService.create_request(db, user, body))


@router.get("/requests/me")
async def my_requests(
    status: Optional[LeaveStatus] = Query(None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_user_requests(
        db, user.tenant_id, user.id, pagination, status=status,
    )


@router.get("/requests/pending")
async def pending_requests(
    pagination: PaginationParams = Depends(),
    user: User = Depends(require_permission("leave:approve")),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.list_pending(db, user.tenant_id, pagination)


@router.get("/requests/period", response_model=list[LeaveRequestOut])
async def requests_by_period(
    start: date = Query(...),
    end: date = Query(...),
    user: User = Depends(require_permission("leave:read_all")),
    db: AsyncSession = Depends(get_db),
):
    requests = await LeaveService.list_by_period(db, user.tenant_id, start, end)
    return [LeaveRequestOut.model_validate(r) for r in requests]


@router.get("/requests/{request_id}", response_model=LeaveRequestOut)
async def get_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    leave_req = await LeaveService.get_request(db, user.tenant_id, request_id)
    if leave_req.user_id != user.id and "leave:read_all" not in PERMISSIONS.get(user.role, []):
        raise ForbiddenException("You can only view your own leave requests.")
    return LeaveRequestOut.model_validate(leave_req)


@router.post("/requests/{request_id}/submit", response_model=LeaveRequestOut)
async def submit_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return LeaveRequestOut.model_validate(await LeaveService.submit_request(db, user, request_id))


@router.post("/requests/{request_id}/approve", response_model=LeaveRequestOut)
async def approve_request(
    request_id: uuid.UUID,
    body: Optional[LeaveDecisionRequest] = None,
    user: User = Depends(require_permission("leave:approve")),
    db: AsyncSession = Depends(get_db),
):
    leave_req = await LeaveService.approve_request(
        db, user, request_id, comment=body.comment if body else None,
    )
    return LeaveRequestOut.model_validate(leave_req)


@router.post("/requests/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_request(
    request_id: uuid.UUID,
    body: Optional[LeaveRejectRequest] = None,
    user: User = Depends(require_permission("leave:approve")),
    db: AsyncSession = Depends(get_db),
):
    leave_req = await LeaveService.reject_request(
        db, user, request_id, reason=body.reason if body else None,
    )
    return LeaveRequestOut.model_validate(leave_req)


@router.post("/requests/{request_id}/cancel", response_model=LeaveRequestOut)
async def cancel_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return LeaveRequestOut.model_validate(await LeaveService.cancel_request(db, user, request_id))


@router.delete("/requests/{request_id}", status_code=204)
async def delete_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await LeaveService.delete_request(db, user, request_id)
    return Response(status_code=204)
