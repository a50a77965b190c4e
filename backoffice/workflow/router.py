"""Workflow router — requests, approval actions, bulk actions and queries.

Approval actions are open to any authenticated user; the service only
lets the approver of the current step act.
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import get_current_user, require_role
from backoffice.common.constants import UserRole, WorkflowStatus, WorkflowType
from backoffice.common.pagination import PaginationParams
from backoffice.database import get_db
from backoffice.users.models import User
from backoffice.workflow.schemas import (
    AddCommentRequest,
    BulkApproveRequest,
    BulkRejectRequest,
    BulkResult,
    CancelRequest,
    CommentRequest,
    DelegateRequest,
    RejectRequest,
    TimelineEventOut,
    WorkflowCreate,
    WorkflowDetail,
    WorkflowOut,
    WorkflowStats,
)
from backoffice.workflow.service import WorkflowService

router = APIRouter(prefix="", tags=["workflow"])


# ── Queries ─────────────────────────────────────────────────────────

@router.get("/requests")
async def list_all(
    status: Optional[WorkflowStatus] = Query(None),
    type: Optional[WorkflowType] = Query(None),
    requester_id: Optional[uuid.UUID] = Query(None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    return await WorkflowService.list_all(
        db, user.tenant_id, pagination, status=status, type=type, requester_id=requester_id,
    )


@router.get("/requests/me")
async def list_my_requests(
    status: Optional[WorkflowStatus] = Query(None),
    type: Optional[WorkflowType] = Query(None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await WorkflowService.list_my_requests(db, user, pagination, status=status, type=type)


@router.get("/approvals/pending", response_model=list[WorkflowOut])
async def list_pending_approvals(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    requests = await WorkflowService.list_pending_approvals(db, user)
    return [WorkflowOut.model_validate(r) for r in requests]


@router.get("/stats", response_model=WorkflowStats)
async def get_stats(
    user: User = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    return await WorkflowService.stats(db, user.tenant_id)


@router.get("/requests/{request_id}", response_model=WorkflowDetail)
async def get_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await WorkflowService.get_detail(db, user, request_id)


# ── Requester actions ───────────────────────────────────────────────

@router.post("/requests", response_model=WorkflowOut, status_code=201)
async def create_request(
    body: WorkflowCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wf = await WorkflowService.create_request(db, user, body)
    return WorkflowOut.model_validate(wf)


@router.post("/requests/{request_id}/submit", response_model=WorkflowOut)
async def submit_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wf = await WorkflowService.submit_request(db, user, request_id)
    return WorkflowOut.model_validate(wf)


@router.post("/requests/{request_id}/cancel", response_model=WorkflowOut)
async def cancel_request(
    request_id: uuid.UUID,
    body: CancelRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wf = await WorkflowService.cancel_request(db, user, request_id, body.reason)
    return WorkflowOut.model_validate(wf)


@router.post(
    "/requests/{request_id}/comments",
    response_model=TimelineEventOut,
    status_code=201,
)
async def add_comment(
    request_id: uuid.UUID,
    body: AddCommentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await WorkflowService.add_comment(db, user, request_id, body.comment)
    return TimelineEventOut.model_validate(event)


# ── Approver actions ────────────────────────────────────────────────

@router.post("/requests/{request_id}/approve", response_model=WorkflowOut)
async def approve_step(
    request_id: uuid.UUID,
    body: CommentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wf = await WorkflowService.approve_step(db, user, request_id, body.comment)
    return WorkflowOut.model_validate(wf)


@router.post("/requests/{request_id}/reject", response_model=WorkflowOut)
async def reject_step(
    request_id: uuid.UUID,
    body: RejectRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wf = await WorkflowService.reject_step(db, user, request_id, body.comment)
    return WorkflowOut.model_validate(wf)


@router.post("/requests/{request_id}/delegate", response_model=WorkflowOut)
async def delegate_step(
    request_id: uuid.UUID,
    body: DelegateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    wf = await WorkflowService.delegate_step(
        db, user, request_id, body.new_approver_id, body.comment,
    )
    return WorkflowOut.model_validate(wf)


@router.post("/approvals/bulk-approve", response_model=list[BulkResult])
async def bulk_approve(
    body: BulkApproveRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await WorkflowService.bulk_approve(db, user, body.ids, body.comment)


@router.post("/approvals/bulk-reject", response_model=list[BulkResult])
async def bulk_reject(
    body: BulkRejectRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await WorkflowService.bulk_reject(db, user, body.ids, body.comment)
