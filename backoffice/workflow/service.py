"""Workflow service — multi-step approval requests.

Lifecycle::

    draft ──submit──▶ pending ──approve──▶ partially_approved ──approve──▶ approved
                         │                        │
                         └──────reject────────────┴──▶ rejected
    draft / pending / partially_approved ──cancel──▶ cancelled

Exactly one step is ``pending`` while a request is open; later steps
wait. Every transition appends a ``TimelineEvent``.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import has_role
from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import (
    ApprovalStepStatus,
    TimelineAction,
    UserRole,
    WorkflowStatus,
    WorkflowType,
)
from backoffice.common.exceptions import (
    AppException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from backoffice.common.models import utcnow
from backoffice.common.pagination import PaginatedResponse, PaginationParams, paginate
from backoffice.notifications.service import notify_workflow_decided, notify_workflow_step
from backoffice.users.models import User
from backoffice.users.service import UserService
from backoffice.workflow.models import ApprovalStep, TimelineEvent, WorkflowRequest
from backoffice.workflow.schemas import (
    ApprovalStepOut,
    BulkResult,
    TimelineEventOut,
    WorkflowCreate,
    WorkflowDetail,
    WorkflowOut,
    WorkflowStats,
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = (
    WorkflowStatus.pending,
    WorkflowStatus.in_review,
    WorkflowStatus.partially_approved,
)
CANCELLABLE_STATUSES = (
    WorkflowStatus.draft,
    WorkflowStatus.pending,
    WorkflowStatus.partially_approved,
)


def current_step(steps: Sequence[ApprovalStep]) -> Optional[ApprovalStep]:
    return next((s for s in steps if s.status == ApprovalStepStatus.pending), None)


class WorkflowService:
    """Async workflow operations, scoped to one tenant."""

    # ─────────────────────────────────────────────────────────────────
    # Internal helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _next_request_number(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        year: int,
    ) -> str:
        """``WF-YYYY-NNNN``, sequential per tenant and year."""
        prefix = f"WF-{year}-"
        result = await db.execute(
            select(WorkflowRequest.request_number).where(
                WorkflowRequest.tenant_id == tenant_id,
                WorkflowRequest.request_number.like(f"{prefix}%"),
            )
        )
        highest = max(
            (int(number.removeprefix(prefix)) for number in result.scalars().all()),
            default=0,
        )
        return f"{prefix}{highest + 1:04d}"

    @staticmethod
    async def get_request(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> WorkflowRequest:
        result = await db.execute(
            select(WorkflowRequest).where(
                WorkflowRequest.id == request_id,
                WorkflowRequest.tenant_id == tenant_id,
            )
        )
        wf = result.scalars().first()
        if wf is None:
            raise NotFoundException("WorkflowRequest", request_id)
        return wf

    @staticmethod
    async def _steps(db: AsyncSession, request_id: uuid.UUID) -> list[ApprovalStep]:
        result = await db.execute(
            select(ApprovalStep)
            .where(ApprovalStep.request_id == request_id)
            .order_by(ApprovalStep.step_order)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _log(
        db: AsyncSession,
        wf: WorkflowRequest,
        actor_id: Optional[uuid.UUID],
        action: TimelineAction,
        comment: Optional[str] = None,
    ) -> TimelineEvent:
        event = TimelineEvent(
            tenant_id=wf.tenant_id,
            request_id=wf.id,
            actor_id=actor_id,
            action=action,
            comment=comment,
            created_at=utcnow(),
        )
        db.add(event)
        await db.flush()
        return event

    @staticmethod
    async def _check_visible(
        db: AsyncSession,
        viewer: User,
        wf: WorkflowRequest,
        steps: Sequence[ApprovalStep],
    ) -> None:
        if wf.requester_id == viewer.id or has_role(viewer, UserRole.hr):
            return
        involved = {s.approver_id for s in steps} | {
            s.delegated_from_id for s in steps if s.delegated_from_id
        }
        if viewer.id not in involved:
            raise ForbiddenException("You are not involved in this request.")

    @staticmethod
    async def _open_step_for(
        db: AsyncSession,
        approver: User,
        wf: WorkflowRequest,
        action: str,
    ) -> tuple[ApprovalStep, list[ApprovalStep]]:
        """The current pending step, which must belong to *approver*."""
        if wf.status not in OPEN_STATUSES:
            raise InvalidTransitionException("workflow request", wf.status.value, action)
        steps = await WorkflowService._steps(db, wf.id)
        step = current_step(steps)
        if step is None:
            raise InvalidTransitionException("workflow request", wf.status.value, action)
        if step.approver_id != approver.id:
            raise ForbiddenException("Only the approver of the current step can act on it.")
        return step, steps

    @staticmethod
    def _skip_remaining(steps: Sequence[ApprovalStep]) -> None:
        for step in steps:
            if step.status in (ApprovalStepStatus.waiting, ApprovalStepStatus.pending):
                step.status = ApprovalStepStatus.skipped

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_request(
        db: AsyncSession,
        requester: User,
        data: WorkflowCreate,
    ) -> WorkflowRequest:
        """Create a draft with one waiting step per approver, in order."""
        if requester.id in data.approver_ids:
            raise ValidationException(
                {"approver_ids": ["You cannot approve your own request."]}
            )
        for approver_id in data.approver_ids:
            # 404 for users of other tenants
            await UserService.get_user(db, requester.tenant_id, approver_id)

        now = utcnow()
        wf = WorkflowRequest(
            tenant_id=requester.tenant_id,
            request_number=await WorkflowService._next_request_number(
                db, requester.tenant_id, now.year,
            ),
            type=data.type,
            title=data.title,
            description=data.description,
            requester_id=requester.id,
            status=WorkflowStatus.draft,
            priority=data.priority,
            amount=Decimal(str(data.amount)) if data.amount is not None else None,
            details=data.details,
            due_date=data.due_date,
        )
        db.add(wf)
        await db.flush()

        for order, approver_id in enumerate(data.approver_ids, start=1):
            db.add(
                ApprovalStep(
                    tenant_id=wf.tenant_id,
                    request_id=wf.id,
                    step_order=order,
                    approver_id=approver_id,
                    status=ApprovalStepStatus.waiting,
                    is_optional=False,
                )
            )
        await db.flush()
        await WorkflowService._log(db, wf, requester.id, TimelineAction.created)
        logger.info("Workflow %s created by %s", wf.request_number, requester.email)

        if data.submit:
            wf = await WorkflowService.submit_request(db, requester, wf.id)
        return wf

    @staticmethod
    async def submit_request(
        db: AsyncSession,
        requester: User,
        request_id: uuid.UUID,
    ) -> WorkflowRequest:
        wf = await WorkflowService.get_request(db, requester.tenant_id, request_id)
        if wf.requester_id != requester.id:
            raise ForbiddenException("Only the requester can submit this request.")
        if wf.status != WorkflowStatus.draft:
            raise InvalidTransitionException("workflow request", wf.status.value, "submit")

        steps = await WorkflowService._steps(db, wf.id)
        for step in steps:
            step.status = ApprovalStepStatus.waiting
        steps[0].status = ApprovalStepStatus.pending
        wf.status = WorkflowStatus.pending
        wf.submitted_at = utcnow()
        await db.flush()

        await WorkflowService._log(db, wf, requester.id, TimelineAction.submitted)
        await notify_workflow_step(db, wf, steps[0].approver_id)
        return wf

    @staticmethod
    async def approve_step(
        db: AsyncSession,
        approver: User,
        request_id: uuid.UUID,
        comment: Optional[str] = None,
    ) -> WorkflowRequest:
        """Approve the current step; the next one opens, or the request
        completes when none is left."""
        wf = await WorkflowService.get_request(db, approver.tenant_id, request_id)
        step, steps = await WorkflowService._open_step_for(db, approver, wf, "approve")

        now = utcnow()
        step.status = ApprovalStepStatus.approved
        step.comment = comment
        step.acted_at = now

        following = next(
            (s for s in steps if s.step_order > step.step_order
             and s.status == ApprovalStepStatus.waiting),
            None,
        )
        if following is not None:
            following.status = ApprovalStepStatus.pending
            wf.status = WorkflowStatus.partially_approved
        else:
            wf.status = WorkflowStatus.approved
            wf.completed_at = now
        await db.flush()

        await WorkflowService._log(db, wf, approver.id, TimelineAction.approved, comment)
        if following is not None:
            await notify_workflow_step(db, wf, following.approver_id)
        else:
            await WorkflowService._log(db, wf, None, TimelineAction.completed)
            await notify_workflow_decided(db, wf)
            await create_audit_entry(
                db,
                action="approve",
                entity_type="workflow_request",
                entity_id=wf.id,
                tenant_id=wf.tenant_id,
                actor_id=approver.id,
                new_values={"status": wf.status},
            )
            logger.info("Workflow %s approved", wf.request_number)
        return wf

    @staticmethod
    async def reject_step(
        db: AsyncSession,
        approver: User,
        request_id: uuid.UUID,
        comment: str,
    ) -> WorkflowRequest:
        if not comment or not comment.strip():
            raise ValidationException({"comment": ["A comment is required to reject."]})
        wf = await WorkflowService.get_request(db, approver.tenant_id, request_id)
        step, steps = await WorkflowService._open_step_for(db, approver, wf, "reject")

        now = utcnow()
        step.status = ApprovalStepStatus.rejected
        step.comment = comment
        step.acted_at = now
        WorkflowService._skip_remaining(steps)
        wf.status = WorkflowStatus.rejected
        wf.completed_at = now
        await db.flush()

        await WorkflowService._log(db, wf, approver.id, TimelineAction.rejected, comment)
        await notify_workflow_decided(db, wf)
        await create_audit_entry(
            db,
            action="reject",
            entity_type="workflow_request",
            entity_id=wf.id,
            tenant_id=wf.tenant_id,
            actor_id=approver.id,
            new_values={"status": wf.status, "comment": comment},
        )
        logger.info("Workflow %s rejected by %s", wf.request_number, approver.email)
        return wf

    @staticmethod
    async def cancel_request(
        db: AsyncSession,
        requester: User,
        request_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> WorkflowRequest:
        wf = await WorkflowService.get_request(db, requester.tenant_id, request_id)
        if wf.requester_id != requester.id:
            raise ForbiddenException("Only the requester can cancel this request.")
        if wf.status not in CANCELLABLE_STATUSES:
            raise InvalidTransitionException("workflow request", wf.status.value, "cancel")

        steps = await WorkflowService._steps(db, wf.id)
        WorkflowService._skip_remaining(steps)
        wf.status = WorkflowStatus.cancelled
        wf.cancel_reason = reason
        wf.completed_at = utcnow()
        await db.flush()

        await WorkflowService._log(db, wf, requester.id, TimelineAction.cancelled, reason)
        return wf

    @staticmethod
    async def delegate_step(
        db: AsyncSession,
        approver: User,
        request_id: uuid.UUID,
        new_approver_id: uuid.UUID,
        comment: Optional[str] = None,
    ) -> WorkflowRequest:
        """Hand the current step to another user of the tenant."""
        wf = await WorkflowService.get_request(db, approver.tenant_id, request_id)
        step, _ = await WorkflowService._open_step_for(db, approver, wf, "delegate")

        delegate = await UserService.get_user(db, approver.tenant_id, new_approver_id)
        if delegate.id == approver.id:
            raise ValidationException({"new_approver_id": ["Cannot delegate to yourself."]})
        if delegate.id == wf.requester_id:
            raise ValidationException(
                {"new_approver_id": ["Cannot delegate to the requester."]}
            )

        step.delegated_from_id = approver.id
        step.approver_id = delegate.id
        await db.flush()

        await WorkflowService._log(
            db, wf, approver.id, TimelineAction.delegated,
            comment or f"Delegated to {delegate.name}",
        )
        await notify_workflow_step(db, wf, delegate.id)
        return wf

    @staticmethod
    async def add_comment(
        db: AsyncSession,
        user: User,
        request_id: uuid.UUID,
        comment: str,
    ) -> TimelineEvent:
        wf = await WorkflowService.get_request(db, user.tenant_id, request_id)
        steps = await WorkflowService._steps(db, wf.id)
        await WorkflowService._check_visible(db, user, wf, steps)
        return await WorkflowService._log(db, wf, user.id, TimelineAction.commented, comment)

    # ── Bulk ────────────────────────────────────────────────────────

    @staticmethod
    async def bulk_approve(
        db: AsyncSession,
        approver: User,
        request_ids: Sequence[uuid.UUID],
        comment: Optional[str] = None,
    ) -> list[BulkResult]:
        """Approve each id independently; one failure does not stop the rest."""
        results = []
        for request_id in request_ids:
            try:
                await WorkflowService.approve_step(db, approver, request_id, comment)
            except AppException as exc:
                results.append(BulkResult(id=request_id, success=False, error=exc.detail))
            else:
                results.append(BulkResult(id=request_id, success=True))
        return results

    @staticmethod
    async def bulk_reject(
        db: AsyncSession,
        approver: User,
        request_ids: Sequence[uuid.UUID],
        comment: str,
    ) -> list[BulkResult]:
        results = []
        for request_id in request_ids:
            try:
                await WorkflowService.reject_step(db, approver, request_id, comment)
            except AppException as exc:
                results.append(BulkResult(id=request_id, success=False, error=exc.detail))
            else:
                results.append(BulkResult(id=request_id, success=True))
        return results

    # ─────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_detail(
        db: AsyncSession,
        viewer: User,
        request_id: uuid.UUID,
    ) -> WorkflowDetail:
        wf = await WorkflowService.get_request(db, viewer.tenant_id, request_id)
        steps = await WorkflowService._steps(db, wf.id)
        await WorkflowService._check_visible(db, viewer, wf, steps)

        events = await db.execute(
            select(TimelineEvent)
            .where(TimelineEvent.request_id == wf.id)
            .order_by(TimelineEvent.created_at, TimelineEvent.id)
        )
        detail = WorkflowDetail.model_validate(wf)
        detail.steps = [ApprovalStepOut.model_validate(s) for s in steps]
        detail.timeline = [TimelineEventOut.model_validate(e) for e in events.scalars().all()]
        return detail

    @staticmethod
    async def list_my_requests(
        db: AsyncSession,
        user: User,
        pagination: PaginationParams,
        *,
        status: Optional[WorkflowStatus] = None,
        type: Optional[WorkflowType] = None,
    ) -> PaginatedResponse:
        query = select(WorkflowRequest).where(
            WorkflowRequest.tenant_id == user.tenant_id,
            WorkflowRequest.requester_id == user.id,
        )
        if status is not None:
            query = query.where(WorkflowRequest.status == status)
        if type is not None:
            query = query.where(WorkflowRequest.type == type)
        return await paginate(
            db,
            query,
            pagination,
            model=WorkflowRequest,
            default_sort="-created_at",
            transform=WorkflowOut.model_validate,
        )

    @staticmethod
    async def list_pending_approvals(
        db: AsyncSession,
        approver: User,
    ) -> list[WorkflowRequest]:
        """Open requests whose current step belongs to *approver*, oldest first."""
        result = await db.execute(
            select(WorkflowRequest)
            .join(ApprovalStep, ApprovalStep.request_id == WorkflowRequest.id)
            .where(
                WorkflowRequest.tenant_id == approver.tenant_id,
                WorkflowRequest.status.in_(OPEN_STATUSES),
                ApprovalStep.approver_id == approver.id,
                ApprovalStep.status == ApprovalStepStatus.pending,
            )
            .order_by(WorkflowRequest.submitted_at, WorkflowRequest.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_all(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        status: Optional[WorkflowStatus] = None,
        type: Optional[WorkflowType] = None,
        requester_id: Optional[uuid.UUID] = None,
    ) -> PaginatedResponse:
        query = select(WorkflowRequest).where(WorkflowRequest.tenant_id == tenant_id)
        if status is not None:
            query = query.where(WorkflowRequest.status == status)
        if type is not None:
            query = query.where(WorkflowRequest.type == type)
        if requester_id is not None:
            query = query.where(WorkflowRequest.requester_id == requester_id)
        return await paginate(
            db,
            query,
            pagination,
            model=WorkflowRequest,
            default_sort="-created_at",
            transform=WorkflowOut.model_validate,
        )

    @staticmethod
    async def stats(db: AsyncSession, tenant_id: uuid.UUID) -> WorkflowStats:
        result = await db.execute(
            select(WorkflowRequest.status, func.count())
            .where(WorkflowRequest.tenant_id == tenant_id)
            .group_by(WorkflowRequest.status)
        )
        by_status = {s.value: 0 for s in WorkflowStatus}
        for status, count in result.all():
            by_status[status.value] = count
        return WorkflowStats(total=sum(by_status.values()), by_status=by_status)
