"""Notification service — per-user inbox plus dispatchers used by leave,
workflow and announcements."""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.constants import NotificationType
from backoffice.common.exceptions import ForbiddenException, NotFoundException
from backoffice.common.models import utcnow
from backoffice.common.pagination import PaginationParams, build_meta
from backoffice.notifications.models import Notification
from backoffice.notifications.schemas import (
    NotificationListMeta,
    NotificationListResponse,
    NotificationResponse,
)


class NotificationService:
    """Async notification operations."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        tenant_id: uuid.UUID,
        recipient_id: uuid.UUID,
        type: NotificationType = NotificationType.info,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        notification = Notification(
            tenant_id=tenant_id,
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def get_notifications(
        db: AsyncSession,
        user_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        is_read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
    ) -> NotificationListResponse:
        """Return paginated notifications for a user, newest first."""
        query = select(Notification).where(Notification.recipient_id == user_id)
        if is_read is not None:
            query = query.where(Notification.is_read == is_read)
        if notification_type is not None:
            query = query.where(Notification.type == notification_type)

        count_q = query.with_only_columns(
            func.count(), maintain_column_froms=True,
        ).order_by(None)
        total: int = (await db.execute(count_q)).scalar_one()

        rows = (
            await db.execute(
                query.order_by(Notification.created_at.desc())
                .offset(pagination.offset)
                .limit(pagination.page_size)
            )
        ).scalars().all()

        # Unread count is unfiltered; it feeds the header badge
        unread = await NotificationService.get_unread_count(db, user_id)
        meta = build_meta(total, pagination.page, pagination.page_size)

        return NotificationListResponse(
            data=[NotificationResponse.model_validate(n) for n in rows],
            meta=NotificationListMeta(**meta.model_dump(), unread=unread),
        )

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Notification:
        """Mark a single notification as read. Verifies ownership."""
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException("Notification", notification_id)
        if notification.recipient_id != user_id:
            raise ForbiddenException("You can only mark your own notifications as read.")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: uuid.UUID) -> int:
        """Bulk-mark all unread notifications as read. Returns count updated."""
        result = await db.execute(
            update(Notification)
            .where(
                Notification.recipient_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        return result.rowcount  # type: ignore[return-value]

    @staticmethod
    async def get_unread_count(db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.recipient_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()


# ── Cross-module helper dispatchers ─────────────────────────────────
# They take the ORM object directly to avoid importing other modules'
# schemas.


async def notify_leave_submitted(
    db: AsyncSession,
    leave_request,  # backoffice.leave.models.LeaveRequest
    approver_ids: Iterable[uuid.UUID],
    requester_name: str,
) -> list[Notification]:
    """Tell every eligible approver that a leave request awaits review."""
    created = []
    for approver_id in approver_ids:
        created.append(
            await NotificationService.create_notification(
                db,
                tenant_id=leave_request.tenant_id,
                recipient_id=approver_id,
                type=NotificationType.action_required,
                title="New Leave Request",
                message=(
                    f"{requester_name} requested {leave_request.days} day(s) of "
                    f"{leave_request.leave_type.value} leave from "
                    f"{leave_request.start_date} to {leave_request.end_date}."
                ),
                action_url=f"/leave/requests/{leave_request.id}",
                entity_type="leave_request",
                entity_id=leave_request.id,
            )
        )
    return created


async def notify_leave_approved(db: AsyncSession, leave_request) -> Notification:
    return await NotificationService.create_notification(
        db,
        tenant_id=leave_request.tenant_id,
        recipient_id=leave_request.user_id,
        type=NotificationType.approval,
        title="Leave Request Approved",
        message=(
            f"Your leave request from {leave_request.start_date} to "
            f"{leave_request.end_date} has been approved."
        ),
        action_url=f"/leave/requests/{leave_request.id}",
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_leave_rejected(
    db: AsyncSession,
    leave_request,
    reason: Optional[str],
) -> Notification:
    message = (
        f"Your leave request from {leave_request.start_date} to "
        f"{leave_request.end_date} was rejected."
    )
    if reason:
        message += f" Reason: {reason}"
    return await NotificationService.create_notification(
        db,
        tenant_id=leave_request.tenant_id,
        recipient_id=leave_request.user_id,
        type=NotificationType.alert,
        title="Leave Request Rejected",
        message=message,
        action_url=f"/leave/requests/{leave_request.id}",
        entity_type="leave_request",
        entity_id=leave_request.id,
    )


async def notify_workflow_step(
    db: AsyncSession,
    workflow_request,  # backoffice.workflow.models.WorkflowRequest
    approver_id: uuid.UUID,
) -> Notification:
    """Tell the approver of the current step that it is their turn."""
    return await NotificationService.create_notification(
        db,
        tenant_id=workflow_request.tenant_id,
        recipient_id=approver_id,
        type=NotificationType.action_required,
        title="Approval Required",
        message=f"{workflow_request.request_number} \"{workflow_request.title}\" awaits your approval.",
        action_url=f"/workflow/requests/{workflow_request.id}",
        entity_type="workflow_request",
        entity_id=workflow_request.id,
    )


async def notify_workflow_decided(db: AsyncSession, workflow_request) -> Notification:
    """Tell the requester that their request reached a final decision."""
    approved = workflow_request.status.value == "approved"
    return await NotificationService.create_notification(
        db,
        tenant_id=workflow_request.tenant_id,
        recipient_id=workflow_request.requester_id,
        type=NotificationType.approval if approved else NotificationType.alert,
        title="Request Approved" if approved else "Request Rejected",
        message=(
            f"{workflow_request.request_number} \"{workflow_request.title}\" "
            f"was {workflow_request.status.value}."
        ),
        action_url=f"/workflow/requests/{workflow_request.id}",
        entity_type="workflow_request",
        entity_id=workflow_request.id,
    )


async def notify_urgent_announcement(
    db: AsyncSession,
    announcement,  # backoffice.announcements.models.Announcement
    recipient_ids: Iterable[uuid.UUID],
) -> int:
    """Push an alert for an urgent announcement. Returns recipients notified."""
    count = 0
    for recipient_id in recipient_ids:
        await NotificationService.create_notification(
            db,
            tenant_id=announcement.tenant_id,
            recipient_id=recipient_id,
            type=NotificationType.alert,
            title=announcement.title,
            message=announcement.content[:200],
            action_url=f"/announcements/{announcement.id}",
            entity_type="announcement",
            entity_id=announcement.id,
        )
        count += 1
    return count


async def notify_pay_slip_issued(db: AsyncSession, pay_slip) -> Notification:
    return await NotificationService.create_notification(
        db,
        tenant_id=pay_slip.tenant_id,
        recipient_id=pay_slip.user_id,
        type=NotificationType.info,
        title="Pay Slip Issued",
        message=(
            f"Your pay slip for {pay_slip.pay_period} is available "
            f"(payment date {pay_slip.payment_date})."
        ),
        action_url=f"/payroll/pay-slips/{pay_slip.id}",
        entity_type="pay_slip",
        entity_id=pay_slip.id,
    )
