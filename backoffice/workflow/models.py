"""Workflow ORM models: WorkflowRequest, ApprovalStep, TimelineEvent."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import (
    ApprovalStepStatus,
    TimelineAction,
    WorkflowPriority,
    WorkflowStatus,
    WorkflowType,
)
from backoffice.common.models import (
    TenantMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    pg_enum,
    utcnow,
)
from backoffice.database import Base


class WorkflowRequest(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "workflow_requests"

    request_number: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    type: Mapped[WorkflowType] = mapped_column(
        pg_enum(WorkflowType, "workflow_type"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    requester_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[WorkflowStatus] = mapped_column(
        pg_enum(WorkflowStatus, "workflow_status"),
        nullable=False,
        default=WorkflowStatus.draft,
    )
    priority: Mapped[WorkflowPriority] = mapped_column(
        pg_enum(WorkflowPriority, "workflow_priority"),
        nullable=False,
        default=WorkflowPriority.normal,
    )
    amount: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    details: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    due_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    cancel_reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "request_number", name="uq_workflow_requests_number"),
        sa.Index("ix_workflow_requests_requester", "requester_id", "status"),
    )


class ApprovalStep(UUIDPrimaryKeyMixin, TenantMixin, Base):
    """One approver in the ordered chain of a request."""

    __tablename__ = "approval_steps"

    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("workflow_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    step_order: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    approver_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    delegated_from_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    status: Mapped[ApprovalStepStatus] = mapped_column(
        pg_enum(ApprovalStepStatus, "approval_step_status"),
        nullable=False,
        default=ApprovalStepStatus.waiting,
    )
    is_optional: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    comment: Mapped[Optional[str]] = mapped_column(sa.Text)
    acted_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    __table_args__ = (
        sa.UniqueConstraint("request_id", "step_order", name="uq_approval_steps_order"),
        sa.Index("ix_approval_steps_approver_status", "approver_id", "status"),
    )


class TimelineEvent(UUIDPrimaryKeyMixin, TenantMixin, Base):
    __tablename__ = "timeline_events"

    request_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("workflow_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    action: Mapped[TimelineAction] = mapped_column(
        pg_enum(TimelineAction, "timeline_action"),
        nullable=False,
    )
    comment: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=sa.func.now(),
    )
