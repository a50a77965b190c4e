"""Workflow request / approval schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backoffice.common.constants import (
    ApprovalStepStatus,
    TimelineAction,
    WorkflowPriority,
    WorkflowStatus,
    WorkflowType,
)

MAX_BULK_IDS = 100


class WorkflowCreate(BaseModel):
    type: WorkflowType
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    priority: WorkflowPriority = WorkflowPriority.normal
    amount: Optional[float] = Field(None, ge=0)
    details: dict[str, Any] = Field(default_factory=dict)
    due_date: Optional[date] = None
    approver_ids: list[uuid.UUID] = Field(..., min_length=1, max_length=10)
    submit: bool = False

    @field_validator("approver_ids")
    @classmethod
    def check_unique_approvers(cls, value: list[uuid.UUID]) -> list[uuid.UUID]:
        if len(set(value)) != len(value):
            raise ValueError("approver_ids must not contain duplicates.")
        return value


class CommentRequest(BaseModel):
    comment: Optional[str] = Field(None, max_length=2000)


class RejectRequest(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class DelegateRequest(BaseModel):
    new_approver_id: uuid.UUID
    comment: Optional[str] = Field(None, max_length=2000)


class AddCommentRequest(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)


class BulkApproveRequest(BaseModel):
    ids: list[uuid.UUID] = Field(..., min_length=1, max_length=MAX_BULK_IDS)
    comment: Optional[str] = Field(None, max_length=2000)


class BulkRejectRequest(BaseModel):
    ids: list[uuid.UUID] = Field(..., min_length=1, max_length=MAX_BULK_IDS)
    comment: str = Field(..., min_length=1, max_length=2000)


class BulkResult(BaseModel):
    id: uuid.UUID
    success: bool
    error: Optional[str] = None


class ApprovalStepOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    step_order: int
    approver_id: uuid.UUID
    delegated_from_id: Optional[uuid.UUID] = None
    status: ApprovalStepStatus
    is_optional: bool
    comment: Optional[str] = None
    acted_at: Optional[datetime] = None


class TimelineEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    actor_id: Optional[uuid.UUID] = None
    action: TimelineAction
    comment: Optional[str] = None
    created_at: datetime


class WorkflowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    request_number: str
    type: WorkflowType
    title: str
    description: Optional[str] = None
    requester_id: uuid.UUID
    status: WorkflowStatus
    priority: WorkflowPriority
    amount: Optional[float] = None
    details: dict[str, Any]
    due_date: Optional[date] = None
    submitted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: datetime


class WorkflowDetail(WorkflowOut):
    steps: list[ApprovalStepOut] = Field(default_factory=list)
    timeline: list[TimelineEventOut] = Field(default_factory=list)


class WorkflowStats(BaseModel):
    total: int
    by_status: dict[str, int]
