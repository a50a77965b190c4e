"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request / *Adjust → request bodies (write)
  - *Out                         → response bodies (read)
"""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backoffice.common.constants import LeaveCategory, LeaveStatus, LeaveType


# ═════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """New leave request.

    ``user_id`` defaults to the caller; filing for someone else, or
    creating directly as ``approved``, needs an HR role.
    """

    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=2000)
    status: LeaveStatus = LeaveStatus.pending
    user_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def check_dates_and_status(self) -> "LeaveRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date.")
        if self.status not in (LeaveStatus.draft, LeaveStatus.pending, LeaveStatus.approved):
            raise ValueError("status must be draft, pending or approved.")
        return self


class LeaveDecisionRequest(BaseModel):
    comment: Optional[str] = Field(None, max_length=1000)


class LeaveRejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BalanceAdjust(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    category: LeaveCategory
    total: float = Field(..., ge=0, le=999)


class BalanceResetRequest(BaseModel):
    year: int = Field(..., ge=2000, le=2100)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    year: int
    category: LeaveCategory
    total: float
    used: float
    remaining: float
    pending: float = 0
    available: float = 0
    expiry_date: Optional[date] = None


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    user_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    days: float
    reason: Optional[str] = None
    status: LeaveStatus
    approver_id: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
