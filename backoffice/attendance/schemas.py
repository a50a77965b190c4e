"""Attendance Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Request / *Upsert → request bodies (write)
  - *Out / *Summary    → response bodies (read)
"""


import uuid
from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field

from backoffice.common.constants import AttendanceStatus, WorkLocation


# ═════════════════════════════════════════════════════════════════════
# Punches
# ═════════════════════════════════════════════════════════════════════


class CheckInRequest(BaseModel):
    location: WorkLocation = WorkLocation.office
    notes: Optional[str] = Field(None, max_length=1000)


class AttendanceUpsert(BaseModel):
    """Full replacement of one day's record; derived minutes are recomputed."""

    check_in: Optional[time] = None
    check_out: Optional[time] = None
    break_start: Optional[time] = None
    break_end: Optional[time] = None
    status: AttendanceStatus = AttendanceStatus.present
    location: WorkLocation = WorkLocation.office
    notes: Optional[str] = Field(None, max_length=1000)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class AttendanceOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    date: date
    check_in: Optional[time] = None
    check_out: Optional[time] = None
    break_start: Optional[time] = None
    break_end: Optional[time] = None
    break_minutes: int
    work_minutes: int
    overtime_minutes: int
    work_hours: float
    overtime_hours: float
    status: AttendanceStatus
    location: WorkLocation
    notes: Optional[str] = None


class MonthlySummary(BaseModel):
    user_id: uuid.UUID
    year: int
    month: int
    days_by_status: dict[str, int]
    working_days: int
    total_work_minutes: int
    total_overtime_minutes: int
    total_work_hours: float
    total_overtime_hours: float
