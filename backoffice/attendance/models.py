"""Attendance ORM model: one AttendanceRecord per user and day."""

from __future__ import annotations

import datetime
import uuid
from datetime import time
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import AttendanceStatus, WorkLocation
from backoffice.common.models import TenantMixin, TimestampMixin, UUIDPrimaryKeyMixin, pg_enum
from backoffice.database import Base


class AttendanceRecord(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    """Wall-clock times are local to the user's timezone."""

    __tablename__ = "attendance_records"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[datetime.date] = mapped_column(sa.Date, nullable=False)
    check_in: Mapped[Optional[time]] = mapped_column(sa.Time)
    check_out: Mapped[Optional[time]] = mapped_column(sa.Time)
    break_start: Mapped[Optional[time]] = mapped_column(sa.Time)
    break_end: Mapped[Optional[time]] = mapped_column(sa.Time)
    work_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    overtime_minutes: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    status: Mapped[AttendanceStatus] = mapped_column(
        pg_enum(AttendanceStatus, "attendance_status"),
        nullable=False,
        default=AttendanceStatus.present,
    )
    location: Mapped[WorkLocation] = mapped_column(
        pg_enum(WorkLocation, "work_location"),
        nullable=False,
        default=WorkLocation.office,
    )
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    __table_args__ = (
        sa.UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
        sa.Index("ix_attendance_tenant_date", "tenant_id", "date"),
    )
