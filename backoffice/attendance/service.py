"""Attendance service — check-in / breaks / check-out, day upserts and
monthly aggregation."""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.attendance.models import AttendanceRecord
from backoffice.attendance.schemas import AttendanceOut, AttendanceUpsert, MonthlySummary
from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import AttendanceStatus, WorkLocation
from backoffice.common.exceptions import ConflictError, NotFoundException, ValidationException
from backoffice.config import settings
from backoffice.users.models import User

logger = logging.getLogger(__name__)

# Statuses that count as a day worked in the monthly summary.
WORKED_STATUSES = {AttendanceStatus.present, AttendanceStatus.late, AttendanceStatus.early}


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def compute_minutes(
    check_in: Optional[time],
    check_out: Optional[time],
    break_start: Optional[time],
    break_end: Optional[time],
) -> tuple[int, int, int]:
    """Return (work_minutes, overtime_minutes, break_minutes)."""
    break_minutes = 0
    if break_start is not None and break_end is not None:
        break_minutes = max(0, _minutes(break_end) - _minutes(break_start))

    if check_in is None or check_out is None:
        return 0, 0, break_minutes

    work = max(0, _minutes(check_out) - _minutes(check_in) - break_minutes)
    overtime = max(0, work - settings.STANDARD_WORK_MINUTES)
    return work, overtime, break_minutes


def to_out(record: AttendanceRecord) -> AttendanceOut:
    _, _, break_minutes = compute_minutes(
        record.check_in, record.check_out, record.break_start, record.break_end,
    )
    return AttendanceOut(
        id=record.id,
        user_id=record.user_id,
        date=record.date,
        check_in=record.check_in,
        check_out=record.check_out,
        break_start=record.break_start,
        break_end=record.break_end,
        break_minutes=break_minutes,
        work_minutes=record.work_minutes,
        overtime_minutes=record.overtime_minutes,
        work_hours=round(record.work_minutes / 60, 2),
        overtime_hours=round(record.overtime_minutes / 60, 2),
        status=record.status,
        location=record.location,
        notes=record.notes,
    )


def _local_now(user: User, at: Optional[datetime]) -> datetime:
    """*at* (or the current instant) as wall-clock time in the user's zone."""
    tz = ZoneInfo(user.timezone or settings.DEFAULT_TIMEZONE)
    if at is None:
        return datetime.now(tz)
    if at.tzinfo is None:
        return at
    return at.astimezone(tz)


def _wall_time(moment: datetime) -> time:
    return moment.time().replace(second=0, microsecond=0)


class AttendanceService:
    """Async attendance operations."""

    # ── Internal helpers ────────────────────────────────────────────

    @staticmethod
    async def _find(
        db: AsyncSession,
        user_id: uuid.UUID,
        day: date,
    ) -> Optional[AttendanceRecord]:
        result = await db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.date == day,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def _open_today(db: AsyncSession, user: User, today: date) -> AttendanceRecord:
        record = await AttendanceService._find(db, user.id, today)
        if record is None or record.check_in is None:
            raise ValidationException({"check_in": ["You have not checked in today."]})
        if record.check_out is not None:
            raise ValidationException({"check_out": ["You have already checked out today."]})
        return record

    @staticmethod
    def _recompute(record: AttendanceRecord) -> None:
        work, overtime, _ = compute_minutes(
            record.check_in, record.check_out, record.break_start, record.break_end,
        )
        record.work_minutes = work
        record.overtime_minutes = overtime

    @staticmethod
    def _validate_range(start: date, end: date) -> None:
        if start > end:
            raise ValidationException(
                {"date_range": ["start must be before or equal to end."]}
            )

    # ── Punches ─────────────────────────────────────────────────────

    @staticmethod
    async def check_in(
        db: AsyncSession,
        user: User,
        *,
        location: WorkLocation = WorkLocation.office,
        notes: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Open today's record; arrivals after the work start time are late."""
        now = _local_now(user, at)
        today = now.date()
        check_in = _wall_time(now)

        record = await AttendanceService._find(db, user.id, today)
        if record is not None and record.check_in is not None:
            raise ConflictError("date", today, detail="Already checked in today.")

        status = AttendanceStatus.late if check_in > settings.work_start else AttendanceStatus.present
        if record is None:
            record = AttendanceRecord(tenant_id=user.tenant_id, user_id=user.id, date=today)
            db.add(record)
        record.check_in = check_in
        record.status = status
        record.location = location
        if notes is not None:
            record.notes = notes
        await db.flush()

        await create_audit_entry(
            db,
            action="check_in",
            entity_type="attendance_record",
            entity_id=record.id,
            tenant_id=user.tenant_id,
            actor_id=user.id,
            new_values={"date": today, "check_in": check_in.isoformat(), "status": status},
        )
        return record

    @staticmethod
    async def start_break(
        db: AsyncSession,
        user: User,
        *,
        at: Optional[datetime] = None,
    ) -> AttendanceRecord:
        now = _local_now(user, at)
        record = await AttendanceService._open_today(db, user, now.date())
        if record.break_start is not None:
            raise ValidationException({"break_start": ["A break was already taken today."]})

        record.break_start = _wall_time(now)
        await db.flush()
        return record

    @staticmethod
    async def end_break(
        db: AsyncSession,
        user: User,
        *,
        at: Optional[datetime] = None,
    ) -> AttendanceRecord:
        now = _local_now(user, at)
        record = await AttendanceService._open_today(db, user, now.date())
        if record.break_start is None:
            raise ValidationException({"break_end": ["No break has been started."]})
        if record.break_end is not None:
            raise ValidationException({"break_end": ["The break has already ended."]})

        record.break_end = _wall_time(now)
        await db.flush()
        return record

    @staticmethod
    async def check_out(
        db: AsyncSession,
        user: User,
        *,
        at: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Close today's record, ending an open break at the same time."""
        now = _local_now(user, at)
        record = await AttendanceService._open_today(db, user, now.date())

        check_out = _wall_time(now)
        if record.break_start is not None and record.break_end is None:
            record.break_end = check_out
        record.check_out = check_out
        AttendanceService._recompute(record)

        end_of_day = _minutes(settings.work_start) + settings.STANDARD_WORK_MINUTES
        if record.status == AttendanceStatus.present and _minutes(check_out) < end_of_day:
            record.status = AttendanceStatus.early
        await db.flush()

        await create_audit_entry(
            db,
            action="check_out",
            entity_type="attendance_record",
            entity_id=record.id,
            tenant_id=user.tenant_id,
            actor_id=user.id,
            new_values={
                "check_out": check_out.isoformat(),
                "work_minutes": record.work_minutes,
                "overtime_minutes": record.overtime_minutes,
            },
        )
        return record

    # ── Day records ─────────────────────────────────────────────────

    @staticmethod
    async def upsert_record(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        day: date,
        data: AttendanceUpsert,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> AttendanceRecord:
        """Create or replace the record of *day* for *user_id*."""
        if data.break_end is not None and data.break_start is None:
            raise ValidationException({"break_end": ["break_end requires break_start."]})

        record = await AttendanceService._find(db, user_id, day)
        created = record is None
        if record is None:
            record = AttendanceRecord(tenant_id=tenant_id, user_id=user_id, date=day)
            db.add(record)
        elif record.tenant_id != tenant_id:
            raise NotFoundException("AttendanceRecord", record.id)

        for field, value in data.model_dump().items():
            setattr(record, field, value)
        AttendanceService._recompute(record)
        await db.flush()

        await create_audit_entry(
            db,
            action="create" if created else "update",
            entity_type="attendance_record",
            entity_id=record.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            new_values={"date": day, **data.model_dump()},
        )
        return record

    @staticmethod
    async def get_today(
        db: AsyncSession,
        user: User,
        *,
        at: Optional[datetime] = None,
    ) -> Optional[AttendanceRecord]:
        return await AttendanceService._find(db, user.id, _local_now(user, at).date())

    @staticmethod
    async def get_by_date(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        day: date,
    ) -> AttendanceRecord:
        record = await AttendanceService._find(db, user_id, day)
        if record is None or record.tenant_id != tenant_id:
            raise NotFoundException("AttendanceRecord", f"{user_id}/{day}")
        return record

    @staticmethod
    async def list_range(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        start: date,
        end: date,
    ) -> list[AttendanceRecord]:
        """Records within [start, end], newest first."""
        AttendanceService._validate_range(start, end)
        result = await db.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.tenant_id == tenant_id,
                AttendanceRecord.user_id == user_id,
                AttendanceRecord.date >= start,
                AttendanceRecord.date <= end,
            )
            .order_by(AttendanceRecord.date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_tenant_range(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        start: date,
        end: date,
    ) -> list[AttendanceRecord]:
        """Every record of the tenant within [start, end], by date then user."""
        AttendanceService._validate_range(start, end)
        result = await db.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.tenant_id == tenant_id,
                AttendanceRecord.date >= start,
                AttendanceRecord.date <= end,
            )
            .order_by(AttendanceRecord.date, AttendanceRecord.user_id)
        )
        return list(result.scalars().all())

    @staticmethod
    def _month_bounds(year: int, month: int) -> tuple[date, date]:
        if not 1 <= month <= 12:
            raise ValidationException({"month": ["month must be between 1 and 12."]})
        return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])

    @staticmethod
    async def get_monthly(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: int,
        month: int,
    ) -> list[AttendanceRecord]:
        start, end = AttendanceService._month_bounds(year, month)
        return await AttendanceService.list_range(db, tenant_id, user_id, start, end)

    @staticmethod
    async def monthly_summary(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: int,
        month: int,
    ) -> MonthlySummary:
        records = await AttendanceService.get_monthly(db, tenant_id, user_id, year, month)

        days_by_status = {status.value: 0 for status in AttendanceStatus}
        total_work = total_overtime = worked = 0
        for record in records:
            days_by_status[record.status.value] += 1
            total_work += record.work_minutes
            total_overtime += record.overtime_minutes
            if record.status in WORKED_STATUSES:
                worked += 1

        return MonthlySummary(
            user_id=user_id,
            year=year,
            month=month,
            days_by_status=days_by_status,
            working_days=worked,
            total_work_minutes=total_work,
            total_overtime_minutes=total_overtime,
            total_work_hours=round(total_work / 60, 2),
            total_overtime_hours=round(total_overtime / 60, 2),
        )

    @staticmethod
    async def delete_record(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        record_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        result = await db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.id == record_id,
                AttendanceRecord.tenant_id == tenant_id,
            )
        )
        record = result.scalars().first()
        if record is None:
            raise NotFoundException("AttendanceRecord", record_id)

        await create_audit_entry(
            db,
            action="delete",
            entity_type="attendance_record",
            entity_id=record.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            old_values={"user_id": record.user_id, "date": record.date},
        )
        await db.delete(record)
        await db.flush()
        logger.info("Attendance record %s deleted by %s", record_id, actor_id)
