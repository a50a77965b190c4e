"""Attendance tests — punches, minute computation, day upserts, monthly views."""

from __future__ import annotations

from datetime import datetime, time
from zoneinfo import ZoneInfo

import pytest

from backoffice.attendance.schemas import AttendanceUpsert
from backoffice.attendance.service import AttendanceService, compute_minutes
from backoffice.common.constants import AttendanceStatus, WorkLocation
from backoffice.common.exceptions import ConflictError, ValidationException

TOKYO = ZoneInfo("Asia/Tokyo")


def _at(hour: int, minute: int = 0, day: int = 14) -> datetime:
    return datetime(2026, 4, day, hour, minute, tzinfo=TOKYO)


# ═════════════════════════════════════════════════════════════════════
# MINUTE COMPUTATION
# ═════════════════════════════════════════════════════════════════════


class TestComputeMinutes:

    def test_full_day_with_break(self):
        work, overtime, brk = compute_minutes(time(9, 0), time(18, 0), time(12, 0), time(13, 0))
        assert (work, overtime, brk) == (480, 0, 60)

    def test_overtime_beyond_standard(self):
        work, overtime, _ = compute_minutes(time(9, 0), time(20, 30), time(12, 0), time(13, 0))
        assert work == 630
        assert overtime == 150

    def test_open_record_has_no_work(self):
        assert compute_minutes(time(9, 0), None, None, None) == (0, 0, 0)

    def test_break_without_end_ignored(self):
        work, _, brk = compute_minutes(time(9, 0), time(17, 0), time(12, 0), None)
        assert (work, brk) == (480, 0)


# ═════════════════════════════════════════════════════════════════════
# PUNCHES
# ═════════════════════════════════════════════════════════════════════


class TestPunches:

    async def test_on_time_day(self, db, employee):
        record = await AttendanceService.check_in(db, employee, at=_at(8, 55))
        assert record.status == AttendanceStatus.present
        await AttendanceService.start_break(db, employee, at=_at(12, 0))
        await AttendanceService.end_break(db, employee, at=_at(13, 0))
        record = await AttendanceService.check_out(db, employee, at=_at(18, 30))

        assert record.check_in == time(8, 55)
        assert record.work_minutes == 515
        assert record.overtime_minutes == 35
        assert record.status == AttendanceStatus.present

    async def test_late_arrival(self, db, employee):
        record = await AttendanceService.check_in(db, employee, at=_at(9, 20))
        assert record.status == AttendanceStatus.late

    async def test_early_leave(self, db, employee):
        await AttendanceService.check_in(db, employee, at=_at(8, 50))
        record = await AttendanceService.check_out(db, employee, at=_at(15, 0))
        assert record.status == AttendanceStatus.early

    async def test_double_check_in(self, db, employee):
        await AttendanceService.check_in(db, employee, at=_at(9, 0))
        with pytest.raises(ConflictError):
            await AttendanceService.check_in(db, employee, at=_at(9, 5))

    async def test_check_out_without_check_in(self, db, employee):
        with pytest.raises(ValidationException):
            await AttendanceService.check_out(db, employee, at=_at(18, 0))

    async def test_check_out_closes_open_break(self, db, employee):
        await AttendanceService.check_in(db, employee, at=_at(9, 0))
        await AttendanceService.start_break(db, employee, at=_at(17, 0))
        record = await AttendanceService.check_out(db, employee, at=_at(17, 30))
        assert record.break_end == time(17, 30)
        assert record.work_minutes == 480

    async def test_second_break_rejected(self, db, employee):
        await AttendanceService.check_in(db, employee, at=_at(9, 0))
        await AttendanceService.start_break(db, employee, at=_at(12, 0))
        await AttendanceService.end_break(db, employee, at=_at(12, 30))
        with pytest.raises(ValidationException):
            await AttendanceService.start_break(db, employee, at=_at(15, 0))

    async def test_wall_clock_uses_user_timezone(self, db, employee):
        """00:30 UTC is 09:30 in Tokyo."""
        utc_moment = datetime(2026, 4, 14, 0, 30, tzinfo=ZoneInfo("UTC"))
        record = await AttendanceService.check_in(db, employee, at=utc_moment)
        assert record.check_in == time(9, 30)
        assert record.status == AttendanceStatus.late

    async def test_check_in_endpoint(self, client, auth_headers):
        resp = await client.post(
            "/api/v1/attendance/check-in", json={"location": "home"}, headers=auth_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["location"] == "home"

        today = await client.get("/api/v1/attendance/today", headers=auth_headers)
        assert today.json()["id"] == resp.json()["id"]


# ═════════════════════════════════════════════════════════════════════
# DAY RECORDS
# ═════════════════════════════════════════════════════════════════════


class TestDayRecords:

    async def test_upsert_own_day(self, client, employee, auth_headers):
        resp = await client.put(
            f"/api/v1/attendance/users/{employee.id}/days/2026-04-10",
            json={"check_in": "09:00", "check_out": "18:00",
                  "break_start": "12:00", "break_end": "13:00"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["work_minutes"] == 480
        assert data["break_minutes"] == 60
        assert data["work_hours"] == 8.0

    async def test_upsert_replaces_existing(self, db, tenant, employee):
        first = await AttendanceService.upsert_record(
            db, tenant.id, employee.id, _at(9).date(),
            AttendanceUpsert(check_in=time(9, 0), check_out=time(18, 0)),
        )
        second = await AttendanceService.upsert_record(
            db, tenant.id, employee.id, _at(9).date(),
            AttendanceUpsert(status=AttendanceStatus.holiday, location=WorkLocation.home),
        )
        assert first.id == second.id
        assert second.check_in is None
        assert second.work_minutes == 0

    async def test_break_end_requires_start(self, client, employee, auth_headers):
        resp = await client.put(
            f"/api/v1/attendance/users/{employee.id}/days/2026-04-10",
            json={"check_in": "09:00", "break_end": "13:00"},
            headers=auth_headers,
        )
        assert resp.status_code == 422

    async def test_employee_cannot_edit_colleague(self, client, manager, auth_headers):
        resp = await client.put(
            f"/api/v1/attendance/users/{manager.id}/days/2026-04-10",
            json={"check_in": "09:00"},
            headers=auth_headers,
        )
        assert resp.status_code == 403

    async def test_hr_edits_colleague(self, client, employee, hr_headers):
        resp = await client.put(
            f"/api/v1/attendance/users/{employee.id}/days/2026-04-10",
            json={"status": "absent"},
            headers=hr_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "absent"

    async def test_range_rejects_reversed_dates(self, client, auth_headers):
        resp = await client.get(
            "/api/v1/attendance/me?start=2026-04-30&end=2026-04-01", headers=auth_headers,
        )
        assert resp.status_code == 422

    async def test_manager_reads_team_range(self, db, client, tenant, employee, manager_headers):
        for day in (1, 2, 3):
            await AttendanceService.upsert_record(
                db, tenant.id, employee.id, _at(9, day=day).date(),
                AttendanceUpsert(check_in=time(9, 0), check_out=time(18, 0)),
            )
        await db.commit()
        resp = await client.get(
            f"/api/v1/attendance/users/{employee.id}?start=2026-04-01&end=2026-04-02",
            headers=manager_headers,
        )
        assert resp.status_code == 200
        assert len(resp.json()) == 2


# ═════════════════════════════════════════════════════════════════════
# MONTHLY SUMMARY
# ═════════════════════════════════════════════════════════════════════


class TestMonthlySummary:

    async def test_summary_counts(self, db, client, tenant, employee, auth_headers):
        days = {
            1: AttendanceUpsert(check_in=time(9, 0), check_out=time(19, 0)),
            2: AttendanceUpsert(check_in=time(9, 30), check_out=time(18, 0),
                                status=AttendanceStatus.late),
            3: AttendanceUpsert(status=AttendanceStatus.leave),
        }
        for day, data in days.items():
            await AttendanceService.upsert_record(db, tenant.id, employee.id, _at(9, day=day).date(), data)
        await db.commit()

        resp = await client.get(
            f"/api/v1/attendance/users/{employee.id}/summary?year=2026&month=4",
            headers=auth_headers,
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["working_days"] == 2
        assert data["days_by_status"]["leave"] == 1
        assert data["total_work_minutes"] == 600 + 510
        assert data["total_overtime_minutes"] == 120 + 30
