"""CSV import/export tests — parsing, field validation, dry runs, apply,
exports and templates."""

from __future__ import annotations

from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from backoffice.attendance.models import AttendanceRecord
from backoffice.common.constants import LeaveCategory, LeaveStatus, LeaveType, UserRole
from backoffice.csv_io.importer import CsvImportService, hourly_leave_days
from backoffice.csv_io.parser import BOM, parse_csv, to_csv
from backoffice.csv_io.templates import IMPORT_LAYOUTS, ImportLayout
from backoffice.csv_io.validators import parse_date, parse_enum, parse_number, parse_time
from backoffice.leave.models import LeaveRequest
from backoffice.leave.service import LeaveService
from backoffice.users.models import User
from tests.conftest import TestSessionFactory, seed_unit, seed_user

TARO = "taro.yamada@sakura.example.com"


def _upload(text: str, content_type: str = "text/csv") -> dict:
    return {"file": ("import.csv", text.encode("utf-8"), content_type)}


# ═════════════════════════════════════════════════════════════════════
# PARSER AND FIELD VALIDATORS
# ═════════════════════════════════════════════════════════════════════


class TestParser:

    def test_bom_blank_lines_and_trimming(self):
        headers, rows = parse_csv(f"{BOM}email , name\n\n  a@x.jp ,  Aki \n,\n b@x.jp,Ben\n")
        assert headers == ["email", "name"]
        assert rows == [
            {"email": "a@x.jp", "name": "Aki"},
            {"email": "b@x.jp", "name": "Ben"},
        ]

    def test_quoted_fields_and_short_rows(self):
        headers, rows = parse_csv('name,notes\n"Sato, Hanako","said ""hi"""\nOnly\n')
        assert rows[0] == {"name": "Sato, Hanako", "notes": 'said "hi"'}
        assert rows[1] == {"name": "Only", "notes": ""}

    def test_empty_text(self):
        assert parse_csv("") == ([], [])

    def test_to_csv_escapes_and_prefixes_bom(self):
        text = to_csv(["name", "role"], [["Sato, Hanako", UserRole.hr], ['5" screen', None]])
        assert text == BOM + 'name,role\n"Sato, Hanako",hr\n"5"" screen",'


class TestValidators:

    def test_date(self):
        assert parse_date("2026-04-01") == date(2026, 4, 1)
        with pytest.raises(ValueError, match="YYYY-MM-DD"):
            parse_date("2026/04/01")
        with pytest.raises(ValueError, match="does not exist"):
            parse_date("2026-02-30")

    def test_time(self):
        assert parse_time("9:05") == time(9, 5)
        with pytest.raises(ValueError):
            parse_time("24:00")

    def test_number_bounds(self):
        assert parse_number("1.5", minimum=Decimal(0)) == Decimal("1.5")
        with pytest.raises(ValueError, match="greater than"):
            parse_number("0", minimum=Decimal(0), exclusive_minimum=True)
        with pytest.raises(ValueError, match="at most"):
            parse_number("9", maximum=Decimal(8))
        with pytest.raises(ValueError, match="number"):
            parse_number("NaN")

    def test_enum_is_case_insensitive(self):
        assert parse_enum("HR", UserRole) == UserRole.hr
        with pytest.raises(ValueError, match="Must be one of"):
            parse_enum("boss", UserRole)

    def test_hourly_leave_rounds_to_half_days(self):
        assert hourly_leave_days(Decimal(1)) == Decimal("0.5")
        assert hourly_leave_days(Decimal(2)) == Decimal("0.5")
        assert hourly_leave_days(Decimal(6)) == Decimal("1")
        assert hourly_leave_days(Decimal(8)) == Decimal("1")


# ═════════════════════════════════════════════════════════════════════
# VALIDATION (DRY RUN)
# ═════════════════════════════════════════════════════════════════════


class TestValidation:

    async def test_missing_required_column(self, db, tenant):
        result = await CsvImportService.run_import(db, tenant.id, "users", "email,name\na@x.jp,Aki\n")
        assert result.success is False
        assert [(e.row, e.column) for e in result.errors] == [(0, "header")]
        assert "role" in result.errors[0].message
        assert result.total_rows == 1
        assert result.error_rows == 1

    async def test_rows_numbered_from_two(self, db, tenant):
        text = (
            "email,name,role\n"
            "ok@sakura.example.com,Aki,employee\n"
            "bad@sakura.example.com,Ben,boss\n"
            "not-an-email,Chie,hr\n"
        )
        result = await CsvImportService.run_import(db, tenant.id, "users", text)
        assert [(e.row, e.column) for e in result.errors] == [(3, "role"), (4, "email")]
        assert result.success_rows == 1
        assert [d["row"] for d in result.data] == [2]

    async def test_duplicate_email_in_file(self, db, tenant):
        text = "email,name,role\ndup@sakura.example.com,A,employee\nDUP@sakura.example.com,B,employee\n"
        result = await CsvImportService.run_import(db, tenant.id, "users", text)
        assert [(e.row, e.column) for e in result.errors] == [(3, "email")]

    async def test_email_of_other_tenant(self, db, tenant, other_tenant):
        await seed_user(db, other_tenant.id, email="ken@elsewhere.example.com")
        await db.commit()
        text = "email,name,role\nken@elsewhere.example.com,Ken,employee\n"
        result = await CsvImportService.run_import(db, tenant.id, "users", text)
        assert result.errors[0].message == "E-mail address is already in use."
        assert result.success_rows == 0

    async def test_unknown_unit(self, db, tenant):
        text = "email,name,role,unit_name\nnew@sakura.example.com,New,employee,Nowhere\n"
        result = await CsvImportService.run_import(db, tenant.id, "users", text)
        assert result.errors[0].column == "unit_name"

    async def test_row_limit_warning(self, db, tenant, monkeypatch):
        monkeypatch.setitem(
            IMPORT_LAYOUTS, "users",
            ImportLayout(required=("email", "name", "role"), optional=(), max_rows=1),
        )
        text = "email,name,role\na@sakura.example.com,A,employee\nb@sakura.example.com,B,employee\n"
        result = await CsvImportService.run_import(db, tenant.id, "users", text)
        assert len(result.warnings) == 1
        assert result.total_rows == 1

    async def test_missing_column_counts_every_row(self, db, tenant, monkeypatch):
        monkeypatch.setitem(
            IMPORT_LAYOUTS, "users",
            ImportLayout(required=("email", "name", "role"), optional=(), max_rows=1),
        )
        text = "email,name\na@sakura.example.com,A\nb@sakura.example.com,B\nc@sakura.example.com,C\n"
        result = await CsvImportService.run_import(db, tenant.id, "users", text)
        assert [(e.row, e.column) for e in result.errors] == [(0, "header")]
        assert result.total_rows == 3
        assert result.error_rows == 3
        assert result.warnings == []

    async def test_dry_run_changes_nothing(self, db, tenant):
        text = "email,name,role\nnew@sakura.example.com,New,employee\n"
        result = await CsvImportService.run_import(db, tenant.id, "users", text)
        assert result.success is True
        assert result.dry_run is True
        assert result.applied is False
        found = await db.execute(select(User).where(User.email == "new@sakura.example.com"))
        assert found.scalar_one_or_none() is None

    async def test_attendance_checks(self, db, tenant, employee):
        text = (
            "email,date,check_in,check_out,break_end\n"
            f"{TARO},2026-04-01,18:00,09:00,\n"
            f"{TARO},2026-04-02,09:00,18:00,13:00\n"
            "ghost@sakura.example.com,2026-04-03,09:00,18:00,\n"
        )
        result = await CsvImportService.run_import(db, tenant.id, "attendance", text)
        assert [(e.row, e.column) for e in result.errors] == [
            (2, "check_out"), (3, "break_end"), (4, "email"),
        ]

    async def test_hourly_usage_needs_hours(self, db, tenant, employee):
        text = f"email,date,usage_type\n{TARO},2026-04-01,hourly\n"
        result = await CsvImportService.run_import(db, tenant.id, "leave_usage", text)
        assert result.errors[0].column == "hours"

    async def test_usage_on_weekend(self, db, tenant, employee):
        text = (
            "email,date,usage_type,hours\n"
            f"{TARO},2026-04-04,full,\n"
            f"{TARO},2026-04-05,am,\n"
            f"{TARO},2026-04-06,hourly,4\n"
        )
        result = await CsvImportService.run_import(db, tenant.id, "leave_usage", text)
        assert result.success is False
        assert [(e.row, e.column) for e in result.errors] == [(2, "date"), (3, "date")]
        assert result.success_rows == 1

    async def test_usage_same_user_same_day(self, db, tenant, employee):
        text = f"email,date,usage_type\n{TARO},2026-04-01,full\n{TARO},2026-04-01,am\n"
        result = await CsvImportService.run_import(db, tenant.id, "leave_usage", text)
        assert result.success is False
        assert [(e.row, e.column) for e in result.errors] == [(3, "date")]
        assert [d["row"] for d in result.data] == [2]

    async def test_usage_overlapping_existing_request(self, db, tenant, employee):
        await LeaveService.record_taken_leave(
            db, tenant.id, employee.id, LeaveType.paid, date(2026, 4, 1), Decimal(1),
        )
        await db.commit()
        text = f"email,date,usage_type\n{TARO},2026-04-01,pm\n{TARO},2026-04-02,pm\n"
        result = await CsvImportService.run_import(db, tenant.id, "leave_usage", text)
        assert [(e.row, e.column) for e in result.errors] == [(2, "date")]
        assert result.error_rows == 1

    async def test_usage_running_balance(self, db, tenant, employee):
        days, day = [], date(2026, 4, 1)
        while len(days) < 25:
            if day.weekday() < 5:
                days.append(day)
            day += timedelta(days=1)
        text = "email,date,usage_type\n" + "".join(f"{TARO},{d.isoformat()},full\n" for d in days)

        result = await CsvImportService.run_import(db, tenant.id, "leave_usage", text)

        assert result.success is False
        # paid allowance is 20 days; rows 22..26 exceed it
        assert [(e.row, e.column) for e in result.errors] == [(r, "usage_type") for r in range(22, 27)]
        assert "day(s) available" in result.errors[0].message
        assert result.success_rows == 20

    async def test_usage_balance_counts_pending(self, db, tenant, employee):
        db.add(
            LeaveRequest(
                tenant_id=tenant.id,
                user_id=employee.id,
                leave_type=LeaveType.paid,
                start_date=date(2026, 6, 1),
                end_date=date(2026, 6, 26),
                days=Decimal(19),
                status=LeaveStatus.pending,
            )
        )
        await db.commit()
        text = f"email,date,usage_type\n{TARO},2026-04-01,full\n{TARO},2026-04-02,am\n"
        result = await CsvImportService.run_import(db, tenant.id, "leave_usage", text)
        assert [(e.row, e.column) for e in result.errors] == [(3, "usage_type")]
        balances = await LeaveService.get_balances(db, tenant.id, employee.id, 2026)
        assert all(Decimal(b.used) == 0 for b in balances)

    async def test_grant_days_must_be_positive(self, db, tenant, employee):
        text = f"email,grant_date,grant_days\n{TARO},2026-04-01,0\n"
        result = await CsvImportService.run_import(db, tenant.id, "leave_grant", text)
        assert result.errors[0].column == "grant_days"


# ═════════════════════════════════════════════════════════════════════
# APPLY
# ═════════════════════════════════════════════════════════════════════


class TestApply:

    async def test_users_created_and_updated(self, db, tenant, unit, employee, hr_user):
        text = (
            "email,name,role,position,hire_date,unit_name\n"
            "ken.ito@sakura.example.com,Ken Ito,employee,,2026-04-01,Operations\n"
            f"{TARO},Taro Yamada,manager,Team Lead,,\n"
        )
        result = await CsvImportService.run_import(
            db, tenant.id, "users", text, dry_run=False, actor_id=hr_user.id,
        )
        assert result.applied is True

        ken = (await db.execute(select(User).where(User.email == "ken.ito@sakura.example.com"))).scalar_one()
        assert ken.unit_id == unit.id
        assert ken.hire_date == date(2026, 4, 1)
        assert employee.role == UserRole.manager
        assert employee.position == "Team Lead"

    async def test_attendance_upserted(self, db, tenant, employee):
        text = (
            "email,date,check_in,check_out,break_start,break_end,location\n"
            f"{TARO},2026-04-01,09:00,18:00,12:00,13:00,home\n"
        )
        await CsvImportService.run_import(db, tenant.id, "attendance", text, dry_run=False)
        record = (
            await db.execute(select(AttendanceRecord).where(AttendanceRecord.user_id == employee.id))
        ).scalar_one()
        assert record.work_minutes == 480
        assert record.location.value == "home"

    async def test_leave_usage_deducts_balance(self, db, tenant, employee):
        text = (
            "email,date,usage_type,hours\n"
            f"{TARO},2026-04-01,full,\n"
            f"{TARO},2026-04-02,am,\n"
            f"{TARO},2026-04-03,hourly,6\n"
        )
        result = await CsvImportService.run_import(db, tenant.id, "leave_usage", text, dry_run=False)
        assert result.applied is True
        balances = await LeaveService.initialize_balance(db, tenant.id, employee.id, 2026)
        paid = next(b for b in balances if b.category == LeaveCategory.paid)
        assert Decimal(paid.used) == Decimal("2.5")

    async def test_leave_grant_adds_days(self, db, tenant, employee):
        text = f"email,grant_date,grant_days,category\n{TARO},2026-04-01,3,sick\n"
        await CsvImportService.run_import(db, tenant.id, "leave_grant", text, dry_run=False)
        balances = await LeaveService.initialize_balance(db, tenant.id, employee.id, 2026)
        sick = next(b for b in balances if b.category == LeaveCategory.sick)
        assert Decimal(sick.total) == Decimal("8")

    async def test_transfer_moves_user(self, db, tenant, employee):
        sales = await seed_unit(db, tenant.id, name="Sales")
        await db.commit()
        text = f"email,effective_date,unit_name,position,role\n{TARO},2026-05-01,Sales,Lead,manager\n"
        await CsvImportService.run_import(db, tenant.id, "transfers", text, dry_run=False)
        assert employee.unit_id == sales.id
        assert employee.position == "Lead"
        assert employee.role == UserRole.manager

    async def test_errors_block_apply(self, db, tenant, employee):
        text = f"email,grant_date,grant_days\n{TARO},2026-04-01,2\n{TARO},bad,2\n"
        result = await CsvImportService.run_import(db, tenant.id, "leave_grant", text, dry_run=False)
        assert result.applied is False
        balances = await LeaveService.initialize_balance(db, tenant.id, employee.id, 2026)
        assert Decimal(balances[0].total) == Decimal("20")

    async def test_same_day_rows_rejected_before_apply(self, client, employee, hr_headers):
        text = f"email,date,usage_type\n{TARO},2026-04-01,full\n{TARO},2026-04-01,am\n"
        resp = await client.post(
            "/api/v1/csv/import/leave_usage?dry_run=false", files=_upload(text), headers=hr_headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["applied"] is False
        assert [(e["row"], e["column"]) for e in body["errors"]] == [(3, "date")]
        async with TestSessionFactory() as session:
            rows = (await session.execute(select(LeaveRequest))).scalars().all()
        assert rows == []


# ═════════════════════════════════════════════════════════════════════
# API: IMPORT / EXPORT / TEMPLATES
# ═════════════════════════════════════════════════════════════════════


class TestCsvApi:

    async def test_import_dry_run(self, client, hr_headers):
        text = "email,name,role\nnew@sakura.example.com,New,employee\n"
        resp = await client.post("/api/v1/csv/import/users", files=_upload(text), headers=hr_headers)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["applied"] is False

    async def test_import_rejects_non_csv(self, client, hr_headers):
        resp = await client.post(
            "/api/v1/csv/import/users", files=_upload("x", "image/png"), headers=hr_headers,
        )
        assert resp.status_code == 400

    async def test_import_unknown_dataset(self, client, hr_headers):
        resp = await client.post("/api/v1/csv/import/payroll", files=_upload("a\n"), headers=hr_headers)
        assert resp.status_code == 404

    async def test_employee_cannot_import(self, client, auth_headers):
        resp = await client.post("/api/v1/csv/import/users", files=_upload("a\n"), headers=auth_headers)
        assert resp.status_code == 403

    async def test_export_users(self, client, employee, hr_headers):
        resp = await client.get("/api/v1/csv/export/users", headers=hr_headers)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.headers["content-disposition"] == (
            f'attachment; filename="users_{date.today().isoformat()}.csv"'
        )
        assert resp.content.startswith(BOM.encode("utf-8"))
        headers, rows = parse_csv(resp.content.decode("utf-8"))
        assert headers[0] == "email"
        assert TARO in {r["email"] for r in rows}

    async def test_export_attendance_needs_range(self, client, hr_headers):
        resp = await client.get("/api/v1/csv/export/attendance", headers=hr_headers)
        assert resp.status_code == 422
        assert "start" in resp.json()["errors"]

    async def test_export_empty_dataset(self, client, hr_headers):
        resp = await client.get("/api/v1/csv/export/leave_balances?year=2031", headers=hr_headers)
        assert resp.status_code == 422
        assert resp.json()["detail"] == "no data to export"

    async def test_template(self, client, hr_headers):
        resp = await client.get("/api/v1/csv/templates/leave_usage", headers=hr_headers)
        assert resp.status_code == 200
        assert resp.text == "email,date,usage_type,hours,reason\n"

    async def test_employee_cannot_export(self, client, auth_headers):
        resp = await client.get("/api/v1/csv/export/users", headers=auth_headers)
        assert resp.status_code == 403
