"""Payroll tests — pay calculation, salary settings, pay runs, pay slip lifecycle."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from backoffice.attendance.models import AttendanceRecord
from backoffice.common.constants import AttendanceStatus, PayItemKind, PaymentType, PaySlipStatus
from backoffice.common.exceptions import ConflictError, ValidationException
from backoffice.notifications.models import Notification
from backoffice.payroll.calculator import (
    AttendanceFigures,
    GradeAmounts,
    SalaryTerms,
    calculate_pay,
    hourly_rate,
    monthly_income_tax,
)
from backoffice.payroll.models import PaySlip
from backoffice.payroll.schemas import (
    GradeIn,
    PayItemCreate,
    PayrollRunRequest,
    SalarySettingCreate,
)
from backoffice.payroll.service import PayrollService
from tests.conftest import TestSessionFactory

PERIOD = "2026-04"
PAYDAY = date(2026, 4, 25)


async def _setting(db, actor, user, effective_from=date(2026, 1, 1), **overrides):
    data = {"user_id": user.id, "effective_from": effective_from, "basic_salary": 300000}
    data.update(overrides)
    setting = await PayrollService.create_setting(db, actor, SalarySettingCreate(**data))
    await db.commit()
    return setting


async def _item(db, actor, user, kind, code, amount):
    item = await PayrollService.create_item(
        db, actor,
        PayItemCreate(user_id=user.id, kind=kind, code=code, amount=amount, effective_from=date(2026, 1, 1)),
    )
    await db.commit()
    return item


async def _run(db, actor, *users, **extra):
    data = {"pay_period": PERIOD, "payment_date": PAYDAY, "user_ids": [u.id for u in users]}
    data.update(extra)
    result = await PayrollService.calculate(db, actor, PayrollRunRequest(**data))
    await db.commit()
    return result


def _grade(grade=22, health=15000, pension=27450) -> GradeIn:
    return GradeIn(
        grade=grade,
        standard_monthly_amount=300000,
        health_insurance_employee=health,
        health_insurance_employer=health,
        pension_insurance_employee=pension,
        pension_insurance_employer=pension,
    )


# ═════════════════════════════════════════════════════════════════════
# CALCULATION
# ═════════════════════════════════════════════════════════════════════


class TestCalculatePay:

    def test_monthly_salary_with_items(self):
        pay = calculate_pay(
            SalaryTerms(basic_salary=300000, resident_tax_amount=12000),
            AttendanceFigures(),
            allowances={"commute": 10000, "position": 20000},
            deductions={"union": 2000},
        )
        assert pay.gross_pay == 330000
        assert (pay.health_insurance, pay.pension_insurance, pay.employment_insurance) == (16335, 30195, 1980)
        assert pay.income_tax == 16024 + 336
        assert pay.total_deductions == 78870
        assert pay.net_pay == 251130

    def test_overtime_premiums_and_absence(self):
        terms = SalaryTerms(basic_salary=336000)
        assert hourly_rate(terms) == 2000
        pay = calculate_pay(
            terms,
            AttendanceFigures(
                absence_days=Decimal("1"),
                overtime_hours=Decimal("10"),
                late_night_hours=Decimal("2"),
                holiday_work_hours=Decimal("4"),
            ),
        )
        assert pay.overtime_allowance == 25000
        assert pay.late_night_allowance == 6000
        assert pay.holiday_allowance == 10800
        assert pay.absence_deduction == 16000
        assert pay.gross_pay == 336000 - 16000 + 25000 + 6000 + 10800

    def test_daily_pay_counts_worked_days_only(self):
        terms = SalaryTerms(payment_type=PaymentType.daily, daily_rate=10000)
        pay = calculate_pay(terms, AttendanceFigures(working_days=18, absence_days=Decimal("2")))
        assert pay.basic_salary == 180000
        assert pay.absence_deduction == 0

    def test_hourly_pay(self):
        terms = SalaryTerms(payment_type=PaymentType.hourly, hourly_rate=1500)
        pay = calculate_pay(terms, AttendanceFigures(working_days=10))
        assert pay.basic_salary == 1500 * 8 * 10

    def test_grade_replaces_flat_rates(self):
        pay = calculate_pay(
            SalaryTerms(basic_salary=300000), AttendanceFigures(), grade=GradeAmounts(health=15000, pension=27450),
        )
        assert (pay.health_insurance, pay.pension_insurance) == (15000, 27450)

    def test_columns_include_attendance(self):
        pay = calculate_pay(SalaryTerms(basic_salary=200000), AttendanceFigures(overtime_hours=Decimal("3")))
        columns = pay.as_columns()
        assert columns["overtime_hours"] == Decimal("3")
        assert columns["working_days"] == 20
        assert "attendance" not in columns


class TestIncomeTax:

    def test_lowest_bracket_with_surtax(self):
        # (100000 × 12 − 480000) × 5% / 12 = 3000, plus 2.1%
        assert monthly_income_tax(100000) == 3063

    def test_dependants_reduce_to_zero(self):
        assert monthly_income_tax(100000, dependents=2) == 0

    def test_non_positive_income(self):
        assert monthly_income_tax(0) == 0
        assert monthly_income_tax(-5000) == 0

    def test_higher_bracket(self):
        # annual 7,200,000 − 480,000 = 6,720,000 → 20% − 427,500
        assert monthly_income_tax(600000) == 76375 + 1603


# ═════════════════════════════════════════════════════════════════════
# SALARY SETTINGS AND ITEMS
# ═════════════════════════════════════════════════════════════════════


class TestSalarySettings:

    async def test_new_setting_closes_previous(self, db, hr_user, employee):
        first = await _setting(db, hr_user, employee)
        second = await _setting(db, hr_user, employee, effective_from=date(2026, 4, 1), basic_salary=320000)

        async with TestSessionFactory() as session:
            march = await PayrollService.setting_in_force(session, employee.tenant_id, employee.id, date(2026, 3, 31))
            april = await PayrollService.setting_in_force(session, employee.tenant_id, employee.id, date(2026, 4, 1))
        assert march.id == first.id
        assert march.effective_to == date(2026, 3, 31)
        assert april.id == second.id

    async def test_duplicate_effective_date_conflicts(self, db, hr_user, employee):
        await _setting(db, hr_user, employee)
        with pytest.raises(ConflictError):
            await _setting(db, hr_user, employee)

    async def test_other_tenant_user_not_found(self, client, hr_headers, outsider):
        resp = await client.post(
            "/api/v1/payroll/settings",
            json={"user_id": str(outsider.id), "effective_from": "2026-04-01", "basic_salary": 300000},
            headers=hr_headers,
        )
        assert resp.status_code == 404

    async def test_daily_pay_needs_rate(self, client, hr_headers, employee):
        resp = await client.post(
            "/api/v1/payroll/settings",
            json={
                "user_id": str(employee.id),
                "effective_from": "2026-04-01",
                "basic_salary": 0,
                "payment_type": "daily",
            },
            headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_employee_cannot_manage(self, client, auth_headers, employee):
        resp = await client.post(
            "/api/v1/payroll/settings",
            json={"user_id": str(employee.id), "effective_from": "2026-04-01", "basic_salary": 1},
            headers=auth_headers,
        )
        assert resp.status_code == 403

    async def test_duplicate_item_conflicts(self, db, hr_user, employee):
        await _item(db, hr_user, employee, PayItemKind.allowance, "commute", 10000)
        with pytest.raises(ConflictError):
            await _item(db, hr_user, employee, PayItemKind.allowance, "commute", 12000)


class TestInsuranceGrades:

    async def test_replace_grades(self, db, hr_user):
        await PayrollService.replace_grades(db, hr_user, 2026, [_grade(1), _grade(2)])
        await PayrollService.replace_grades(db, hr_user, 2026, [_grade(3)])
        await db.commit()
        grades = await PayrollService.list_grades(db, hr_user.tenant_id, 2026)
        assert [g.grade for g in grades] == [3]

    async def test_duplicate_grade_rejected(self, db, hr_user):
        with pytest.raises(ValidationException):
            await PayrollService.replace_grades(db, hr_user, 2026, [_grade(5), _grade(5)])


# ═════════════════════════════════════════════════════════════════════
# PAY RUNS
# ═════════════════════════════════════════════════════════════════════


class TestPayRun:

    async def test_calculates_draft_slip(self, db, hr_user, employee):
        await _setting(db, hr_user, employee, resident_tax_amount=12000)
        await _item(db, hr_user, employee, PayItemKind.allowance, "commute", 10000)
        await _item(db, hr_user, employee, PayItemKind.allowance, "position", 20000)
        await _item(db, hr_user, employee, PayItemKind.deduction, "union", 2000)

        result = await _run(db, hr_user, employee)

        assert (result.total, result.succeeded, result.failed) == (1, 1, 0)
        slip = result.results[0].pay_slip
        assert slip.status == PaySlipStatus.draft
        assert slip.allowances == {"commute": 10000, "position": 20000}
        assert slip.net_pay == 251130

    async def test_attendance_records_feed_the_run(self, db, hr_user, employee):
        await _setting(db, hr_user, employee, basic_salary=336000)
        db.add_all([
            AttendanceRecord(
                tenant_id=employee.tenant_id, user_id=employee.id, date=date(2026, 4, 6),
                status=AttendanceStatus.absent,
            ),
            AttendanceRecord(
                tenant_id=employee.tenant_id, user_id=employee.id, date=date(2026, 4, 7),
                work_minutes=1080, overtime_minutes=600,
            ),
            AttendanceRecord(
                tenant_id=employee.tenant_id, user_id=employee.id, date=date(2026, 4, 8),
                status=AttendanceStatus.leave,
            ),
        ])
        await db.commit()

        slip = (await _run(db, hr_user, employee)).results[0].pay_slip
        assert slip.absence_days == 1
        assert slip.paid_leave_days == 1
        assert slip.overtime_hours == 10
        assert slip.absence_deduction == 16000
        assert slip.overtime_allowance == 25000

    async def test_given_attendance_overrides_records(self, db, hr_user, employee):
        await _setting(db, hr_user, employee, basic_salary=336000)
        db.add(AttendanceRecord(
            tenant_id=employee.tenant_id, user_id=employee.id, date=date(2026, 4, 6),
            status=AttendanceStatus.absent,
        ))
        await db.commit()

        result = await _run(
            db, hr_user, employee,
            attendance=[{"user_id": employee.id, "overtime_hours": "2"}],
        )
        slip = result.results[0].pay_slip
        assert slip.absence_deduction == 0
        assert slip.overtime_allowance == 5000

    async def test_grade_used_for_insurance(self, db, hr_user, employee):
        await PayrollService.replace_grades(db, hr_user, 2026, [_grade(22)])
        await _setting(db, hr_user, employee, social_insurance_grade=22)

        slip = (await _run(db, hr_user, employee)).results[0].pay_slip
        assert (slip.health_insurance, slip.pension_insurance) == (15000, 27450)

    async def test_missing_setting_reported(self, db, hr_user, employee, manager):
        await _setting(db, hr_user, employee)
        result = await _run(db, hr_user, employee, manager)
        failed = [r for r in result.results if not r.success]
        assert result.succeeded == 1
        assert [r.user_id for r in failed] == [manager.id]
        assert "salary setting" in failed[0].error

    async def test_defaults_to_active_users(self, db, hr_user, employee):
        await _setting(db, hr_user, employee)
        result = await PayrollService.calculate(
            db, hr_user, PayrollRunRequest(pay_period=PERIOD, payment_date=PAYDAY),
        )
        assert result.total == 2  # employee and hr_user
        assert result.succeeded == 1

    async def test_rerun_recomputes_draft(self, db, hr_user, employee):
        setting = await _setting(db, hr_user, employee)
        first = (await _run(db, hr_user, employee)).results[0].pay_slip

        setting.basic_salary = 310000
        await db.commit()
        second = (await _run(db, hr_user, employee)).results[0].pay_slip

        assert second.id == first.id
        assert second.basic_salary == 310000

    async def test_confirmed_slip_not_recalculated(self, db, hr_user, employee):
        await _setting(db, hr_user, employee)
        slip = (await _run(db, hr_user, employee)).results[0].pay_slip
        await PayrollService.confirm_slip(db, hr_user, slip.id)
        await db.commit()

        result = await _run(db, hr_user, employee)
        assert result.failed == 1
        assert "confirmed" in result.results[0].error


# ═════════════════════════════════════════════════════════════════════
# PAY SLIPS (API)
# ═════════════════════════════════════════════════════════════════════


class TestPaySlips:

    async def _draft(self, db, hr_user, employee):
        await _setting(db, hr_user, employee)
        return (await _run(db, hr_user, employee)).results[0].pay_slip

    async def test_calculate_endpoint(self, client, db, hr_headers, hr_user, employee):
        await _setting(db, hr_user, employee)
        resp = await client.post(
            "/api/v1/payroll/calculate",
            json={"pay_period": PERIOD, "payment_date": "2026-04-25", "user_ids": [str(employee.id)]},
            headers=hr_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["succeeded"] == 1

    async def test_bad_period_rejected(self, client, hr_headers):
        resp = await client.post(
            "/api/v1/payroll/calculate",
            json={"pay_period": "2026-13", "payment_date": "2026-04-25"},
            headers=hr_headers,
        )
        assert resp.status_code == 422

    async def test_employee_cannot_calculate(self, client, auth_headers):
        resp = await client.post(
            "/api/v1/payroll/calculate",
            json={"pay_period": PERIOD, "payment_date": "2026-04-25"},
            headers=auth_headers,
        )
        assert resp.status_code == 403

    async def test_draft_hidden_from_employee(self, client, db, auth_headers, hr_user, employee):
        slip = await self._draft(db, hr_user, employee)

        resp = await client.get("/api/v1/payroll/pay-slips/me", headers=auth_headers)
        assert resp.json()["data"] == []
        resp = await client.get(f"/api/v1/payroll/pay-slips/{slip.id}", headers=auth_headers)
        assert resp.status_code == 404

    async def test_confirm_issues_slip(self, client, db, auth_headers, hr_headers, hr_user, employee):
        slip = await self._draft(db, hr_user, employee)

        resp = await client.post(f"/api/v1/payroll/pay-slips/{slip.id}/confirm", headers=hr_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "confirmed"
        assert resp.json()["confirmed_at"] is not None

        resp = await client.get("/api/v1/payroll/pay-slips/me", headers=auth_headers)
        assert [s["id"] for s in resp.json()["data"]] == [str(slip.id)]

        async with TestSessionFactory() as session:
            notes = (
                await session.execute(
                    select(Notification).where(Notification.recipient_id == employee.id)
                )
            ).scalars().all()
        assert [n.entity_type for n in notes] == ["pay_slip"]

    async def test_other_employee_slip_hidden(self, client, db, manager_headers, hr_headers, hr_user, employee):
        slip = await self._draft(db, hr_user, employee)
        await client.post(f"/api/v1/payroll/pay-slips/{slip.id}/confirm", headers=hr_headers)

        resp = await client.get(f"/api/v1/payroll/pay-slips/{slip.id}", headers=manager_headers)
        assert resp.status_code == 404

    async def test_pay_requires_confirmation(self, client, db, hr_headers, hr_user, employee):
        slip = await self._draft(db, hr_user, employee)

        resp = await client.post(f"/api/v1/payroll/pay-slips/{slip.id}/pay", headers=hr_headers)
        assert resp.status_code == 422

        await client.post(f"/api/v1/payroll/pay-slips/{slip.id}/confirm", headers=hr_headers)
        resp = await client.post(f"/api/v1/payroll/pay-slips/{slip.id}/pay", headers=hr_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "paid"

    async def test_paid_slip_cannot_be_deleted(self, client, db, hr_headers, hr_user, employee):
        slip = await self._draft(db, hr_user, employee)
        await client.post(f"/api/v1/payroll/pay-slips/{slip.id}/confirm", headers=hr_headers)
        await client.post(f"/api/v1/payroll/pay-slips/{slip.id}/pay", headers=hr_headers)

        resp = await client.delete(f"/api/v1/payroll/pay-slips/{slip.id}", headers=hr_headers)
        assert resp.status_code == 422

    async def test_delete_draft(self, client, db, hr_headers, hr_user, employee):
        slip = await self._draft(db, hr_user, employee)
        resp = await client.delete(f"/api/v1/payroll/pay-slips/{slip.id}", headers=hr_headers)
        assert resp.status_code == 204
        async with TestSessionFactory() as session:
            assert (await session.execute(select(PaySlip))).scalars().first() is None

    async def test_period_summary(self, client, db, hr_headers, hr_user, employee):
        slip = await self._draft(db, hr_user, employee)
        resp = await client.get(
            "/api/v1/payroll/summary", params={"pay_period": PERIOD}, headers=hr_headers,
        )
        body = resp.json()
        assert body["slip_count"] == 1
        assert body["total_net_pay"] == slip.net_pay
        assert body["by_status"] == {"draft": 1, "confirmed": 0, "paid": 0}

    async def test_list_filters_by_status(self, client, db, hr_headers, hr_user, employee):
        await self._draft(db, hr_user, employee)
        resp = await client.get(
            "/api/v1/payroll/pay-slips", params={"status": "paid"}, headers=hr_headers,
        )
        assert resp.json()["meta"]["total"] == 0
        resp = await client.get(
            "/api/v1/payroll/pay-slips", params={"pay_period": PERIOD}, headers=hr_headers,
        )
        assert resp.json()["meta"]["total"] == 1

    async def test_other_tenant_cannot_see_slip(self, client, db, outsider_headers, hr_user, employee):
        slip = await self._draft(db, hr_user, employee)
        resp = await client.get(f"/api/v1/payroll/pay-slips/{slip.id}", headers=outsider_headers)
        assert resp.status_code == 404
