"""Leave tests — day counting, balances, request lifecycle, yearly reset."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from backoffice.common.constants import LeaveCategory, LeaveStatus, LeaveType, NotificationType
from backoffice.common.exceptions import ValidationException
from backoffice.leave.models import LeaveBalance
from backoffice.leave.service import LeaveService, category_for, count_leave_days, paid_expiry
from backoffice.notifications.models import Notification
from tests.conftest import TestSessionFactory

# 2026-04-13 is a Monday
MONDAY = "2026-04-13"
FRIDAY = "2026-04-17"


async def _file(client, headers, start=MONDAY, end=FRIDAY, leave_type="paid", **extra):
    body = {"leave_type": leave_type, "start_date": start, "end_date": end, **extra}
    return await client.post("/api/v1/leave/requests", json=body, headers=headers)


async def _balance(user_id, category=LeaveCategory.paid, year=2026) -> LeaveBalance:
    async with TestSessionFactory() as session:
        return (
            await session.execute(
                select(LeaveBalance).where(
                    LeaveBalance.user_id == user_id,
                    LeaveBalance.year == year,
                    LeaveBalance.category == category,
                )
            )
        ).scalar_one()


# ═════════════════════════════════════════════════════════════════════
# DAY COUNTING
# ═════════════════════════════════════════════════════════════════════


class TestCountLeaveDays:

    def test_weekdays_only(self):
        assert count_leave_days(LeaveType.paid, date(2026, 4, 13), date(2026, 4, 19)) == 5

    def test_half_day(self):
        assert count_leave_days(LeaveType.half_day_am, date(2026, 4, 13), date(2026, 4, 13)) == Decimal("0.5")

    def test_half_day_spanning_days_rejected(self):
        with pytest.raises(ValidationException):
            count_leave_days(LeaveType.half_day_pm, date(2026, 4, 13), date(2026, 4, 14))

    def test_weekend_only_range_rejected(self):
        with pytest.raises(ValidationException):
            count_leave_days(LeaveType.paid, date(2026, 4, 18), date(2026, 4, 19))

    def test_reversed_range_rejected(self):
        with pytest.raises(ValidationException):
            count_leave_days(LeaveType.sick, date(2026, 4, 14), date(2026, 4, 13))

    def test_half_days_draw_from_paid(self):
        assert category_for(LeaveType.half_day_am) == LeaveCategory.paid
        assert category_for(LeaveType.sick) == LeaveCategory.sick

    def test_paid_expiry(self):
        assert paid_expiry(2026) == date(2028, 3, 31)


# ═════════════════════════════════════════════════════════════════════
# BALANCES
# ═════════════════════════════════════════════════════════════════════


class TestBalances:

    async def test_default_balances_created(self, client, auth_headers):
        resp = await client.get("/api/v1/leave/balances?year=2026", headers=auth_headers)
        assert resp.status_code == 200
        by_cat = {b["category"]: b for b in resp.json()}
        assert by_cat["paid"]["total"] == 20
        assert by_cat["paid"]["expiry_date"] == "2028-03-31"
        assert by_cat["compensatory"]["total"] == 0

    async def test_pending_reduces_available(self, client, auth_headers, manager):
        await _file(client, auth_headers)
        resp = await client.get("/api/v1/leave/balances?year=2026", headers=auth_headers)
        paid = next(b for b in resp.json() if b["category"] == "paid")
        assert paid["remaining"] == 20
        assert paid["pending"] == 5
        assert paid["available"] == 15

    async def test_hr_adjusts_balance(self, client, employee, hr_headers):
        resp = await client.put(
            f"/api/v1/leave/balances/{employee.id}",
            json={"year": 2026, "category": "special", "total": 8},
            headers=hr_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["total"] == 8

    async def test_employee_cannot_view_colleague(self, client, manager, auth_headers):
        resp = await client.get(f"/api/v1/leave/balances/{manager.id}", headers=auth_headers)
        assert resp.status_code == 403

    async def test_grant_days_adds_to_total(self, db, tenant, employee):
        balance = await LeaveService.grant_days(
            db, tenant.id, employee.id, 2026, LeaveCategory.compensatory, Decimal("1.5"),
        )
        assert balance.total == Decimal("1.5")


# ═════════════════════════════════════════════════════════════════════
# REQUEST LIFECYCLE
# ═════════════════════════════════════════════════════════════════════


class TestRequestLifecycle:

    async def test_submit_notifies_approvers(self, client, employee, manager, hr_user, auth_headers):
        resp = await _file(client, auth_headers)
        assert resp.status_code == 201
        assert resp.json()["days"] == 5
        assert resp.json()["status"] == "pending"

        async with TestSessionFactory() as session:
            recipients = set(
                (await session.execute(select(Notification.recipient_id))).scalars().all()
            )
        assert recipients == {manager.id, hr_user.id}

    async def test_approve_deducts_balance(self, client, employee, manager, auth_headers, manager_headers):
        created = await _file(client, auth_headers)
        resp = await client.post(
            f"/api/v1/leave/requests/{created.json()['id']}/approve", headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"

        balance = await _balance(employee.id)
        assert balance.used == Decimal("5")

        async with TestSessionFactory() as session:
            types = (
                await session.execute(
                    select(Notification.type).where(Notification.recipient_id == employee.id)
                )
            ).scalars().all()
        assert NotificationType.approval in types

    async def test_insufficient_balance(self, client, auth_headers):
        resp = await _file(client, auth_headers, start="2026-04-01", end="2026-05-29")
        assert resp.status_code == 422

    async def test_overlap_rejected(self, client, auth_headers):
        await _file(client, auth_headers)
        resp = await _file(client, auth_headers, start="2026-04-15", end="2026-04-15")
        assert resp.status_code == 422

    async def test_reject(self, client, auth_headers, manager_headers):
        created = await _file(client, auth_headers)
        resp = await client.post(
            f"/api/v1/leave/requests/{created.json()['id']}/reject",
            json={"reason": "Peak season"},
            headers=manager_headers,
        )
        assert resp.json()["status"] == "rejected"
        assert resp.json()["rejected_reason"] == "Peak season"

    async def test_approve_twice_is_invalid(self, client, auth_headers, manager_headers):
        created = await _file(client, auth_headers)
        url = f"/api/v1/leave/requests/{created.json()['id']}/approve"
        await client.post(url, headers=manager_headers)
        resp = await client.post(url, headers=manager_headers)
        assert resp.status_code == 422

    async def test_employee_cannot_approve(self, client, db, tenant, manager, auth_headers, manager_headers):
        created = await _file(client, manager_headers)
        resp = await client.post(
            f"/api/v1/leave/requests/{created.json()['id']}/approve", headers=auth_headers,
        )
        assert resp.status_code == 403

    async def test_cancel_approved_restores_balance(
        self, client, employee, auth_headers, manager_headers,
    ):
        created = await _file(client, auth_headers)
        request_id = created.json()["id"]
        await client.post(f"/api/v1/leave/requests/{request_id}/approve", headers=manager_headers)

        resp = await client.post(f"/api/v1/leave/requests/{request_id}/cancel", headers=auth_headers)
        assert resp.json()["status"] == "cancelled"
        balance = await _balance(employee.id)
        assert balance.used == Decimal("0")

    async def test_delete_approved_restores_balance(
        self, client, employee, auth_headers, manager_headers,
    ):
        created = await _file(client, auth_headers)
        request_id = created.json()["id"]
        await client.post(f"/api/v1/leave/requests/{request_id}/approve", headers=manager_headers)
        assert (await _balance(employee.id)).used == Decimal("5")

        resp = await client.delete(f"/api/v1/leave/requests/{request_id}", headers=auth_headers)
        assert resp.status_code == 204
        assert (await _balance(employee.id)).used == Decimal("0")
        gone = await client.get(f"/api/v1/leave/requests/{request_id}", headers=auth_headers)
        assert gone.status_code == 404

    async def test_delete_pending_leaves_balance_alone(self, client, employee, auth_headers):
        created = await _file(client, auth_headers)
        before = await client.get("/api/v1/leave/balances?year=2026", headers=auth_headers)
        paid = next(b for b in before.json() if b["category"] == "paid")
        assert paid["pending"] == 5

        resp = await client.delete(f"/api/v1/leave/requests/{created.json()['id']}", headers=auth_headers)
        assert resp.status_code == 204

        balance = await _balance(employee.id)
        assert balance.used == Decimal("0")
        assert balance.total == Decimal("20")
        after = await client.get("/api/v1/leave/balances?year=2026", headers=auth_headers)
        paid = next(b for b in after.json() if b["category"] == "paid")
        assert paid["pending"] == 0
        assert paid["available"] == 20

    async def test_draft_then_submit(self, client, auth_headers):
        created = await _file(client, auth_headers, status="draft")
        assert created.json()["status"] == "draft"
        resp = await client.post(
            f"/api/v1/leave/requests/{created.json()['id']}/submit", headers=auth_headers,
        )
        assert resp.json()["status"] == "pending"

    async def test_employee_cannot_self_approve_on_create(self, client, auth_headers):
        resp = await _file(client, auth_headers, status="approved")
        assert resp.status_code == 403

    async def test_hr_files_approved_for_employee(self, client, employee, hr_headers):
        resp = await _file(
            client, hr_headers, leave_type="half_day_am", start=MONDAY, end=MONDAY,
            status="approved", user_id=str(employee.id),
        )
        assert resp.status_code == 201
        assert resp.json()["days"] == 0.5
        balance = await _balance(employee.id)
        assert balance.used == Decimal("0.5")

    async def test_period_listing(self, client, auth_headers, hr_headers):
        await _file(client, auth_headers)
        resp = await client.get(
            "/api/v1/leave/requests/period?start=2026-04-01&end=2026-04-30", headers=hr_headers,
        )
        assert len(resp.json()) == 1


# ═════════════════════════════════════════════════════════════════════
# YEARLY RESET
# ═════════════════════════════════════════════════════════════════════


class TestYearlyReset:

    async def test_carry_over_capped(self, db, tenant, employee):
        await LeaveService.adjust_balance(
            db, tenant.id, employee.id, 2025, LeaveCategory.paid, Decimal("40"),
        )
        balances = await LeaveService.reset_yearly_balance(db, tenant.id, employee.id, 2026)
        paid = next(b for b in balances if b.category == LeaveCategory.paid)
        assert paid.total == Decimal("40")  # 20 allowance + 20 capped carry-over

    async def test_carry_over_unused_only(self, db, tenant, employee):
        balances = await LeaveService.initialize_balance(db, tenant.id, employee.id, 2025)
        paid_2025 = next(b for b in balances if b.category == LeaveCategory.paid)
        paid_2025.used = Decimal("12.5")
        await db.flush()

        balances = await LeaveService.reset_yearly_balance(db, tenant.id, employee.id, 2026)
        paid = next(b for b in balances if b.category == LeaveCategory.paid)
        assert paid.total == Decimal("27.5")

    async def test_reset_endpoint_counts_users(self, client, employee, manager, hr_headers):
        resp = await client.post(
            "/api/v1/leave/balances/reset", json={"year": 2027}, headers=hr_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["users"] == 3


# ═════════════════════════════════════════════════════════════════════
# IMPORTED LEAVE
# ═════════════════════════════════════════════════════════════════════


class TestRecordTakenLeave:

    async def test_books_approved_request(self, db, tenant, employee):
        req = await LeaveService.record_taken_leave(
            db, tenant.id, employee.id, LeaveType.paid, date(2026, 4, 13), Decimal("0.5"),
        )
        assert req.status == LeaveStatus.approved
        balance = await LeaveService._get_balance(db, tenant.id, employee.id, 2026, LeaveCategory.paid)
        assert balance.used == Decimal("0.5")

    async def test_same_day_twice_rejected(self, db, tenant, employee):
        await LeaveService.record_taken_leave(
            db, tenant.id, employee.id, LeaveType.paid, date(2026, 4, 13), Decimal("1"),
        )
        with pytest.raises(ValidationException):
            await LeaveService.record_taken_leave(
                db, tenant.id, employee.id, LeaveType.paid, date(2026, 4, 13), Decimal("1"),
            )
