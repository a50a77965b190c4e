"""SaaS license tests — services, plans, seat assignment and cost analytics."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from backoffice.common.constants import LicenseType
from backoffice.common.exceptions import ConflictError, NotFoundException, ValidationException
from backoffice.saas.schemas import AssignmentCreate, PlanCreate, ServiceCreate
from backoffice.saas.service import SaaSManager, round_yen

NOW = datetime(2026, 4, 15, 9, 0, tzinfo=timezone.utc)


async def _seed_service(db, actor, license_type=LicenseType.user_based, name="Slack", **plan):
    service = await SaaSManager.create_service(
        db, actor, ServiceCreate(name=name, license_type=license_type),
    )
    plan_data = {"plan_name": "Business", **plan}
    created_plan = await SaaSManager.create_plan(db, actor, service.id, PlanCreate(**plan_data))
    await db.commit()
    return service, created_plan


async def _assign(db, actor, service, plan, **holder):
    assignment = await SaaSManager.assign_license(
        db, actor, service.id, AssignmentCreate(plan_id=plan.id, **holder),
    )
    await db.commit()
    return assignment


# ═════════════════════════════════════════════════════════════════════
# SERVICES AND PLANS
# ═════════════════════════════════════════════════════════════════════


class TestServices:

    async def test_admin_registers_service(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/saas/services",
            json={"name": "Notion", "license_type": "user-based", "category": "productivity"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["license_type"] == "user-based"
        assert resp.json()["billing_cycle"] == "monthly"

    async def test_contract_end_before_start(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/saas/services",
            json={"name": "Zoom", "license_type": "fixed",
                  "contract_start": "2026-04-01", "contract_end": "2026-03-01"},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_hr_reads_only(self, client, hr_headers):
        assert (await client.get("/api/v1/saas/services", headers=hr_headers)).status_code == 200
        resp = await client.post(
            "/api/v1/saas/services", json={"name": "Zoom", "license_type": "fixed"}, headers=hr_headers,
        )
        assert resp.status_code == 403

    async def test_plan_crud(self, client, db, admin_user, admin_headers):
        service, _ = await _seed_service(db, admin_user, price_per_user=1000)
        resp = await client.post(
            f"/api/v1/saas/services/{service.id}/plans",
            json={"plan_name": "Enterprise", "price_per_user": 1800, "features": ["SSO"]},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        plans = await client.get(f"/api/v1/saas/services/{service.id}/plans", headers=admin_headers)
        assert {p["plan_name"] for p in plans.json()} == {"Business", "Enterprise"}

    async def test_delete_service_cascades(self, client, db, admin_user, employee, admin_headers):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        await _assign(db, admin_user, service, plan, user_id=employee.id)
        resp = await client.delete(f"/api/v1/saas/services/{service.id}", headers=admin_headers)
        assert resp.status_code == 204
        assignments = await client.get("/api/v1/saas/assignments", headers=admin_headers)
        assert assignments.json() == []


# ═════════════════════════════════════════════════════════════════════
# ASSIGNMENTS
# ═════════════════════════════════════════════════════════════════════


class TestAssignments:

    async def test_assign_to_user(self, client, db, admin_user, employee, admin_headers):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        resp = await client.post(
            f"/api/v1/saas/services/{service.id}/assignments",
            json={"plan_id": str(plan.id), "user_id": str(employee.id)},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["status"] == "active"
        assert resp.json()["usage_count"] == 0

    async def test_holder_required(self, client, db, admin_user, admin_headers):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        resp = await client.post(
            f"/api/v1/saas/services/{service.id}/assignments",
            json={"plan_id": str(plan.id)},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_second_active_seat_conflicts(self, db, admin_user, employee):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        await _assign(db, admin_user, service, plan, user_id=employee.id)
        with pytest.raises(ConflictError):
            await _assign(db, admin_user, service, plan, user_id=employee.id)

    async def test_plan_capacity(self, db, admin_user, employee, manager):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000, max_users=1)
        await _assign(db, admin_user, service, plan, user_id=employee.id)
        with pytest.raises(ValidationException):
            await _assign(db, admin_user, service, plan, user_id=manager.id)

    async def test_revoke_then_reassign(self, client, db, admin_user, employee, admin_headers):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        assignment = await _assign(db, admin_user, service, plan, user_id=employee.id)

        resp = await client.post(f"/api/v1/saas/assignments/{assignment.id}/revoke", headers=admin_headers)
        assert resp.json()["status"] == "inactive"
        assert resp.json()["revoked_date"] is not None

        again = await client.post(f"/api/v1/saas/assignments/{assignment.id}/revoke", headers=admin_headers)
        assert again.status_code == 422

        await _assign(db, admin_user, service, plan, user_id=employee.id)

    async def test_record_usage(self, client, db, admin_user, employee, admin_headers):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        assignment = await _assign(db, admin_user, service, plan, user_id=employee.id)
        resp = await client.post(f"/api/v1/saas/assignments/{assignment.id}/usage", headers=admin_headers)
        assert resp.json()["usage_count"] == 1
        assert resp.json()["last_used_at"] is not None

    async def test_user_of_other_tenant(self, db, admin_user, outsider):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        with pytest.raises(NotFoundException):
            await _assign(db, admin_user, service, plan, user_id=outsider.id)


# ═════════════════════════════════════════════════════════════════════
# COST ANALYTICS
# ═════════════════════════════════════════════════════════════════════


class TestCosts:

    async def test_user_based_and_fixed_totals(self, db, tenant, admin_user, employee, manager, hr_user):
        slack, slack_plan = await _seed_service(db, admin_user, price_per_user=1000)
        zoom, zoom_plan = await _seed_service(
            db, admin_user, license_type=LicenseType.fixed, name="Zoom", fixed_price=30000,
        )
        for holder in (employee, manager, hr_user):
            await _assign(db, admin_user, slack, slack_plan, user_id=holder.id)
            await _assign(db, admin_user, zoom, zoom_plan, user_id=holder.id)

        assert await SaaSManager.total_monthly_cost(db, tenant.id) == 3000 + 30000
        # fixed price is split across its active holders
        assert await SaaSManager.user_total_cost(db, tenant.id, employee.id) == 1000 + 10000

    async def test_half_yen_shares_round_up(self, db, tenant, admin_user, employee, manager):
        service, plan = await _seed_service(
            db, admin_user, license_type=LicenseType.fixed, name="Miro", fixed_price=5,
        )
        for holder in (employee, manager):
            await _assign(db, admin_user, service, plan, user_id=holder.id)

        assert await SaaSManager.user_total_cost(db, tenant.id, employee.id) == 3
        details = await SaaSManager.user_cost_details(db, tenant.id, manager.id)
        assert [d.monthly_cost for d in details] == [3]
        rows = await SaaSManager.users_by_total_cost(db, tenant.id)
        assert sorted(r.total_cost for r in rows) == [3, 3]

    def test_round_yen(self):
        assert [round_yen(Decimal(v)) for v in ("0.5", "1.5", "2.5", "2.49")] == [1, 2, 3, 2]

    async def test_usage_based_costs_nothing(self, db, tenant, admin_user, employee):
        service, plan = await _seed_service(
            db, admin_user, license_type=LicenseType.usage_based, name="AWS", price_per_user=500,
        )
        await _assign(db, admin_user, service, plan, user_id=employee.id)
        assert await SaaSManager.total_monthly_cost(db, tenant.id) == 0
        assert await SaaSManager.user_total_cost(db, tenant.id, employee.id) == 0

    async def test_inactive_seats_excluded(self, db, tenant, admin_user, employee):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        assignment = await _assign(db, admin_user, service, plan, user_id=employee.id)
        await SaaSManager.revoke_license(db, admin_user, assignment.id)
        assert await SaaSManager.total_monthly_cost(db, tenant.id) == 0

    async def test_unused_license_cost(self, db, tenant, admin_user, employee, manager, hr_user):
        service, plan = await _seed_service(db, admin_user, price_per_user=1200)
        recent = await _assign(db, admin_user, service, plan, user_id=employee.id)
        stale = await _assign(db, admin_user, service, plan, user_id=manager.id)
        await _assign(db, admin_user, service, plan, user_id=hr_user.id)  # never used

        await SaaSManager.record_usage(db, tenant.id, recent.id, at=NOW - timedelta(days=3))
        await SaaSManager.record_usage(db, tenant.id, stale.id, at=NOW - timedelta(days=45))

        assert await SaaSManager.unused_license_cost(db, tenant.id, now=NOW) == 2400

    async def test_unit_costs(self, db, tenant, admin_user, unit, employee, manager, hr_user):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        await _assign(db, admin_user, service, plan, user_id=employee.id)
        await _assign(db, admin_user, service, plan, user_id=manager.id)
        await _assign(db, admin_user, service, plan, user_id=hr_user.id)

        rows = await SaaSManager.unit_costs(db, tenant.id)
        by_name = {r.unit_name: r for r in rows}
        assert by_name[unit.name].total_cost == 2000
        assert by_name[unit.name].license_count == 2
        assert by_name["Unassigned"].total_cost == 1000

    async def test_users_ranked_by_cost(self, client, db, admin_user, employee, manager, hr_headers):
        slack, slack_plan = await _seed_service(db, admin_user, price_per_user=1000)
        figma, figma_plan = await _seed_service(db, admin_user, name="Figma", price_per_user=2500)
        await _assign(db, admin_user, slack, slack_plan, user_id=employee.id)
        await _assign(db, admin_user, slack, slack_plan, user_id=manager.id)
        await _assign(db, admin_user, figma, figma_plan, user_id=manager.id)

        resp = await client.get("/api/v1/saas/costs/users", headers=hr_headers)
        rows = resp.json()
        assert [r["user_name"] for r in rows] == [manager.name, employee.name]
        assert rows[0]["total_cost"] == 3500
        assert rows[0]["service_count"] == 2

    async def test_my_licenses(self, client, db, admin_user, employee, auth_headers):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        await _assign(db, admin_user, service, plan, user_id=employee.id)
        resp = await client.get("/api/v1/saas/me", headers=auth_headers)
        assert [d["service_name"] for d in resp.json()] == ["Slack"]
        assert resp.json()[0]["monthly_cost"] == 1000

    async def test_summary(self, client, db, admin_user, employee, manager, admin_headers):
        service, plan = await _seed_service(db, admin_user, price_per_user=1000)
        await _assign(db, admin_user, service, plan, user_id=employee.id)
        revoked = await _assign(db, admin_user, service, plan, user_id=manager.id)
        await SaaSManager.revoke_license(db, admin_user, revoked.id)
        await db.commit()

        data = (await client.get("/api/v1/saas/summary", headers=admin_headers)).json()
        assert data["total_services"] == 1
        assert data["active_licenses"] == 1
        assert data["inactive_licenses"] == 1
        assert data["total_monthly_cost"] == 1000
        assert data["unused_license_cost"] == 1000
