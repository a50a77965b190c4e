"""Tenant settings and organisation unit tests."""

from __future__ import annotations

import uuid

from sqlalchemy import select

from backoffice.common.audit import AuditTrail
from backoffice.tenants.models import OrgUnit
from tests.conftest import TestSessionFactory, seed_unit, seed_user


# ═════════════════════════════════════════════════════════════════════
# TENANT
# ═════════════════════════════════════════════════════════════════════


class TestTenantSettings:

    async def test_get_current_tenant(self, client, tenant, auth_headers):
        resp = await client.get("/api/v1/tenants/current", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["name"] == tenant.name
        assert resp.json()["closing_day"] == "end"

    async def test_admin_updates_settings(self, client, admin_headers):
        resp = await client.patch(
            "/api/v1/tenants/current",
            json={"closing_day": "25", "week_start_day": 0},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["closing_day"] == "25"
        assert resp.json()["week_start_day"] == 0

    async def test_invalid_closing_day(self, client, admin_headers):
        resp = await client.patch(
            "/api/v1/tenants/current", json={"closing_day": "31"}, headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_hr_cannot_configure_tenant(self, client, hr_headers):
        resp = await client.patch(
            "/api/v1/tenants/current", json={"name": "Renamed"}, headers=hr_headers,
        )
        assert resp.status_code == 403

    async def test_create_tenant_adds_root_unit(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/tenants", json={"name": "Kobe Foods"}, headers=admin_headers,
        )
        assert resp.status_code == 201
        new_id = uuid.UUID(resp.json()["id"])

        async with TestSessionFactory() as session:
            units = (
                await session.execute(select(OrgUnit).where(OrgUnit.tenant_id == new_id))
            ).scalars().all()
        assert len(units) == 1
        assert units[0].name == "Kobe Foods"
        assert units[0].level == 0


# ═════════════════════════════════════════════════════════════════════
# ORG UNITS
# ═════════════════════════════════════════════════════════════════════


class TestOrgUnits:

    async def test_child_unit_level(self, client, unit, hr_headers):
        resp = await client.post(
            "/api/v1/tenants/units",
            json={"name": "Dispatch", "parent_id": str(unit.id), "unit_type": "team"},
            headers=hr_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["level"] == unit.level + 1

    async def test_duplicate_sibling_name(self, client, unit, hr_headers):
        body = {"name": "Dispatch", "parent_id": str(unit.id)}
        first = await client.post("/api/v1/tenants/units", json=body, headers=hr_headers)
        second = await client.post("/api/v1/tenants/units", json=body, headers=hr_headers)
        assert first.status_code == 201
        assert second.status_code == 409

    async def test_list_units_with_member_count(self, client, unit, employee, manager, auth_headers):
        resp = await client.get("/api/v1/tenants/units", headers=auth_headers)
        assert resp.status_code == 200
        by_id = {u["id"]: u for u in resp.json()}
        assert by_id[str(unit.id)]["member_count"] == 2

    async def test_parent_in_other_tenant(self, client, db, other_tenant, hr_headers):
        foreign = await seed_unit(db, other_tenant.id, name="Foreign")
        await db.commit()
        resp = await client.post(
            "/api/v1/tenants/units",
            json={"name": "Sneaky", "parent_id": str(foreign.id)},
            headers=hr_headers,
        )
        assert resp.status_code == 404

    async def test_delete_unit_with_members_conflicts(self, client, unit, employee, hr_headers):
        resp = await client.delete(f"/api/v1/tenants/units/{unit.id}", headers=hr_headers)
        assert resp.status_code == 409

    async def test_delete_unit_with_children_conflicts(self, client, db, tenant, hr_headers):
        parent = await seed_unit(db, tenant.id, name="Sales")
        await seed_unit(db, tenant.id, name="Sales East", parent_id=parent.id, level=1)
        await db.commit()
        resp = await client.delete(f"/api/v1/tenants/units/{parent.id}", headers=hr_headers)
        assert resp.status_code == 409

    async def test_delete_empty_unit_is_audited(self, client, db, tenant, hr_headers):
        empty = await seed_unit(db, tenant.id, name="Closed Branch")
        await db.commit()
        resp = await client.delete(f"/api/v1/tenants/units/{empty.id}", headers=hr_headers)
        assert resp.status_code == 204

        async with TestSessionFactory() as session:
            entries = (
                await session.execute(
                    select(AuditTrail).where(
                        AuditTrail.entity_type == "org_unit", AuditTrail.action == "delete",
                    )
                )
            ).scalars().all()
        assert len(entries) == 1

    async def test_employee_cannot_create_unit(self, client, auth_headers):
        resp = await client.post(
            "/api/v1/tenants/units", json={"name": "Rogue"}, headers=auth_headers,
        )
        assert resp.status_code == 403

    async def test_update_unit(self, client, unit, hr_headers):
        resp = await client.patch(
            f"/api/v1/tenants/units/{unit.id}",
            json={"name": "Operations HQ", "is_active": False},
            headers=hr_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "Operations HQ"
        assert resp.json()["is_active"] is False

    async def test_unit_of_other_tenant_is_404(self, client, db, other_tenant, auth_headers):
        foreign = await seed_unit(db, other_tenant.id, name="Elsewhere")
        await seed_user(db, other_tenant.id, email="x@umeda.example.com", unit_id=foreign.id)
        await db.commit()
        resp = await client.get(f"/api/v1/tenants/units/{foreign.id}", headers=auth_headers)
        assert resp.status_code == 404
