"""Asset tests — vehicles, PCs, general assets, deadlines and cost summary."""

from __future__ import annotations

from datetime import date

import pytest

from backoffice.assets.schemas import (
    GeneralAssetCreate,
    LicenseCreate,
    MaintenanceCreate,
    PCCreate,
    VehicleCreate,
)
from backoffice.assets.service import GENERAL, PC, VEHICLE, AssetService, parse_month
from backoffice.common.constants import AssetStatus, MaintenanceType, OwnershipType, TireType
from backoffice.common.exceptions import ValidationException


def _vehicle(**overrides) -> dict:
    body = {
        "vehicle_number": "V-001",
        "license_plate": "Shinagawa 300 a 12-34",
        "make": "Toyota",
        "model": "Prius",
        "year": 2022,
        "inspection_date": "2027-03-01",
        "maintenance_date": "2026-11-01",
        "insurance_date": "2027-01-15",
    }
    body.update(overrides)
    return body


async def _seed_vehicle(db, actor, **overrides):
    data = _vehicle(**overrides)
    vehicle = await AssetService.create_asset(db, VEHICLE, actor, VehicleCreate(**data))
    await db.commit()
    return vehicle


async def _seed_pc(db, actor, **overrides):
    data = {
        "asset_number": "PC-001",
        "manufacturer": "Lenovo",
        "model": "ThinkPad X1",
        "serial_number": "SN-0001",
    }
    data.update(overrides)
    pc = await AssetService.create_asset(db, PC, actor, PCCreate(**data))
    await db.commit()
    return pc


# ═════════════════════════════════════════════════════════════════════
# VEHICLES
# ═════════════════════════════════════════════════════════════════════


class TestVehicles:

    async def test_admin_creates_vehicle(self, client, admin_headers):
        resp = await client.post("/api/v1/assets/vehicles", json=_vehicle(), headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json()["current_tire_type"] == "summer"
        assert resp.json()["status"] == "active"

    async def test_duplicate_number_conflicts(self, client, admin_headers):
        await client.post("/api/v1/assets/vehicles", json=_vehicle(), headers=admin_headers)
        resp = await client.post("/api/v1/assets/vehicles", json=_vehicle(), headers=admin_headers)
        assert resp.status_code == 409

    async def test_hr_reads_but_cannot_write(self, client, hr_headers):
        listed = await client.get("/api/v1/assets/vehicles", headers=hr_headers)
        assert listed.status_code == 200
        resp = await client.post("/api/v1/assets/vehicles", json=_vehicle(), headers=hr_headers)
        assert resp.status_code == 403

    async def test_employee_cannot_list(self, client, auth_headers):
        resp = await client.get("/api/v1/assets/vehicles", headers=auth_headers)
        assert resp.status_code == 403

    async def test_lease_end_before_start(self, client, admin_headers):
        resp = await client.post(
            "/api/v1/assets/vehicles",
            json=_vehicle(ownership_type="leased", lease_start="2026-04-01", lease_end="2026-03-01"),
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_search(self, db, client, admin_user, admin_headers):
        await _seed_vehicle(db, admin_user)
        await _seed_vehicle(db, admin_user, vehicle_number="V-002", make="Honda", model="Fit")
        resp = await client.get("/api/v1/assets/vehicles?search=honda", headers=admin_headers)
        assert [v["vehicle_number"] for v in resp.json()["data"]] == ["V-002"]

    async def test_tire_change_switches_current_tire(self, db, admin_user):
        vehicle = await _seed_vehicle(db, admin_user)
        await AssetService.add_maintenance_record(
            db, admin_user, vehicle.id,
            MaintenanceCreate(
                maintenance_type=MaintenanceType.tire_change,
                date=date(2026, 11, 20),
                description="Winter tires fitted",
                tire_type=TireType.winter,
            ),
        )
        assert vehicle.current_tire_type == TireType.winter

    async def test_tire_change_requires_tire_type(self, client, db, admin_user, admin_headers):
        vehicle = await _seed_vehicle(db, admin_user)
        resp = await client.post(
            f"/api/v1/assets/vehicles/{vehicle.id}/maintenance",
            json={"maintenance_type": "tire_change", "date": "2026-11-20", "description": "Swap"},
            headers=admin_headers,
        )
        assert resp.status_code == 422

    async def test_maintenance_counts_vendor_work(self, client, db, admin_user, admin_headers):
        vehicle = await _seed_vehicle(db, admin_user)
        vendor = await client.post(
            "/api/v1/assets/vendors", json={"name": "Autobacs Shinagawa"}, headers=admin_headers,
        )
        vendor_id = vendor.json()["id"]
        await client.post(
            f"/api/v1/assets/vehicles/{vehicle.id}/maintenance",
            json={"maintenance_type": "oil_change", "date": "2026-04-02",
                  "description": "Oil", "cost": 6500, "vendor_id": vendor_id},
            headers=admin_headers,
        )
        resp = await client.get(f"/api/v1/assets/vendors/{vendor_id}", headers=admin_headers)
        assert resp.json()["work_count"] == 1

    async def test_mileage_upsert_moves_odometer(self, client, db, admin_user, admin_headers):
        vehicle = await _seed_vehicle(db, admin_user, mileage_tracking=True, current_mileage=10000)
        url = f"/api/v1/assets/vehicles/{vehicle.id}/mileage"
        await client.put(url, json={"month": "2026-04", "distance_km": 500}, headers=admin_headers)
        await client.put(url, json={"month": "2026-04", "distance_km": 800}, headers=admin_headers)

        resp = await client.get(f"/api/v1/assets/vehicles/{vehicle.id}", headers=admin_headers)
        assert resp.json()["current_mileage"] == 10800
        entries = await client.get(url, headers=admin_headers)
        assert len(entries.json()) == 1

    async def test_invalid_month(self):
        with pytest.raises(ValidationException):
            parse_month("2026-13")


# ═════════════════════════════════════════════════════════════════════
# ASSIGNMENT
# ═════════════════════════════════════════════════════════════════════


class TestAssignment:

    async def test_assign_and_my_assets(self, client, db, admin_user, employee, admin_headers, auth_headers):
        pc = await _seed_pc(db, admin_user)
        resp = await client.post(
            f"/api/v1/assets/pcs/{pc.id}/assign",
            json={"user_id": str(employee.id), "assigned_date": "2026-04-01"},
            headers=admin_headers,
        )
        assert resp.json()["assigned_user_id"] == str(employee.id)

        mine = await client.get("/api/v1/assets/me", headers=auth_headers)
        assert [p["asset_number"] for p in mine.json()["pcs"]] == ["PC-001"]

    async def test_retired_asset_cannot_be_assigned(self, db, admin_user, employee):
        pc = await _seed_pc(db, admin_user, status=AssetStatus.retired)
        with pytest.raises(ValidationException):
            await AssetService.assign(db, PC, admin_user, pc.id, employee.id)

    async def test_assign_to_other_tenant_user(self, client, db, admin_user, outsider, admin_headers):
        pc = await _seed_pc(db, admin_user)
        resp = await client.post(
            f"/api/v1/assets/pcs/{pc.id}/assign",
            json={"user_id": str(outsider.id)},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    async def test_unassign(self, db, admin_user, employee):
        pc = await _seed_pc(db, admin_user)
        await AssetService.assign(db, PC, admin_user, pc.id, employee.id)
        pc = await AssetService.unassign(db, PC, admin_user, pc.id)
        assert pc.assigned_user_id is None
        assert pc.assigned_date is None


# ═════════════════════════════════════════════════════════════════════
# DEADLINES
# ═════════════════════════════════════════════════════════════════════


class TestDeadlineWarnings:

    async def test_levels_and_order(self, db, tenant, admin_user):
        await _seed_vehicle(
            db, admin_user,
            inspection_date=date(2026, 5, 10),   # 25 days → critical
            maintenance_date=date(2026, 6, 1),   # 47 days → warning
            insurance_date=date(2026, 12, 1),    # outside window
        )
        warnings = await AssetService.deadline_warnings(db, tenant.id, today=date(2026, 4, 15))
        assert [(w.deadline_type, w.level.value) for w in warnings] == [
            ("inspection", "critical"),
            ("maintenance", "warning"),
        ]

    async def test_overdue_included(self, db, tenant, admin_user):
        await _seed_pc(db, admin_user, warranty_expiration=date(2026, 4, 1))
        warnings = await AssetService.deadline_warnings(db, tenant.id, today=date(2026, 4, 15))
        assert warnings[0].days_remaining == -14

    async def test_retired_assets_skipped(self, db, tenant, admin_user):
        await _seed_pc(db, admin_user, warranty_expiration=date(2026, 4, 20), status=AssetStatus.retired)
        assert await AssetService.deadline_warnings(db, tenant.id, today=date(2026, 4, 15)) == []

    async def test_license_expiration(self, db, tenant, admin_user):
        pc = await _seed_pc(db, admin_user)
        await AssetService.add_license(
            db, admin_user, pc.id,
            LicenseCreate(software_name="Office", expiration_date=date(2026, 4, 30)),
        )
        warnings = await AssetService.deadline_warnings(db, tenant.id, today=date(2026, 4, 15))
        assert warnings[0].deadline_type == "license_expiration"
        assert warnings[0].asset_label == "PC-001 / Office"

    async def test_endpoint(self, client, db, admin_user, hr_headers):
        await _seed_pc(db, admin_user, warranty_expiration=date(2026, 4, 20))
        resp = await client.get(
            "/api/v1/assets/deadline-warnings?today=2026-04-15", headers=hr_headers,
        )
        assert resp.status_code == 200
        assert resp.json()[0]["days_remaining"] == 5


# ═════════════════════════════════════════════════════════════════════
# COST SUMMARY
# ═════════════════════════════════════════════════════════════════════


class TestCostSummary:

    async def test_monthly_breakdown(self, db, tenant, admin_user):
        vehicle = await _seed_vehicle(
            db, admin_user,
            ownership_type=OwnershipType.leased,
            lease_monthly_cost=30000,
            lease_start=date(2026, 1, 1),
            lease_end=date(2026, 2, 28),
        )
        await AssetService.add_maintenance_record(
            db, admin_user, vehicle.id,
            MaintenanceCreate(
                maintenance_type=MaintenanceType.repair,
                date=date(2026, 2, 10),
                cost=5000,
                description="Bumper",
            ),
        )
        pc = await _seed_pc(db, admin_user, ownership_type=OwnershipType.leased, lease_monthly_cost=3000)
        await AssetService.add_license(
            db, admin_user, pc.id, LicenseCreate(software_name="Office", monthly_cost=1000),
        )
        retired = await _seed_pc(
            db, admin_user, asset_number="PC-002", serial_number="SN-0002", status=AssetStatus.retired,
        )
        await AssetService.add_license(
            db, admin_user, retired.id, LicenseCreate(software_name="CAD", monthly_cost=9000),
        )

        summary = await AssetService.cost_summary(db, tenant.id, "2026-01", "2026-03")
        assert [m.total for m in summary.months] == [34000, 39000, 4000]
        assert summary.months[1].vehicle_maintenance_cost == 5000
        assert summary.months[2].vehicle_lease_cost == 0
        assert summary.total == 77000

    async def test_general_asset_contract_end(self, db, tenant, admin_user):
        await AssetService.create_asset(
            db, GENERAL, admin_user,
            GeneralAssetCreate(
                asset_type="mobile", asset_number="M-001", name="iPhone",
                monthly_cost=2500, contract_end=date(2026, 1, 31),
            ),
        )
        summary = await AssetService.cost_summary(db, tenant.id, "2026-01", "2026-02")
        assert [m.other_cost for m in summary.months] == [2500, 0]

    async def test_reversed_range(self, client, admin_headers):
        resp = await client.get(
            "/api/v1/assets/cost-summary?start_month=2026-05&end_month=2026-01",
            headers=admin_headers,
        )
        assert resp.status_code == 422
