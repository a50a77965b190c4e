#!/usr/bin/env python3
"""Seed a demo tenant — org units, staff, leave balances, assets, SaaS, salaries.

Creates one tenant with a small org tree, one user per role, a vehicle,
a PC, a SaaS service with seats and salary settings so the API can be explored right
after ``alembic upgrade head``. Safe to re-run: records that already
exist (matched by tenant name, unit name, e-mail, asset number and
service name) are left alone.

Usage:
    python scripts/seed_demo_tenant.py                          # "Sakura Logistics"
    python scripts/seed_demo_tenant.py --name "Kobe Freight" --domain kobe.example.com
    python scripts/seed_demo_tenant.py --users-csv staff.csv    # also import users
    python scripts/seed_demo_tenant.py --year 2027              # balances for 2027

Requires DATABASE_URL and JWT_SECRET in .env
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

# ── Path setup ────────────────────────────────────────────────────────
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv(PROJECT_ROOT / ".env")

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.assets.models import PCAsset, Vehicle
from backoffice.assets.schemas import PCCreate, VehicleCreate
from backoffice.assets.service import PC, VEHICLE, AssetService
from backoffice.common.constants import (
    LicenseType,
    OrgUnitType,
    PayItemKind,
    SaaSCategory,
    UserRole,
)
from backoffice.csv_io.importer import CsvImportService
from backoffice.database import async_session_factory
from backoffice.leave.service import LeaveService
from backoffice.payroll.schemas import PayItemCreate, SalarySettingCreate
from backoffice.payroll.service import PayrollService
from backoffice.saas.models import SaaSService
from backoffice.saas.schemas import AssignmentCreate, PlanCreate, ServiceCreate
from backoffice.saas.service import SaaSManager
from backoffice.tenants.models import Tenant
from backoffice.tenants.schemas import OrgUnitCreate, TenantCreate
from backoffice.tenants.service import TenantService
from backoffice.users.models import User
from backoffice.users.schemas import UserCreate
from backoffice.users.service import UserService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger("seed_demo_tenant")

# (name, parent name, type); parents listed before children
UNITS = [
    ("Sales", None, OrgUnitType.division),
    ("Operations", None, OrgUnitType.division),
    ("Tokyo Delivery", "Operations", OrgUnitType.team),
]

# (local part, name, role, unit name, position)
STAFF = [
    ("admin", "Aoi Takahashi", UserRole.admin, None, "Systems Administrator"),
    ("hr", "Jiro Suzuki", UserRole.hr, None, "HR Lead"),
    ("exec", "Michiko Tanaka", UserRole.executive, None, "COO"),
    ("ops.manager", "Hanako Sato", UserRole.manager, "Operations", "Operations Manager"),
    ("driver1", "Taro Yamada", UserRole.employee, "Tokyo Delivery", "Driver"),
    ("driver2", "Kenji Ito", UserRole.employee, "Tokyo Delivery", "Driver"),
    ("sales1", "Yuki Kobayashi", UserRole.employee, "Sales", "Account Executive"),
]


# ═════════════════════════════════════════════════════════════════════
# Steps
# ═════════════════════════════════════════════════════════════════════


async def seed_tenant(db: AsyncSession, name: str) -> Tenant:
    result = await db.execute(select(Tenant).where(Tenant.name == name))
    tenant = result.scalars().first()
    if tenant is None:
        tenant = await TenantService.create_tenant(db, TenantCreate(name=name))
        print(f"  ✓ Tenant {tenant.name} ({tenant.id})")
    else:
        print(f"  · Tenant {tenant.name} already exists ({tenant.id})")
    return tenant


async def seed_units(db: AsyncSession, tenant: Tenant) -> dict:
    root = await TenantService.get_unit_by_name(db, tenant.id, tenant.name)
    units = {}
    created = 0
    for unit_name, parent_name, unit_type in UNITS:
        unit = await TenantService.get_unit_by_name(db, tenant.id, unit_name)
        if unit is None:
            parent = units[parent_name] if parent_name else root
            unit = await TenantService.create_unit(
                db,
                tenant.id,
                OrgUnitCreate(name=unit_name, parent_id=parent.id, unit_type=unit_type),
            )
            created += 1
        units[unit_name] = unit
    print(f"  ✓ {created} new org unit(s) under {root.name}")
    return units


async def seed_staff(
    db: AsyncSession, tenant: Tenant, units: dict, domain: str, year: int,
) -> dict[str, User]:
    staff: dict[str, User] = {}
    created = 0
    for local, full_name, role, unit_name, position in STAFF:
        email = f"{local}@{domain}"
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalars().first()
        if user is not None and user.tenant_id != tenant.id:
            logger.warning("Skipping %s: e-mail belongs to another tenant", email)
            continue
        if user is None:
            user = await UserService.create_user(
                db,
                tenant.id,
                UserCreate(
                    email=email,
                    name=full_name,
                    role=role,
                    position=position,
                    unit_id=units[unit_name].id if unit_name else None,
                    hire_date=date(year - 1, 4, 1),
                ),
            )
            created += 1
        await LeaveService.initialize_balance(db, tenant.id, user.id, year)
        staff[local] = user
    print(f"  ✓ {created} new user(s); {year} leave balances initialised")
    return staff


async def seed_assets(db: AsyncSession, tenant: Tenant, staff: dict[str, User], year: int) -> None:
    admin = staff.get("admin")
    if admin is None:
        logger.warning("No admin user in tenant %s; assets not seeded", tenant.name)
        return

    vehicle = (
        await db.execute(
            select(Vehicle).where(Vehicle.tenant_id == tenant.id, Vehicle.vehicle_number == "V-001")
        )
    ).scalars().first()
    if vehicle is None:
        vehicle = await AssetService.create_asset(
            db, VEHICLE, admin,
            VehicleCreate(
                vehicle_number="V-001",
                license_plate="Shinagawa 300 a 12-34",
                make="Toyota",
                model="HiAce",
                year=year - 2,
                inspection_date=date(year + 1, 3, 31),
                maintenance_date=date(year, 10, 1),
                insurance_date=date(year + 1, 1, 15),
                mileage_tracking=True,
                current_mileage=12000,
            ),
        )
        if "driver1" in staff:
            await AssetService.assign(db, VEHICLE, admin, vehicle.id, staff["driver1"].id)
        print(f"  ✓ Vehicle {vehicle.vehicle_number}")

    pc = (
        await db.execute(
            select(PCAsset).where(PCAsset.tenant_id == tenant.id, PCAsset.asset_number == "PC-001")
        )
    ).scalars().first()
    if pc is None:
        pc = await AssetService.create_asset(
            db, PC, admin,
            PCCreate(
                asset_number="PC-001",
                manufacturer="Lenovo",
                model="ThinkPad X1 Carbon",
                serial_number="PF-3X91K2",
                os="Windows 11 Pro",
                warranty_expiration=date(year + 2, 3, 31),
            ),
        )
        await AssetService.assign(db, PC, admin, pc.id, admin.id)
        print(f"  ✓ PC {pc.asset_number}")


async def seed_saas(db: AsyncSession, tenant: Tenant, staff: dict[str, User]) -> None:
    admin = staff.get("admin")
    if admin is None:
        return
    exists = await db.execute(
        select(SaaSService.id).where(SaaSService.tenant_id == tenant.id, SaaSService.name == "Slack")
    )
    if exists.scalar() is not None:
        return

    service = await SaaSManager.create_service(
        db, admin,
        ServiceCreate(
            name="Slack",
            category=SaaSCategory.communication,
            vendor="Salesforce",
            license_type=LicenseType.user_based,
            sso_enabled=True,
            mfa_enabled=True,
        ),
    )
    plan = await SaaSManager.create_plan(
        db, admin, service.id, PlanCreate(plan_name="Pro", price_per_user=1050),
    )
    for user in staff.values():
        await SaaSManager.assign_license(
            db, admin, service.id, AssignmentCreate(plan_id=plan.id, user_id=user.id),
        )
    print(f"  ✓ SaaS service {service.name} with {len(staff)} seat(s)")


# (local part, basic salary, commute allowance)
SALARIES = [
    ("hr", 380000, 12000),
    ("ops.manager", 420000, 15000),
    ("driver1", 280000, 8000),
    ("driver2", 270000, 8000),
    ("sales1", 300000, 10000),
]


async def seed_payroll(db: AsyncSession, tenant: Tenant, staff: dict[str, User], year: int) -> None:
    hr = staff.get("hr")
    if hr is None:
        return
    start = date(year, 1, 1)
    created = 0
    for local, basic, commute in SALARIES:
        user = staff.get(local)
        if user is None:
            continue
        if await PayrollService.setting_in_force(db, tenant.id, user.id, start) is not None:
            continue
        await PayrollService.create_setting(
            db, hr,
            SalarySettingCreate(user_id=user.id, effective_from=start, basic_salary=basic),
        )
        await PayrollService.create_item(
            db, hr,
            PayItemCreate(
                user_id=user.id, kind=PayItemKind.allowance, code="commute",
                amount=commute, effective_from=start,
            ),
        )
        created += 1
    print(f"  ✓ {created} new salary setting(s) from {start}")


async def import_users(db: AsyncSession, tenant: Tenant, path: Path) -> bool:
    result = await CsvImportService.run_import(
        db, tenant.id, "users", path.read_text(encoding="utf-8"), dry_run=False,
    )
    if not result.success:
        for err in result.errors:
            print(f"  ✗ row {err.row} {err.column}: {err.message}")
        return False
    print(f"  ✓ Imported {result.success_rows} user(s) from {path.name}")
    return True


async def seed(name: str, domain: str, year: int, users_csv: Optional[Path]) -> bool:
    async with async_session_factory() as db:
        tenant = await seed_tenant(db, name)
        units = await seed_units(db, tenant)
        staff = await seed_staff(db, tenant, units, domain, year)
        await seed_assets(db, tenant, staff, year)
        await seed_saas(db, tenant, staff)
        await seed_payroll(db, tenant, staff, year)

        if users_csv is not None and not await import_users(db, tenant, users_csv):
            await db.rollback()
            return False

        await db.commit()
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Seed a demo tenant with org units, users, leave balances, assets and SaaS",
    )
    parser.add_argument("--name", default="Sakura Logistics", help="Tenant name")
    parser.add_argument("--domain", default="sakura.example.com",
                        help="E-mail domain of the seeded users")
    parser.add_argument("--year", type=int, default=date.today().year,
                        help="Leave balance year")
    parser.add_argument("--users-csv", type=Path, default=None,
                        help="Users CSV to import into the tenant")
    args = parser.parse_args()

    print(f"Seeding demo tenant '{args.name}'...")
    ok = asyncio.run(seed(args.name, args.domain, args.year, args.users_csv))
    if not ok:
        print("Nothing was saved.")
        sys.exit(1)
    print("Done.")


if __name__ == "__main__":
    main()
