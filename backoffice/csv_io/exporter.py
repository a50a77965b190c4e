"""CSV export of tenant data sets."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.assets.models import PCAsset, Vehicle
from backoffice.attendance.service import AttendanceService, compute_minutes
from backoffice.common.exceptions import NotFoundException, ValidationException
from backoffice.csv_io.parser import to_csv
from backoffice.leave.service import LeaveService
from backoffice.saas.models import LicenseAssignment, LicensePlan, SaaSService
from backoffice.tenants.models import OrgUnit
from backoffice.users.models import User

logger = logging.getLogger(__name__)

EXPORT_DATASETS = (
    "users",
    "attendance",
    "leave_requests",
    "leave_balances",
    "vehicles",
    "pcs",
    "saas_assignments",
)


def export_filename(dataset: str, today: Optional[date] = None) -> str:
    return f"{dataset}_{(today or date.today()).isoformat()}.csv"


def _require(value: Any, name: str) -> Any:
    if value is None:
        raise ValidationException({name: [f"{name} is required for this export."]})
    return value


class CsvExportService:

    @staticmethod
    async def _emails(db: AsyncSession, tenant_id: uuid.UUID) -> dict[uuid.UUID, str]:
        result = await db.execute(select(User.id, User.email).where(User.tenant_id == tenant_id))
        return {row.id: row.email for row in result}

    @staticmethod
    async def _unit_names(db: AsyncSession, tenant_id: uuid.UUID) -> dict[uuid.UUID, str]:
        result = await db.execute(
            select(OrgUnit.id, OrgUnit.name).where(OrgUnit.tenant_id == tenant_id)
        )
        return {row.id: row.name for row in result}

    @staticmethod
    async def _rows(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        dataset: str,
        start: Optional[date],
        end: Optional[date],
        year: Optional[int],
    ) -> tuple[list[str], list[list[Any]]]:
        emails = await CsvExportService._emails(db, tenant_id)

        if dataset == "users":
            units = await CsvExportService._unit_names(db, tenant_id)
            users = (
                await db.execute(
                    select(User).where(User.tenant_id == tenant_id).order_by(User.email)
                )
            ).scalars().all()
            headers = [
                "email", "name", "role", "status", "phone", "employee_number",
                "position", "hire_date", "unit_name",
            ]
            rows = [
                [
                    u.email, u.name, u.role, u.status, u.phone, u.employee_number,
                    u.position, u.hire_date, units.get(u.unit_id),
                ]
                for u in users
            ]
            return headers, rows

        if dataset == "attendance":
            records = await AttendanceService.list_tenant_range(
                db, tenant_id, _require(start, "start"), _require(end, "end")
            )
            headers = [
                "email", "date", "check_in", "check_out", "break_start", "break_end",
                "break_minutes", "work_minutes", "overtime_minutes", "status",
                "location", "notes",
            ]
            rows = [
                [
                    emails.get(r.user_id), r.date,
                    r.check_in.strftime("%H:%M") if r.check_in else None,
                    r.check_out.strftime("%H:%M") if r.check_out else None,
                    r.break_start.strftime("%H:%M") if r.break_start else None,
                    r.break_end.strftime("%H:%M") if r.break_end else None,
                    compute_minutes(r.check_in, r.check_out, r.break_start, r.break_end)[2],
                    r.work_minutes, r.overtime_minutes,
                    r.status, r.location, r.notes,
                ]
                for r in records
            ]
            return headers, rows

        if dataset == "leave_requests":
            requests = await LeaveService.list_by_period(
                db, tenant_id, _require(start, "start"), _require(end, "end")
            )
            headers = ["email", "leave_type", "start_date", "end_date", "days", "status", "reason"]
            rows = [
                [
                    emails.get(r.user_id), r.leave_type, r.start_date, r.end_date,
                    r.days, r.status, r.reason,
                ]
                for r in requests
            ]
            return headers, rows

        if dataset == "leave_balances":
            balances = await LeaveService.list_tenant_balances(
                db, tenant_id, _require(year, "year")
            )
            headers = ["email", "year", "category", "total", "used", "remaining", "expiry_date"]
            rows = [
                [
                    emails.get(b.user_id), b.year, b.category, b.total, b.used,
                    b.remaining, b.expiry_date,
                ]
                for b in balances
            ]
            return headers, rows

        if dataset == "vehicles":
            vehicles = (
                await db.execute(
                    select(Vehicle)
                    .where(Vehicle.tenant_id == tenant_id)
                    .order_by(Vehicle.vehicle_number)
                )
            ).scalars().all()
            headers = [
                "vehicle_number", "license_plate", "make", "model", "year",
                "ownership_type", "status", "assigned_email", "inspection_date",
                "maintenance_date", "insurance_date", "lease_end", "lease_monthly_cost",
                "current_mileage",
            ]
            rows = [
                [
                    v.vehicle_number, v.license_plate, v.make, v.model, v.year,
                    v.ownership_type, v.status, emails.get(v.assigned_user_id),
                    v.inspection_date, v.maintenance_date, v.insurance_date,
                    v.lease_end, v.lease_monthly_cost, v.current_mileage,
                ]
                for v in vehicles
            ]
            return headers, rows

        if dataset == "pcs":
            pcs = (
                await db.execute(
                    select(PCAsset)
                    .where(PCAsset.tenant_id == tenant_id)
                    .order_by(PCAsset.asset_number)
                )
            ).scalars().all()
            headers = [
                "asset_number", "manufacturer", "model", "serial_number", "os",
                "ownership_type", "status", "assigned_email", "warranty_expiration",
                "lease_end", "lease_monthly_cost",
            ]
            rows = [
                [
                    p.asset_number, p.manufacturer, p.model, p.serial_number, p.os,
                    p.ownership_type, p.status, emails.get(p.assigned_user_id),
                    p.warranty_expiration, p.lease_end, p.lease_monthly_cost,
                ]
                for p in pcs
            ]
            return headers, rows

        if dataset == "saas_assignments":
            units = await CsvExportService._unit_names(db, tenant_id)
            result = await db.execute(
                select(LicenseAssignment, SaaSService.name, LicensePlan.plan_name)
                .join(SaaSService, SaaSService.id == LicenseAssignment.service_id)
                .join(LicensePlan, LicensePlan.id == LicenseAssignment.plan_id)
                .where(LicenseAssignment.tenant_id == tenant_id)
                .order_by(SaaSService.name, LicenseAssignment.assigned_date)
            )
            headers = [
                "service_name", "plan_name", "email", "unit_name", "account_email",
                "status", "assigned_date", "revoked_date", "last_used_at", "usage_count",
            ]
            rows = [
                [
                    service_name, plan_name, emails.get(a.user_id), units.get(a.unit_id),
                    a.account_email, a.status, a.assigned_date, a.revoked_date,
                    a.last_used_at.isoformat() if a.last_used_at else None, a.usage_count,
                ]
                for a, service_name, plan_name in result.all()
            ]
            return headers, rows

        raise NotFoundException("CSV data set", dataset)

    @staticmethod
    async def export(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        dataset: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        year: Optional[int] = None,
    ) -> str:
        """Render *dataset* as CSV text; an empty data set is a 422."""
        if dataset not in EXPORT_DATASETS:
            raise NotFoundException("CSV data set", dataset)
        headers, rows = await CsvExportService._rows(db, tenant_id, dataset, start, end, year)
        if not rows:
            raise ValidationException({"dataset": [dataset]}, detail="no data to export")
        logger.info("CSV export %s for tenant %s: %d row(s)", dataset, tenant_id, len(rows))
        return to_csv(headers, rows)
