"""Asset service — vehicles, vendors, PCs, general assets, deadline
warnings and monthly cost summaries.

Vehicles, PCs and general assets share ownership / assignment columns,
so CRUD and assignment go through a few generic helpers keyed by an
``AssetKind``.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.assets.models import (
    GeneralAsset,
    MaintenanceRecord,
    MonthlyMileage,
    PCAsset,
    SoftwareLicense,
    Vehicle,
    Vendor,
)
from backoffice.assets.schemas import (
    CostSummary,
    DeadlineWarning,
    GeneralAssetOut,
    MaintenanceCreate,
    MonthlyCost,
    PCOut,
    UserAssets,
    VehicleOut,
)
from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import AssetStatus, MaintenanceType, OwnershipType, WarningLevel
from backoffice.common.exceptions import ConflictError, NotFoundException, ValidationException
from backoffice.common.filters import apply_filters, apply_search
from backoffice.common.pagination import PaginatedResponse, PaginationParams, paginate
from backoffice.users.models import User
from backoffice.users.service import UserService

logger = logging.getLogger(__name__)

WARNING_WINDOW_DAYS = 60
CRITICAL_WINDOW_DAYS = 30
MONEY_FIELDS = {"purchase_cost", "lease_monthly_cost", "monthly_cost", "cost"}
_MONTH_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


@dataclass(frozen=True)
class AssetKind:
    name: str
    model: Any
    number_field: str
    label: str


VEHICLE = AssetKind("vehicle", Vehicle, "vehicle_number", "Vehicle")
PC = AssetKind("pc", PCAsset, "asset_number", "PC")
GENERAL = AssetKind("general", GeneralAsset, "asset_number", "Asset")


def _money(values: dict[str, Any]) -> dict[str, Any]:
    """Floats from the wire → Decimal for the Numeric columns."""
    return {
        key: Decimal(str(value)) if key in MONEY_FIELDS and value is not None else value
        for key, value in values.items()
    }


def _to_float(value: Optional[Decimal]) -> float:
    return float(value) if value is not None else 0.0


def parse_month(value: str) -> date:
    """``YYYY-MM`` → first day of that month."""
    match = _MONTH_RE.match(value or "")
    if match is None:
        raise ValidationException({"month": [f"'{value}' is not a valid YYYY-MM month."]})
    return date(int(match.group(1)), int(match.group(2)), 1)


def _next_month(first: date) -> date:
    if first.month == 12:
        return date(first.year + 1, 1, 1)
    return date(first.year, first.month + 1, 1)


def _lease_covers(asset: Any, day: date) -> bool:
    """Leased asset whose lease range (open-ended where unset) includes *day*."""
    if asset.ownership_type != OwnershipType.leased or not asset.lease_monthly_cost:
        return False
    if asset.lease_start is not None and asset.lease_start > day:
        return False
    if asset.lease_end is not None and asset.lease_end < day:
        return False
    return True


def _warning(
    kind: str,
    asset_id: uuid.UUID,
    label: str,
    deadline_type: str,
    deadline: Optional[date],
    today: date,
) -> Optional[DeadlineWarning]:
    if deadline is None:
        return None
    days = (deadline - today).days
    if days > WARNING_WINDOW_DAYS:
        return None
    return DeadlineWarning(
        asset_kind=kind,
        asset_id=asset_id,
        asset_label=label,
        deadline_type=deadline_type,
        deadline=deadline,
        days_remaining=days,
        level=WarningLevel.critical if days <= CRITICAL_WINDOW_DAYS else WarningLevel.warning,
    )


class AssetService:
    """Async asset operations, scoped to one tenant."""

    # ─────────────────────────────────────────────────────────────────
    # Generic helpers (vehicle / pc / general)
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_asset(
        db: AsyncSession,
        kind: AssetKind,
        tenant_id: uuid.UUID,
        asset_id: uuid.UUID,
    ) -> Any:
        result = await db.execute(
            select(kind.model).where(kind.model.id == asset_id, kind.model.tenant_id == tenant_id)
        )
        asset = result.scalars().first()
        if asset is None:
            raise NotFoundException(kind.label, asset_id)
        return asset

    @staticmethod
    async def _check_number_free(
        db: AsyncSession,
        kind: AssetKind,
        tenant_id: uuid.UUID,
        number: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        column = getattr(kind.model, kind.number_field)
        query = select(kind.model.id).where(kind.model.tenant_id == tenant_id, column == number)
        if exclude_id is not None:
            query = query.where(kind.model.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise ConflictError(kind.number_field, number)

    @staticmethod
    async def create_asset(
        db: AsyncSession,
        kind: AssetKind,
        actor: User,
        data: Any,
    ) -> Any:
        values = _money(data.model_dump())
        await AssetService._check_number_free(db, kind, actor.tenant_id, values[kind.number_field])

        asset = kind.model(tenant_id=actor.tenant_id, **values)
        db.add(asset)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type=kind.name,
            entity_id=asset.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={kind.number_field: values[kind.number_field]},
        )
        logger.info("%s %s created in tenant %s", kind.label, asset.id, actor.tenant_id)
        return asset

    @staticmethod
    async def update_asset(
        db: AsyncSession,
        kind: AssetKind,
        actor: User,
        asset_id: uuid.UUID,
        data: Any,
    ) -> Any:
        asset = await AssetService.get_asset(db, kind, actor.tenant_id, asset_id)
        changes = _money(data.model_dump(exclude_unset=True))

        number = changes.get(kind.number_field)
        if number is not None and number != getattr(asset, kind.number_field):
            await AssetService._check_number_free(
                db, kind, actor.tenant_id, number, exclude_id=asset.id,
            )

        start = changes.get("lease_start", asset.lease_start)
        end = changes.get("lease_end", asset.lease_end)
        if start and end and end < start:
            raise ValidationException({"lease_end": ["lease_end must not be before lease_start."]})

        old_values = {field: getattr(asset, field) for field in changes}
        for field, value in changes.items():
            setattr(asset, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type=kind.name,
            entity_id=asset.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=changes,
        )
        return asset

    @staticmethod
    async def delete_asset(
        db: AsyncSession,
        kind: AssetKind,
        actor: User,
        asset_id: uuid.UUID,
    ) -> None:
        """Hard delete; maintenance, mileage and licenses cascade."""
        asset = await AssetService.get_asset(db, kind, actor.tenant_id, asset_id)
        await db.delete(asset)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type=kind.name,
            entity_id=asset_id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={kind.number_field: getattr(asset, kind.number_field)},
        )

    @staticmethod
    async def list_assets(
        db: AsyncSession,
        kind: AssetKind,
        tenant_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        filters: Optional[dict[str, Any]] = None,
        search: Optional[str] = None,
        search_columns: tuple[str, ...] = (),
        transform: Any = None,
    ) -> PaginatedResponse:
        query = select(kind.model).where(kind.model.tenant_id == tenant_id)
        query = apply_filters(query, kind.model, filters or {})
        query = apply_search(query, kind.model, search, search_columns)
        return await paginate(
            db,
            query,
            pagination,
            model=kind.model,
            default_sort=kind.number_field,
            transform=transform,
        )

    # ── Assignment ──────────────────────────────────────────────────

    @staticmethod
    async def assign(
        db: AsyncSession,
        kind: AssetKind,
        actor: User,
        asset_id: uuid.UUID,
        user_id: uuid.UUID,
        assigned_date: Optional[date] = None,
    ) -> Any:
        """Hand the asset to a user of the same tenant."""
        asset = await AssetService.get_asset(db, kind, actor.tenant_id, asset_id)
        if asset.status == AssetStatus.retired:
            raise ValidationException(
                {"status": [f"A retired {kind.label.lower()} cannot be assigned."]}
            )
        # 404 for users of other tenants
        assignee = await UserService.get_user(db, actor.tenant_id, user_id)

        old_user = asset.assigned_user_id
        asset.assigned_user_id = assignee.id
        asset.assigned_date = assigned_date or date.today()
        await db.flush()

        await create_audit_entry(
            db,
            action="assign",
            entity_type=kind.name,
            entity_id=asset.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"assigned_user_id": old_user},
            new_values={"assigned_user_id": assignee.id},
        )
        logger.info("%s %s assigned to %s", kind.label, asset.id, assignee.email)
        return asset

    @staticmethod
    async def unassign(
        db: AsyncSession,
        kind: AssetKind,
        actor: User,
        asset_id: uuid.UUID,
    ) -> Any:
        asset = await AssetService.get_asset(db, kind, actor.tenant_id, asset_id)
        old_user = asset.assigned_user_id
        asset.assigned_user_id = None
        asset.assigned_date = None
        await db.flush()

        await create_audit_entry(
            db,
            action="unassign",
            entity_type=kind.name,
            entity_id=asset.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"assigned_user_id": old_user},
        )
        return asset

    @staticmethod
    async def assets_for_user(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> UserAssets:
        grouped = {}
        for kind in (VEHICLE, PC, GENERAL):
            result = await db.execute(
                select(kind.model).where(
                    kind.model.tenant_id == tenant_id,
                    kind.model.assigned_user_id == user_id,
                )
            )
            grouped[kind.name] = list(result.scalars().all())
        return UserAssets(
            vehicles=[VehicleOut.model_validate(v) for v in grouped["vehicle"]],
            pcs=[PCOut.model_validate(p) for p in grouped["pc"]],
            general=[GeneralAssetOut.model_validate(g) for g in grouped["general"]],
        )

    # ─────────────────────────────────────────────────────────────────
    # Vendors
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_vendor(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
    ) -> Vendor:
        result = await db.execute(
            select(Vendor).where(Vendor.id == vendor_id, Vendor.tenant_id == tenant_id)
        )
        vendor = result.scalars().first()
        if vendor is None:
            raise NotFoundException("Vendor", vendor_id)
        return vendor

    @staticmethod
    async def list_vendors(db: AsyncSession, tenant_id: uuid.UUID) -> list[Vendor]:
        result = await db.execute(
            select(Vendor).where(Vendor.tenant_id == tenant_id).order_by(Vendor.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_vendor(db: AsyncSession, actor: User, data: Any) -> Vendor:
        vendor = Vendor(tenant_id=actor.tenant_id, work_count=0, **data.model_dump())
        db.add(vendor)
        await db.flush()
        await create_audit_entry(
            db,
            action="create",
            entity_type="vendor",
            entity_id=vendor.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={"name": vendor.name},
        )
        return vendor

    @staticmethod
    async def update_vendor(
        db: AsyncSession,
        actor: User,
        vendor_id: uuid.UUID,
        data: Any,
    ) -> Vendor:
        vendor = await AssetService.get_vendor(db, actor.tenant_id, vendor_id)
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(vendor, field, value)
        await db.flush()
        return vendor

    @staticmethod
    async def delete_vendor(db: AsyncSession, actor: User, vendor_id: uuid.UUID) -> None:
        """Maintenance records keep their history with ``vendor_id`` nulled."""
        vendor = await AssetService.get_vendor(db, actor.tenant_id, vendor_id)
        records = await db.execute(
            select(MaintenanceRecord).where(MaintenanceRecord.vendor_id == vendor.id)
        )
        for record in records.scalars().all():
            record.vendor_id = None
        await db.delete(vendor)
        await db.flush()
        await create_audit_entry(
            db,
            action="delete",
            entity_type="vendor",
            entity_id=vendor_id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"name": vendor.name},
        )

    # ─────────────────────────────────────────────────────────────────
    # Maintenance and mileage
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_maintenance(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        vehicle_id: uuid.UUID,
    ) -> list[MaintenanceRecord]:
        await AssetService.get_asset(db, VEHICLE, tenant_id, vehicle_id)
        result = await db.execute(
            select(MaintenanceRecord)
            .where(MaintenanceRecord.vehicle_id == vehicle_id)
            .order_by(MaintenanceRecord.date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_maintenance_record(
        db: AsyncSession,
        actor: User,
        vehicle_id: uuid.UUID,
        data: MaintenanceCreate,
    ) -> MaintenanceRecord:
        """Record work on a vehicle; bumps the vendor's work count and
        switches the current tire type on a tire change."""
        vehicle = await AssetService.get_asset(db, VEHICLE, actor.tenant_id, vehicle_id)
        if data.vendor_id is not None:
            vendor = await AssetService.get_vendor(db, actor.tenant_id, data.vendor_id)
            vendor.work_count = (vendor.work_count or 0) + 1
        if data.performed_by_id is not None:
            await UserService.get_user(db, actor.tenant_id, data.performed_by_id)

        record = MaintenanceRecord(
            tenant_id=actor.tenant_id,
            vehicle_id=vehicle.id,
            **_money(data.model_dump()),
        )
        db.add(record)

        if data.maintenance_type == MaintenanceType.tire_change and data.tire_type is not None:
            vehicle.current_tire_type = data.tire_type
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="maintenance_record",
            entity_id=record.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={
                "vehicle_id": vehicle.id,
                "maintenance_type": record.maintenance_type,
                "cost": record.cost,
            },
        )
        return record

    @staticmethod
    async def delete_maintenance_record(
        db: AsyncSession,
        actor: User,
        vehicle_id: uuid.UUID,
        record_id: uuid.UUID,
    ) -> None:
        await AssetService.get_asset(db, VEHICLE, actor.tenant_id, vehicle_id)
        result = await db.execute(
            select(MaintenanceRecord).where(
                MaintenanceRecord.id == record_id,
                MaintenanceRecord.vehicle_id == vehicle_id,
            )
        )
        record = result.scalars().first()
        if record is None:
            raise NotFoundException("MaintenanceRecord", record_id)

        if record.vendor_id is not None:
            vendor = await db.get(Vendor, record.vendor_id)
            if vendor is not None:
                vendor.work_count = max((vendor.work_count or 0) - 1, 0)

        await db.delete(record)
        await db.flush()

        await create_audit_entry(
            db,
            action="delete",
            entity_type="maintenance_record",
            entity_id=record_id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"vehicle_id": vehicle_id, "cost": record.cost},
        )

    @staticmethod
    async def list_mileage(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        vehicle_id: uuid.UUID,
    ) -> list[MonthlyMileage]:
        await AssetService.get_asset(db, VEHICLE, tenant_id, vehicle_id)
        result = await db.execute(
            select(MonthlyMileage)
            .where(MonthlyMileage.vehicle_id == vehicle_id)
            .order_by(MonthlyMileage.month.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def record_mileage(
        db: AsyncSession,
        actor: User,
        vehicle_id: uuid.UUID,
        month: str,
        distance_km: int,
    ) -> MonthlyMileage:
        """Upsert one month's distance; with tracking on, the odometer
        moves by the difference to the previous value of that month."""
        parse_month(month)
        vehicle = await AssetService.get_asset(db, VEHICLE, actor.tenant_id, vehicle_id)

        result = await db.execute(
            select(MonthlyMileage).where(
                MonthlyMileage.vehicle_id == vehicle.id,
                MonthlyMileage.month == month,
            )
        )
        entry = result.scalars().first()
        previous = 0
        if entry is None:
            entry = MonthlyMileage(
                tenant_id=actor.tenant_id,
                vehicle_id=vehicle.id,
                month=month,
                distance_km=distance_km,
                recorded_by=actor.id,
            )
            db.add(entry)
        else:
            previous = entry.distance_km
            entry.distance_km = distance_km
            entry.recorded_by = actor.id

        if vehicle.mileage_tracking:
            vehicle.current_mileage = (vehicle.current_mileage or 0) + distance_km - previous
        await db.flush()
        return entry

    @staticmethod
    async def delete_mileage(
        db: AsyncSession,
        actor: User,
        vehicle_id: uuid.UUID,
        month: str,
    ) -> None:
        vehicle = await AssetService.get_asset(db, VEHICLE, actor.tenant_id, vehicle_id)
        result = await db.execute(
            select(MonthlyMileage).where(
                MonthlyMileage.vehicle_id == vehicle.id,
                MonthlyMileage.month == month,
            )
        )
        entry = result.scalars().first()
        if entry is None:
            raise NotFoundException("MonthlyMileage", month)
        if vehicle.mileage_tracking and vehicle.current_mileage is not None:
            vehicle.current_mileage = max(vehicle.current_mileage - entry.distance_km, 0)
        await db.delete(entry)
        await db.flush()

    # ─────────────────────────────────────────────────────────────────
    # Software licenses
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_licenses(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        pc_id: uuid.UUID,
    ) -> list[SoftwareLicense]:
        await AssetService.get_asset(db, PC, tenant_id, pc_id)
        result = await db.execute(
            select(SoftwareLicense)
            .where(SoftwareLicense.pc_id == pc_id)
            .order_by(SoftwareLicense.software_name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _get_license(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        pc_id: uuid.UUID,
        license_id: uuid.UUID,
    ) -> SoftwareLicense:
        await AssetService.get_asset(db, PC, tenant_id, pc_id)
        result = await db.execute(
            select(SoftwareLicense).where(
                SoftwareLicense.id == license_id,
                SoftwareLicense.pc_id == pc_id,
            )
        )
        lic = result.scalars().first()
        if lic is None:
            raise NotFoundException("SoftwareLicense", license_id)
        return lic

    @staticmethod
    async def add_license(
        db: AsyncSession,
        actor: User,
        pc_id: uuid.UUID,
        data: Any,
    ) -> SoftwareLicense:
        pc = await AssetService.get_asset(db, PC, actor.tenant_id, pc_id)
        lic = SoftwareLicense(tenant_id=actor.tenant_id, pc_id=pc.id, **_money(data.model_dump()))
        db.add(lic)
        await db.flush()
        return lic

    @staticmethod
    async def update_license(
        db: AsyncSession,
        actor: User,
        pc_id: uuid.UUID,
        license_id: uuid.UUID,
        data: Any,
    ) -> SoftwareLicense:
        lic = await AssetService._get_license(db, actor.tenant_id, pc_id, license_id)
        for field, value in _money(data.model_dump(exclude_unset=True)).items():
            setattr(lic, field, value)
        await db.flush()
        return lic

    @staticmethod
    async def delete_license(
        db: AsyncSession,
        actor: User,
        pc_id: uuid.UUID,
        license_id: uuid.UUID,
    ) -> None:
        lic = await AssetService._get_license(db, actor.tenant_id, pc_id, license_id)
        await db.delete(lic)
        await db.flush()

    # ─────────────────────────────────────────────────────────────────
    # Reports
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _load(db: AsyncSession, model: Any, tenant_id: uuid.UUID) -> list[Any]:
        result = await db.execute(select(model).where(model.tenant_id == tenant_id))
        return list(result.scalars().all())

    @staticmethod
    async def deadline_warnings(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        today: Optional[date] = None,
    ) -> list[DeadlineWarning]:
        """Deadlines of non-retired assets due within 60 days (overdue
        included), soonest first."""
        today = today or date.today()
        warnings: list[Optional[DeadlineWarning]] = []

        vehicles = await AssetService._load(db, Vehicle, tenant_id)
        for v in vehicles:
            if v.status == AssetStatus.retired:
                continue
            label = f"{v.vehicle_number} ({v.license_plate})"
            warnings.append(_warning("vehicle", v.id, label, "inspection", v.inspection_date, today))
            warnings.append(_warning("vehicle", v.id, label, "maintenance", v.maintenance_date, today))
            warnings.append(_warning("vehicle", v.id, label, "insurance", v.insurance_date, today))
            if v.ownership_type == OwnershipType.leased:
                warnings.append(_warning("vehicle", v.id, label, "lease_end", v.lease_end, today))

        pcs = {p.id: p for p in await AssetService._load(db, PCAsset, tenant_id)}
        for p in pcs.values():
            if p.status == AssetStatus.retired:
                continue
            label = f"{p.asset_number} ({p.manufacturer} {p.model})"
            warnings.append(_warning("pc", p.id, label, "warranty", p.warranty_expiration, today))
            if p.ownership_type == OwnershipType.leased:
                warnings.append(_warning("pc", p.id, label, "lease_end", p.lease_end, today))

        for lic in await AssetService._load(db, SoftwareLicense, tenant_id):
            pc = pcs.get(lic.pc_id)
            if pc is None or pc.status == AssetStatus.retired:
                continue
            label = f"{pc.asset_number} / {lic.software_name}"
            warnings.append(
                _warning("pc", pc.id, label, "license_expiration", lic.expiration_date, today)
            )

        for g in await AssetService._load(db, GeneralAsset, tenant_id):
            if g.status == AssetStatus.retired:
                continue
            label = f"{g.asset_number} ({g.name})"
            warnings.append(_warning("general", g.id, label, "contract_end", g.contract_end, today))

        found = [w for w in warnings if w is not None]
        found.sort(key=lambda w: w.days_remaining)
        return found

    @staticmethod
    async def cost_summary(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        start_month: str,
        end_month: str,
    ) -> CostSummary:
        """Per-month cost breakdown for the inclusive month range."""
        start = parse_month(start_month)
        end = parse_month(end_month)
        if start > end:
            raise ValidationException(
                {"start_month": ["start_month must not be after end_month."]}
            )

        vehicles = await AssetService._load(db, Vehicle, tenant_id)
        records = await AssetService._load(db, MaintenanceRecord, tenant_id)
        pcs = await AssetService._load(db, PCAsset, tenant_id)
        active_pc_ids = {p.id for p in pcs if p.status == AssetStatus.active}
        licenses = [
            lic for lic in await AssetService._load(db, SoftwareLicense, tenant_id)
            if lic.pc_id in active_pc_ids
        ]
        general = [
            g for g in await AssetService._load(db, GeneralAsset, tenant_id)
            if g.status == AssetStatus.active
        ]

        rows: list[MonthlyCost] = []
        month = start
        while month <= end:
            following = _next_month(month)
            vehicle_lease = sum(
                (v.lease_monthly_cost for v in vehicles if _lease_covers(v, month)),
                Decimal("0"),
            )
            maintenance = sum(
                (r.cost for r in records if month <= r.date < following),
                Decimal("0"),
            )
            pc_lease = sum(
                (p.lease_monthly_cost for p in pcs if _lease_covers(p, month)),
                Decimal("0"),
            )
            software = sum(
                (
                    lic.monthly_cost for lic in licenses
                    if lic.monthly_cost
                    and (lic.expiration_date is None or lic.expiration_date >= month)
                ),
                Decimal("0"),
            )
            other = sum(
                (
                    g.monthly_cost for g in general
                    if g.monthly_cost
                    and (g.contract_end is None or g.contract_end >= month)
                ),
                Decimal("0"),
            )
            total = vehicle_lease + maintenance + pc_lease + software + other
            rows.append(
                MonthlyCost(
                    month=month.strftime("%Y-%m"),
                    vehicle_lease_cost=_to_float(vehicle_lease),
                    vehicle_maintenance_cost=_to_float(maintenance),
                    pc_lease_cost=_to_float(pc_lease),
                    software_cost=_to_float(software),
                    other_cost=_to_float(other),
                    total=_to_float(total),
                )
            )
            month = following

        return CostSummary(
            start_month=start_month,
            end_month=end_month,
            months=rows,
            total=round(sum(r.total for r in rows), 2),
        )
