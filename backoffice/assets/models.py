"""Asset ORM models: Vendor, Vehicle, MaintenanceRecord, MonthlyMileage,
PCAsset, SoftwareLicense, GeneralAsset."""

from __future__ import annotations

import datetime
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import (
    AssetStatus,
    GeneralAssetType,
    MaintenanceType,
    OwnershipType,
    TireType,
)
from backoffice.common.models import TenantMixin, TimestampMixin, UUIDPrimaryKeyMixin, pg_enum
from backoffice.database import Base


# ═════════════════════════════════════════════════════════════════════
# Shared column groups
# ═════════════════════════════════════════════════════════════════════


class AssignableMixin:
    assigned_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    assigned_date: Mapped[Optional[date]] = mapped_column(sa.Date)


class OwnershipMixin:
    """Purchase or lease terms of an asset."""

    ownership_type: Mapped[OwnershipType] = mapped_column(
        pg_enum(OwnershipType, "ownership_type"),
        nullable=False,
        default=OwnershipType.owned,
    )
    purchase_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    purchase_cost: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    lease_company: Mapped[Optional[str]] = mapped_column(sa.String(200))
    lease_monthly_cost: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    lease_start: Mapped[Optional[date]] = mapped_column(sa.Date)
    lease_end: Mapped[Optional[date]] = mapped_column(sa.Date)
    status: Mapped[AssetStatus] = mapped_column(
        pg_enum(AssetStatus, "asset_status"),
        nullable=False,
        default=AssetStatus.active,
    )
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)


# ═════════════════════════════════════════════════════════════════════
# Vehicles
# ═════════════════════════════════════════════════════════════════════


class Vendor(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    """Garage or service company that performs vehicle maintenance."""

    __tablename__ = "vendors"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(sa.String(30))
    address: Mapped[Optional[str]] = mapped_column(sa.String(500))
    contact_person: Mapped[Optional[str]] = mapped_column(sa.String(100))
    email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    rating: Mapped[Optional[int]] = mapped_column(sa.SmallInteger)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    work_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)


class Vehicle(
    UUIDPrimaryKeyMixin, TenantMixin, AssignableMixin, OwnershipMixin, TimestampMixin, Base,
):
    __tablename__ = "vehicles"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "vehicle_number", name="uq_vehicles_number"),
    )

    vehicle_number: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    license_plate: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    make: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    model: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(sa.String(50))
    inspection_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    maintenance_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    insurance_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    current_tire_type: Mapped[TireType] = mapped_column(
        pg_enum(TireType, "tire_type"),
        nullable=False,
        default=TireType.summer,
    )
    mileage_tracking: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    current_mileage: Mapped[Optional[int]] = mapped_column(sa.Integer)


class MaintenanceRecord(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "maintenance_records"

    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    maintenance_type: Mapped[MaintenanceType] = mapped_column(
        pg_enum(MaintenanceType, "maintenance_type"),
        nullable=False,
    )
    date: Mapped[datetime.date] = mapped_column(sa.Date, nullable=False)
    cost: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False, default=Decimal("0"))
    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("vendors.id", ondelete="SET NULL"),
    )
    description: Mapped[str] = mapped_column(sa.Text, nullable=False)
    tire_type: Mapped[Optional[TireType]] = mapped_column(pg_enum(TireType, "tire_type"))
    performed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)


class MonthlyMileage(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "monthly_mileage"
    __table_args__ = (
        sa.UniqueConstraint("vehicle_id", "month", name="uq_monthly_mileage_vehicle_month"),
    )

    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("vehicles.id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[str] = mapped_column(sa.String(7), nullable=False)  # YYYY-MM
    distance_km: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    recorded_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
    )


# ═════════════════════════════════════════════════════════════════════
# PCs
# ═════════════════════════════════════════════════════════════════════


class PCAsset(
    UUIDPrimaryKeyMixin, TenantMixin, AssignableMixin, OwnershipMixin, TimestampMixin, Base,
):
    __tablename__ = "pc_assets"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "asset_number", name="uq_pc_assets_number"),
    )

    asset_number: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    manufacturer: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    model: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    serial_number: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    cpu: Mapped[Optional[str]] = mapped_column(sa.String(100))
    memory: Mapped[Optional[str]] = mapped_column(sa.String(50))
    storage: Mapped[Optional[str]] = mapped_column(sa.String(50))
    os: Mapped[Optional[str]] = mapped_column(sa.String(100))
    warranty_expiration: Mapped[Optional[date]] = mapped_column(sa.Date)


class SoftwareLicense(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "software_licenses"

    pc_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("pc_assets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    software_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    license_key: Mapped[Optional[str]] = mapped_column(sa.String(500))
    expiration_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    monthly_cost: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))


# ═════════════════════════════════════════════════════════════════════
# Other equipment
# ═════════════════════════════════════════════════════════════════════


class GeneralAsset(
    UUIDPrimaryKeyMixin, TenantMixin, AssignableMixin, OwnershipMixin, TimestampMixin, Base,
):
    """Phones, tablets and other equipment."""

    __tablename__ = "general_assets"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "asset_number", name="uq_general_assets_number"),
    )

    asset_type: Mapped[GeneralAssetType] = mapped_column(
        pg_enum(GeneralAssetType, "general_asset_type"),
        nullable=False,
    )
    asset_number: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    manufacturer: Mapped[Optional[str]] = mapped_column(sa.String(100))
    model: Mapped[Optional[str]] = mapped_column(sa.String(100))
    serial_number: Mapped[Optional[str]] = mapped_column(sa.String(100))
    contract_end: Mapped[Optional[date]] = mapped_column(sa.Date)
    monthly_cost: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
