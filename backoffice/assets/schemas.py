"""Asset Pydantic v2 schemas — vehicles, vendors, PCs, general assets,
deadline warnings and monthly cost rows.

Money columns are ``Numeric(12, 2)`` in the database and plain floats on
the wire.
"""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backoffice.common.constants import (
    AssetStatus,
    GeneralAssetType,
    MaintenanceType,
    OwnershipType,
    TireType,
    WarningLevel,
)

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# ═════════════════════════════════════════════════════════════════════
# Shared
# ═════════════════════════════════════════════════════════════════════


class OwnershipFields(BaseModel):
    ownership_type: OwnershipType = OwnershipType.owned
    purchase_date: Optional[date] = None
    purchase_cost: Optional[float] = Field(None, ge=0)
    lease_company: Optional[str] = Field(None, max_length=200)
    lease_monthly_cost: Optional[float] = Field(None, ge=0)
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None
    status: AssetStatus = AssetStatus.active
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_lease_period(self):
        if self.lease_start and self.lease_end and self.lease_end < self.lease_start:
            raise ValueError("lease_end must not be before lease_start.")
        return self


class OwnershipUpdate(BaseModel):
    ownership_type: Optional[OwnershipType] = None
    purchase_date: Optional[date] = None
    purchase_cost: Optional[float] = Field(None, ge=0)
    lease_company: Optional[str] = Field(None, max_length=200)
    lease_monthly_cost: Optional[float] = Field(None, ge=0)
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None
    status: Optional[AssetStatus] = None
    notes: Optional[str] = None


class OwnershipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ownership_type: OwnershipType
    purchase_date: Optional[date] = None
    purchase_cost: Optional[float] = None
    lease_company: Optional[str] = None
    lease_monthly_cost: Optional[float] = None
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None
    status: AssetStatus
    notes: Optional[str] = None
    assigned_user_id: Optional[uuid.UUID] = None
    assigned_date: Optional[date] = None


class AssignRequest(BaseModel):
    user_id: uuid.UUID
    assigned_date: Optional[date] = None


# ═════════════════════════════════════════════════════════════════════
# Vendors
# ═════════════════════════════════════════════════════════════════════


class VendorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=500)
    contact_person: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None


class VendorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=500)
    contact_person: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None


class VendorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    rating: Optional[int] = None
    notes: Optional[str] = None
    work_count: int


# ═════════════════════════════════════════════════════════════════════
# Vehicles
# ═════════════════════════════════════════════════════════════════════


class VehicleCreate(OwnershipFields):
    vehicle_number: str = Field(..., min_length=1, max_length=50)
    license_plate: str = Field(..., min_length=1, max_length=50)
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=1900, le=2100)
    color: Optional[str] = Field(None, max_length=50)
    inspection_date: date
    maintenance_date: date
    insurance_date: date
    current_tire_type: TireType = TireType.summer
    mileage_tracking: bool = False
    current_mileage: Optional[int] = Field(None, ge=0)


class VehicleUpdate(OwnershipUpdate):
    vehicle_number: Optional[str] = Field(None, min_length=1, max_length=50)
    license_plate: Optional[str] = Field(None, min_length=1, max_length=50)
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    color: Optional[str] = Field(None, max_length=50)
    inspection_date: Optional[date] = None
    maintenance_date: Optional[date] = None
    insurance_date: Optional[date] = None
    current_tire_type: Optional[TireType] = None
    mileage_tracking: Optional[bool] = None
    current_mileage: Optional[int] = Field(None, ge=0)


class VehicleOut(OwnershipOut):
    id: uuid.UUID
    vehicle_number: str
    license_plate: str
    make: str
    model: str
    year: int
    color: Optional[str] = None
    inspection_date: date
    maintenance_date: date
    insurance_date: date
    current_tire_type: TireType
    mileage_tracking: bool
    current_mileage: Optional[int] = None
    created_at: datetime


class MaintenanceCreate(BaseModel):
    maintenance_type: MaintenanceType
    date: date
    cost: float = Field(0, ge=0)
    vendor_id: Optional[uuid.UUID] = None
    description: str = Field(..., min_length=1)
    tire_type: Optional[TireType] = None
    performed_by_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_tire_type(self):
        if self.maintenance_type == MaintenanceType.tire_change and self.tire_type is None:
            raise ValueError("tire_type is required for a tire change.")
        return self


class MaintenanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vehicle_id: uuid.UUID
    maintenance_type: MaintenanceType
    date: date
    cost: float
    vendor_id: Optional[uuid.UUID] = None
    description: str
    tire_type: Optional[TireType] = None
    performed_by_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class MileageRecord(BaseModel):
    month: str = Field(..., pattern=MONTH_PATTERN)
    distance_km: int = Field(..., ge=0)


class MileageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vehicle_id: uuid.UUID
    month: str
    distance_km: int
    recorded_by: Optional[uuid.UUID] = None
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# PCs
# ═════════════════════════════════════════════════════════════════════


class PCCreate(OwnershipFields):
    asset_number: str = Field(..., min_length=1, max_length=50)
    manufacturer: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    serial_number: str = Field(..., min_length=1, max_length=100)
    cpu: Optional[str] = Field(None, max_length=100)
    memory: Optional[str] = Field(None, max_length=50)
    storage: Optional[str] = Field(None, max_length=50)
    os: Optional[str] = Field(None, max_length=100)
    warranty_expiration: Optional[date] = None


class PCUpdate(OwnershipUpdate):
    asset_number: Optional[str] = Field(None, min_length=1, max_length=50)
    manufacturer: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    serial_number: Optional[str] = Field(None, min_length=1, max_length=100)
    cpu: Optional[str] = Field(None, max_length=100)
    memory: Optional[str] = Field(None, max_length=50)
    storage: Optional[str] = Field(None, max_length=50)
    os: Optional[str] = Field(None, max_length=100)
    warranty_expiration: Optional[date] = None


class PCOut(OwnershipOut):
    id: uuid.UUID
    asset_number: str
    manufacturer: str
    model: str
    serial_number: str
    cpu: Optional[str] = None
    memory: Optional[str] = None
    storage: Optional[str] = None
    os: Optional[str] = None
    warranty_expiration: Optional[date] = None
    created_at: datetime


class LicenseCreate(BaseModel):
    software_name: str = Field(..., min_length=1, max_length=200)
    license_key: Optional[str] = Field(None, max_length=500)
    expiration_date: Optional[date] = None
    monthly_cost: Optional[float] = Field(None, ge=0)


class LicenseUpdate(BaseModel):
    software_name: Optional[str] = Field(None, min_length=1, max_length=200)
    license_key: Optional[str] = Field(None, max_length=500)
    expiration_date: Optional[date] = None
    monthly_cost: Optional[float] = Field(None, ge=0)


class LicenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    pc_id: uuid.UUID
    software_name: str
    license_key: Optional[str] = None
    expiration_date: Optional[date] = None
    monthly_cost: Optional[float] = None


# ═════════════════════════════════════════════════════════════════════
# General assets
# ═════════════════════════════════════════════════════════════════════


class GeneralAssetCreate(OwnershipFields):
    asset_type: GeneralAssetType
    asset_number: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    manufacturer: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    contract_end: Optional[date] = None
    monthly_cost: Optional[float] = Field(None, ge=0)


class GeneralAssetUpdate(OwnershipUpdate):
    asset_type: Optional[GeneralAssetType] = None
    asset_number: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    manufacturer: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    contract_end: Optional[date] = None
    monthly_cost: Optional[float] = Field(None, ge=0)


class GeneralAssetOut(OwnershipOut):
    id: uuid.UUID
    asset_type: GeneralAssetType
    asset_number: str
    name: str
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    contract_end: Optional[date] = None
    monthly_cost: Optional[float] = None
    created_at: datetime


class UserAssets(BaseModel):
    vehicles: list[VehicleOut]
    pcs: list[PCOut]
    general: list[GeneralAssetOut]


# ═════════════════════════════════════════════════════════════════════
# Reports
# ═════════════════════════════════════════════════════════════════════


class DeadlineWarning(BaseModel):
    asset_kind: str                 # vehicle | pc | general
    asset_id: uuid.UUID
    asset_label: str
    deadline_type: str              # inspection | maintenance | insurance | lease_end | ...
    deadline: date
    days_remaining: int
    level: WarningLevel


class MonthlyCost(BaseModel):
    month: str
    vehicle_lease_cost: float
    vehicle_maintenance_cost: float
    pc_lease_cost: float
    software_cost: float
    other_cost: float
    total: float


class CostSummary(BaseModel):
    start_month: str
    end_month: str
    months: list[MonthlyCost]
    total: float
