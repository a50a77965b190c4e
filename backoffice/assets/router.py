"""Assets router — vehicles, vendors, PCs, general assets and reports.

Reads need ``asset:read``; writes need ``asset:manage``. ``GET /me``
is open to every authenticated user.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.assets.schemas import (
    MONTH_PATTERN,
    AssignRequest,
    CostSummary,
    DeadlineWarning,
    GeneralAssetCreate,
    GeneralAssetOut,
    GeneralAssetUpdate,
    LicenseCreate,
    LicenseOut,
    LicenseUpdate,
    MaintenanceCreate,
    MaintenanceOut,
    MileageOut,
    MileageRecord,
    PCCreate,
    PCOut,
    PCUpdate,
    UserAssets,
    VehicleCreate,
    VehicleOut,
    VehicleUpdate,
    VendorCreate,
    VendorOut,
    VendorUpdate,
)
from backoffice.assets.service import GENERAL, PC, VEHICLE, AssetService
from backoffice.auth.dependencies import get_current_user, require_permission
from backoffice.common.constants import AssetStatus, GeneralAssetType, OwnershipType
from backoffice.common.pagination import PaginationParams
from backoffice.database import get_db
from backoffice.users.models import User

router = APIRouter(prefix="", tags=["assets"])

can_read = require_permission("asset:read")
can_manage = require_permission("asset:manage")


# ── Reports ─────────────────────────────────────────────────────────

@router.get("/me", response_model=UserAssets)
async def my_assets(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AssetService.assets_for_user(db, user.tenant_id, user.id)


@router.get("/deadline-warnings", response_model=list[DeadlineWarning])
async def deadline_warnings(
    today: Optional[date] = Query(None),
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    return await AssetService.deadline_warnings(db, user.tenant_id, today)


@router.get("/cost-summary", response_model=CostSummary)
async def cost_summary(
    start_month: str = Query(..., pattern=MONTH_PATTERN),
    end_month: str = Query(..., pattern=MONTH_PATTERN),
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    return await AssetService.cost_summary(db, user.tenant_id, start_month, end_month)


# ── Vendors ─────────────────────────────────────────────────────────

@router.get("/vendors", response_model=list[VendorOut])
async def list_vendors(
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    vendors = await AssetService.list_vendors(db, user.tenant_id)
    return [VendorOut.model_validate(v) for v in vendors]


@router.post("/vendors", response_model=VendorOut, status_code=201)
async def create_vendor(
    body: VendorCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    vendor = await AssetService.create_vendor(db, user, body)
    return VendorOut.model_validate(vendor)


@router.get("/vendors/{vendor_id}", response_model=VendorOut)
async def get_vendor(
    vendor_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    vendor = await AssetService.get_vendor(db, user.tenant_id, vendor_id)
    return VendorOut.model_validate(vendor)


@router.patch("/vendors/{vendor_id}", response_model=VendorOut)
async def update_vendor(
    vendor_id: uuid.UUID,
    body: VendorUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    vendor = await AssetService.update_vendor(db, user, vendor_id, body)
    return VendorOut.model_validate(vendor)


@router.delete("/vendors/{vendor_id}", status_code=204)
async def delete_vendor(
    vendor_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await AssetService.delete_vendor(db, user, vendor_id)
    return Response(status_code=204)


# ── Vehicles ────────────────────────────────────────────────────────

@router.get("/vehicles")
async def list_vehicles(
    status: Optional[AssetStatus] = Query(None),
    ownership_type: Optional[OwnershipType] = Query(None),
    assigned_user_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(),
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    return await AssetService.list_assets(
        db,
        VEHICLE,
        user.tenant_id,
        pagination,
        filters={
            "status": status,
            "ownership_type": ownership_type,
            "assigned_user_id": assigned_user_id,
        },
        search=search,
        search_columns=("vehicle_number", "license_plate", "make", "model"),
        transform=VehicleOut.model_validate,
    )


@router.post("/vehicles", response_model=VehicleOut, status_code=201)
async def create_vehicle(
    body: VehicleCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await AssetService.create_asset(db, VEHICLE, user, body)
    return VehicleOut.model_validate(vehicle)


@router.get("/vehicles/{vehicle_id}", response_model=VehicleOut)
async def get_vehicle(
    vehicle_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await AssetService.get_asset(db, VEHICLE, user.tenant_id, vehicle_id)
    return VehicleOut.model_validate(vehicle)


@router.patch("/vehicles/{vehicle_id}", response_model=VehicleOut)
async def update_vehicle(
    vehicle_id: uuid.UUID,
    body: VehicleUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await AssetService.update_asset(db, VEHICLE, user, vehicle_id, body)
    return VehicleOut.model_validate(vehicle)


@router.delete("/vehicles/{vehicle_id}", status_code=204)
async def delete_vehicle(
    vehicle_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await AssetService.delete_asset(db, VEHICLE, user, vehicle_id)
    return Response(status_code=204)


@router.post("/vehicles/{vehicle_id}/assign", response_model=VehicleOut)
async def assign_vehicle(
    vehicle_id: uuid.UUID,
    body: AssignRequest,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await AssetService.assign(
        db, VEHICLE, user, vehicle_id, body.user_id, body.assigned_date,
    )
    return VehicleOut.model_validate(vehicle)


@router.post("/vehicles/{vehicle_id}/unassign", response_model=VehicleOut)
async def unassign_vehicle(
    vehicle_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await AssetService.unassign(db, VEHICLE, user, vehicle_id)
    return VehicleOut.model_validate(vehicle)


@router.get("/vehicles/{vehicle_id}/maintenance", response_model=list[MaintenanceOut])
async def list_maintenance(
    vehicle_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    records = await AssetService.list_maintenance(db, user.tenant_id, vehicle_id)
    return [MaintenanceOut.model_validate(r) for r in records]


@router.post(
    "/vehicles/{vehicle_id}/maintenance",
    response_model=MaintenanceOut,
    status_code=201,
)
async def add_maintenance(
    vehicle_id: uuid.UUID,
    body: MaintenanceCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    record = await AssetService.add_maintenance_record(db, user, vehicle_id, body)
    return MaintenanceOut.model_validate(record)


@router.delete("/vehicles/{vehicle_id}/maintenance/{record_id}", status_code=204)
async def delete_maintenance(
    vehicle_id: uuid.UUID,
    record_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await AssetService.delete_maintenance_record(db, user, vehicle_id, record_id)
    return Response(status_code=204)


@router.get("/vehicles/{vehicle_id}/mileage", response_model=list[MileageOut])
async def list_mileage(
    vehicle_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    entries = await AssetService.list_mileage(db, user.tenant_id, vehicle_id)
    return [MileageOut.model_validate(e) for e in entries]


@router.put("/vehicles/{vehicle_id}/mileage", response_model=MileageOut)
async def record_mileage(
    vehicle_id: uuid.UUID,
    body: MileageRecord,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    entry = await AssetService.record_mileage(db, user, vehicle_id, body.month, body.distance_km)
    return MileageOut.model_validate(entry)


@router.delete("/vehicles/{vehicle_id}/mileage/{month}", status_code=204)
async def delete_mileage(
    vehicle_id: uuid.UUID,
    month: str,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await AssetService.delete_mileage(db, user, vehicle_id, month)
    return Response(status_code=204)


# ── PCs ─────────────────────────────────────────────────────────────

@router.get("/pcs")
async def list_pcs(
    status: Optional[AssetStatus] = Query(None),
    ownership_type: Optional[OwnershipType] = Query(None),
    assigned_user_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(),
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    return await AssetService.list_assets(
        db,
        PC,
        user.tenant_id,
        pagination,
        filters={
            "status": status,
            "ownership_type": ownership_type,
            "assigned_user_id": assigned_user_id,
        },
        search=search,
        search_columns=("asset_number", "manufacturer", "model", "serial_number"),
        transform=PCOut.model_validate,
    )


@router.post("/pcs", response_model=PCOut, status_code=201)
async def create_pc(
    body: PCCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    pc = await AssetService.create_asset(db, PC, user, body)
    return PCOut.model_validate(pc)


@router.get("/pcs/{pc_id}", response_model=PCOut)
async def get_pc(
    pc_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    pc = await AssetService.get_asset(db, PC, user.tenant_id, pc_id)
    return PCOut.model_validate(pc)


@router.patch("/pcs/{pc_id}", response_model=PCOut)
async def update_pc(
    pc_id: uuid.UUID,
    body: PCUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    pc = await AssetService.update_asset(db, PC, user, pc_id, body)
    return PCOut.model_validate(pc)


@router.delete("/pcs/{pc_id}", status_code=204)
async def delete_pc(
    pc_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await AssetService.delete_asset(db, PC, user, pc_id)
    return Response(status_code=204)


@router.post("/pcs/{pc_id}/assign", response_model=PCOut)
async def assign_pc(
    pc_id: uuid.UUID,
    body: AssignRequest,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    pc = await AssetService.assign(db, PC, user, pc_id, body.user_id, body.assigned_date)
    return PCOut.model_validate(pc)


@router.post("/pcs/{pc_id}/unassign", response_model=PCOut)
async def unassign_pc(
    pc_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    pc = await AssetService.unassign(db, PC, user, pc_id)
    return PCOut.model_validate(pc)


@router.get("/pcs/{pc_id}/licenses", response_model=list[LicenseOut])
async def list_licenses(
    pc_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    licenses = await AssetService.list_licenses(db, user.tenant_id, pc_id)
    return [LicenseOut.model_validate(lic) for lic in licenses]


@router.post("/pcs/{pc_id}/licenses", response_model=LicenseOut, status_code=201)
async def add_license(
    pc_id: uuid.UUID,
    body: LicenseCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    lic = await AssetService.add_license(db, user, pc_id, body)
    return LicenseOut.model_validate(lic)


@router.patch("/pcs/{pc_id}/licenses/{license_id}", response_model=LicenseOut)
async def update_license(
    pc_id: uuid.UUID,
    license_id: uuid.UUID,
    body: LicenseUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    lic = await AssetService.update_license(db, user, pc_id, license_id, body)
    return LicenseOut.model_validate(lic)


@router.delete("/pcs/{pc_id}/licenses/{license_id}", status_code=204)
async def delete_license(
    pc_id: uuid.UUID,
    license_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await AssetService.delete_license(db, user, pc_id, license_id)
    return Response(status_code=204)


# ── General assets ──────────────────────────────────────────────────

@router.get("/general")
async def list_general(
    asset_type: Optional[GeneralAssetType] = Query(None),
    status: Optional[AssetStatus] = Query(None),
    assigned_user_id: Optional[uuid.UUID] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(),
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    return await AssetService.list_assets(
        db,
        GENERAL,
        user.tenant_id,
        pagination,
        filters={
            "asset_type": asset_type,
            "status": status,
            "assigned_user_id": assigned_user_id,
        },
        search=search,
        search_columns=("asset_number", "name", "manufacturer", "serial_number"),
        transform=GeneralAssetOut.model_validate,
    )


@router.post("/general", response_model=GeneralAssetOut, status_code=201)
async def create_general(
    body: GeneralAssetCreate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService.create_asset(db, GENERAL, user, body)
    return GeneralAssetOut.model_validate(asset)


@router.get("/general/{asset_id}", response_model=GeneralAssetOut)
async def get_general(
    asset_id: uuid.UUID,
    user: User = Depends(can_read),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService.get_asset(db, GENERAL, user.tenant_id, asset_id)
    return GeneralAssetOut.model_validate(asset)


@router.patch("/general/{asset_id}", response_model=GeneralAssetOut)
async def update_general(
    asset_id: uuid.UUID,
    body: GeneralAssetUpdate,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService.update_asset(db, GENERAL, user, asset_id, body)
    return GeneralAssetOut.model_validate(asset)


@router.delete("/general/{asset_id}", status_code=204)
async def delete_general(
    asset_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    await AssetService.delete_asset(db, GENERAL, user, asset_id)
    return Response(status_code=204)


@router.post("/general/{asset_id}/assign", response_model=GeneralAssetOut)
async def assign_general(
    asset_id: uuid.UUID,
    body: AssignRequest,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService.assign(
        db, GENERAL, user, asset_id, body.user_id, body.assigned_date,
    )
    return GeneralAssetOut.model_validate(asset)


@router.post("/general/{asset_id}/unassign", response_model=GeneralAssetOut)
async def unassign_general(
    asset_id: uuid.UUID,
    user: User = Depends(can_manage),
    db: AsyncSession = Depends(get_db),
):
    asset = await AssetService.unassign(db, GENERAL, user, asset_id)
    return GeneralAssetOut.model_validate(asset)
