"""Tenant and organisation-unit schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backoffice.common.constants import OrgUnitType


def _check_closing_day(value: Optional[str]) -> Optional[str]:
    if value is None or value == "end":
        return value
    if not value.isdigit() or not 1 <= int(value) <= 28:
        raise ValueError('closing_day must be "end" or a day between 1 and 28.')
    return str(int(value))


# ═════════════════════════════════════════════════════════════════════
# Tenant
# ═════════════════════════════════════════════════════════════════════


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    logo_url: Optional[str] = Field(None, max_length=500)
    timezone: str = "Asia/Tokyo"
    closing_day: str = "end"
    week_start_day: int = Field(1, ge=0, le=6)

    @field_validator("closing_day")
    @classmethod
    def validate_closing_day(cls, v: Optional[str]) -> Optional[str]:
        return _check_closing_day(v)


class TenantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    logo_url: Optional[str] = Field(None, max_length=500)
    timezone: Optional[str] = None
    closing_day: Optional[str] = None
    week_start_day: Optional[int] = Field(None, ge=0, le=6)

    @field_validator("closing_day")
    @classmethod
    def validate_closing_day(cls, v: Optional[str]) -> Optional[str]:
        return _check_closing_day(v)


class TenantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    logo_url: Optional[str] = None
    timezone: str
    closing_day: str
    week_start_day: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Organisation units
# ═════════════════════════════════════════════════════════════════════


class OrgUnitCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    parent_id: Optional[uuid.UUID] = None
    unit_type: OrgUnitType = OrgUnitType.department
    description: Optional[str] = None


class OrgUnitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    unit_type: Optional[OrgUnitType] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class OrgUnitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    parent_id: Optional[uuid.UUID] = None
    unit_type: OrgUnitType
    level: int
    description: Optional[str] = None
    is_active: bool
    member_count: int = 0


# ═════════════════════════════════════════════════════════════════════
# Audit trail
# ═════════════════════════════════════════════════════════════════════


class AuditEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    actor_id: Optional[uuid.UUID] = None
    action: str
    entity_type: str
    entity_id: uuid.UUID
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None
    created_at: datetime
