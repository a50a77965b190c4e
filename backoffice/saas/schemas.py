"""SaaS management schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backoffice.common.constants import (
    BillingCycle,
    Currency,
    LicenseStatus,
    LicenseType,
    PaymentMethod,
    SaaSCategory,
    SecurityRating,
)


# ── Services ────────────────────────────────────────────────────────

class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: SaaSCategory = SaaSCategory.other
    vendor: Optional[str] = Field(None, max_length=200)
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    license_type: LicenseType
    security_rating: Optional[SecurityRating] = None
    sso_enabled: bool = False
    mfa_enabled: bool = False
    admin_email: Optional[str] = Field(None, max_length=255)
    contract_start: Optional[date] = None
    contract_end: Optional[date] = None
    auto_renew: bool = False
    billing_cycle: BillingCycle = BillingCycle.monthly
    payment_method: Optional[PaymentMethod] = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_contract(self) -> ServiceCreate:
        if self.contract_start and self.contract_end and self.contract_end < self.contract_start:
            raise ValueError("contract_end must not be before contract_start.")
        return self


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[SaaSCategory] = None
    vendor: Optional[str] = Field(None, max_length=200)
    website: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    license_type: Optional[LicenseType] = None
    security_rating: Optional[SecurityRating] = None
    sso_enabled: Optional[bool] = None
    mfa_enabled: Optional[bool] = None
    admin_email: Optional[str] = Field(None, max_length=255)
    contract_start: Optional[date] = None
    contract_end: Optional[date] = None
    auto_renew: Optional[bool] = None
    billing_cycle: Optional[BillingCycle] = None
    payment_method: Optional[PaymentMethod] = None
    is_active: Optional[bool] = None


class ServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    category: SaaSCategory
    vendor: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    license_type: LicenseType
    security_rating: Optional[SecurityRating] = None
    sso_enabled: bool
    mfa_enabled: bool
    admin_email: Optional[str] = None
    contract_start: Optional[date] = None
    contract_end: Optional[date] = None
    auto_renew: bool
    billing_cycle: BillingCycle
    payment_method: Optional[PaymentMethod] = None
    is_active: bool
    created_at: datetime


# ── Plans ───────────────────────────────────────────────────────────

class PlanCreate(BaseModel):
    plan_name: str = Field(..., min_length=1, max_length=200)
    billing_cycle: BillingCycle = BillingCycle.monthly
    price_per_user: Optional[float] = Field(None, ge=0)
    fixed_price: Optional[float] = Field(None, ge=0)
    currency: Currency = Currency.JPY
    max_users: Optional[int] = Field(None, ge=1)
    features: list[str] = Field(default_factory=list)
    is_active: bool = True


class PlanUpdate(BaseModel):
    plan_name: Optional[str] = Field(None, min_length=1, max_length=200)
    billing_cycle: Optional[BillingCycle] = None
    price_per_user: Optional[float] = Field(None, ge=0)
    fixed_price: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    max_users: Optional[int] = Field(None, ge=1)
    features: Optional[list[str]] = None
    is_active: Optional[bool] = None


class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    service_id: uuid.UUID
    plan_name: str
    billing_cycle: BillingCycle
    price_per_user: Optional[float] = None
    fixed_price: Optional[float] = None
    currency: Currency
    max_users: Optional[int] = None
    features: list[str]
    is_active: bool


# ── Assignments ─────────────────────────────────────────────────────

class AssignmentCreate(BaseModel):
    plan_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    unit_id: Optional[uuid.UUID] = None
    account_email: Optional[str] = Field(None, max_length=255)
    assigned_date: Optional[date] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_holder(self) -> AssignmentCreate:
        if self.user_id is None and self.unit_id is None:
            raise ValueError("Either user_id or unit_id is required.")
        return self


class AssignmentUpdate(BaseModel):
    account_email: Optional[str] = Field(None, max_length=255)
    status: Optional[LicenseStatus] = None
    notes: Optional[str] = None


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    service_id: uuid.UUID
    plan_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    unit_id: Optional[uuid.UUID] = None
    account_email: Optional[str] = None
    status: LicenseStatus
    assigned_date: date
    revoked_date: Optional[date] = None
    last_used_at: Optional[datetime] = None
    usage_count: int
    notes: Optional[str] = None


# ── Analytics ───────────────────────────────────────────────────────

class UserCostDetail(BaseModel):
    assignment_id: uuid.UUID
    service_id: uuid.UUID
    service_name: str
    plan_id: uuid.UUID
    plan_name: str
    status: LicenseStatus
    monthly_cost: float


class UserCostRow(BaseModel):
    user_id: uuid.UUID
    user_name: str
    total_cost: float
    service_count: int


class UnitCostRow(BaseModel):
    unit_id: Optional[uuid.UUID] = None
    unit_name: str
    total_cost: float
    license_count: int


class SaaSSummary(BaseModel):
    total_services: int
    active_licenses: int
    inactive_licenses: int
    total_monthly_cost: float
    unused_license_cost: float
