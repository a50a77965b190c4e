"""Payroll schemas — salary settings, pay items, insurance grades, pay slips."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backoffice.common.constants import PayItemKind, PaymentType, PaySlipStatus

PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and end < start:
        raise ValueError("effective_to must not be before effective_from.")


# ═════════════════════════════════════════════════════════════════════
# Salary settings
# ═════════════════════════════════════════════════════════════════════


class SalarySettingCreate(BaseModel):
    user_id: uuid.UUID
    effective_from: date
    effective_to: Optional[date] = None
    payment_type: PaymentType = PaymentType.monthly
    basic_salary: int = Field(..., ge=0)
    daily_rate: Optional[int] = Field(None, ge=0)
    hourly_rate: Optional[int] = Field(None, ge=0)
    social_insurance_grade: Optional[int] = Field(None, ge=1)
    employment_insurance_rate: Decimal = Field(Decimal("0.006"), ge=0, le=1)
    resident_tax_amount: int = Field(0, ge=0)
    dependent_count: int = Field(0, ge=0)
    notes: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_terms(self) -> SalarySettingCreate:
        _check_range(self.effective_from, self.effective_to)
        if self.payment_type == PaymentType.daily and not self.daily_rate:
            raise ValueError("daily_rate is required for daily pay.")
        if self.payment_type == PaymentType.hourly and not self.hourly_rate:
            raise ValueError("hourly_rate is required for hourly pay.")
        return self


class SalarySettingUpdate(BaseModel):
    effective_to: Optional[date] = None
    payment_type: Optional[PaymentType] = None
    basic_salary: Optional[int] = Field(None, ge=0)
    daily_rate: Optional[int] = Field(None, ge=0)
    hourly_rate: Optional[int] = Field(None, ge=0)
    social_insurance_grade: Optional[int] = Field(None, ge=1)
    employment_insurance_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    resident_tax_amount: Optional[int] = Field(None, ge=0)
    dependent_count: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class SalarySettingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    effective_from: date
    effective_to: Optional[date] = None
    payment_type: PaymentType
    basic_salary: int
    daily_rate: Optional[int] = None
    hourly_rate: Optional[int] = None
    social_insurance_grade: Optional[int] = None
    employment_insurance_rate: float
    resident_tax_amount: int
    dependent_count: int
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Allowances and deductions
# ═════════════════════════════════════════════════════════════════════


class PayItemCreate(BaseModel):
    user_id: uuid.UUID
    kind: PayItemKind
    code: str = Field(..., min_length=1, max_length=50, description="e.g. commute, housing, union_fee")
    amount: int = Field(..., gt=0)
    effective_from: date
    effective_to: Optional[date] = None
    notes: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_range(self) -> PayItemCreate:
        _check_range(self.effective_from, self.effective_to)
        return self


class PayItemUpdate(BaseModel):
    amount: Optional[int] = Field(None, gt=0)
    effective_to: Optional[date] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class PayItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    kind: PayItemKind
    code: str
    amount: int
    effective_from: date
    effective_to: Optional[date] = None
    notes: Optional[str] = None
    is_active: bool


# ═════════════════════════════════════════════════════════════════════
# Social-insurance grades
# ═════════════════════════════════════════════════════════════════════


class GradeIn(BaseModel):
    grade: int = Field(..., ge=1)
    standard_monthly_amount: int = Field(..., gt=0)
    min_monthly_amount: Optional[int] = Field(None, ge=0)
    max_monthly_amount: Optional[int] = Field(None, ge=0)
    health_insurance_employee: int = Field(..., ge=0)
    health_insurance_employer: int = Field(..., ge=0)
    pension_insurance_employee: int = Field(..., ge=0)
    pension_insurance_employer: int = Field(..., ge=0)


class GradeOut(GradeIn):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    fiscal_year: int


# ═════════════════════════════════════════════════════════════════════
# Calculation
# ═════════════════════════════════════════════════════════════════════


class AttendanceInput(BaseModel):
    """Attendance figures for one employee; overrides the attendance records."""

    user_id: uuid.UUID
    working_days: Optional[int] = Field(None, ge=0, le=31)
    absence_days: Decimal = Field(Decimal("0"), ge=0, le=31)
    paid_leave_days: Decimal = Field(Decimal("0"), ge=0, le=31)
    overtime_hours: Decimal = Field(Decimal("0"), ge=0)
    late_night_hours: Decimal = Field(Decimal("0"), ge=0)
    holiday_work_hours: Decimal = Field(Decimal("0"), ge=0)


class PayrollRunRequest(BaseModel):
    pay_period: str = Field(..., pattern=PERIOD_PATTERN, description="YYYY-MM")
    payment_date: date
    user_ids: Optional[list[uuid.UUID]] = Field(
        None, description="Defaults to every active user of the tenant",
    )
    working_days: int = Field(20, ge=1, le=31)
    attendance: list[AttendanceInput] = []


class PaySlipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    pay_period: str
    payment_date: date
    basic_salary: int
    overtime_allowance: int
    late_night_allowance: int
    holiday_allowance: int
    absence_deduction: int
    allowances: dict[str, int] = {}
    total_allowances: int
    gross_pay: int
    health_insurance: int
    pension_insurance: int
    employment_insurance: int
    income_tax: int
    resident_tax: int
    deductions: dict[str, int] = {}
    other_deductions: int
    total_deductions: int
    net_pay: int
    working_days: int
    absence_days: float
    paid_leave_days: float
    overtime_hours: float
    late_night_hours: float
    holiday_work_hours: float
    status: PaySlipStatus
    confirmed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PayrollRunItem(BaseModel):
    user_id: uuid.UUID
    success: bool
    pay_slip: Optional[PaySlipOut] = None
    error: Optional[str] = None


class PayrollRunResult(BaseModel):
    pay_period: str
    payment_date: date
    total: int
    succeeded: int
    failed: int
    results: list[PayrollRunItem]


class PayrollPeriodSummary(BaseModel):
    pay_period: str
    slip_count: int
    total_gross_pay: int
    total_deductions: int
    total_net_pay: int
    by_status: dict[str, int]
