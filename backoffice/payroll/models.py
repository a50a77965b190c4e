"""Payroll ORM models: SalarySetting, PayItem, SocialInsuranceGrade, PaySlip.

Amounts are whole yen stored as integers.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import PayItemKind, PaymentType, PaySlipStatus
from backoffice.common.models import TenantMixin, TimestampMixin, UUIDPrimaryKeyMixin, pg_enum
from backoffice.database import Base


class SalarySetting(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    """Pay terms of one employee from ``effective_from`` (to ``effective_to``)."""

    __tablename__ = "salary_settings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    effective_from: Mapped[date] = mapped_column(sa.Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(sa.Date)
    payment_type: Mapped[PaymentType] = mapped_column(
        pg_enum(PaymentType, "payment_type"),
        nullable=False,
        default=PaymentType.monthly,
    )
    basic_salary: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    daily_rate: Mapped[Optional[int]] = mapped_column(sa.Integer)
    hourly_rate: Mapped[Optional[int]] = mapped_column(sa.Integer)
    social_insurance_grade: Mapped[Optional[int]] = mapped_column(sa.Integer)
    employment_insurance_rate: Mapped[Decimal] = mapped_column(
        sa.Numeric(6, 4), nullable=False, default=Decimal("0.006"),
    )
    resident_tax_amount: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    dependent_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    __table_args__ = (
        sa.UniqueConstraint("user_id", "effective_from", name="uq_salary_settings_user_from"),
    )

    def __repr__(self) -> str:
        return f"<SalarySetting user_id={self.user_id} from={self.effective_from}>"


class PayItem(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    """A recurring monthly allowance or deduction of one employee."""

    __tablename__ = "pay_items"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[PayItemKind] = mapped_column(
        pg_enum(PayItemKind, "pay_item_kind"),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    amount: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    effective_from: Mapped[date] = mapped_column(sa.Date, nullable=False)
    effective_to: Mapped[Optional[date]] = mapped_column(sa.Date)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    __table_args__ = (
        sa.UniqueConstraint(
            "user_id", "kind", "code", "effective_from", name="uq_pay_items_user_kind_code_from",
        ),
    )


class SocialInsuranceGrade(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    """One row of a fiscal year's standard-monthly-remuneration table."""

    __tablename__ = "social_insurance_grades"

    fiscal_year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    grade: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    standard_monthly_amount: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    min_monthly_amount: Mapped[Optional[int]] = mapped_column(sa.Integer)
    max_monthly_amount: Mapped[Optional[int]] = mapped_column(sa.Integer)
    health_insurance_employee: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    health_insurance_employer: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    pension_insurance_employee: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    pension_insurance_employer: Mapped[int] = mapped_column(sa.Integer, nullable=False)

    __table_args__ = (
        sa.UniqueConstraint(
            "tenant_id", "fiscal_year", "grade", name="uq_social_insurance_grades_year_grade",
        ),
    )


class PaySlip(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "pay_slips"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    pay_period: Mapped[str] = mapped_column(sa.String(7), nullable=False)
    payment_date: Mapped[date] = mapped_column(sa.Date, nullable=False)

    # earnings
    basic_salary: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    overtime_allowance: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    late_night_allowance: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    holiday_allowance: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    absence_deduction: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    allowances: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    total_allowances: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    gross_pay: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    # deductions
    health_insurance: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    pension_insurance: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    employment_insurance: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    income_tax: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    resident_tax: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    deductions: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    other_deductions: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    total_deductions: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    net_pay: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    # attendance used for the calculation
    working_days: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    absence_days: Mapped[Decimal] = mapped_column(sa.Numeric(4, 1), nullable=False, default=Decimal("0"))
    paid_leave_days: Mapped[Decimal] = mapped_column(sa.Numeric(4, 1), nullable=False, default=Decimal("0"))
    overtime_hours: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False, default=Decimal("0"))
    late_night_hours: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False, default=Decimal("0"))
    holiday_work_hours: Mapped[Decimal] = mapped_column(sa.Numeric(6, 2), nullable=False, default=Decimal("0"))

    status: Mapped[PaySlipStatus] = mapped_column(
        pg_enum(PaySlipStatus, "pay_slip_status"),
        nullable=False,
        default=PaySlipStatus.draft,
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    paid_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    __table_args__ = (
        sa.UniqueConstraint("user_id", "pay_period", name="uq_pay_slips_user_period"),
        sa.Index("ix_pay_slips_tenant_period", "tenant_id", "pay_period"),
    )

    def __repr__(self) -> str:
        return f"<PaySlip user_id={self.user_id} period={self.pay_period} net={self.net_pay}>"
