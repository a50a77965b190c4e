"""SaaS ORM models: SaaSService, LicensePlan, LicenseAssignment."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import (
    BillingCycle,
    Currency,
    LicenseStatus,
    LicenseType,
    PaymentMethod,
    SaaSCategory,
    SecurityRating,
)
from backoffice.common.models import TenantMixin, TimestampMixin, UUIDPrimaryKeyMixin, pg_enum
from backoffice.database import Base


class SaaSService(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "saas_services"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    category: Mapped[SaaSCategory] = mapped_column(
        pg_enum(SaaSCategory, "saas_category"),
        nullable=False,
        default=SaaSCategory.other,
    )
    vendor: Mapped[Optional[str]] = mapped_column(sa.String(200))
    website: Mapped[Optional[str]] = mapped_column(sa.String(500))
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    license_type: Mapped[LicenseType] = mapped_column(
        pg_enum(LicenseType, "license_type"),
        nullable=False,
    )
    security_rating: Mapped[Optional[SecurityRating]] = mapped_column(
        pg_enum(SecurityRating, "security_rating"),
    )
    sso_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    mfa_enabled: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    admin_email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    contract_start: Mapped[Optional[date]] = mapped_column(sa.Date)
    contract_end: Mapped[Optional[date]] = mapped_column(sa.Date)
    auto_renew: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    billing_cycle: Mapped[BillingCycle] = mapped_column(
        pg_enum(BillingCycle, "billing_cycle"),
        nullable=False,
        default=BillingCycle.monthly,
    )
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        pg_enum(PaymentMethod, "payment_method"),
    )
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)


class LicensePlan(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    """Prices are monthly amounts, whatever the billing cycle."""

    __tablename__ = "license_plans"

    service_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("saas_services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    plan_name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    billing_cycle: Mapped[BillingCycle] = mapped_column(
        pg_enum(BillingCycle, "billing_cycle"),
        nullable=False,
        default=BillingCycle.monthly,
    )
    price_per_user: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    fixed_price: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    currency: Mapped[Currency] = mapped_column(
        pg_enum(Currency, "currency"),
        nullable=False,
        default=Currency.JPY,
    )
    max_users: Mapped[Optional[int]] = mapped_column(sa.Integer)
    features: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)


class LicenseAssignment(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    """A seat held by a user or, for shared accounts, by an org unit."""

    __tablename__ = "license_assignments"

    service_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("saas_services.id", ondelete="CASCADE"),
        nullable=False,
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("license_plans.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
    )
    unit_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("org_units.id", ondelete="CASCADE"),
    )
    account_email: Mapped[Optional[str]] = mapped_column(sa.String(255))
    status: Mapped[LicenseStatus] = mapped_column(
        pg_enum(LicenseStatus, "license_status"),
        nullable=False,
        default=LicenseStatus.active,
    )
    assigned_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    revoked_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    usage_count: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    __table_args__ = (
        sa.Index("ix_license_assignments_service_status", "service_id", "status"),
        sa.Index("ix_license_assignments_user", "user_id"),
    )
