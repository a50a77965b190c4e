"""User ORM model — one row per person in a tenant."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import RetirementReason, UserRole, UserStatus
from backoffice.common.models import (
    TenantMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    pg_enum,
)
from backoffice.database import Base


class User(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (
        sa.Index("ix_users_tenant_unit", "tenant_id", "unit_id"),
    )

    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    name_kana: Mapped[Optional[str]] = mapped_column(sa.String(200))
    phone: Mapped[Optional[str]] = mapped_column(sa.String(30))
    employee_number: Mapped[Optional[str]] = mapped_column(sa.String(30))
    position: Mapped[Optional[str]] = mapped_column(sa.String(100))
    hire_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    unit_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("org_units.id", ondelete="SET NULL"),
    )
    role: Mapped[UserRole] = mapped_column(
        pg_enum(UserRole, "user_role"),
        nullable=False,
        default=UserRole.employee,
    )
    status: Mapped[UserStatus] = mapped_column(
        pg_enum(UserStatus, "user_status"),
        nullable=False,
        default=UserStatus.active,
    )
    timezone: Mapped[str] = mapped_column(
        sa.String(50), nullable=False, default="Asia/Tokyo", server_default="Asia/Tokyo",
    )
    retired_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    retirement_reason: Mapped[Optional[RetirementReason]] = mapped_column(
        pg_enum(RetirementReason, "retirement_reason"),
    )
    google_id: Mapped[Optional[str]] = mapped_column(sa.String(100), unique=True)
    profile_photo_url: Mapped[Optional[str]] = mapped_column(sa.String(500))

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"
