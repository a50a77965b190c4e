"""Tenant ORM models: Tenant, OrgUnit."""

from __future__ import annotations

import uuid
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import OrgUnitType
from backoffice.common.models import (
    TenantMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    pg_enum,
)
from backoffice.database import Base


class Tenant(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    logo_url: Mapped[Optional[str]] = mapped_column(sa.String(500))
    timezone: Mapped[str] = mapped_column(
        sa.String(50), nullable=False, default="Asia/Tokyo", server_default="Asia/Tokyo",
    )
    # "end" = last day of the month, otherwise "1".."28"
    closing_day: Mapped[str] = mapped_column(
        sa.String(3), nullable=False, default="end", server_default="end",
    )
    # 0 = Sunday … 6 = Saturday
    week_start_day: Mapped[int] = mapped_column(
        sa.SmallInteger, nullable=False, default=1, server_default=sa.text("1"),
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.text("TRUE"),
    )


class OrgUnit(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "org_units"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "parent_id", "name", name="uq_org_units_name"),
    )

    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("org_units.id", ondelete="RESTRICT"),
    )
    unit_type: Mapped[OrgUnitType] = mapped_column(
        pg_enum(OrgUnitType, "org_unit_type"),
        nullable=False,
        default=OrgUnitType.department,
    )
    level: Mapped[int] = mapped_column(
        sa.SmallInteger, nullable=False, default=0, server_default=sa.text("0"),
    )
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.text("TRUE"),
    )
