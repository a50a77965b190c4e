"""Leave ORM models: LeaveBalance, LeaveRequest."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import LeaveCategory, LeaveStatus, LeaveType
from backoffice.common.models import TenantMixin, TimestampMixin, UUIDPrimaryKeyMixin, pg_enum
from backoffice.database import Base


class LeaveBalance(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    """Per-user, per-year counter for one leave category."""

    __tablename__ = "leave_balances"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    category: Mapped[LeaveCategory] = mapped_column(
        pg_enum(LeaveCategory, "leave_category"),
        nullable=False,
    )
    total: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), nullable=False, default=Decimal("0"))
    used: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), nullable=False, default=Decimal("0"))
    expiry_date: Mapped[Optional[date]] = mapped_column(sa.Date)

    __table_args__ = (
        sa.UniqueConstraint("user_id", "year", "category", name="uq_leave_balances_user_year_category"),
    )

    @property
    def remaining(self) -> Decimal:
        return Decimal(self.total) - Decimal(self.used)


class LeaveRequest(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "leave_requests"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: Mapped[LeaveType] = mapped_column(
        pg_enum(LeaveType, "leave_type"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[LeaveStatus] = mapped_column(
        pg_enum(LeaveStatus, "leave_status"),
        nullable=False,
        default=LeaveStatus.pending,
    )
    approver_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    rejected_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    __table_args__ = (
        sa.Index("ix_leave_requests_tenant_status", "tenant_id", "status"),
        sa.Index("ix_leave_requests_user_start", "user_id", "start_date"),
    )
