"""Announcement ORM models: Announcement, AnnouncementRead."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.common.constants import (
    AnnouncementPriority,
    AnnouncementReadStatus,
    AnnouncementTarget,
    AnnouncementType,
)
from backoffice.common.models import TenantMixin, TimestampMixin, UUIDPrimaryKeyMixin, pg_enum
from backoffice.database import Base


class Announcement(UUIDPrimaryKeyMixin, TenantMixin, TimestampMixin, Base):
    __tablename__ = "announcements"

    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    content: Mapped[str] = mapped_column(sa.Text, nullable=False)
    type: Mapped[AnnouncementType] = mapped_column(
        pg_enum(AnnouncementType, "announcement_type"),
        nullable=False,
        default=AnnouncementType.general,
    )
    priority: Mapped[AnnouncementPriority] = mapped_column(
        pg_enum(AnnouncementPriority, "announcement_priority"),
        nullable=False,
        default=AnnouncementPriority.normal,
    )
    target: Mapped[AnnouncementTarget] = mapped_column(
        pg_enum(AnnouncementTarget, "announcement_target"),
        nullable=False,
        default=AnnouncementTarget.all,
    )
    # Only consulted when target is "custom"
    target_roles: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    target_unit_ids: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    requires_action: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    action_label: Mapped[Optional[str]] = mapped_column(sa.String(100))
    action_url: Mapped[Optional[str]] = mapped_column(sa.String(500))
    action_deadline: Mapped[Optional[date]] = mapped_column(sa.Date)
    published: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=False)
    published_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
    )

    __table_args__ = (
        sa.Index("ix_announcements_tenant_published", "tenant_id", "published", "start_date"),
    )


class AnnouncementRead(UUIDPrimaryKeyMixin, TenantMixin, Base):
    """Per-user read / completion state of one announcement."""

    __tablename__ = "announcement_reads"

    announcement_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("announcements.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[AnnouncementReadStatus] = mapped_column(
        pg_enum(AnnouncementReadStatus, "announcement_read_status"),
        nullable=False,
        default=AnnouncementReadStatus.unread,
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    __table_args__ = (
        sa.UniqueConstraint("announcement_id", "user_id", name="uq_announcement_reads_user"),
    )
