"""Announcement service — authoring, audience targeting and per-user
read / completion tracking."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.announcements.models import Announcement, AnnouncementRead
from backoffice.announcements.schemas import (
    AnnouncementCreate,
    AnnouncementOut,
    AnnouncementStats,
    AnnouncementUpdate,
)
from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import (
    AnnouncementPriority,
    AnnouncementReadStatus,
    AnnouncementTarget,
    AnnouncementType,
    UserStatus,
)
from backoffice.common.exceptions import NotFoundException, ValidationException
from backoffice.common.models import utcnow
from backoffice.common.pagination import PaginatedResponse, PaginationParams, paginate
from backoffice.notifications.service import notify_urgent_announcement
from backoffice.users.models import User

logger = logging.getLogger(__name__)

PRIORITY_RANK = {
    AnnouncementPriority.urgent: 0,
    AnnouncementPriority.high: 1,
    AnnouncementPriority.normal: 2,
    AnnouncementPriority.low: 3,
}


def targets_user(announcement: Announcement, user: User) -> bool:
    """Whether *user* is in the audience of *announcement*."""
    if announcement.target == AnnouncementTarget.all:
        return True
    if announcement.target == AnnouncementTarget.custom:
        if user.role.value in (announcement.target_roles or []):
            return True
        return user.unit_id is not None and str(user.unit_id) in (announcement.target_unit_ids or [])
    return user.role.value == announcement.target.value


def is_active(announcement: Announcement, today: date) -> bool:
    if not announcement.published or announcement.start_date > today:
        return False
    return announcement.end_date is None or announcement.end_date >= today


def _serialize_targets(values: dict) -> dict:
    """JSONB columns hold plain strings."""
    if values.get("target_roles") is not None:
        values["target_roles"] = [r.value for r in values["target_roles"]]
    if values.get("target_unit_ids") is not None:
        values["target_unit_ids"] = [str(u) for u in values["target_unit_ids"]]
    return values


class AnnouncementService:
    """Async announcement operations."""

    # ── Authoring ───────────────────────────────────────────────────

    @staticmethod
    async def get_announcement(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        announcement_id: uuid.UUID,
    ) -> Announcement:
        result = await db.execute(
            select(Announcement).where(
                Announcement.id == announcement_id,
                Announcement.tenant_id == tenant_id,
            )
        )
        announcement = result.scalars().first()
        if announcement is None:
            raise NotFoundException("Announcement", announcement_id)
        return announcement

    @staticmethod
    async def _notify_if_urgent(db: AsyncSession, announcement: Announcement) -> None:
        if announcement.priority != AnnouncementPriority.urgent or not announcement.published:
            return
        result = await db.execute(
            select(User).where(
                User.tenant_id == announcement.tenant_id,
                User.status == UserStatus.active,
            )
        )
        recipients = [
            u.id for u in result.scalars().all()
            if targets_user(announcement, u) and u.id != announcement.created_by
        ]
        count = await notify_urgent_announcement(db, announcement, recipients)
        logger.info("Urgent announcement %s pushed to %d user(s)", announcement.id, count)

    @staticmethod
    async def create_announcement(
        db: AsyncSession,
        actor: User,
        data: AnnouncementCreate,
    ) -> Announcement:
        announcement = Announcement(
            tenant_id=actor.tenant_id,
            created_by=actor.id,
            **_serialize_targets(data.model_dump()),
        )
        if data.published:
            announcement.published_at = utcnow()
        db.add(announcement)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="announcement",
            entity_id=announcement.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={"title": announcement.title, "published": announcement.published},
        )
        await AnnouncementService._notify_if_urgent(db, announcement)
        return announcement

    @staticmethod
    async def update_announcement(
        db: AsyncSession,
        actor: User,
        announcement_id: uuid.UUID,
        data: AnnouncementUpdate,
    ) -> Announcement:
        announcement = await AnnouncementService.get_announcement(db, actor.tenant_id, announcement_id)
        changes = _serialize_targets(data.model_dump(exclude_unset=True))

        start = changes.get("start_date", announcement.start_date)
        end = changes.get("end_date", announcement.end_date)
        if end is not None and end < start:
            raise ValidationException({"end_date": ["end_date must not be before start_date."]})

        for field, value in changes.items():
            setattr(announcement, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="announcement",
            entity_id=announcement.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={k: v for k, v in changes.items() if not isinstance(v, list)},
        )
        return announcement

    @staticmethod
    async def delete_announcement(
        db: AsyncSession,
        actor: User,
        announcement_id: uuid.UUID,
    ) -> None:
        announcement = await AnnouncementService.get_announcement(db, actor.tenant_id, announcement_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="announcement",
            entity_id=announcement.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"title": announcement.title},
        )
        await db.delete(announcement)
        await db.flush()

    @staticmethod
    async def set_published(
        db: AsyncSession,
        actor: User,
        announcement_id: uuid.UUID,
        published: bool,
    ) -> Announcement:
        """Publish (stamping published_at) or withdraw an announcement."""
        announcement = await AnnouncementService.get_announcement(db, actor.tenant_id, announcement_id)
        was_published = announcement.published
        announcement.published = published
        if published and not was_published:
            announcement.published_at = utcnow()
        await db.flush()

        await create_audit_entry(
            db,
            action="publish" if published else "unpublish",
            entity_type="announcement",
            entity_id=announcement.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"published": was_published},
            new_values={"published": published},
        )
        if published and not was_published:
            await AnnouncementService._notify_if_urgent(db, announcement)
        return announcement

    @staticmethod
    async def list_all(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        type: Optional[AnnouncementType] = None,
        priority: Optional[AnnouncementPriority] = None,
        published: Optional[bool] = None,
    ) -> PaginatedResponse:
        """Management list: every announcement of the tenant."""
        query = select(Announcement).where(Announcement.tenant_id == tenant_id)
        if type is not None:
            query = query.where(Announcement.type == type)
        if priority is not None:
            query = query.where(Announcement.priority == priority)
        if published is not None:
            query = query.where(Announcement.published == published)
        return await paginate(
            db,
            query,
            pagination,
            model=Announcement,
            default_sort="-start_date,-created_at",
            transform=AnnouncementOut.model_validate,
        )

    # ── Reader side ─────────────────────────────────────────────────

    @staticmethod
    async def _reads(db: AsyncSession, user_id: uuid.UUID) -> dict[uuid.UUID, AnnouncementRead]:
        result = await db.execute(
            select(AnnouncementRead).where(AnnouncementRead.user_id == user_id)
        )
        return {r.announcement_id: r for r in result.scalars().all()}

    @staticmethod
    async def _active(
        db: AsyncSession,
        user: User,
        today: Optional[date] = None,
    ) -> list[Announcement]:
        today = today or date.today()
        result = await db.execute(
            select(Announcement).where(
                Announcement.tenant_id == user.tenant_id,
                Announcement.published.is_(True),
                Announcement.start_date <= today,
                or_(Announcement.end_date.is_(None), Announcement.end_date >= today),
            )
        )
        active = [a for a in result.scalars().all() if targets_user(a, user)]
        active.sort(key=lambda a: a.start_date, reverse=True)
        active.sort(key=lambda a: PRIORITY_RANK[a.priority])
        return active

    @staticmethod
    def _with_status(
        announcements: list[Announcement],
        reads: dict[uuid.UUID, AnnouncementRead],
    ) -> list[AnnouncementOut]:
        output = []
        for announcement in announcements:
            out = AnnouncementOut.model_validate(announcement)
            read = reads.get(announcement.id)
            out.read_status = read.status if read else AnnouncementReadStatus.unread
            output.append(out)
        return output

    @staticmethod
    async def list_active(
        db: AsyncSession,
        user: User,
        today: Optional[date] = None,
    ) -> list[AnnouncementOut]:
        """Published, in-period announcements targeting *user*, urgent first."""
        active = await AnnouncementService._active(db, user, today)
        return AnnouncementService._with_status(active, await AnnouncementService._reads(db, user.id))

    @staticmethod
    async def list_unread(
        db: AsyncSession,
        user: User,
        today: Optional[date] = None,
    ) -> list[AnnouncementOut]:
        return [
            a for a in await AnnouncementService.list_active(db, user, today)
            if a.read_status == AnnouncementReadStatus.unread
        ]

    @staticmethod
    async def list_pending(
        db: AsyncSession,
        user: User,
        today: Optional[date] = None,
    ) -> list[AnnouncementOut]:
        """Active announcements that require an action the user has not completed."""
        return [
            a for a in await AnnouncementService.list_active(db, user, today)
            if a.requires_action and a.read_status != AnnouncementReadStatus.completed
        ]

    @staticmethod
    async def _get_or_create_read(
        db: AsyncSession,
        user: User,
        announcement: Announcement,
    ) -> AnnouncementRead:
        result = await db.execute(
            select(AnnouncementRead).where(
                AnnouncementRead.announcement_id == announcement.id,
                AnnouncementRead.user_id == user.id,
            )
        )
        read = result.scalars().first()
        if read is None:
            read = AnnouncementRead(
                tenant_id=user.tenant_id,
                announcement_id=announcement.id,
                user_id=user.id,
                status=AnnouncementReadStatus.unread,
            )
            db.add(read)
        return read

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        user: User,
        announcement_id: uuid.UUID,
    ) -> AnnouncementRead:
        """Record a read; a completed state is never downgraded."""
        announcement = await AnnouncementService.get_announcement(db, user.tenant_id, announcement_id)
        read = await AnnouncementService._get_or_create_read(db, user, announcement)
        if read.status == AnnouncementReadStatus.unread:
            read.status = AnnouncementReadStatus.read
            read.read_at = utcnow()
        await db.flush()
        return read

    @staticmethod
    async def mark_completed(
        db: AsyncSession,
        user: User,
        announcement_id: uuid.UUID,
    ) -> AnnouncementRead:
        announcement = await AnnouncementService.get_announcement(db, user.tenant_id, announcement_id)
        if not announcement.requires_action:
            raise ValidationException(
                {"announcement_id": ["This announcement does not require an action."]}
            )

        read = await AnnouncementService._get_or_create_read(db, user, announcement)
        now = utcnow()
        read.status = AnnouncementReadStatus.completed
        read.read_at = read.read_at or now
        read.completed_at = now
        await db.flush()
        return read

    @staticmethod
    async def get_user_status(
        db: AsyncSession,
        user: User,
        announcement_id: uuid.UUID,
    ) -> AnnouncementReadStatus:
        announcement = await AnnouncementService.get_announcement(db, user.tenant_id, announcement_id)
        result = await db.execute(
            select(AnnouncementRead.status).where(
                AnnouncementRead.announcement_id == announcement.id,
                AnnouncementRead.user_id == user.id,
            )
        )
        return result.scalar() or AnnouncementReadStatus.unread

    @staticmethod
    async def get_stats(
        db: AsyncSession,
        user: User,
        today: Optional[date] = None,
    ) -> AnnouncementStats:
        active = await AnnouncementService.list_active(db, user, today)
        return AnnouncementStats(
            total=len(active),
            unread=sum(1 for a in active if a.read_status == AnnouncementReadStatus.unread),
            pending=sum(
                1 for a in active
                if a.requires_action and a.read_status != AnnouncementReadStatus.completed
            ),
            completed=sum(1 for a in active if a.read_status == AnnouncementReadStatus.completed),
            by_priority={p.value: sum(1 for a in active if a.priority == p) for p in AnnouncementPriority},
            by_type={t.value: sum(1 for a in active if a.type == t) for t in AnnouncementType},
        )
