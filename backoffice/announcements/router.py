"""Announcements router — management (``announcement:manage``) and
reader endpoints for the current user."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.announcements.schemas import (
    AnnouncementCreate,
    AnnouncementOut,
    AnnouncementReadOut,
    AnnouncementStats,
    AnnouncementUpdate,
)
from backoffice.announcements.service import AnnouncementService
from backoffice.auth.dependencies import get_current_user, require_permission
from backoffice.common.constants import AnnouncementPriority, AnnouncementType
from backoffice.common.pagination import PaginationParams
from backoffice.database import get_db
from backoffice.users.models import User

router = APIRouter(prefix="", tags=["announcements"])


# ── Reader side ─────────────────────────────────────────────────────

@router.get("/active", response_model=list[AnnouncementOut])
async def list_active(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService.list_active(db, user)


@router.get("/unread", response_model=list[AnnouncementOut])
async def list_unread(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService.list_unread(db, user)


@router.get("/pending", response_model=list[AnnouncementOut])
async def list_pending(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService.list_pending(db, user)


@router.get("/stats", response_model=AnnouncementStats)
async def get_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService.get_stats(db, user)


@router.post("/{announcement_id}/read", response_model=AnnouncementReadOut)
async def mark_read(
    announcement_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    read = await AnnouncementService.mark_read(db, user, announcement_id)
    return AnnouncementReadOut.model_validate(read)


@router.post("/{announcement_id}/complete", response_model=AnnouncementReadOut)
async def mark_completed(
    announcement_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    read = await AnnouncementService.mark_completed(db, user, announcement_id)
    return AnnouncementReadOut.model_validate(read)


@router.get("/{announcement_id}/status")
async def get_user_status(
    announcement_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    status = await AnnouncementService.get_user_status(db, user, announcement_id)
    return {"data": {"announcement_id": announcement_id, "status": status.value}}


# ── Management ──────────────────────────────────────────────────────

@router.get("")
async def list_all(
    type: Optional[AnnouncementType] = Query(None),
    priority: Optional[AnnouncementPriority] = Query(None),
    published: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(require_permission("announcement:manage")),
    db: AsyncSession = Depends(get_db),
):
    return await AnnouncementService.list_all(
        db, user.tenant_id, pagination, type=type, priority=priority, published=published,
    )


@router.post("", response_model=AnnouncementOut, status_code=201)
async def create_announcement(
    body: AnnouncementCreate,
    user: User = Depends(require_permission("announcement:manage")),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService.create_announcement(db, user, body)
    return AnnouncementOut.model_validate(announcement)


@router.get("/{announcement_id}", response_model=AnnouncementOut)
async def get_announcement(
    announcement_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService.get_announcement(db, user.tenant_id, announcement_id)
    return AnnouncementOut.model_validate(announcement)


@router.patch("/{announcement_id}", response_model=AnnouncementOut)
async def update_announcement(
    announcement_id: uuid.UUID,
    body: AnnouncementUpdate,
    user: User = Depends(require_permission("announcement:manage")),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService.update_announcement(db, user, announcement_id, body)
    return AnnouncementOut.model_validate(announcement)


@router.post("/{announcement_id}/publish", response_model=AnnouncementOut)
async def publish(
    announcement_id: uuid.UUID,
    user: User = Depends(require_permission("announcement:manage")),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService.set_published(db, user, announcement_id, True)
    return AnnouncementOut.model_validate(announcement)


@router.post("/{announcement_id}/unpublish", response_model=AnnouncementOut)
async def unpublish(
    announcement_id: uuid.UUID,
    user: User = Depends(require_permission("announcement:manage")),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService.set_published(db, user, announcement_id, False)
    return AnnouncementOut.model_validate(announcement)


@router.delete("/{announcement_id}", status_code=204)
async def delete_announcement(
    announcement_id: uuid.UUID,
    user: User = Depends(require_permission("announcement:manage")),
    db: AsyncSession = Depends(get_db),
):
    await AnnouncementService.delete_announcement(db, user, announcement_id)
    return Response(status_code=204)
