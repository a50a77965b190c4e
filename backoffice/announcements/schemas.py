"""Announcement schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backoffice.common.constants import (
    AnnouncementPriority,
    AnnouncementReadStatus,
    AnnouncementTarget,
    AnnouncementType,
    UserRole,
)


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    type: AnnouncementType = AnnouncementType.general
    priority: AnnouncementPriority = AnnouncementPriority.normal
    target: AnnouncementTarget = AnnouncementTarget.all
    target_roles: list[UserRole] = Field(default_factory=list)
    target_unit_ids: list[uuid.UUID] = Field(default_factory=list)
    start_date: date
    end_date: Optional[date] = None
    requires_action: bool = False
    action_label: Optional[str] = Field(None, max_length=100)
    action_url: Optional[str] = Field(None, max_length=500)
    action_deadline: Optional[date] = None
    published: bool = False

    @model_validator(mode="after")
    def check_period(self) -> AnnouncementCreate:
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date.")
        return self


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    type: Optional[AnnouncementType] = None
    priority: Optional[AnnouncementPriority] = None
    target: Optional[AnnouncementTarget] = None
    target_roles: Optional[list[UserRole]] = None
    target_unit_ids: Optional[list[uuid.UUID]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    requires_action: Optional[bool] = None
    action_label: Optional[str] = Field(None, max_length=100)
    action_url: Optional[str] = Field(None, max_length=500)
    action_deadline: Optional[date] = None


class AnnouncementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    content: str
    type: AnnouncementType
    priority: AnnouncementPriority
    target: AnnouncementTarget
    target_roles: list[str]
    target_unit_ids: list[uuid.UUID]
    start_date: date
    end_date: Optional[date] = None
    requires_action: bool
    action_label: Optional[str] = None
    action_url: Optional[str] = None
    action_deadline: Optional[date] = None
    published: bool
    published_at: Optional[datetime] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    read_status: Optional[AnnouncementReadStatus] = None


class AnnouncementReadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    announcement_id: uuid.UUID
    user_id: uuid.UUID
    status: AnnouncementReadStatus
    read_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class AnnouncementStats(BaseModel):
    total: int
    unread: int
    pending: int
    completed: int
    by_priority: dict[str, int]
    by_type: dict[str, int]
