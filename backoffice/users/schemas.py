"""User Pydantic v2 schemas.

Naming conventions:
  - *Create / *Update / *Request → request bodies (write)
  - *Out                         → response bodies (read)
"""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backoffice.common.constants import RetirementReason, UserRole, UserStatus

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid e-mail address.")
    return value


class UserCreate(BaseModel):
    email: str = Field(..., max_length=255)
    name: str = Field(..., min_length=1, max_length=200)
    name_kana: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    employee_number: Optional[str] = Field(None, max_length=30)
    position: Optional[str] = Field(None, max_length=100)
    hire_date: Optional[date] = None
    unit_id: Optional[uuid.UUID] = None
    role: UserRole = UserRole.employee
    status: UserStatus = UserStatus.active
    timezone: str = "Asia/Tokyo"

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _check_email(v)


class UserUpdate(BaseModel):
    """Partial update: only fields present in the payload are applied."""

    email: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    name_kana: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    employee_number: Optional[str] = Field(None, max_length=30)
    position: Optional[str] = Field(None, max_length=100)
    hire_date: Optional[date] = None
    unit_id: Optional[uuid.UUID] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    timezone: Optional[str] = None
    profile_photo_url: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return _check_email(v) if v is not None else v


class UserRetireRequest(BaseModel):
    retired_date: date
    reason: RetirementReason = RetirementReason.voluntary


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    email: str
    name: str
    name_kana: Optional[str] = None
    phone: Optional[str] = None
    employee_number: Optional[str] = None
    position: Optional[str] = None
    hire_date: Optional[date] = None
    unit_id: Optional[uuid.UUID] = None
    role: UserRole
    status: UserStatus
    timezone: str
    retired_date: Optional[date] = None
    retirement_reason: Optional[RetirementReason] = None
    profile_photo_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
