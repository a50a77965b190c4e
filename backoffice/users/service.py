"""User service — tenant-scoped CRUD, retirement and unit membership."""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import UserRole, UserStatus
from backoffice.common.exceptions import (
    ConflictError,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from backoffice.common.filters import apply_filters, apply_search
from backoffice.common.pagination import PaginatedResponse, PaginationParams, paginate
from backoffice.tenants.models import OrgUnit
from backoffice.users.models import User
from backoffice.users.schemas import (
    UserCreate,
    UserOut,
    UserRetireRequest,
    UserUpdate,
)

logger = logging.getLogger(__name__)


class UserService:
    """Async user operations, always scoped to one tenant."""

    # ── Lookups ─────────────────────────────────────────────────────

    @staticmethod
    async def get_user(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> User:
        """Return a user of *tenant_id*; users of other tenants are 404."""
        result = await db.execute(
            select(User).where(User.id == user_id, User.tenant_id == tenant_id)
        )
        user = result.scalars().first()
        if user is None:
            raise NotFoundException("User", user_id)
        return user

    @staticmethod
    async def list_by_roles(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        roles: Sequence[UserRole],
    ) -> list[User]:
        """Active users of the tenant holding any of *roles*."""
        result = await db.execute(
            select(User)
            .where(
                User.tenant_id == tenant_id,
                User.role.in_(list(roles)),
                User.status == UserStatus.active,
            )
            .order_by(User.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _check_unit(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        unit_id: Optional[uuid.UUID],
    ) -> None:
        if unit_id is None:
            return
        result = await db.execute(
            select(OrgUnit.id).where(OrgUnit.id == unit_id, OrgUnit.tenant_id == tenant_id)
        )
        if result.scalar() is None:
            raise ValidationException({"unit_id": [f"Unit '{unit_id}' does not exist."]})

    @staticmethod
    async def _check_email_free(
        db: AsyncSession,
        email: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(User.id).where(User.email == email)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise ConflictError("email", email)

    # ── CRUD ────────────────────────────────────────────────────────

    @staticmethod
    async def create_user(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        data: UserCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> User:
        await UserService._check_email_free(db, data.email)
        await UserService._check_unit(db, tenant_id, data.unit_id)

        user = User(tenant_id=tenant_id, **data.model_dump())
        db.add(user)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="user",
            entity_id=user.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            new_values={"email": user.email, "role": user.role, "unit_id": user.unit_id},
        )
        logger.info("User %s created in tenant %s", user.email, tenant_id)
        return user

    @staticmethod
    async def list_users(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        unit_id: Optional[uuid.UUID] = None,
        search: Optional[str] = None,
    ) -> PaginatedResponse:
        query = select(User).where(User.tenant_id == tenant_id)
        query = apply_filters(query, User, {"role": role, "status": status, "unit_id": unit_id})
        query = apply_search(query, User, search, ["name", "email", "employee_number"])
        return await paginate(
            db,
            query,
            pagination,
            model=User,
            default_sort="name",
            transform=UserOut.model_validate,
        )

    @staticmethod
    async def list_users_by_unit(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        unit_id: uuid.UUID,
    ) -> list[User]:
        result = await db.execute(
            select(User)
            .where(User.tenant_id == tenant_id, User.unit_id == unit_id)
            .order_by(User.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def update_user(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        data: UserUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> User:
        """Apply only the fields present in *data*."""
        user = await UserService.get_user(db, tenant_id, user_id)
        changes = data.model_dump(exclude_unset=True)

        if "email" in changes and changes["email"] != user.email:
            await UserService._check_email_free(db, changes["email"], exclude_id=user.id)
        if "unit_id" in changes:
            await UserService._check_unit(db, tenant_id, changes["unit_id"])

        old_values = {field: getattr(user, field) for field in changes}
        for field, value in changes.items():
            setattr(user, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="user",
            entity_id=user.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return user

    @staticmethod
    async def delete_user(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        user = await UserService.get_user(db, tenant_id, user_id)
        if actor_id is not None and user.id == actor_id:
            raise ValidationException({"user_id": ["You cannot delete your own account."]})

        await create_audit_entry(
            db,
            action="delete",
            entity_type="user",
            entity_id=user.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            old_values={"email": user.email, "name": user.name},
        )
        await db.delete(user)
        await db.flush()
        logger.info("User %s deleted from tenant %s", user.email, tenant_id)

    # ── Retirement ──────────────────────────────────────────────────

    @staticmethod
    async def retire_user(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        data: UserRetireRequest,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> User:
        user = await UserService.get_user(db, tenant_id, user_id)
        if user.status == UserStatus.retired:
            raise InvalidTransitionException("user", user.status.value, "retire")
        if user.hire_date and data.retired_date < user.hire_date:
            raise ValidationException(
                {"retired_date": ["Retirement date cannot be before the hire date."]}
            )

        old_status = user.status
        user.status = UserStatus.retired
        user.retired_date = data.retired_date
        user.retirement_reason = data.reason
        await db.flush()

        await create_audit_entry(
            db,
            action="retire",
            entity_type="user",
            entity_id=user.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            old_values={"status": old_status},
            new_values={"status": user.status, "retired_date": data.retired_date,
                        "reason": data.reason},
        )
        logger.info("User %s retired on %s (%s)", user.email, data.retired_date, data.reason.value)
        return user
