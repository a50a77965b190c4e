"""Leave service — balances, request lifecycle and yearly reset.

Balance bookkeeping: ``remaining = total - used``. Approving a request
adds its days to ``used`` of the category balance for the year of its
start date; cancelling or deleting an approved request gives them back.
Pending days are not deducted but count against ``available``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.auth.dependencies import has_role
from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import (
    LeaveCategory,
    LeaveStatus,
    LeaveType,
    UserRole,
    UserStatus,
)
from backoffice.common.exceptions import (
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from backoffice.common.models import utcnow
from backoffice.common.pagination import PaginatedResponse, PaginationParams, paginate
from backoffice.leave.models import LeaveBalance, LeaveRequest
from backoffice.leave.schemas import LeaveBalanceOut, LeaveRequestCreate, LeaveRequestOut
from backoffice.notifications.service import (
    notify_leave_approved,
    notify_leave_rejected,
    notify_leave_submitted,
)
from backoffice.users.models import User
from backoffice.users.service import UserService

logger = logging.getLogger(__name__)

DEFAULT_ALLOWANCES: dict[LeaveCategory, Decimal] = {
    LeaveCategory.paid: Decimal("20"),
    LeaveCategory.sick: Decimal("5"),
    LeaveCategory.special: Decimal("5"),
    LeaveCategory.compensatory: Decimal("0"),
}
MAX_CARRY_OVER = Decimal("20")
HALF_DAY = Decimal("0.5")
HALF_DAY_TYPES = {LeaveType.half_day_am, LeaveType.half_day_pm}

# Statuses whose days are committed against the balance.
ACTIVE_STATUSES = (LeaveStatus.pending, LeaveStatus.approved)


def category_for(leave_type: LeaveType) -> LeaveCategory:
    """Balance bucket a leave type draws from; half days use paid leave."""
    if leave_type in HALF_DAY_TYPES:
        return LeaveCategory.paid
    return LeaveCategory(leave_type.value)


def paid_expiry(year: int) -> date:
    """Paid leave granted for *year* lapses on March 31 two years later."""
    return date(year + 2, 3, 31)


def count_leave_days(leave_type: LeaveType, start: date, end: date) -> Decimal:
    """Half days are 0.5 on a single date; other types count Mon-Fri."""
    if end < start:
        raise ValidationException({"end_date": ["end_date must not be before start_date."]})

    if leave_type in HALF_DAY_TYPES:
        if start != end:
            raise ValidationException(
                {"end_date": ["A half-day leave must start and end on the same date."]}
            )
        return HALF_DAY

    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)

    if days == 0:
        raise ValidationException({"start_date": ["The selected range has no working days."]})
    return Decimal(days)


class LeaveService:
    """Async leave balance and request operations."""

    # ─────────────────────────────────────────────────────────────────
    # Balances
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def initialize_balance(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: int,
    ) -> list[LeaveBalance]:
        """Create the categories missing for *year* with default totals."""
        result = await db.execute(
            select(LeaveBalance).where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.year == year,
            )
        )
        balances = {b.category: b for b in result.scalars().all()}

        for category, allowance in DEFAULT_ALLOWANCES.items():
            if category in balances:
                continue
            balance = LeaveBalance(
                tenant_id=tenant_id,
                user_id=user_id,
                year=year,
                category=category,
                total=allowance,
                used=Decimal("0"),
                expiry_date=paid_expiry(year) if category == LeaveCategory.paid else None,
            )
            db.add(balance)
            balances[category] = balance
        await db.flush()

        return [balances[c] for c in DEFAULT_ALLOWANCES]

    @staticmethod
    async def _get_balance(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: int,
        category: LeaveCategory,
    ) -> LeaveBalance:
        balances = await LeaveService.initialize_balance(db, tenant_id, user_id, year)
        return next(b for b in balances if b.category == category)

    @staticmethod
    async def _pending_days(
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        category: LeaveCategory,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Decimal:
        result = await db.execute(
            select(LeaveRequest).where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status == LeaveStatus.pending,
            )
        )
        return sum(
            (
                Decimal(r.days)
                for r in result.scalars().all()
                if r.start_date.year == year
                and category_for(r.leave_type) == category
                and r.id != exclude_id
            ),
            Decimal("0"),
        )

    @staticmethod
    async def available_days(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: int,
        category: LeaveCategory,
    ) -> Decimal:
        """Remaining minus pending days; a missing balance counts as the default allowance."""
        result = await db.execute(
            select(LeaveBalance).where(
                LeaveBalance.tenant_id == tenant_id,
                LeaveBalance.user_id == user_id,
                LeaveBalance.year == year,
                LeaveBalance.category == category,
            )
        )
        balance = result.scalars().first()
        remaining = balance.remaining if balance is not None else DEFAULT_ALLOWANCES[category]
        pending = await LeaveService._pending_days(db, user_id, year, category)
        return remaining - pending

    @staticmethod
    async def _check_available(
        db: AsyncSession,
        leave_req: LeaveRequest,
    ) -> None:
        """422 when the request's days exceed remaining minus other pending days."""
        category = category_for(leave_req.leave_type)
        year = leave_req.start_date.year
        balance = await LeaveService._get_balance(
            db, leave_req.tenant_id, leave_req.user_id, year, category,
        )
        pending = await LeaveService._pending_days(
            db, leave_req.user_id, year, category, exclude_id=leave_req.id,
        )
        available = balance.remaining - pending
        if available < Decimal(leave_req.days):
            raise ValidationException(
                {"days": [
                    f"Insufficient {category.value} leave balance: "
                    f"{available} day(s) available, {leave_req.days} requested."
                ]},
                detail="Insufficient leave balance.",
            )

    @staticmethod
    async def get_balances(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: int,
    ) -> list[LeaveBalanceOut]:
        balances = await LeaveService.initialize_balance(db, tenant_id, user_id, year)
        output = []
        for balance in balances:
            pending = await LeaveService._pending_days(db, user_id, year, balance.category)
            out = LeaveBalanceOut.model_validate(balance)
            out.pending = float(pending)
            out.available = float(balance.remaining - pending)
            output.append(out)
        return output

    @staticmethod
    async def list_tenant_balances(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        year: int,
    ) -> list[LeaveBalance]:
        result = await db.execute(
            select(LeaveBalance)
            .where(LeaveBalance.tenant_id == tenant_id, LeaveBalance.year == year)
            .order_by(LeaveBalance.user_id, LeaveBalance.category)
        )
        return list(result.scalars().all())

    @staticmethod
    async def adjust_balance(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: int,
        category: LeaveCategory,
        total: Decimal,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LeaveBalance:
        """Set the granted total of one category."""
        await UserService.get_user(db, tenant_id, user_id)
        balance = await LeaveService._get_balance(db, tenant_id, user_id, year, category)
        total = Decimal(str(total))
        if total < Decimal(balance.used):
            raise ValidationException(
                {"total": [f"Total cannot be less than the {balance.used} day(s) already used."]}
            )

        old_total = balance.total
        balance.total = total
        await db.flush()

        await create_audit_entry(
            db,
            action="adjust_balance",
            entity_type="leave_balance",
            entity_id=balance.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            old_values={"total": old_total},
            new_values={"total": total},
        )
        return balance

    @staticmethod
    async def grant_days(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        year: int,
        category: LeaveCategory,
        days: Decimal,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LeaveBalance:
        """Add *days* to the category total for *year*."""
        balance = await LeaveService._get_balance(db, tenant_id, user_id, year, category)
        old_total = balance.total
        balance.total = Decimal(balance.total) + Decimal(str(days))
        await db.flush()

        await create_audit_entry(
            db,
            action="grant",
            entity_type="leave_balance",
            entity_id=balance.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            old_values={"total": old_total},
            new_values={"total": balance.total},
        )
        return balance

    # ─────────────────────────────────────────────────────────────────
    # Yearly reset
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def reset_yearly_balance(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        new_year: int,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> list[LeaveBalance]:
        """Open *new_year* carrying unused paid leave (capped) forward."""
        prev = await db.execute(
            select(LeaveBalance).where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.year == new_year - 1,
                LeaveBalance.category == LeaveCategory.paid,
            )
        )
        prev_paid = prev.scalars().first()
        carry_over = Decimal("0")
        if prev_paid is not None:
            carry_over = min(max(prev_paid.remaining, Decimal("0")), MAX_CARRY_OVER)

        balances = await LeaveService.initialize_balance(db, tenant_id, user_id, new_year)
        for balance in balances:
            balance.total = DEFAULT_ALLOWANCES[balance.category]
            if balance.category == LeaveCategory.paid:
                balance.total += carry_over
                balance.expiry_date = paid_expiry(new_year)
        await db.flush()

        await create_audit_entry(
            db,
            action="reset_balance",
            entity_type="leave_balance",
            entity_id=user_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            new_values={"year": new_year, "carry_over": carry_over},
        )
        logger.info(
            "Leave balances of user %s reset for %s (carry-over %s)",
            user_id, new_year, carry_over,
        )
        return balances

    @staticmethod
    async def reset_tenant_year(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        new_year: int,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Reset every active user of the tenant. Returns users processed."""
        result = await db.execute(
            select(User.id).where(
                User.tenant_id == tenant_id,
                User.status == UserStatus.active,
            )
        )
        user_ids = list(result.scalars().all())
        for user_id in user_ids:
            await LeaveService.reset_yearly_balance(
                db, tenant_id, user_id, new_year, actor_id=actor_id,
            )
        logger.info("Yearly leave reset for tenant %s: %d user(s)", tenant_id, len(user_ids))
        return len(user_ids)

    # ─────────────────────────────────────────────────────────────────
    # Requests
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_request(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        request_id: uuid.UUID,
    ) -> LeaveRequest:
        result = await db.execute(
            select(LeaveRequest).where(
                LeaveRequest.id == request_id,
                LeaveRequest.tenant_id == tenant_id,
            )
        )
        leave_req = result.scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", request_id)
        return leave_req

    @staticmethod
    async def has_overlap(
        db: AsyncSession,
        user_id: uuid.UUID,
        start: date,
        end: date,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool:
        """True when a pending or approved request of the user touches [start, end]."""
        stmt = select(LeaveRequest.id).where(
            LeaveRequest.user_id == user_id,
            LeaveRequest.status.in_(ACTIVE_STATUSES),
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
        if exclude_id is not None:
            stmt = stmt.where(LeaveRequest.id != exclude_id)
        result = await db.execute(stmt)
        return result.scalar() is not None

    @staticmethod
    async def _check_overlap(db: AsyncSession, leave_req: LeaveRequest) -> None:
        if await LeaveService.has_overlap(
            db,
            leave_req.user_id,
            leave_req.start_date,
            leave_req.end_date,
            exclude_id=leave_req.id,
        ):
            raise ValidationException(
                {"start_date": ["The period overlaps another pending or approved request."]}
            )

    @staticmethod
    async def _approver_ids(db: AsyncSession, requester: User) -> list[uuid.UUID]:
        """HR/admin users of the tenant plus managers of the requester's unit."""
        approvers = await UserService.list_by_roles(
            db, requester.tenant_id, [UserRole.hr, UserRole.admin],
        )
        ids = [u.id for u in approvers]
        if requester.unit_id is not None:
            for manager in await UserService.list_users_by_unit(
                db, requester.tenant_id, requester.unit_id,
            ):
                if manager.role == UserRole.manager and manager.status == UserStatus.active:
                    ids.append(manager.id)
        return [i for i in dict.fromkeys(ids) if i != requester.id]

    @staticmethod
    async def _deduct(db: AsyncSession, leave_req: LeaveRequest) -> LeaveBalance:
        balance = await LeaveService._get_balance(
            db,
            leave_req.tenant_id,
            leave_req.user_id,
            leave_req.start_date.year,
            category_for(leave_req.leave_type),
        )
        if balance.remaining < Decimal(leave_req.days):
            raise ValidationException(
                {"days": [f"Only {balance.remaining} day(s) remain in the balance."]},
                detail="Insufficient leave balance.",
            )
        balance.used = Decimal(balance.used) + Decimal(leave_req.days)
        return balance

    @staticmethod
    async def _restore(db: AsyncSession, leave_req: LeaveRequest) -> LeaveBalance:
        balance = await LeaveService._get_balance(
            db,
            leave_req.tenant_id,
            leave_req.user_id,
            leave_req.start_date.year,
            category_for(leave_req.leave_type),
        )
        balance.used = max(Decimal("0"), Decimal(balance.used) - Decimal(leave_req.days))
        return balance

    @staticmethod
    async def create_request(
        db: AsyncSession,
        actor: User,
        data: LeaveRequestCreate,
    ) -> LeaveRequest:
        """File a leave request as draft, pending, or (HR only) approved."""
        is_hr = has_role(actor, UserRole.hr)
        requester = actor
        if data.user_id is not None and data.user_id != actor.id:
            if not is_hr:
                raise ForbiddenException("Only HR can file leave for another user.")
            requester = await UserService.get_user(db, actor.tenant_id, data.user_id)
        if data.status == LeaveStatus.approved and not is_hr:
            raise ForbiddenException("Only HR can create an approved leave request.")

        days = count_leave_days(data.leave_type, data.start_date, data.end_date)
        leave_req = LeaveRequest(
            id=uuid.uuid4(),
            tenant_id=requester.tenant_id,
            user_id=requester.id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            days=days,
            reason=data.reason,
            status=data.status,
        )

        if data.status in ACTIVE_STATUSES:
            await LeaveService._check_overlap(db, leave_req)
            await LeaveService._check_available(db, leave_req)

        if data.status == LeaveStatus.approved:
            await LeaveService._deduct(db, leave_req)
            leave_req.approver_id = actor.id
            leave_req.approved_at = utcnow()

        db.add(leave_req)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave_req.id,
            tenant_id=leave_req.tenant_id,
            actor_id=actor.id,
            new_values={
                "user_id": requester.id,
                "leave_type": data.leave_type,
                "start_date": data.start_date,
                "end_date": data.end_date,
                "days": days,
                "status": data.status,
            },
        )

        if data.status == LeaveStatus.pending:
            await notify_leave_submitted(
                db, leave_req, await LeaveService._approver_ids(db, requester), requester.name,
            )
        logger.info(
            "Leave request %s created for user %s (%s, %s day(s), %s)",
            leave_req.id, requester.id, data.leave_type.value, days, data.status.value,
        )
        return leave_req

    @staticmethod
    async def record_taken_leave(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        leave_type: LeaveType,
        day: date,
        days: Decimal,
        *,
        reason: Optional[str] = None,
        actor_id: Optional[uuid.UUID] = None,
    ) -> LeaveRequest:
        """Book leave that was already taken (bulk import) as approved,
        deducting *days* from the balance."""
        leave_req = LeaveRequest(
            id=uuid.uuid4(),
            tenant_id=tenant_id,
            user_id=user_id,
            leave_type=leave_type,
            start_date=day,
            end_date=day,
            days=Decimal(str(days)),
            reason=reason,
            status=LeaveStatus.approved,
            approver_id=actor_id,
            approved_at=utcnow(),
        )
        await LeaveService._check_overlap(db, leave_req)
        await LeaveService._deduct(db, leave_req)
        db.add(leave_req)
        await db.flush()

        await create_audit_entry(
            db,
            action="import",
            entity_type="leave_request",
            entity_id=leave_req.id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            new_values={"user_id": user_id, "start_date": day, "days": leave_req.days},
        )
        return leave_req

    @staticmethod
    async def submit_request(
        db: AsyncSession,
        actor: User,
        request_id: uuid.UUID,
    ) -> LeaveRequest:
        """Move the caller's own draft to pending."""
        leave_req = await LeaveService.get_request(db, actor.tenant_id, request_id)
        if leave_req.user_id != actor.id:
            raise ForbiddenException("You can only submit your own leave requests.")
        if leave_req.status != LeaveStatus.draft:
            raise InvalidTransitionException("leave request", leave_req.status.value, "submit")

        await LeaveService._check_overlap(db, leave_req)
        await LeaveService._check_available(db, leave_req)

        leave_req.status = LeaveStatus.pending
        await db.flush()

        await create_audit_entry(
            db,
            action="submit",
            entity_type="leave_request",
            entity_id=leave_req.id,
            tenant_id=leave_req.tenant_id,
            actor_id=actor.id,
            old_values={"status": LeaveStatus.draft},
            new_values={"status": LeaveStatus.pending},
        )
        await notify_leave_submitted(
            db, leave_req, await LeaveService._approver_ids(db, actor), actor.name,
        )
        return leave_req

    @staticmethod
    async def approve_request(
        db: AsyncSession,
        approver: User,
        request_id: uuid.UUID,
        *,
        comment: Optional[str] = None,
    ) -> LeaveRequest:
        """Approve a pending request and deduct its days from the balance."""
        leave_req = await LeaveService.get_request(db, approver.tenant_id, request_id)
        if leave_req.status != LeaveStatus.pending:
            raise InvalidTransitionException("leave request", leave_req.status.value, "approve")
        if not has_role(approver, UserRole.manager):
            raise ForbiddenException("You are not authorized to approve leave requests.")
        if leave_req.user_id == approver.id:
            raise ForbiddenException("You cannot approve your own leave request.")

        balance = await LeaveService._deduct(db, leave_req)
        leave_req.status = LeaveStatus.approved
        leave_req.approver_id = approver.id
        leave_req.approved_at = utcnow()
        await db.flush()

        await create_audit_entry(
            db,
            action="approve",
            entity_type="leave_request",
            entity_id=leave_req.id,
            tenant_id=leave_req.tenant_id,
            actor_id=approver.id,
            old_values={"status": LeaveStatus.pending},
            new_values={"status": LeaveStatus.approved, "comment": comment},
        )
        await notify_leave_approved(db, leave_req)
        logger.info(
            "Leave request %s approved by %s; %s balance now %s/%s",
            leave_req.id, approver.id, balance.category.value, balance.used, balance.total,
        )
        return leave_req

    @staticmethod
    async def reject_request(
        db: AsyncSession,
        approver: User,
        request_id: uuid.UUID,
        *,
        reason: Optional[str] = None,
    ) -> LeaveRequest:
        leave_req = await LeaveService.get_request(db, approver.tenant_id, request_id)
        if leave_req.status != LeaveStatus.pending:
            raise InvalidTransitionException("leave request", leave_req.status.value, "reject")
        if not has_role(approver, UserRole.manager):
            raise ForbiddenException("You are not authorized to reject leave requests.")
        if leave_req.user_id == approver.id:
            raise ForbiddenException("You cannot reject your own leave request.")

        leave_req.status = LeaveStatus.rejected
        leave_req.approver_id = approver.id
        leave_req.rejected_reason = reason
        await db.flush()

        await create_audit_entry(
            db,
            action="reject",
            entity_type="leave_request",
            entity_id=leave_req.id,
            tenant_id=leave_req.tenant_id,
            actor_id=approver.id,
            old_values={"status": LeaveStatus.pending},
            new_values={"status": LeaveStatus.rejected, "reason": reason},
        )
        await notify_leave_rejected(db, leave_req, reason)
        logger.info("Leave request %s rejected by %s", leave_req.id, approver.id)
        return leave_req

    @staticmethod
    async def cancel_request(
        db: AsyncSession,
        actor: User,
        request_id: uuid.UUID,
    ) -> LeaveRequest:
        """Cancel a draft, pending or approved request; approved days return."""
        leave_req = await LeaveService.get_request(db, actor.tenant_id, request_id)
        if leave_req.user_id != actor.id and not has_role(actor, UserRole.hr):
            raise ForbiddenException("You can only cancel your own leave requests.")
        if leave_req.status not in (LeaveStatus.draft, *ACTIVE_STATUSES):
            raise InvalidTransitionException("leave request", leave_req.status.value, "cancel")

        old_status = leave_req.status
        if old_status == LeaveStatus.approved:
            await LeaveService._restore(db, leave_req)
        leave_req.status = LeaveStatus.cancelled
        leave_req.cancelled_at = utcnow()
        await db.flush()

        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave_request",
            entity_id=leave_req.id,
            tenant_id=leave_req.tenant_id,
            actor_id=actor.id,
            old_values={"status": old_status},
            new_values={"status": LeaveStatus.cancelled},
        )
        logger.info("Leave request %s cancelled by %s (was %s)", leave_req.id, actor.id, old_status.value)
        return leave_req

    @staticmethod
    async def delete_request(
        db: AsyncSession,
        actor: User,
        request_id: uuid.UUID,
    ) -> None:
        leave_req = await LeaveService.get_request(db, actor.tenant_id, request_id)
        if leave_req.user_id != actor.id and not has_role(actor, UserRole.hr):
            raise ForbiddenException("You can only delete your own leave requests.")

        if leave_req.status == LeaveStatus.approved:
            await LeaveService._restore(db, leave_req)

        await create_audit_entry(
            db,
            action="delete",
            entity_type="leave_request",
            entity_id=leave_req.id,
            tenant_id=leave_req.tenant_id,
            actor_id=actor.id,
            old_values={"status": leave_req.status, "days": leave_req.days},
        )
        await db.delete(leave_req)
        await db.flush()

    # ─────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_user_requests(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        status: Optional[LeaveStatus] = None,
    ) -> PaginatedResponse:
        query = select(LeaveRequest).where(
            LeaveRequest.tenant_id == tenant_id,
            LeaveRequest.user_id == user_id,
        )
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        return await paginate(
            db,
            query,
            pagination,
            model=LeaveRequest,
            default_sort="-created_at",
            transform=LeaveRequestOut.model_validate,
        )

    @staticmethod
    async def list_pending(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        pagination: PaginationParams,
    ) -> PaginatedResponse:
        """Tenant-wide approval queue, oldest first."""
        query = select(LeaveRequest).where(
            LeaveRequest.tenant_id == tenant_id,
            LeaveRequest.status == LeaveStatus.pending,
        )
        return await paginate(
            db,
            query,
            pagination,
            model=LeaveRequest,
            default_sort="created_at",
            transform=LeaveRequestOut.model_validate,
        )

    @staticmethod
    async def list_by_period(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        start: date,
        end: date,
    ) -> list[LeaveRequest]:
        """Requests whose start date falls within [start, end]."""
        if start > end:
            raise ValidationException({"date_range": ["start must be before or equal to end."]})
        result = await db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.tenant_id == tenant_id,
                LeaveRequest.start_date >= start,
                LeaveRequest.start_date <= end,
            )
            .order_by(LeaveRequest.start_date, LeaveRequest.created_at)
        )
        return list(result.scalars().all())
