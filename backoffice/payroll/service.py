"""Payroll service — salary settings, pay items, insurance grades, pay slips.

A pay run computes one draft slip per employee for a ``YYYY-MM`` period
from the salary setting in force on the payment date, the allowances and
deductions in force on that date, the social-insurance grade for the
period's year and the month's attendance. Re-running a period recomputes
drafts; confirmed and paid slips are left untouched.

Slip lifecycle: draft → confirmed → paid. Employees only see their own
confirmed or paid slips.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.attendance.service import AttendanceService
from backoffice.common.audit import create_audit_entry
from backoffice.common.constants import (
    PERMISSIONS,
    AttendanceStatus,
    PayItemKind,
    PaymentType,
    PaySlipStatus,
    UserStatus,
)
from backoffice.common.exceptions import (
    ConflictError,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from backoffice.common.models import utcnow
from backoffice.common.pagination import PaginatedResponse, PaginationParams, paginate
from backoffice.notifications.service import notify_pay_slip_issued
from backoffice.payroll.calculator import (
    AttendanceFigures,
    GradeAmounts,
    SalaryTerms,
    calculate_pay,
)
from backoffice.payroll.models import PayItem, PaySlip, SalarySetting, SocialInsuranceGrade
from backoffice.payroll.schemas import (
    AttendanceInput,
    GradeIn,
    PayItemCreate,
    PayItemUpdate,
    PayrollPeriodSummary,
    PayrollRunItem,
    PayrollRunRequest,
    PayrollRunResult,
    PaySlipOut,
    SalarySettingCreate,
    SalarySettingUpdate,
)
from backoffice.users.models import User
from backoffice.users.service import UserService

logger = logging.getLogger(__name__)

VISIBLE_TO_EMPLOYEE = (PaySlipStatus.confirmed, PaySlipStatus.paid)


def can_manage_payroll(user: User) -> bool:
    return "payroll:manage" in PERMISSIONS.get(user.role, [])


def _in_force(model: Any, on: date):
    """WHERE clause: row is active and ``on`` lies in its effective range."""
    return (
        model.is_active.is_(True),
        model.effective_from <= on,
        or_(model.effective_to.is_(None), model.effective_to >= on),
    )


def _period_bounds(pay_period: str) -> tuple[int, int]:
    year, month = (int(part) for part in pay_period.split("-"))
    return year, month


class PayrollService:
    """Async payroll operations, scoped to one tenant."""

    # ─────────────────────────────────────────────────────────────────
    # Salary settings
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_setting(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        setting_id: uuid.UUID,
    ) -> SalarySetting:
        result = await db.execute(
            select(SalarySetting).where(
                SalarySetting.id == setting_id,
                SalarySetting.tenant_id == tenant_id,
            )
        )
        setting = result.scalars().first()
        if setting is None:
            raise NotFoundException("SalarySetting", setting_id)
        return setting

    @staticmethod
    async def list_settings(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        *,
        user_id: Optional[uuid.UUID] = None,
        as_of: Optional[date] = None,
    ) -> list[SalarySetting]:
        query = select(SalarySetting).where(SalarySetting.tenant_id == tenant_id)
        if user_id is not None:
            query = query.where(SalarySetting.user_id == user_id)
        if as_of is not None:
            query = query.where(*_in_force(SalarySetting, as_of))
        result = await db.execute(
            query.order_by(SalarySetting.user_id, SalarySetting.effective_from.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def setting_in_force(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        on: date,
    ) -> Optional[SalarySetting]:
        """Latest active setting of the user whose range covers *on*."""
        result = await db.execute(
            select(SalarySetting)
            .where(
                SalarySetting.tenant_id == tenant_id,
                SalarySetting.user_id == user_id,
                *_in_force(SalarySetting, on),
            )
            .order_by(SalarySetting.effective_from.desc())
        )
        return result.scalars().first()

    @staticmethod
    async def create_setting(
        db: AsyncSession,
        actor: User,
        data: SalarySettingCreate,
    ) -> SalarySetting:
        """Create a setting; an open-ended earlier setting of the same user
        is closed the day before the new one takes effect."""
        await UserService.get_user(db, actor.tenant_id, data.user_id)

        result = await db.execute(
            select(SalarySetting).where(
                SalarySetting.user_id == data.user_id,
                SalarySetting.effective_from == data.effective_from,
            )
        )
        if result.scalars().first() is not None:
            raise ConflictError("effective_from", data.effective_from.isoformat())

        result = await db.execute(
            select(SalarySetting)
            .where(
                SalarySetting.user_id == data.user_id,
                SalarySetting.effective_from < data.effective_from,
                SalarySetting.is_active.is_(True),
            )
            .order_by(SalarySetting.effective_from.desc())
        )
        previous = result.scalars().first()
        if previous is not None and previous.effective_to is None:
            previous.effective_to = data.effective_from - timedelta(days=1)

        setting = SalarySetting(tenant_id=actor.tenant_id, **data.model_dump())
        db.add(setting)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="salary_setting",
            entity_id=setting.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={
                "user_id": setting.user_id,
                "effective_from": setting.effective_from,
                "basic_salary": setting.basic_salary,
            },
        )
        logger.info(
            "Salary setting for user %s from %s created by %s",
            setting.user_id, setting.effective_from, actor.id,
        )
        return setting

    @staticmethod
    async def update_setting(
        db: AsyncSession,
        actor: User,
        setting_id: uuid.UUID,
        data: SalarySettingUpdate,
    ) -> SalarySetting:
        setting = await PayrollService.get_setting(db, actor.tenant_id, setting_id)
        changes = data.model_dump(exclude_unset=True)

        end = changes.get("effective_to", setting.effective_to)
        if end is not None and end < setting.effective_from:
            raise ValidationException(
                {"effective_to": ["effective_to must not be before effective_from."]}
            )
        payment_type = changes.get("payment_type", setting.payment_type)
        if payment_type == PaymentType.daily and not changes.get("daily_rate", setting.daily_rate):
            raise ValidationException({"daily_rate": ["daily_rate is required for daily pay."]})
        if payment_type == PaymentType.hourly and not changes.get("hourly_rate", setting.hourly_rate):
            raise ValidationException({"hourly_rate": ["hourly_rate is required for hourly pay."]})

        old_values = {field: getattr(setting, field) for field in changes}
        for field, value in changes.items():
            setattr(setting, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="salary_setting",
            entity_id=setting.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=changes,
        )
        return setting

    @staticmethod
    async def delete_setting(db: AsyncSession, actor: User, setting_id: uuid.UUID) -> None:
        setting = await PayrollService.get_setting(db, actor.tenant_id, setting_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="salary_setting",
            entity_id=setting.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"user_id": setting.user_id, "effective_from": setting.effective_from},
        )
        await db.delete(setting)
        await db.flush()

    # ─────────────────────────────────────────────────────────────────
    # Allowances and deductions
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_item(db: AsyncSession, tenant_id: uuid.UUID, item_id: uuid.UUID) -> PayItem:
        result = await db.execute(
            select(PayItem).where(PayItem.id == item_id, PayItem.tenant_id == tenant_id)
        )
        item = result.scalars().first()
        if item is None:
            raise NotFoundException("PayItem", item_id)
        return item

    @staticmethod
    async def list_items(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        *,
        user_id: Optional[uuid.UUID] = None,
        kind: Optional[PayItemKind] = None,
        as_of: Optional[date] = None,
    ) -> list[PayItem]:
        query = select(PayItem).where(PayItem.tenant_id == tenant_id)
        if user_id is not None:
            query = query.where(PayItem.user_id == user_id)
        if kind is not None:
            query = query.where(PayItem.kind == kind)
        if as_of is not None:
            query = query.where(*_in_force(PayItem, as_of))
        result = await db.execute(
            query.order_by(PayItem.user_id, PayItem.kind, PayItem.code, PayItem.effective_from)
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_item(db: AsyncSession, actor: User, data: PayItemCreate) -> PayItem:
        await UserService.get_user(db, actor.tenant_id, data.user_id)
        result = await db.execute(
            select(PayItem.id).where(
                PayItem.user_id == data.user_id,
                PayItem.kind == data.kind,
                PayItem.code == data.code,
                PayItem.effective_from == data.effective_from,
            )
        )
        if result.scalar() is not None:
            raise ConflictError("code", data.code)

        item = PayItem(tenant_id=actor.tenant_id, **data.model_dump())
        db.add(item)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="pay_item",
            entity_id=item.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            new_values={"user_id": item.user_id, "kind": item.kind, "code": item.code, "amount": item.amount},
        )
        return item

    @staticmethod
    async def update_item(
        db: AsyncSession,
        actor: User,
        item_id: uuid.UUID,
        data: PayItemUpdate,
    ) -> PayItem:
        item = await PayrollService.get_item(db, actor.tenant_id, item_id)
        changes = data.model_dump(exclude_unset=True)
        end = changes.get("effective_to", item.effective_to)
        if end is not None and end < item.effective_from:
            raise ValidationException(
                {"effective_to": ["effective_to must not be before effective_from."]}
            )

        old_values = {field: getattr(item, field) for field in changes}
        for field, value in changes.items():
            setattr(item, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="pay_item",
            entity_id=item.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=changes,
        )
        return item

    @staticmethod
    async def delete_item(db: AsyncSession, actor: User, item_id: uuid.UUID) -> None:
        item = await PayrollService.get_item(db, actor.tenant_id, item_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="pay_item",
            entity_id=item.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"kind": item.kind, "code": item.code, "amount": item.amount},
        )
        await db.delete(item)
        await db.flush()

    # ─────────────────────────────────────────────────────────────────
    # Social-insurance grades
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_grades(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        fiscal_year: Optional[int] = None,
    ) -> list[SocialInsuranceGrade]:
        query = select(SocialInsuranceGrade).where(SocialInsuranceGrade.tenant_id == tenant_id)
        if fiscal_year is not None:
            query = query.where(SocialInsuranceGrade.fiscal_year == fiscal_year)
        result = await db.execute(
            query.order_by(SocialInsuranceGrade.fiscal_year.desc(), SocialInsuranceGrade.grade)
        )
        return list(result.scalars().all())

    @staticmethod
    async def replace_grades(
        db: AsyncSession,
        actor: User,
        fiscal_year: int,
        grades: list[GradeIn],
    ) -> list[SocialInsuranceGrade]:
        """Replace the whole grade table of *fiscal_year*."""
        numbers = [g.grade for g in grades]
        duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
        if duplicates:
            raise ValidationException(
                {"grades": [f"Grade {n} appears more than once." for n in duplicates]}
            )

        existing = await PayrollService.list_grades(db, actor.tenant_id, fiscal_year)
        for row in existing:
            await db.delete(row)
        await db.flush()

        rows = [
            SocialInsuranceGrade(tenant_id=actor.tenant_id, fiscal_year=fiscal_year, **g.model_dump())
            for g in sorted(grades, key=lambda g: g.grade)
        ]
        db.add_all(rows)
        await db.flush()

        await create_audit_entry(
            db,
            action="replace",
            entity_type="social_insurance_grades",
            entity_id=actor.tenant_id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"fiscal_year": fiscal_year, "count": len(existing)},
            new_values={"fiscal_year": fiscal_year, "count": len(rows)},
        )
        logger.info(
            "Social-insurance grades for %s replaced in tenant %s (%d rows)",
            fiscal_year, actor.tenant_id, len(rows),
        )
        return rows

    @staticmethod
    async def _grade_amounts(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        fiscal_year: int,
        grade: Optional[int],
    ) -> Optional[GradeAmounts]:
        if grade is None:
            return None
        result = await db.execute(
            select(SocialInsuranceGrade).where(
                SocialInsuranceGrade.tenant_id == tenant_id,
                SocialInsuranceGrade.fiscal_year == fiscal_year,
                SocialInsuranceGrade.grade == grade,
            )
        )
        row = result.scalars().first()
        if row is None:
            return None
        return GradeAmounts(
            health=row.health_insurance_employee,
            pension=row.pension_insurance_employee,
        )

    # ─────────────────────────────────────────────────────────────────
    # Pay runs
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _attendance_figures(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        pay_period: str,
        working_days: int,
        given: Optional[AttendanceInput],
    ) -> AttendanceFigures:
        if given is not None:
            return AttendanceFigures(
                working_days=given.working_days if given.working_days is not None else working_days,
                absence_days=given.absence_days,
                paid_leave_days=given.paid_leave_days,
                overtime_hours=given.overtime_hours,
                late_night_hours=given.late_night_hours,
                holiday_work_hours=given.holiday_work_hours,
            )
        year, month = _period_bounds(pay_period)
        summary = await AttendanceService.monthly_summary(db, tenant_id, user_id, year, month)
        return AttendanceFigures(
            working_days=working_days,
            absence_days=Decimal(summary.days_by_status.get(AttendanceStatus.absent.value, 0)),
            paid_leave_days=Decimal(summary.days_by_status.get(AttendanceStatus.leave.value, 0)),
            overtime_hours=Decimal(summary.total_overtime_minutes) / 60,
        )

    @staticmethod
    async def _items_by_user(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_ids: list[uuid.UUID],
        on: date,
    ) -> dict[tuple[uuid.UUID, PayItemKind], dict[str, int]]:
        result = await db.execute(
            select(PayItem).where(
                PayItem.tenant_id == tenant_id,
                PayItem.user_id.in_(user_ids),
                *_in_force(PayItem, on),
            )
        )
        items: dict[tuple[uuid.UUID, PayItemKind], dict[str, int]] = defaultdict(dict)
        for item in result.scalars().all():
            bucket = items[(item.user_id, item.kind)]
            bucket[item.code] = bucket.get(item.code, 0) + item.amount
        return items

    @staticmethod
    async def _target_users(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        user_ids: Optional[list[uuid.UUID]],
    ) -> list[uuid.UUID]:
        query = select(User.id).where(User.tenant_id == tenant_id)
        if user_ids:
            query = query.where(User.id.in_(user_ids))
        else:
            query = query.where(User.status == UserStatus.active)
        result = await db.execute(query.order_by(User.name))
        found = list(result.scalars().all())
        if user_ids:
            missing = set(user_ids) - set(found)
            if missing:
                raise NotFoundException("User", sorted(str(m) for m in missing)[0])
        return found

    @staticmethod
    async def calculate(
        db: AsyncSession,
        actor: User,
        data: PayrollRunRequest,
    ) -> PayrollRunResult:
        tenant_id = actor.tenant_id
        user_ids = await PayrollService._target_users(db, tenant_id, data.user_ids)
        if not user_ids:
            raise ValidationException({"user_ids": ["No employees to calculate."]})

        given = {a.user_id: a for a in data.attendance}
        items = await PayrollService._items_by_user(db, tenant_id, user_ids, data.payment_date)
        fiscal_year, _ = _period_bounds(data.pay_period)

        existing_rows = await db.execute(
            select(PaySlip).where(
                PaySlip.tenant_id == tenant_id,
                PaySlip.pay_period == data.pay_period,
                PaySlip.user_id.in_(user_ids),
            )
        )
        existing = {slip.user_id: slip for slip in existing_rows.scalars().all()}

        results: list[PayrollRunItem] = []
        for user_id in user_ids:
            setting = await PayrollService.setting_in_force(db, tenant_id, user_id, data.payment_date)
            if setting is None:
                results.append(
                    PayrollRunItem(user_id=user_id, success=False, error="No salary setting in force.")
                )
                continue
            slip = existing.get(user_id)
            if slip is not None and slip.status != PaySlipStatus.draft:
                results.append(
                    PayrollRunItem(
                        user_id=user_id,
                        success=False,
                        error=f"Pay slip is already {slip.status.value}.",
                    )
                )
                continue

            attendance = await PayrollService._attendance_figures(
                db, tenant_id, user_id, data.pay_period, data.working_days, given.get(user_id),
            )
            grade = await PayrollService._grade_amounts(
                db, tenant_id, fiscal_year, setting.social_insurance_grade,
            )
            pay = calculate_pay(
                SalaryTerms.from_setting(setting),
                attendance,
                allowances=items.get((user_id, PayItemKind.allowance)),
                deductions=items.get((user_id, PayItemKind.deduction)),
                grade=grade,
            )

            if slip is None:
                slip = PaySlip(tenant_id=tenant_id, user_id=user_id, pay_period=data.pay_period)
                db.add(slip)
            slip.payment_date = data.payment_date
            for column, value in pay.as_columns().items():
                setattr(slip, column, value)
            await db.flush()
            await db.refresh(slip)

            await create_audit_entry(
                db,
                action="calculate",
                entity_type="pay_slip",
                entity_id=slip.id,
                tenant_id=tenant_id,
                actor_id=actor.id,
                new_values={
                    "user_id": user_id,
                    "pay_period": data.pay_period,
                    "gross_pay": slip.gross_pay,
                    "net_pay": slip.net_pay,
                },
            )
            results.append(
                PayrollRunItem(user_id=user_id, success=True, pay_slip=PaySlipOut.model_validate(slip))
            )

        succeeded = sum(1 for r in results if r.success)
        logger.info(
            "Pay run %s for tenant %s: %d calculated, %d failed",
            data.pay_period, tenant_id, succeeded, len(results) - succeeded,
        )
        return PayrollRunResult(
            pay_period=data.pay_period,
            payment_date=data.payment_date,
            total=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=results,
        )

    # ─────────────────────────────────────────────────────────────────
    # Pay slips
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_slip(db: AsyncSession, tenant_id: uuid.UUID, slip_id: uuid.UUID) -> PaySlip:
        result = await db.execute(
            select(PaySlip).where(PaySlip.id == slip_id, PaySlip.tenant_id == tenant_id)
        )
        slip = result.scalars().first()
        if slip is None:
            raise NotFoundException("PaySlip", slip_id)
        return slip

    @staticmethod
    async def get_slip_for(db: AsyncSession, actor: User, slip_id: uuid.UUID) -> PaySlip:
        """Payroll managers see every slip; others their own issued ones (404 otherwise)."""
        slip = await PayrollService.get_slip(db, actor.tenant_id, slip_id)
        if can_manage_payroll(actor):
            return slip
        if slip.user_id != actor.id or slip.status not in VISIBLE_TO_EMPLOYEE:
            raise NotFoundException("PaySlip", slip_id)
        return slip

    @staticmethod
    async def list_slips(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        user_id: Optional[uuid.UUID] = None,
        pay_period: Optional[str] = None,
        status: Optional[PaySlipStatus] = None,
    ) -> PaginatedResponse:
        query = select(PaySlip).where(PaySlip.tenant_id == tenant_id)
        if user_id is not None:
            query = query.where(PaySlip.user_id == user_id)
        if pay_period is not None:
            query = query.where(PaySlip.pay_period == pay_period)
        if status is not None:
            query = query.where(PaySlip.status == status)
        return await paginate(
            db,
            query,
            pagination,
            model=PaySlip,
            default_sort="-pay_period",
            transform=PaySlipOut.model_validate,
        )

    @staticmethod
    async def list_my_slips(
        db: AsyncSession,
        actor: User,
        pagination: PaginationParams,
    ) -> PaginatedResponse:
        query = select(PaySlip).where(
            PaySlip.tenant_id == actor.tenant_id,
            PaySlip.user_id == actor.id,
            PaySlip.status.in_(VISIBLE_TO_EMPLOYEE),
        )
        return await paginate(
            db,
            query,
            pagination,
            model=PaySlip,
            default_sort="-pay_period",
            transform=PaySlipOut.model_validate,
        )

    @staticmethod
    async def period_summary(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        pay_period: str,
    ) -> PayrollPeriodSummary:
        result = await db.execute(
            select(PaySlip).where(PaySlip.tenant_id == tenant_id, PaySlip.pay_period == pay_period)
        )
        slips = result.scalars().all()
        by_status = {status.value: 0 for status in PaySlipStatus}
        for slip in slips:
            by_status[slip.status.value] += 1
        return PayrollPeriodSummary(
            pay_period=pay_period,
            slip_count=len(slips),
            total_gross_pay=sum(s.gross_pay for s in slips),
            total_deductions=sum(s.total_deductions for s in slips),
            total_net_pay=sum(s.net_pay for s in slips),
            by_status=by_status,
        )

    @staticmethod
    async def confirm_slip(db: AsyncSession, actor: User, slip_id: uuid.UUID) -> PaySlip:
        slip = await PayrollService.get_slip(db, actor.tenant_id, slip_id)
        if slip.status != PaySlipStatus.draft:
            raise InvalidTransitionException("PaySlip", slip.status.value, "confirm")
        slip.status = PaySlipStatus.confirmed
        slip.confirmed_at = utcnow()
        await db.flush()

        await create_audit_entry(
            db,
            action="confirm",
            entity_type="pay_slip",
            entity_id=slip.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"status": PaySlipStatus.draft},
            new_values={"status": slip.status},
        )
        await notify_pay_slip_issued(db, slip)
        return slip

    @staticmethod
    async def mark_paid(db: AsyncSession, actor: User, slip_id: uuid.UUID) -> PaySlip:
        slip = await PayrollService.get_slip(db, actor.tenant_id, slip_id)
        if slip.status != PaySlipStatus.confirmed:
            raise InvalidTransitionException("PaySlip", slip.status.value, "pay")
        slip.status = PaySlipStatus.paid
        slip.paid_at = utcnow()
        await db.flush()

        await create_audit_entry(
            db,
            action="pay",
            entity_type="pay_slip",
            entity_id=slip.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"status": PaySlipStatus.confirmed},
            new_values={"status": slip.status, "net_pay": slip.net_pay},
        )
        return slip

    @staticmethod
    async def delete_slip(db: AsyncSession, actor: User, slip_id: uuid.UUID) -> None:
        slip = await PayrollService.get_slip(db, actor.tenant_id, slip_id)
        if slip.status == PaySlipStatus.paid:
            raise InvalidTransitionException("PaySlip", slip.status.value, "delete")

        await create_audit_entry(
            db,
            action="delete",
            entity_type="pay_slip",
            entity_id=slip.id,
            tenant_id=actor.tenant_id,
            actor_id=actor.id,
            old_values={"user_id": slip.user_id, "pay_period": slip.pay_period, "status": slip.status},
        )
        await db.delete(slip)
        await db.flush()
