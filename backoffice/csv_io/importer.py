"""CSV import: validate every row, then (optionally) apply.

Flow for all data sets:

    parse_csv ─► header check ─► row limit ─► per-row validation
                    │                                 │
                    │                                 ▼
                    │                         cross-row checks ─► apply
                    │                                               ▲
                    └── missing columns: one error at row 0,        │
                        nothing is validated or applied             │
                                                    only when errors == []
                                                    and dry_run is False

Cross-row checks cover what needs the database or earlier rows: e-mails
owned by other tenants (users) and same-day duplicates, overlapping
requests and the running balance (leave_usage).

Applying runs inside the request session, so a failure while applying
rolls the whole import back.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.attendance.schemas import AttendanceUpsert
from backoffice.attendance.service import AttendanceService
from backoffice.common.constants import (
    AttendanceStatus,
    LeaveCategory,
    LeaveType,
    LeaveUsageType,
    UserRole,
    WorkLocation,
)
from backoffice.csv_io.parser import parse_csv
from backoffice.csv_io.schemas import ImportResult, RowError
from backoffice.csv_io.templates import get_layout
from backoffice.csv_io.validators import (
    parse_date,
    parse_email,
    parse_enum,
    parse_number,
    parse_time,
)
from backoffice.leave.service import LeaveService, category_for
from backoffice.tenants.models import OrgUnit
from backoffice.users.models import User
from backoffice.users.schemas import UserCreate, UserUpdate
from backoffice.users.service import UserService

logger = logging.getLogger(__name__)

HOURS_PER_DAY = Decimal(8)
HALF_DAY = Decimal("0.5")


def hourly_leave_days(hours: Decimal) -> Decimal:
    """Hours → days, rounded to the nearest half day (minimum 0.5)."""
    halves = (hours / HOURS_PER_DAY * 2).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return max(halves / 2, HALF_DAY)


@dataclass
class _RowContext:
    """Lookups shared by all rows of one import."""

    tenant_id: uuid.UUID
    users: dict[str, User]
    units: dict[str, OrgUnit]
    seen_emails: set[str] = field(default_factory=set)


class _RowErrors:
    def __init__(self, row: int) -> None:
        self.row = row
        self.items: list[RowError] = []

    def add(self, column: str, message: str, value: Any = "") -> None:
        self.items.append(
            RowError(row=self.row, column=column, message=message, value=str(value or ""))
        )

    def parse(self, column: str, raw: str, parser: Callable[[str], Any]) -> Any:
        """Run *parser* on a non-empty cell; empty cells and failures give None."""
        if not raw:
            return None
        try:
            return parser(raw)
        except ValueError as exc:
            self.add(column, str(exc), raw)
            return None

    def require(self, column: str, raw: str) -> bool:
        if raw:
            return True
        self.add(column, f"{column} is required.")
        return False

    def schema_errors(self, exc: ValidationError) -> None:
        for err in exc.errors():
            column = ".".join(str(p) for p in err["loc"]) or "row"
            self.add(column, err["msg"], err.get("input", ""))


def _user_for(ctx: _RowContext, errors: _RowErrors, raw: str) -> Optional[User]:
    if not errors.require("email", raw):
        return None
    email = errors.parse("email", raw, parse_email)
    if email is None:
        return None
    user = ctx.users.get(email)
    if user is None:
        errors.add("email", "No user with this e-mail address.", raw)
    return user


def _unit_for(ctx: _RowContext, errors: _RowErrors, raw: str) -> Optional[OrgUnit]:
    if not raw:
        return None
    unit = ctx.units.get(raw)
    if unit is None:
        errors.add("unit_name", "No organisation unit with this name.", raw)
    return unit


# ── Per data set validation ─────────────────────────────────────────
# Each returns the prepared operation for a valid row (None if invalid).


def _validate_user(row: dict[str, str], ctx: _RowContext, errors: _RowErrors) -> Optional[dict]:
    email = None
    if errors.require("email", row["email"]):
        email = errors.parse("email", row["email"], parse_email)
    if email is not None:
        if email in ctx.seen_emails:
            errors.add("email", "E-mail address appears more than once in the file.", row["email"])
        ctx.seen_emails.add(email)
    errors.require("name", row["name"])
    role = None
    if errors.require("role", row["role"]):
        role = errors.parse("role", row["role"], lambda v: parse_enum(v, UserRole))
    hire_date = errors.parse("hire_date", row.get("hire_date", ""), parse_date)
    unit = _unit_for(ctx, errors, row.get("unit_name", ""))
    if errors.items:
        return None

    fields: dict[str, Any] = {"email": email, "name": row["name"], "role": role}
    for column in ("phone", "employee_number", "position"):
        if row.get(column):
            fields[column] = row[column]
    if hire_date is not None:
        fields["hire_date"] = hire_date
    if unit is not None:
        fields["unit_id"] = unit.id

    existing = ctx.users.get(email)
    try:
        if existing is None:
            return {"user_id": None, "data": UserCreate(**fields)}
        return {"user_id": existing.id, "data": UserUpdate(**fields)}
    except ValidationError as exc:
        errors.schema_errors(exc)
        return None


def _validate_attendance(
    row: dict[str, str], ctx: _RowContext, errors: _RowErrors,
) -> Optional[dict]:
    user = _user_for(ctx, errors, row["email"])
    day = None
    if errors.require("date", row["date"]):
        day = errors.parse("date", row["date"], parse_date)
    fields: dict[str, Any] = {}
    for column in ("check_in", "check_out", "break_start", "break_end"):
        fields[column] = errors.parse(column, row.get(column, ""), parse_time)
    status = errors.parse("status", row.get("status", ""), lambda v: parse_enum(v, AttendanceStatus))
    location = errors.parse("location", row.get("location", ""), lambda v: parse_enum(v, WorkLocation))
    if status is not None:
        fields["status"] = status
    if location is not None:
        fields["location"] = location
    if row.get("notes"):
        fields["notes"] = row["notes"]
    if (
        fields["check_in"] is not None
        and fields["check_out"] is not None
        and fields["check_out"] < fields["check_in"]
    ):
        errors.add("check_out", "check_out must not be before check_in.", row["check_out"])
    if fields["break_end"] is not None and fields["break_start"] is None:
        errors.add("break_end", "break_end requires break_start.", row["break_end"])
    if errors.items:
        return None
    try:
        data = AttendanceUpsert(**fields)
    except ValidationError as exc:
        errors.schema_errors(exc)
        return None
    return {"user_id": user.id, "day": day, "data": data}


def _validate_leave_usage(
    row: dict[str, str], ctx: _RowContext, errors: _RowErrors,
) -> Optional[dict]:
    user = _user_for(ctx, errors, row["email"])
    day = None
    if errors.require("date", row["date"]):
        day = errors.parse("date", row["date"], parse_date)
    if day is not None and day.weekday() >= 5:
        errors.add("date", "Leave can only be taken on a weekday (Mon-Fri).", row["date"])
    usage = None
    if errors.require("usage_type", row["usage_type"]):
        usage = errors.parse(
            "usage_type", row["usage_type"], lambda v: parse_enum(v, LeaveUsageType)
        )

    leave_type, days = LeaveType.paid, Decimal(1)
    if usage == LeaveUsageType.am:
        leave_type, days = LeaveType.half_day_am, HALF_DAY
    elif usage == LeaveUsageType.pm:
        leave_type, days = LeaveType.half_day_pm, HALF_DAY
    elif usage == LeaveUsageType.hourly and errors.require("hours", row.get("hours", "")):
        hours = errors.parse(
            "hours",
            row["hours"],
            lambda v: parse_number(v, minimum=Decimal(1), maximum=HOURS_PER_DAY),
        )
        if hours is not None:
            days = hourly_leave_days(hours)
    if errors.items:
        return None
    return {
        "user_id": user.id,
        "day": day,
        "leave_type": leave_type,
        "days": days,
        "reason": row.get("reason") or None,
    }


def _validate_leave_grant(
    row: dict[str, str], ctx: _RowContext, errors: _RowErrors,
) -> Optional[dict]:
    user = _user_for(ctx, errors, row["email"])
    grant_date = None
    if errors.require("grant_date", row["grant_date"]):
        grant_date = errors.parse("grant_date", row["grant_date"], parse_date)
    days = None
    if errors.require("grant_days", row["grant_days"]):
        days = errors.parse(
            "grant_days",
            row["grant_days"],
            lambda v: parse_number(v, minimum=Decimal(0), exclusive_minimum=True),
        )
    category = errors.parse(
        "category", row.get("category", ""), lambda v: parse_enum(v, LeaveCategory)
    )
    if errors.items:
        return None
    return {
        "user_id": user.id,
        "year": grant_date.year,
        "category": category or LeaveCategory.paid,
        "days": days,
    }


def _validate_transfer(
    row: dict[str, str], ctx: _RowContext, errors: _RowErrors,
) -> Optional[dict]:
    user = _user_for(ctx, errors, row["email"])
    effective_date = None
    if errors.require("effective_date", row["effective_date"]):
        effective_date = errors.parse("effective_date", row["effective_date"], parse_date)
    unit = None
    if errors.require("unit_name", row["unit_name"]):
        unit = _unit_for(ctx, errors, row["unit_name"])
    role = errors.parse("role", row.get("role", ""), lambda v: parse_enum(v, UserRole))
    if errors.items:
        return None

    changes: dict[str, Any] = {"unit_id": unit.id}
    if row.get("position"):
        changes["position"] = row["position"]
    if role is not None:
        changes["role"] = role
    return {"user_id": user.id, "effective_date": effective_date, "data": UserUpdate(**changes)}


_VALIDATORS = {
    "users": _validate_user,
    "attendance": _validate_attendance,
    "leave_usage": _validate_leave_usage,
    "leave_grant": _validate_leave_grant,
    "transfers": _validate_transfer,
}


class CsvImportService:
    """Validate and apply CSV imports for one tenant."""

    @staticmethod
    async def _context(db: AsyncSession, tenant_id: uuid.UUID) -> _RowContext:
        users = (await db.execute(select(User).where(User.tenant_id == tenant_id))).scalars().all()
        units = (
            await db.execute(
                select(OrgUnit)
                .where(OrgUnit.tenant_id == tenant_id)
                .order_by(OrgUnit.level)
            )
        ).scalars().all()
        return _RowContext(
            tenant_id=tenant_id,
            users={u.email: u for u in users},
            # deepest unit wins when names repeat across levels
            units={u.name: u for u in units},
        )

    @staticmethod
    async def _foreign_emails(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        emails: list[str],
    ) -> set[str]:
        """E-mails among *emails* already taken by users of other tenants."""
        if not emails:
            return set()
        result = await db.execute(
            select(User.email).where(User.email.in_(emails), User.tenant_id != tenant_id)
        )
        return set(result.scalars().all())

    @staticmethod
    async def _check_leave_usage(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        operations: list[dict],
    ) -> dict[int, list[RowError]]:
        """Reject rows that booking would refuse, in file order.

        A row fails when the same user already has a row for that date
        earlier in the file, when the date overlaps a pending or approved
        request, or when the running total for (user, year, category)
        exceeds the available days (remaining minus pending).
        """
        rejected: dict[int, list[RowError]] = {}
        booked: set[tuple[uuid.UUID, date]] = set()
        available: dict[tuple[uuid.UUID, int, LeaveCategory], Decimal] = {}
        for op in operations:
            errors = _RowErrors(op["row"])
            day = op["day"]
            if (op["user_id"], day) in booked:
                errors.add("date", "Another row books leave for this user on the same date.", day)
            elif await LeaveService.has_overlap(db, op["user_id"], day, day):
                errors.add("date", "The date overlaps a pending or approved leave request.", day)
            else:
                booked.add((op["user_id"], day))
                category = category_for(op["leave_type"])
                key = (op["user_id"], day.year, category)
                if key not in available:
                    available[key] = await LeaveService.available_days(
                        db, tenant_id, op["user_id"], day.year, category,
                    )
                if available[key] < op["days"]:
                    errors.add(
                        "usage_type",
                        f"Insufficient {category.value} leave balance: "
                        f"{available[key]} day(s) available, {op['days']} requested.",
                    )
                else:
                    available[key] -= op["days"]
            if errors.items:
                rejected[op["row"]] = errors.items
        return rejected

    @staticmethod
    async def validate(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        dataset: str,
        text: str,
    ) -> tuple[ImportResult, list[dict]]:
        """Parse and validate *text*; return the result and the prepared
        operations of the valid rows."""
        layout = get_layout(dataset)
        headers, rows = parse_csv(text)

        missing = [h for h in layout.required if h not in headers]
        if missing:
            return ImportResult(
                dataset=dataset,
                success=False,
                errors=[
                    RowError(
                        row=0,
                        column="header",
                        message=f"Missing required column(s): {', '.join(missing)}",
                    )
                ],
                total_rows=len(rows),
                success_rows=0,
                error_rows=len(rows),
            ), []

        warnings: list[str] = []
        if len(rows) > layout.max_rows:
            warnings.append(
                f"{len(rows) - layout.max_rows} row(s) beyond the limit of "
                f"{layout.max_rows} were ignored."
            )
            rows = rows[: layout.max_rows]

        ctx = await CsvImportService._context(db, tenant_id)
        validator = _VALIDATORS[dataset]
        all_errors: list[RowError] = []
        data: list[dict[str, Any]] = []
        operations: list[dict] = []
        error_rows = 0
        for i, row in enumerate(rows):
            errors = _RowErrors(i + 2)
            operation = validator(row, ctx, errors)
            if errors.items:
                error_rows += 1
                all_errors.extend(errors.items)
                continue
            operation["row"] = errors.row
            operations.append(operation)
            data.append({"row": errors.row, **row})

        # checks that need the database or other rows of the file
        rejected: dict[int, list[RowError]] = {}
        if dataset == "users":
            new_emails = [op["data"].email for op in operations if op["user_id"] is None]
            taken = await CsvImportService._foreign_emails(db, tenant_id, new_emails)
            for op in operations:
                if op["user_id"] is None and op["data"].email in taken:
                    errors = _RowErrors(op["row"])
                    errors.add("email", "E-mail address is already in use.", op["data"].email)
                    rejected[op["row"]] = errors.items
        elif dataset == "leave_usage":
            rejected = await CsvImportService._check_leave_usage(db, tenant_id, operations)
        if rejected:
            error_rows += len(rejected)
            for items in rejected.values():
                all_errors.extend(items)
            operations = [op for op in operations if op["row"] not in rejected]
            data = [d for d in data if d["row"] not in rejected]

        all_errors.sort(key=lambda e: e.row)
        result = ImportResult(
            dataset=dataset,
            success=not all_errors,
            data=data,
            errors=all_errors,
            warnings=warnings,
            total_rows=len(rows),
            success_rows=len(rows) - error_rows,
            error_rows=error_rows,
        )
        return result, operations

    @staticmethod
    async def _apply(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        dataset: str,
        operations: list[dict],
        actor_id: Optional[uuid.UUID],
    ) -> None:
        for op in operations:
            if dataset == "users":
                if op["user_id"] is None:
                    await UserService.create_user(db, tenant_id, op["data"], actor_id=actor_id)
                else:
                    await UserService.update_user(
                        db, tenant_id, op["user_id"], op["data"], actor_id=actor_id
                    )
            elif dataset == "attendance":
                await AttendanceService.upsert_record(
                    db, tenant_id, op["user_id"], op["day"], op["data"], actor_id=actor_id
                )
            elif dataset == "leave_usage":
                await LeaveService.record_taken_leave(
                    db,
                    tenant_id,
                    op["user_id"],
                    op["leave_type"],
                    op["day"],
                    op["days"],
                    reason=op["reason"],
                    actor_id=actor_id,
                )
            elif dataset == "leave_grant":
                await LeaveService.grant_days(
                    db,
                    tenant_id,
                    op["user_id"],
                    op["year"],
                    op["category"],
                    op["days"],
                    actor_id=actor_id,
                )
            elif dataset == "transfers":
                # effective_date is informational; the move applies now
                await UserService.update_user(
                    db, tenant_id, op["user_id"], op["data"], actor_id=actor_id
                )

    @staticmethod
    async def run_import(
        db: AsyncSession,
        tenant_id: uuid.UUID,
        dataset: str,
        text: str,
        *,
        dry_run: bool = True,
        actor_id: Optional[uuid.UUID] = None,
    ) -> ImportResult:
        result, operations = await CsvImportService.validate(db, tenant_id, dataset, text)
        result.dry_run = dry_run
        if result.success and not dry_run:
            await CsvImportService._apply(db, tenant_id, dataset, operations, actor_id)
            result.applied = True
        logger.info(
            "CSV import %s for tenant %s: %d row(s), %d error(s), dry_run=%s, applied=%s",
            dataset, tenant_id, result.total_rows, len(result.errors), dry_run, result.applied,
        )
        return result
