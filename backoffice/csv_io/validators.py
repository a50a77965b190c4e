"""Field validators for CSV import rows.

Each ``parse_*`` returns the converted value or raises ``ValueError``
with a user-facing message; the importer turns that into a row error.
"""

from __future__ import annotations

import enum
import re
from datetime import date, time
from decimal import Decimal, InvalidOperation
from typing import Optional, TypeVar

from backoffice.users.schemas import EMAIL_PATTERN

E = TypeVar("E", bound=enum.Enum)

DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value or ""))


def parse_email(value: str) -> str:
    if not is_valid_email(value):
        raise ValueError("Invalid e-mail address.")
    return value.strip().lower()


def parse_date(value: str) -> date:
    """``YYYY-MM-DD`` naming a real calendar day."""
    match = DATE_PATTERN.match(value or "")
    if match is None:
        raise ValueError("Date must be YYYY-MM-DD.")
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        raise ValueError("Date does not exist.") from None


def parse_time(value: str) -> time:
    """``H:MM`` or ``HH:MM`` between 00:00 and 23:59."""
    match = TIME_PATTERN.match(value or "")
    if match is None:
        raise ValueError("Time must be HH:MM (00:00-23:59).")
    return time(int(match.group(1)), int(match.group(2)))


def parse_number(
    value: str,
    *,
    minimum: Optional[Decimal] = None,
    maximum: Optional[Decimal] = None,
    exclusive_minimum: bool = False,
) -> Decimal:
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError("Must be a number.") from None
    if not number.is_finite():
        raise ValueError("Must be a number.")
    if minimum is not None:
        if exclusive_minimum and number <= minimum:
            raise ValueError(f"Must be greater than {minimum}.")
        if not exclusive_minimum and number < minimum:
            raise ValueError(f"Must be at least {minimum}.")
    if maximum is not None and number > maximum:
        raise ValueError(f"Must be at most {maximum}.")
    return number


def parse_enum(value: str, enum_cls: type[E]) -> E:
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"Must be one of: {allowed}.") from None
