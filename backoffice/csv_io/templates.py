"""Column layouts of the importable data sets."""

from __future__ import annotations

from dataclasses import dataclass

from backoffice.common.exceptions import NotFoundException


@dataclass(frozen=True)
class ImportLayout:
    required: tuple[str, ...]
    optional: tuple[str, ...]
    max_rows: int

    @property
    def headers(self) -> tuple[str, ...]:
        return self.required + self.optional


IMPORT_LAYOUTS: dict[str, ImportLayout] = {
    "users": ImportLayout(
        required=("email", "name", "role"),
        optional=("phone", "employee_number", "position", "hire_date", "unit_name"),
        max_rows=3000,
    ),
    "attendance": ImportLayout(
        required=("email", "date"),
        optional=(
            "check_in", "check_out", "break_start", "break_end",
            "status", "location", "notes",
        ),
        max_rows=50000,
    ),
    "leave_usage": ImportLayout(
        required=("email", "date", "usage_type"),
        optional=("hours", "reason"),
        max_rows=1200,
    ),
    "leave_grant": ImportLayout(
        required=("email", "grant_date", "grant_days"),
        optional=("category", "notes"),
        max_rows=1000,
    ),
    "transfers": ImportLayout(
        required=("email", "effective_date", "unit_name"),
        optional=("position", "role"),
        max_rows=3000,
    ),
}


def get_layout(dataset: str) -> ImportLayout:
    layout = IMPORT_LAYOUTS.get(dataset)
    if layout is None:
        raise NotFoundException("CSV data set", dataset)
    return layout


def template_csv(dataset: str) -> str:
    """Header line plus newline, ready to fill in."""
    return ",".join(get_layout(dataset).headers) + "\n"
