"""CSV import result schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RowError(BaseModel):
    row: int                # 0 = header, data rows start at 2
    column: str
    message: str
    value: str = ""


class ImportResult(BaseModel):
    dataset: str
    dry_run: bool = True
    applied: bool = False
    success: bool
    data: list[dict[str, Any]] = Field(default_factory=list)
    errors: list[RowError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    total_rows: int
    success_rows: int
    error_rows: int
