"""CSV text <-> rows.

Exports are UTF-8 with a BOM so spreadsheet tools detect the encoding.
"""

from __future__ import annotations

import csv
import io
from enum import Enum
from typing import Any, Iterable, Sequence

BOM = "\ufeff"


def escape_field(value: Any) -> str:
    """Quote a value when it holds a comma, quote or newline."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    text = value if isinstance(value, str) else str(value)
    if any(ch in text for ch in (",", '"', "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    lines = [",".join(escape_field(h) for h in headers)]
    lines.extend(",".join(escape_field(v) for v in row) for row in rows)
    return BOM + "\n".join(lines)


def parse_csv(text: str) -> tuple[list[str], list[dict[str, str]]]:
    """Return ``(headers, rows)``; every field is trimmed and blank lines
    are skipped. The first non-blank line is the header row."""
    text = text.removeprefix(BOM)
    reader = csv.reader(io.StringIO(text, newline=""))
    records = [
        [field.strip() for field in record]
        for record in reader
        if any(field.strip() for field in record)
    ]
    if not records:
        return [], []

    headers = records[0]
    rows = [
        {header: (record[i] if i < len(record) else "") for i, header in enumerate(headers)}
        for record in records[1:]
    ]
    return headers, rows
