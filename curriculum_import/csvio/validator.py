from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ..models.row_data import RowData
from .headers import DATE_FIELD, PERIOD_FIELD, TIME_FIELD, WEEKDAY_FIELD

"""Required-field validation for normalized schedule rows.

A required field is missing when its key is absent or its value is None.
旧形式ファイルの「時間」列は、時限が欠けている行に限り時限へコピーする (行単位)。
"""

__all__ = [
    "REQUIRED_FIELDS",
    "MissingFieldError",
    "apply_time_fallback",
    "validate_row",
    "validate_rows",
]

REQUIRED_FIELDS: tuple[str, ...] = (DATE_FIELD, PERIOD_FIELD, WEEKDAY_FIELD)


class MissingFieldError(Exception):
    """Raised when required fields are absent after normalization and fallback."""

    def __init__(self, missing_fields: list[str], row_number: int | None = None) -> None:
        self.missing_fields = missing_fields
        self.row_number = row_number
        where = f" (row {row_number})" if row_number is not None else ""
        super().__init__(f"missing required fields{where}: {', '.join(missing_fields)}")


def _missing(record: Mapping[str, Any], fields: Iterable[str]) -> list[str]:
    return [f for f in fields if record.get(f) is None]


def apply_time_fallback(record: Mapping[str, Any]) -> dict[str, Any]:
    """Copy 時間 into 時限 when 時限 is missing."""
    result = dict(record)
    if result.get(PERIOD_FIELD) is None and result.get(TIME_FIELD) is not None:
        result[PERIOD_FIELD] = result[TIME_FIELD]
    return result


def validate_row(
    record: Mapping[str, Any],
    row_number: int | None = None,
    required_fields: Iterable[str] = REQUIRED_FIELDS,
) -> dict[str, Any]:
    """Return a validated copy of ``record`` or raise MissingFieldError."""
    result = apply_time_fallback(record)
    missing = _missing(result, required_fields)
    if missing:
        raise MissingFieldError(missing, row_number)
    return result


def validate_rows(rows: Iterable[RowData]) -> list[RowData]:
    """Validate every row; the first failing row aborts with its row number."""
    validated: list[RowData] = []
    for row in rows:
        values = validate_row(row.values, row.row_number)
        validated.append(RowData(row_number=row.row_number, values=values, raw_values=row.raw_values))
    return validated
