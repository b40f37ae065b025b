from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..csvio.headers import (
    CONTENT_SUFFIX,
    DATE_FIELD,
    PERIOD_COUNT_SUFFIX,
    PERIOD_FIELD,
    TEACHER_SUFFIX,
    WEEKDAY_FIELD,
    class_field,
)

"""ScheduleRow domain model.

One row per (date, period). The per-class data is a fixed grid of
3 academic years x 3 class sections (A, B, N) instead of free-form
``"2年Bクラスコマ数"`` style keys; the flat column names only appear at the
storage boundary (``from_record`` / ``to_record``).

コマ数 (period_count) は自由記述: 数値, "試験", "模試", "実習N" (N コマの実習)。
"""

__all__ = [
    "YEARS",
    "CLASS_NAMES",
    "CANONICAL_COLUMNS",
    "ClassSlot",
    "ScheduleRow",
]

YEARS: tuple[int, ...] = (1, 2, 3)
CLASS_NAMES: tuple[str, ...] = ("A", "B", "N")

EXAM_MARK = "試験"
MOCK_EXAM_MARK = "模試"
_PRACTICUM = re.compile(r"実習(\d+)")


def _grid_columns() -> list[str]:
    columns: list[str] = []
    for year in YEARS:
        for class_name in CLASS_NAMES:
            columns.append(class_field(year, class_name, CONTENT_SUFFIX))
            columns.append(class_field(year, class_name, TEACHER_SUFFIX))
            columns.append(class_field(year, class_name, PERIOD_COUNT_SUFFIX))
    return columns


CANONICAL_COLUMNS: tuple[str, ...] = (DATE_FIELD, WEEKDAY_FIELD, PERIOD_FIELD, *_grid_columns())


@dataclass(frozen=True)
class ClassSlot:
    """Lesson data of one class section for one (date, period)."""
    content: str | None = None  # 授業内容
    teacher: str | None = None  # 担当講師名
    period_count: str | None = None  # コマ数

    @property
    def is_empty(self) -> bool:
        return not self.content and not self.period_count

    @property
    def is_exam(self) -> bool:
        return EXAM_MARK in (self.period_count or "")

    @property
    def is_mock_exam(self) -> bool:
        return MOCK_EXAM_MARK in (self.period_count or "")

    @property
    def practicum_periods(self) -> int | None:
        """N for a "実習N" period count, otherwise None."""
        if not self.period_count:
            return None
        m = _PRACTICUM.fullmatch(self.period_count)
        return int(m.group(1)) if m else None


@dataclass(frozen=True)
class ScheduleRow:
    date: str  # YYYY-MM-DD
    period: str  # 時限
    weekday: str | None = None  # 曜日 (日付との整合性は検証しない)
    classes: dict[tuple[int, str], ClassSlot] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)  # 正規列以外 (時間, 模擬試験, id ...)

    def slot(self, year: int, class_name: str) -> ClassSlot:
        if year not in YEARS or class_name not in CLASS_NAMES:
            raise ValueError(f"unknown class {year}年{class_name}")
        return self.classes.get((year, class_name), ClassSlot())

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> ScheduleRow:
        """Build from a flat mapping keyed by canonical column names."""
        classes: dict[tuple[int, str], ClassSlot] = {}
        for year in YEARS:
            for class_name in CLASS_NAMES:
                classes[(year, class_name)] = ClassSlot(
                    content=record.get(class_field(year, class_name, CONTENT_SUFFIX)),
                    teacher=record.get(class_field(year, class_name, TEACHER_SUFFIX)),
                    period_count=record.get(class_field(year, class_name, PERIOD_COUNT_SUFFIX)),
                )
        extras = {k: v for k, v in record.items() if k not in CANONICAL_COLUMNS}
        date = record.get(DATE_FIELD)
        period = record.get(PERIOD_FIELD)
        return cls(
            date=str(date) if date is not None else "",
            period=str(period) if period is not None else "",
            weekday=record.get(WEEKDAY_FIELD),
            classes=classes,
            extras=extras,
        )

    def to_record(self, include_extras: bool = True) -> dict[str, Any]:
        """Flatten back to canonical column names (grid cells always present)."""
        record: dict[str, Any] = {
            DATE_FIELD: self.date,
            WEEKDAY_FIELD: self.weekday,
            PERIOD_FIELD: self.period,
        }
        for year in YEARS:
            for class_name in CLASS_NAMES:
                s = self.slot(year, class_name)
                record[class_field(year, class_name, CONTENT_SUFFIX)] = s.content
                record[class_field(year, class_name, TEACHER_SUFFIX)] = s.teacher
                record[class_field(year, class_name, PERIOD_COUNT_SUFFIX)] = s.period_count
        if include_extras:
            for k, v in self.extras.items():
                record.setdefault(k, v)
        return record
