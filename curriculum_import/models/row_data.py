from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""RowData model for schedule CSV ingestion.

RowData is one CSV data row after header normalization and value sanitizing,
before it is turned into a structured ScheduleRow.
"""

__all__ = [
    "RowData",
]


@dataclass(frozen=True)
class RowData:
    """Logical representation of a single CSV row after normalization.

    row_number counts the header as line 1, so the first data row is 2.
    """
    row_number: int  # 2 = 最初のデータ行
    values: dict[str, Any]  # 正規化済み列名 -> サニタイズ済み値
    raw_values: dict[str, Any] | None = None  # 元ヘッダ -> 元の値 (診断用)
