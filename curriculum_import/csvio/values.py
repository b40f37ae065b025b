from __future__ import annotations

import re
from typing import Any

import pandas as pd

from .headers import DATE_FIELD

"""Cell value sanitizing and date canonicalization.

- 空文字 / NaN -> None
- 前後空白除去
- 置換文字 (U+FFFD) や制御文字を含む値は復元不能として None
- 日付列は YYYY-MM-DD へ正規化 (取り込み段階で1回だけ実施)
"""

__all__ = [
    "CORRUPTION_PATTERN",
    "count_corruption",
    "is_corrupted",
    "canonicalize_date",
    "sanitize_value",
]

# U+FFFD と U+0000-0008, U+000B-000C, U+000E-001F (TAB/LF/CR は除外)
CORRUPTION_PATTERN = re.compile("[\ufffd\x00-\x08\x0b-\x0c\x0e-\x1f]")

_EIGHT_DIGITS = re.compile(r"\d{8}")
_KANJI_DELIMITERS = re.compile("[年月日]")


def count_corruption(text: str) -> int:
    return len(CORRUPTION_PATTERN.findall(text))


def is_corrupted(text: str) -> bool:
    return CORRUPTION_PATTERN.search(text) is not None


def canonicalize_date(value: str) -> str:
    """Convert a date string to ``YYYY-MM-DD``.

    Accepted shapes: ``Y-M-D`` / ``YY-M-D``, ``Y/M/D``, ``<Y>年<M>月<D>日`` and
    ``YYYYMMDD``. Anything else is returned unchanged. Two-digit years are
    always placed in the 2000s. Canonical input comes back as-is.
    """
    if _EIGHT_DIGITS.fullmatch(value):
        return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"

    if "-" in value:
        parts = value.split("-")
    elif "/" in value:
        parts = value.split("/")
    elif _KANJI_DELIMITERS.search(value):
        parts = _KANJI_DELIMITERS.split(value)
    else:
        return value

    # 末尾の「日」で空要素が出るため除去
    parts = [p for p in parts if p != ""]
    if len(parts) != 3:
        return value

    year, month, day = parts
    if len(year) <= 2:
        year = "20" + year.zfill(2)
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def sanitize_value(value: Any, field: str) -> str | None:
    """Sanitize one raw cell for the (already normalized) column ``field``."""
    if value is None:
        return None
    if not isinstance(value, str):
        if pd.isna(value):
            return None
        value = str(value)
    if value == "":
        return None

    trimmed = value.strip()
    if trimmed == "" or is_corrupted(trimmed):
        return None

    if field == DATE_FIELD:
        return canonicalize_date(trimmed)
    return trimmed
