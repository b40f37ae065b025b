from __future__ import annotations

import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from ..models.row_data import RowData
from .encoding import DEFAULT_ENCODINGS, detect_encoding
from .headers import normalize_header
from .values import sanitize_value

"""CSV/TSV reader for schedule uploads.

Flow: bytes -> detect_encoding -> delimiter guess -> pandas.read_csv (全セル文字列)
-> ヘッダ正規化 (列単位) -> 値サニタイズ (セル単位, 日付列は正規化)。

行番号は 1 = ヘッダ, 2 = 最初のデータ行 (空行は数えない)。
"""

__all__ = [
    "CsvParseError",
    "EmptyCsvError",
    "CsvData",
    "CsvAnalysis",
    "detect_delimiter",
    "read_schedule_csv",
    "analyze_csv",
]

logger = logging.getLogger(__name__)

FIRST_DATA_LINE = 2
SAMPLE_ROWS = 3


class CsvParseError(Exception):
    """Raised when the decoded text cannot be tokenized as CSV/TSV."""


class EmptyCsvError(CsvParseError):
    """Raised when the file holds no data rows."""


@dataclass
class CsvData:
    encoding: str
    delimiter: str
    raw_headers: list[str]
    columns: list[str]  # 正規化済 (raw_headers と同順)
    rows: list[RowData]


@dataclass(frozen=True)
class CsvAnalysis:
    encoding: str
    delimiter: str
    raw_headers: list[str]
    columns: list[str]
    row_count: int
    sample_rows: list[dict[str, Any]]


def detect_delimiter(text: str) -> str:
    """Tab only when the first line has tabs and no commas."""
    first_line = text.split("\n", 1)[0]
    if "\t" in first_line and "," not in first_line:
        return "\t"
    return ","


def _tokenize(text: str, delimiter: str) -> pd.DataFrame:
    try:
        return pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            # 行末の余分な区切り文字で先頭列が index にならないように
            index_col=False,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as e:
        raise EmptyCsvError("file contains no data") from e
    except pd.errors.ParserError as e:
        raise CsvParseError(f"parse error: {e}") from e


def read_schedule_csv(data: bytes, encodings: Sequence[str] = DEFAULT_ENCODINGS) -> CsvData:
    """Decode, tokenize and normalize one uploaded schedule file.

    Raises:
        DecodeError: no candidate encoding could decode ``data``
        EmptyCsvError: no data rows after normalization
        CsvParseError: the text is not valid CSV/TSV
    """
    decoded = detect_encoding(data, encodings)
    delimiter = detect_delimiter(decoded.text)
    df = _tokenize(decoded.text, delimiter)

    raw_headers = [str(c) for c in df.columns]
    columns = [normalize_header(h) for h in raw_headers]
    logger.debug(
        "csv encoding=%s delimiter=%r headers=%s normalized=%s",
        decoded.encoding,
        delimiter,
        raw_headers,
        columns,
    )

    rows: list[RowData] = []
    for index, raw in enumerate(df.itertuples(index=False, name=None)):
        values: dict[str, Any] = {}
        raw_values: dict[str, Any] = {}
        for raw_header, col, cell in zip(raw_headers, columns, raw, strict=False):
            raw_values[raw_header] = cell
            value = sanitize_value(cell, col)
            # 同じ正規名に複数列が対応する場合は最初の非空値を採用
            if values.get(col) is None:
                values[col] = value
        if all(v is None for v in values.values()):
            continue
        rows.append(RowData(row_number=index + FIRST_DATA_LINE, values=values, raw_values=raw_values))

    if not rows:
        raise EmptyCsvError("file contains no data rows")

    return CsvData(
        encoding=decoded.encoding,
        delimiter=delimiter,
        raw_headers=raw_headers,
        columns=columns,
        rows=rows,
    )


def analyze_csv(data: bytes, encodings: Sequence[str] = DEFAULT_ENCODINGS) -> CsvAnalysis:
    """Headers, row count and the first few normalized rows of a file."""
    csv_data = read_schedule_csv(data, encodings)
    return CsvAnalysis(
        encoding=csv_data.encoding,
        delimiter=csv_data.delimiter,
        raw_headers=csv_data.raw_headers,
        columns=csv_data.columns,
        row_count=len(csv_data.rows),
        sample_rows=[dict(r.values) for r in csv_data.rows[:SAMPLE_ROWS]],
    )
