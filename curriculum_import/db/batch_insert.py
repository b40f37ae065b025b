from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT over psycopg2.extras.execute_values.

Table and column names are quoted identifiers (the schedule table uses
Japanese names such as "スケジュール" / "1年Aクラスの授業内容").
Transaction control (COMMIT / ROLLBACK) is the caller's responsibility.
"""

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "InsertResult",
    "quote_ident",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing of a single batch insert."""
    batch_size: int
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Insert ``rows`` into ``table`` with a single execute_values call.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: 対象テーブル名 (未クォート)
    columns: 挿入列 (テーブルに存在する列のみ)
    rows: 行シーケンス (columns と同順)
    page_size: execute_values の page_size
    metrics_callback: BatchMetrics を受け取るコールバック (空 rows の場合は呼ばれない)
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0)
    if not columns:
        raise BatchInsertError(f"no insertable columns for table {table}")

    cols_sql = ",".join(quote_ident(c) for c in columns)
    sql = f"INSERT INTO {quote_ident(table)} ({cols_sql}) VALUES %s"

    start_time = time.time()
    try:
        execute_values(cursor, sql, rows_list, page_size=page_size)
    except Exception as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    return InsertResult(inserted_rows=len(rows_list))
