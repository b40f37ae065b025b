from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from ..csvio.headers import DATE_FIELD, PERIOD_FIELD
from .batch_insert import BatchInsertError, BatchMetrics, batch_insert, quote_ident

"""PostgreSQL access for the schedule table.

Each mutating call is its own transaction: delete_range commits before any
insert, and every insert_chunk commits (or rolls back) on its own. A failed
chunk therefore never undoes the delete or earlier chunks.
"""

__all__ = [
    "DEFAULT_TABLE",
    "DeleteRangeError",
    "ChunkInsertError",
    "FetchError",
    "ScheduleStore",
]

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "スケジュール"


class DeleteRangeError(Exception):
    """Raised when the pre-insert range delete fails."""


class ChunkInsertError(Exception):
    """Raised when one insert chunk fails (recovered by the caller)."""


class FetchError(Exception):
    """Raised when reading the schedule table fails."""


def _date_text(value: Any) -> Any:
    # DATE 型の列は datetime.date で返る
    if value is not None and hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class ScheduleStore:
    """Thin wrapper around a psycopg2 connection for one schedule table."""

    def __init__(self, connection: Any, table: str = DEFAULT_TABLE, page_size: int = 1000) -> None:
        self._conn = connection
        self.table = table
        self.page_size = page_size
        self._columns: list[str] | None = None

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except Exception:  # pragma: no cover
            logger.debug("rollback failed", exc_info=True)

    def table_columns(self) -> list[str]:
        """Column names declared by the table (cached after the first call)."""
        if self._columns is None:
            try:
                with self._conn.cursor() as cur:
                    cur.execute(
                        "SELECT column_name FROM information_schema.columns"
                        " WHERE table_name = %s AND table_schema = current_schema()"
                        " ORDER BY ordinal_position",
                        (self.table,),
                    )
                    self._columns = [r[0] for r in cur.fetchall()]
            except Exception as e:
                self._rollback()
                raise FetchError(f"table structure check failed: {e}") from e
            if not self._columns:
                raise FetchError(f"table not found or has no columns: {self.table}")
            logger.debug("table=%s columns=%d", self.table, len(self._columns))
        return self._columns

    def delete_range(self, min_date: str, max_date: str) -> int:
        """Delete rows whose date lies in the inclusive range; returns the count."""
        sql = (
            f"DELETE FROM {quote_ident(self.table)}"
            f" WHERE {quote_ident(DATE_FIELD)} >= %s AND {quote_ident(DATE_FIELD)} <= %s"
        )
        try:
            with self._conn.cursor() as cur:
                cur.execute(sql, (min_date, max_date))
                deleted = cur.rowcount
            self._conn.commit()
        except Exception as e:
            self._rollback()
            raise DeleteRangeError(f"failed to delete existing rows {min_date}..{max_date}: {e}") from e
        logger.info("deleted %d existing rows in %s..%s", deleted, min_date, max_date)
        return deleted

    def insert_chunk(
        self,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> int:
        """Insert one chunk and commit it; returns the inserted row count."""
        try:
            with self._conn.cursor() as cur:
                result = batch_insert(
                    cur,
                    table=self.table,
                    columns=columns,
                    rows=rows,
                    page_size=self.page_size,
                    metrics_callback=metrics_callback,
                )
            self._conn.commit()
        except BatchInsertError as e:
            self._rollback()
            raise ChunkInsertError(str(e)) from e
        except Exception as e:
            self._rollback()
            raise ChunkInsertError(f"commit failed: {e}") from e
        return result.inserted_rows

    def fetch_page(self, offset: int, limit: int) -> list[dict[str, Any]]:
        """One page of rows ordered by date then period."""
        sql = (
            f"SELECT * FROM {quote_ident(self.table)}"
            f" ORDER BY {quote_ident(DATE_FIELD)} ASC, {quote_ident(PERIOD_FIELD)} ASC"
            " LIMIT %s OFFSET %s"
        )
        try:
            with self._conn.cursor() as cur:
                cur.execute(sql, (limit, offset))
                names = [d[0] for d in cur.description]
                records = [dict(zip(names, r, strict=False)) for r in cur.fetchall()]
        except Exception as e:
            self._rollback()
            raise FetchError(f"fetch failed at offset {offset}: {e}") from e
        for record in records:
            if DATE_FIELD in record:
                record[DATE_FIELD] = _date_text(record[DATE_FIELD])
        return records

    def available_dates(self) -> list[str]:
        sql = (
            f"SELECT DISTINCT {quote_ident(DATE_FIELD)} FROM {quote_ident(self.table)}"
            f" WHERE {quote_ident(DATE_FIELD)} IS NOT NULL ORDER BY 1"
        )
        try:
            with self._conn.cursor() as cur:
                cur.execute(sql)
                return [_date_text(r[0]) for r in cur.fetchall()]
        except Exception as e:
            self._rollback()
            raise FetchError(f"date list query failed: {e}") from e

