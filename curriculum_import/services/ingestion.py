from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

from ..config.loader import ImportConfig
from ..csvio.headers import DATE_FIELD
from ..csvio.reader import EmptyCsvError
from ..csvio.validator import MissingFieldError
from ..db.schedule_store import ChunkInsertError, DeleteRangeError
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.schedule_row import ScheduleRow
from ..models.upload_result import ChunkStat, UploadResult, classify
from .progress import ProgressTracker

"""Ingestion orchestration: replace a date range with a new batch.

Protocol:
1. 対象テーブルの列を取得し、レコードをテーブルに存在する列だけに絞る
2. バッチの日付の最小〜最大 (両端含む) を1回で削除 (失敗したら即中断)
3. chunk_size 件ずつ順番に INSERT。チャンク間は固定時間待機
4. 失敗チャンクは記録して次へ進む (ベストエフォート、削除のロールバックなし)
5. 成功 / 一部成功 / 失敗 を UploadResult にまとめて返す
"""

__all__ = [
    "ScheduleWriter",
    "IngestionOrchestrator",
    "chunked",
]

logger = logging.getLogger(__name__)


class ScheduleWriter(Protocol):
    def table_columns(self) -> list[str]: ...

    def delete_range(self, min_date: str, max_date: str) -> int: ...

    def insert_chunk(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> int: ...


def chunked(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    if size < 1:
        raise ValueError(f"chunk size must be >= 1: {size}")
    return [items[i : i + size] for i in range(0, len(items), size)]


class IngestionOrchestrator:
    """Delete-range then chunked insert for one validated batch."""

    def __init__(
        self,
        config: ImportConfig,
        store: ScheduleWriter,
        *,
        error_log: ErrorLogBuffer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.store = store
        self.error_log = error_log if error_log is not None else ErrorLogBuffer()
        self._sleep = sleep

    def _insert_columns(self, records: list[dict[str, Any]]) -> list[str]:
        present: set[str] = set()
        for record in records:
            present.update(record.keys())
        table_columns = self.store.table_columns()
        columns = [c for c in table_columns if c in present]
        dropped = sorted(present - set(table_columns))
        if dropped:
            logger.debug("columns not in table (dropped): %s", dropped)
        return columns

    def ingest(self, rows: Sequence[ScheduleRow], file_name: str = "<upload>") -> UploadResult:
        """Replace stored rows in [min(date), max(date)] with ``rows``.

        Raises:
            EmptyCsvError: ``rows`` is empty (nothing is deleted)
            MissingFieldError: no row carries a date (nothing is deleted)
            DeleteRangeError: the delete step failed (nothing is inserted)
        """
        if not rows:
            raise EmptyCsvError("no rows to upload")

        dates = sorted({r.date for r in rows if r.date})
        if not dates:
            raise MissingFieldError([DATE_FIELD])
        start_time = datetime.now(UTC)
        min_date, max_date = dates[0], dates[-1]

        records = [r.to_record() for r in rows]
        columns = self._insert_columns(records)
        values = [[rec.get(c) for c in columns] for rec in records]

        try:
            deleted = self.store.delete_range(min_date, max_date)
        except DeleteRangeError as e:
            self.error_log.append(
                ErrorRecord.create(file=file_name, error_type="DELETE_RANGE_ERROR", message=str(e))
            )
            raise

        chunks = chunked(values, self.config.chunk_size)
        chunk_stats: list[ChunkStat] = []
        inserted = 0
        failed = 0

        with ProgressTracker(len(chunks), description=f"Uploading {file_name}") as progress:
            for index, chunk in enumerate(chunks):
                chunk_start = time.monotonic()
                try:
                    count = self.store.insert_chunk(columns, chunk)
                except ChunkInsertError as e:
                    failed += 1
                    logger.warning("chunk %d/%d failed: %s", index + 1, len(chunks), e)
                    self.error_log.append(
                        ErrorRecord.create(
                            file=file_name,
                            error_type="CHUNK_INSERT_ERROR",
                            message=str(e),
                            chunk=index,
                        )
                    )
                    chunk_stats.append(
                        ChunkStat(
                            index=index,
                            size=len(chunk),
                            inserted_rows=0,
                            elapsed_seconds=time.monotonic() - chunk_start,
                            error=str(e),
                        )
                    )
                    progress.finish_chunk(success=False)
                else:
                    inserted += count
                    chunk_stats.append(
                        ChunkStat(
                            index=index,
                            size=len(chunk),
                            inserted_rows=count,
                            elapsed_seconds=time.monotonic() - chunk_start,
                        )
                    )
                    progress.finish_chunk(success=True)
                progress.set_postfix(inserted=inserted, failed=failed)

                if index < len(chunks) - 1 and self.config.chunk_delay_seconds > 0:
                    self._sleep(self.config.chunk_delay_seconds)

        end_time = datetime.now(UTC)
        status = classify(inserted, failed)
        logger.info(
            "upload file=%s status=%s inserted=%d failed_chunks=%d/%d",
            file_name,
            status.value,
            inserted,
            failed,
            len(chunks),
        )
        return UploadResult(
            file_name=file_name,
            status=status,
            total_rows=len(rows),
            inserted_count=inserted,
            failed_chunk_count=failed,
            total_chunks=len(chunks),
            deleted_count=deleted,
            min_date=min_date,
            max_date=max_date,
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
            chunk_stats=chunk_stats,
        )
