from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Upload result models.

UploadResult is the aggregate summary of one delete-range + chunked insert
run. Chunk failures are only visible here (inserted_count / failed_chunk_count);
there is no itemized list of failed rows.
"""


class UploadStatus(Enum):
    """Outcome of an upload.

    - SUCCESS: every chunk inserted
    - PARTIAL: some chunks failed, at least one row inserted
    - FAILED: no row inserted
    """
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class ChunkStat:
    index: int  # 0 始まり
    size: int
    inserted_rows: int
    elapsed_seconds: float
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class UploadResult:
    file_name: str
    status: UploadStatus
    total_rows: int  # 送信対象行数
    inserted_count: int
    failed_chunk_count: int
    total_chunks: int
    deleted_count: int
    min_date: str
    max_date: str
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    chunk_stats: list[ChunkStat] = field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return self.status is UploadStatus.PARTIAL

    @property
    def avg_chunk_seconds(self) -> float:
        if not self.chunk_stats:
            return 0.0
        return statistics.mean(c.elapsed_seconds for c in self.chunk_stats)


def classify(inserted_count: int, failed_chunk_count: int) -> UploadStatus:
    if failed_chunk_count == 0:
        return UploadStatus.SUCCESS
    if inserted_count > 0:
        return UploadStatus.PARTIAL
    return UploadStatus.FAILED
