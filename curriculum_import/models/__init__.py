"""Domain models for schedule CSV ingestion."""

from .error_record import ErrorRecord
from .row_data import RowData
from .schedule_row import CANONICAL_COLUMNS, CLASS_NAMES, YEARS, ClassSlot, ScheduleRow
from .upload_result import ChunkStat, UploadResult, UploadStatus

__all__ = [
    # Schedule data
    "CANONICAL_COLUMNS",
    "CLASS_NAMES",
    "YEARS",
    "ClassSlot",
    "ScheduleRow",
    "RowData",
    # Results
    "ChunkStat",
    "ErrorRecord",
    "UploadResult",
    "UploadStatus",
]
