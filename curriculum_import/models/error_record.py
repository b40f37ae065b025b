from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Supports -1 as a sentinel for chunk / row when the failure is not tied to
one of them (e.g. the delete step or a file-level validation error).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: uploaded CSV file name
        chunk: 0-based insert chunk index, -1 when not chunk related
        row: CSV row number (header = 1), -1 when unknown
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Database error message or description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    chunk: int
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, error_type: str, message: str, chunk: int = -1, row: int = -1) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            chunk=chunk,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # 追加キー阻止: dataclass -> dict して json.dumps
        return json.dumps(asdict(self), ensure_ascii=False)
