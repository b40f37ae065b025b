from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from ..csvio.encoding import DEFAULT_ENCODINGS
from ..csvio.reader import read_schedule_csv
from ..csvio.validator import validate_rows
from ..models.schedule_row import ScheduleRow

"""Upload preparation: bytes -> validated ScheduleRow batch.

Decoding, header/value normalization, date canonicalization and required
field validation all happen here, once per row, before anything touches the
database. A failure at this stage leaves storage untouched, so the upload
can simply be retried from scratch.
"""

__all__ = [
    "PreparedUpload",
    "prepare_upload",
    "prepare_upload_file",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedUpload:
    file_name: str
    encoding: str
    delimiter: str
    columns: list[str]
    rows: list[ScheduleRow]

    @property
    def dates(self) -> list[str]:
        return sorted({r.date for r in self.rows if r.date})


def prepare_upload(
    data: bytes,
    file_name: str = "<upload>",
    encodings: Sequence[str] = DEFAULT_ENCODINGS,
) -> PreparedUpload:
    """Raises DecodeError, CsvParseError/EmptyCsvError or MissingFieldError."""
    csv_data = read_schedule_csv(data, encodings)
    validated = validate_rows(csv_data.rows)
    rows = [ScheduleRow.from_record(r.values) for r in validated]
    logger.info(
        "prepared file=%s encoding=%s rows=%d",
        file_name,
        csv_data.encoding,
        len(rows),
    )
    return PreparedUpload(
        file_name=file_name,
        encoding=csv_data.encoding,
        delimiter=csv_data.delimiter,
        columns=csv_data.columns,
        rows=rows,
    )


def prepare_upload_file(path: Path, encodings: Sequence[str] = DEFAULT_ENCODINGS) -> PreparedUpload:
    return prepare_upload(path.read_bytes(), file_name=path.name, encodings=encodings)
