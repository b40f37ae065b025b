from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from ..db.schedule_store import FetchError
from ..models.schedule_row import CLASS_NAMES, YEARS, ClassSlot, ScheduleRow

"""Read-side schedule queries (calendar / list / daily / teacher views).

fetch_all pages through the table and retries a failed attempt with linear
backoff; everything else works on the already-fetched rows.
"""

__all__ = [
    "ScheduleReader",
    "ClassEntry",
    "fetch_all",
    "sort_rows",
    "available_dates",
    "class_schedule",
    "daily_schedule",
    "instructors",
    "instructor_schedule",
]

logger = logging.getLogger(__name__)


class ScheduleReader(Protocol):
    def fetch_page(self, offset: int, limit: int) -> list[dict[str, Any]]: ...


@dataclass(frozen=True)
class ClassEntry:
    """One class section's lesson at one (date, period)."""
    row: ScheduleRow
    year: int
    class_name: str
    slot: ClassSlot


def _fetch_pages(store: ScheduleReader, page_size: int) -> list[ScheduleRow]:
    rows: list[ScheduleRow] = []
    offset = 0
    while True:
        page = store.fetch_page(offset, page_size)
        rows.extend(ScheduleRow.from_record(r) for r in page if r)
        logger.debug("fetched offset=%d rows=%d", offset, len(page))
        if len(page) < page_size:
            break
        offset += page_size
    return rows


def fetch_all(
    store: ScheduleReader,
    page_size: int = 1000,
    retries: int = 3,
    backoff_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> list[ScheduleRow]:
    """Fetch every stored row, retrying the whole fetch up to ``retries`` times.

    The n-th retry waits ``backoff_seconds * n``. The last FetchError propagates.
    """
    attempt = 0
    while True:
        try:
            rows = _fetch_pages(store, page_size)
        except FetchError as e:
            if attempt >= retries:
                raise
            attempt += 1
            wait = backoff_seconds * attempt
            logger.warning("fetch failed (%s), retry %d/%d in %.1fs", e, attempt, retries, wait)
            sleep(wait)
            continue
        logger.debug("fetched %d schedule rows", len(rows))
        return rows


def sort_rows(rows: Iterable[ScheduleRow]) -> list[ScheduleRow]:
    return sorted(rows, key=lambda r: (r.date, r.period))


def available_dates(rows: Iterable[ScheduleRow]) -> list[str]:
    return sorted({r.date for r in rows if r.date})


def class_schedule(
    rows: Iterable[ScheduleRow],
    year: int,
    class_name: str,
    exams_only: bool = False,
) -> list[ClassEntry]:
    """Lessons of one class, in date/period order.

    A row counts when the slot has content or a period count; with
    ``exams_only`` only exam and mock-exam slots are kept.
    """
    entries: list[ClassEntry] = []
    for row in sort_rows(rows):
        slot = row.slot(year, class_name)
        if exams_only:
            if not (slot.is_exam or slot.is_mock_exam):
                continue
        elif slot.is_empty:
            continue
        entries.append(ClassEntry(row=row, year=year, class_name=class_name, slot=slot))
    return entries


def daily_schedule(rows: Iterable[ScheduleRow], date: str) -> list[ScheduleRow]:
    """All rows of one date (every class), ordered by period."""
    return sorted((r for r in rows if r.date == date), key=lambda r: r.period)


def instructors(rows: Iterable[ScheduleRow]) -> list[str]:
    names: set[str] = set()
    for row in rows:
        for slot in row.classes.values():
            if slot.teacher:
                names.add(slot.teacher)
    return sorted(names)


def instructor_schedule(rows: Iterable[ScheduleRow], name: str) -> list[ClassEntry]:
    """Every slot taught by ``name``, in date/period then year/class order."""
    entries: list[ClassEntry] = []
    for row in sort_rows(rows):
        for year in YEARS:
            for class_name in CLASS_NAMES:
                slot = row.slot(year, class_name)
                if slot.teacher == name:
                    entries.append(ClassEntry(row=row, year=year, class_name=class_name, slot=slot))
    return entries
