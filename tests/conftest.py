# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from curriculum_import.db.schedule_store import ChunkInsertError, DeleteRangeError, FetchError
from curriculum_import.logging.init import reset_logging
from curriculum_import.models.schedule_row import CANONICAL_COLUMNS, ScheduleRow

HEADER = "日付,曜日,時限,1年Aクラスの授業内容,1年Aクラス担当講師名,1年Aクラスコマ数"


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        for var in ("DATABASE_URL", "PGDSN", "PGHOST", "PGPORT", "PGUSER", "PGPASSWORD", "PGDATABASE"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """table: スケジュール
encodings: [cp932, utf-8, euc_jp]
chunk_size: 10
chunk_delay_seconds: 0
page_size: 1000
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_csv(n_rows: int, start_day: int = 1, header: str = HEADER) -> str:
    """n_rows lines, 2 periods per day starting at 2025-09-<start_day>."""
    lines = [header]
    for i in range(n_rows):
        day = start_day + i // 2
        period = i % 2 + 1
        lines.append(f"2025/9/{day},月,{period},国語{i},佐藤,1")
    return "\n".join(lines) + "\n"


def make_rows(n_rows: int) -> list[ScheduleRow]:
    rows = []
    for i in range(n_rows):
        rows.append(
            ScheduleRow.from_record(
                {
                    "日付": f"2025-09-{1 + i // 2:02d}",
                    "曜日": "月",
                    "時限": str(i % 2 + 1),
                    "1年Aクラスの授業内容": f"国語{i}",
                }
            )
        )
    return rows


class FakeStore:
    """In-memory stand-in for ScheduleStore."""

    def __init__(
        self,
        columns: Sequence[str] = CANONICAL_COLUMNS,
        fail_chunks: Sequence[int] = (),
        fail_delete: bool = False,
        stored: list[dict[str, Any]] | None = None,
        fetch_failures: int = 0,
    ) -> None:
        self.columns = list(columns)
        self.fail_chunks = set(fail_chunks)
        self.fail_delete = fail_delete
        self.stored: list[dict[str, Any]] = list(stored or [])
        self.fetch_failures = fetch_failures
        self.calls: list[tuple] = []
        self._chunk = 0

    def table_columns(self) -> list[str]:
        self.calls.append(("table_columns",))
        return self.columns

    def delete_range(self, min_date: str, max_date: str) -> int:
        self.calls.append(("delete_range", min_date, max_date))
        if self.fail_delete:
            raise DeleteRangeError("permission denied for table スケジュール")
        before = len(self.stored)
        self.stored = [r for r in self.stored if not (min_date <= r["日付"] <= max_date)]
        return before - len(self.stored)

    def insert_chunk(self, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> int:
        index = self._chunk
        self._chunk += 1
        self.calls.append(("insert_chunk", len(rows)))
        if index in self.fail_chunks:
            raise ChunkInsertError(f"simulated failure in chunk {index}")
        for r in rows:
            self.stored.append(dict(zip(columns, r, strict=True)))
        return len(rows)

    def fetch_page(self, offset: int, limit: int) -> list[dict[str, Any]]:
        self.calls.append(("fetch_page", offset, limit))
        if self.fetch_failures > 0:
            self.fetch_failures -= 1
            raise FetchError("connection reset")
        ordered = sorted(self.stored, key=lambda r: (r["日付"], r["時限"]))
        return ordered[offset : offset + limit]


class FakeCursor:
    """psycopg2 cursor double recording executed SQL."""

    def __init__(self, rows: list[tuple] | None = None, description: list[tuple] | None = None,
                 rowcount: int = 0, error: Exception | None = None) -> None:
        self.rows = rows or []
        self.description = description
        self.rowcount = rowcount
        self.error = error
        self.executed: list[tuple[str, Any]] = []

    def execute(self, sql: str, params: Any = None) -> None:
        self.executed.append((sql, params))
        if self.error is not None:
            raise self.error

    def fetchall(self) -> list[tuple]:
        return self.rows

    def fetchone(self) -> tuple | None:
        return self.rows[0] if self.rows else None

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc: Any) -> None:
        return None


class FakeConnection:
    def __init__(self, cursor: FakeCursor | None = None) -> None:
        self.cursor_obj = cursor or FakeCursor()
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self) -> FakeCursor:
        return self.cursor_obj

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def patch_store(monkeypatch):
    """Route the CLI's database access to the given FakeStore."""
    from contextlib import contextmanager

    import curriculum_import.cli.__main__ as cli_module

    def _install(store: FakeStore) -> FakeStore:
        @contextmanager
        def _open_store(cfg):
            yield store

        monkeypatch.setattr(cli_module, "_open_store", _open_store)
        return store

    return _install
