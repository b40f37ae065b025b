from __future__ import annotations

from datetime import date

import pytest
from conftest import FakeConnection, FakeCursor

from curriculum_import.db.schedule_store import (
    ChunkInsertError,
    DeleteRangeError,
    FetchError,
    ScheduleStore,
)


def test_table_columns_cached():
    cur = FakeCursor(rows=[("id",), ("日付",), ("曜日",), ("時限",)])
    store = ScheduleStore(FakeConnection(cur))
    assert store.table_columns() == ["id", "日付", "曜日", "時限"]
    assert store.table_columns() == ["id", "日付", "曜日", "時限"]
    assert len(cur.executed) == 1
    assert cur.executed[0][1] == ("スケジュール",)


def test_table_columns_limited_to_current_schema():
    cur = FakeCursor(rows=[("日付",)])
    ScheduleStore(FakeConnection(cur)).table_columns()
    sql = cur.executed[0][0]
    assert "table_schema = current_schema()" in sql


def test_table_columns_missing_table():
    store = ScheduleStore(FakeConnection(FakeCursor(rows=[])), table="nope")
    with pytest.raises(FetchError, match="nope"):
        store.table_columns()


def test_table_columns_query_failure_rolls_back():
    conn = FakeConnection(FakeCursor(error=RuntimeError("connection lost")))
    with pytest.raises(FetchError):
        ScheduleStore(conn).table_columns()
    assert conn.rollbacks == 1


def test_delete_range_inclusive_and_committed():
    cur = FakeCursor(rowcount=4)
    conn = FakeConnection(cur)
    deleted = ScheduleStore(conn).delete_range("2025-09-01", "2025-09-05")
    assert deleted == 4
    sql, params = cur.executed[0]
    assert sql.startswith('DELETE FROM "スケジュール"')
    assert '"日付" >= %s AND "日付" <= %s' in sql
    assert params == ("2025-09-01", "2025-09-05")
    assert conn.commits == 1


def test_delete_range_failure():
    conn = FakeConnection(FakeCursor(error=RuntimeError("permission denied")))
    with pytest.raises(DeleteRangeError, match="permission denied"):
        ScheduleStore(conn).delete_range("2025-09-01", "2025-09-05")
    assert conn.rollbacks == 1
    assert conn.commits == 0


def test_insert_chunk_commits(monkeypatch):
    import curriculum_import.db.batch_insert as bi

    sent = []
    monkeypatch.setattr(bi, "execute_values", lambda cur, sql, rows, page_size=1000: sent.append((sql, rows)))
    conn = FakeConnection()
    n = ScheduleStore(conn, page_size=50).insert_chunk(["日付", "時限"], [["2025-09-01", "1"], ["2025-09-01", "2"]])
    assert n == 2
    assert conn.commits == 1
    assert sent[0][0] == 'INSERT INTO "スケジュール" ("日付","時限") VALUES %s'


def test_insert_chunk_failure_rolls_back(monkeypatch):
    import curriculum_import.db.batch_insert as bi

    def boom(*args, **kwargs):
        raise RuntimeError("null value in column")

    monkeypatch.setattr(bi, "execute_values", boom)
    conn = FakeConnection()
    with pytest.raises(ChunkInsertError, match="null value"):
        ScheduleStore(conn).insert_chunk(["日付"], [["2025-09-01"]])
    assert conn.rollbacks == 1
    assert conn.commits == 0


def test_fetch_page_converts_dates():
    cur = FakeCursor(
        rows=[(1, date(2025, 9, 1), "1")],
        description=[("id",), ("日付",), ("時限",)],
    )
    rows = ScheduleStore(FakeConnection(cur)).fetch_page(offset=1000, limit=1000)
    assert rows == [{"id": 1, "日付": "2025-09-01", "時限": "1"}]
    sql, params = cur.executed[0]
    assert 'ORDER BY "日付" ASC, "時限" ASC' in sql
    assert params == (1000, 1000)


def test_fetch_page_failure():
    conn = FakeConnection(FakeCursor(error=RuntimeError("timeout")))
    with pytest.raises(FetchError, match="offset 0"):
        ScheduleStore(conn).fetch_page(0, 10)


def test_available_dates():
    cur = FakeCursor(rows=[(date(2025, 9, 1),), ("2025-09-02",)])
    assert ScheduleStore(FakeConnection(cur)).available_dates() == ["2025-09-01", "2025-09-02"]
