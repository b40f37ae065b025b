from __future__ import annotations

from pathlib import Path

from conftest import FakeStore

import curriculum_import.cli.__main__ as cli_module
from curriculum_import.cli.__main__ import main as cli_main
from curriculum_import.db.connection import ConnectionCheck

STORED = [
    {"日付": "2025-09-02", "曜日": "火", "時限": "1", "1年Aクラスの授業内容": "数学", "1年Aクラス担当講師名": "鈴木"},
    {"日付": "2025-09-01", "曜日": "月", "時限": "2", "1年Aクラスコマ数": "試験", "2年Bクラス担当講師名": "佐藤",
     "2年Bクラスの授業内容": "英語"},
    {"日付": "2025-09-01", "曜日": "月", "時限": "1", "1年Aクラスの授業内容": "国語", "1年Aクラス担当講師名": "佐藤"},
]


def test_dates(write_config, patch_store, capsys):
    patch_store(FakeStore(stored=STORED))
    assert cli_main(["dates"]) == 0
    assert capsys.readouterr().out.splitlines() == ["2025-09-01", "2025-09-02"]


def test_show_class(write_config, patch_store, capsys):
    patch_store(FakeStore(stored=STORED))
    assert cli_main(["show", "--year", "1", "--class", "A"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 3
    assert lines[0].startswith("2025-09-01(月) 1限\t国語\t佐藤")


def test_show_exams_only(write_config, patch_store, capsys):
    patch_store(FakeStore(stored=STORED))
    assert cli_main(["show", "--year", "1", "--class", "A", "--exams-only"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["2025-09-01(月) 2限\t\t\t試験"]


def test_daily(write_config, patch_store, capsys):
    patch_store(FakeStore(stored=STORED))
    assert cli_main(["daily", "--date", "2025-09-01"]) == 0
    out = capsys.readouterr().out
    assert "2025-09-01(月) 1限" in out
    assert "  2年B: 英語 / 佐藤" in out


def test_teacher(write_config, patch_store, capsys):
    patch_store(FakeStore(stored=STORED))
    assert cli_main(["teacher"]) == 0
    assert capsys.readouterr().out.splitlines() == ["佐藤", "鈴木"]
    assert cli_main(["teacher", "--name", "佐藤"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["2025-09-01(月) 1限\t1年A\t国語", "2025-09-01(月) 2限\t2年B\t英語"]


def test_fetch_failure_after_retries(temp_workdir: Path, patch_store, capsys):
    (temp_workdir / "config" / "import.yml").write_text(
        "fetch_retries: 1\nretry_backoff_seconds: 0\n", encoding="utf-8"
    )
    patch_store(FakeStore(stored=STORED, fetch_failures=5))
    assert cli_main(["dates"]) == 1
    out = capsys.readouterr().out
    assert "WARN fetch failed" in out
    assert "ERROR fetch:" in out


def test_delete_range(write_config, patch_store, capsys):
    store = patch_store(FakeStore(stored=STORED))
    assert cli_main(["delete-range", "2025-09-01", "2025-09-01"]) == 0
    assert "deleted=2" in capsys.readouterr().out
    assert [r["日付"] for r in store.stored] == ["2025-09-02"]


def test_delete_range_failure(write_config, patch_store, capsys):
    patch_store(FakeStore(fail_delete=True))
    assert cli_main(["delete-range", "2025-09-01", "2025-09-30"]) == 1
    assert "ERROR delete-range:" in capsys.readouterr().out


def test_check(write_config, monkeypatch, capsys):
    monkeypatch.setattr(cli_module, "check_connection", lambda db: ConnectionCheck(ok=True))
    assert cli_main(["check"]) == 0
    assert "INFO database connection ok" in capsys.readouterr().out
    monkeypatch.setattr(cli_module, "check_connection", lambda db: ConnectionCheck(ok=False, error="refused"))
    assert cli_main(["check"]) == 1
    assert "ERROR database connection failed: refused" in capsys.readouterr().out


def test_debug_flag(write_config, patch_store, capsys):
    patch_store(FakeStore(stored=STORED))
    assert cli_main(["--debug", "dates"]) == 0
    assert "DEBUG debug mode enabled" in capsys.readouterr().out
