from __future__ import annotations

from datetime import UTC, datetime

import pytest

from curriculum_import.models.upload_result import UploadResult, UploadStatus
from curriculum_import.services.summary import render_result_message, render_summary_line


def _result(status: UploadStatus, inserted: int, failed: int, elapsed: float = 1.25) -> UploadResult:
    t = datetime(2025, 9, 1, tzinfo=UTC)
    return UploadResult(
        file_name="sep.csv",
        status=status,
        total_rows=25,
        inserted_count=inserted,
        failed_chunk_count=failed,
        total_chunks=3,
        deleted_count=7,
        min_date="2025-09-01",
        max_date="2025-09-13",
        start_time=t,
        end_time=t,
        elapsed_seconds=elapsed,
    )


def test_summary_line():
    line = render_summary_line(_result(UploadStatus.PARTIAL, 20, 1))
    assert line == (
        "SUMMARY file=sep.csv rows=25 inserted=20 failed_chunks=1/3 deleted=7 "
        "range=2025-09-01..2025-09-13 status=partial elapsed_sec=1.25"
    )


@pytest.mark.parametrize("elapsed, text", [(0.0, "0"), (2.0, "2"), (0.1234, "0.123"), (0.0005, "0.0005")])
def test_elapsed_formatting(elapsed, text):
    assert render_summary_line(_result(UploadStatus.SUCCESS, 25, 0, elapsed)).endswith(f"elapsed_sec={text}")


def test_result_messages_distinguish_outcomes():
    ok = render_result_message(_result(UploadStatus.SUCCESS, 25, 0))
    partial = render_result_message(_result(UploadStatus.PARTIAL, 20, 1))
    failed = render_result_message(_result(UploadStatus.FAILED, 0, 3))
    assert "正常" in ok
    assert "20 件" in partial
    assert "失敗" in failed
    assert len({ok, partial, failed}) == 3
