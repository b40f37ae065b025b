from __future__ import annotations

from ..models.upload_result import UploadResult, UploadStatus

"""SUMMARY line and user-facing result message rendering.

SUMMARY file=<name> rows=<n> inserted=<n> failed_chunks=<f>/<c> deleted=<n>
range=<min>..<max> status=<success|partial|failed> elapsed_sec=<s>
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: UploadResult) -> str:
    """Render the SUMMARY line for one upload.

    >>> from datetime import datetime, timezone
    >>> t = datetime(2025, 9, 1, tzinfo=timezone.utc)
    >>> r = UploadResult(
    ...     file_name="sep.csv", status=UploadStatus.SUCCESS, total_rows=25,
    ...     inserted_count=25, failed_chunk_count=0, total_chunks=3, deleted_count=4,
    ...     min_date="2025-09-01", max_date="2025-09-05", start_time=t, end_time=t,
    ...     elapsed_seconds=2.0,
    ... )
    >>> render_summary_line(r)
    'SUMMARY file=sep.csv rows=25 inserted=25 failed_chunks=0/3 deleted=4 range=2025-09-01..2025-09-05 status=success elapsed_sec=2'
    """
    return (
        f"SUMMARY file={result.file_name} "
        f"rows={result.total_rows} "
        f"inserted={result.inserted_count} "
        f"failed_chunks={result.failed_chunk_count}/{result.total_chunks} "
        f"deleted={result.deleted_count} "
        f"range={result.min_date}..{result.max_date} "
        f"status={result.status.value} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_result_message(result: UploadResult) -> str:
    if result.status is UploadStatus.SUCCESS:
        return f"データが正常にアップロードされました ({result.inserted_count} 件)"
    if result.status is UploadStatus.PARTIAL:
        return f"一部のデータ ({result.inserted_count} 件) がアップロードされましたが、エラーが発生しました。"
    return "データのアップロードに失敗しました。"
