from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg2

from curriculum_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, ImportConfig, load_config
from curriculum_import.csvio.encoding import DecodeError
from curriculum_import.csvio.reader import CsvParseError, analyze_csv
from curriculum_import.csvio.validator import MissingFieldError
from curriculum_import.db.connection import ConfigurationError, check_connection, connect, load_env_file
from curriculum_import.db.schedule_store import DeleteRangeError, FetchError, ScheduleStore
from curriculum_import.logging.error_log import ErrorLogBuffer, ErrorRecord
from curriculum_import.logging.init import log_summary, set_debug, setup_logging
from curriculum_import.models.schedule_row import CLASS_NAMES, YEARS, ScheduleRow
from curriculum_import.models.upload_result import UploadStatus
from curriculum_import.services import schedule_query
from curriculum_import.services.ingestion import IngestionOrchestrator
from curriculum_import.services.pipeline import prepare_upload_file
from curriculum_import.services.summary import render_result_message, render_summary_line

"""CLI entrypoint.

Subcommands:
    upload FILE [--dry-run]     CSV を読み込み、日付範囲を置き換えて登録
    inspect FILE                検出したエンコーディング・ヘッダー・先頭行を表示
    dates                       登録済みの日付一覧
    show --year --class         クラス別の授業一覧 (--exams-only で試験のみ)
    daily --date                1日分の全クラスの時間割
    teacher [--name]            講師一覧 / 講師別の担当一覧
    delete-range MIN MAX        日付範囲 (両端含む) を削除
    check                       DB 接続確認

Exit codes: 0 success, 2 partial / total chunk failure, 1 fatal.
"""

EXIT_SUCCESS = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

logger = logging.getLogger("curriculum_import.cli")


@contextmanager
def _open_store(cfg: ImportConfig) -> Iterator[ScheduleStore]:
    """Open a connection and wrap it in a ScheduleStore."""
    with connect(cfg.database) as conn:
        yield ScheduleStore(conn, table=cfg.table, page_size=cfg.page_size)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="curriculum-import",
        description="Schedule CSV -> PostgreSQL importer",
    )
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    up = sub.add_parser("upload", help="Replace the file's date range with its rows")
    up.add_argument("file", type=Path)
    up.add_argument("--dry-run", action="store_true", help="Parse and validate only")

    ins = sub.add_parser("inspect", help="Show detected encoding, headers and sample rows")
    ins.add_argument("file", type=Path)

    sub.add_parser("dates", help="List stored dates")

    show = sub.add_parser("show", help="List lessons of one class")
    show.add_argument("--year", type=int, required=True, choices=YEARS)
    show.add_argument("--class", dest="class_name", required=True, choices=CLASS_NAMES)
    show.add_argument("--exams-only", action="store_true")

    daily = sub.add_parser("daily", help="Timetable of one date")
    daily.add_argument("--date", required=True, help="YYYY-MM-DD")

    teacher = sub.add_parser("teacher", help="List instructors or one instructor's lessons")
    teacher.add_argument("--name")

    dr = sub.add_parser("delete-range", help="Delete stored rows in [MIN, MAX]")
    dr.add_argument("min_date")
    dr.add_argument("max_date")

    sub.add_parser("check", help="Check the database connection")
    return p.parse_args(argv)


def _row_label(row: ScheduleRow) -> str:
    weekday = f"({row.weekday})" if row.weekday else ""
    return f"{row.date}{weekday} {row.period}限"


def _cmd_inspect(path: Path, cfg: ImportConfig) -> int:
    try:
        analysis = analyze_csv(path.read_bytes(), cfg.encodings)
    except (DecodeError, CsvParseError) as e:
        logger.error(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {path.name}")
    print(f"  encoding={analysis.encoding} delimiter={analysis.delimiter!r} rows={analysis.row_count}")
    print(f"  raw_headers={analysis.raw_headers}")
    print(f"  columns={analysis.columns}")
    for i, values in enumerate(analysis.sample_rows, start=1):
        print(f"    row {i}: {values}")
    return EXIT_SUCCESS


def _cmd_upload(path: Path, cfg: ImportConfig, error_log: ErrorLogBuffer, dry_run: bool) -> int:
    file_name = path.name
    try:
        prepared = prepare_upload_file(path, cfg.encodings)
    except MissingFieldError as e:
        error_log.append(
            ErrorRecord.create(
                file=file_name,
                error_type="MISSING_FIELD",
                message=str(e),
                row=e.row_number if e.row_number is not None else -1,
            )
        )
        logger.error(f"validation: {e}")
        return EXIT_FATAL
    except (DecodeError, CsvParseError) as e:
        error_type = "DECODE_ERROR" if isinstance(e, DecodeError) else "CSV_PARSE_ERROR"
        error_log.append(ErrorRecord.create(file=file_name, error_type=error_type, message=str(e)))
        logger.error(f"read: {e}")
        return EXIT_FATAL

    dates = prepared.dates
    logger.info(
        f"file={file_name} encoding={prepared.encoding} rows={len(prepared.rows)} "
        f"range={dates[0]}..{dates[-1]}"
    )
    if dry_run:
        logger.info("dry-run: nothing written")
        return EXIT_SUCCESS

    try:
        with _open_store(cfg) as store:
            orchestrator = IngestionOrchestrator(cfg, store, error_log=error_log)
            result = orchestrator.ingest(prepared.rows, file_name=file_name)
    except (DeleteRangeError, FetchError) as e:
        logger.error(f"upload: {e}")
        return EXIT_FATAL

    # log_summary が "SUMMARY " を付けるので外す
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))
    message = render_result_message(result)
    if result.status is UploadStatus.SUCCESS:
        logger.info(message)
        return EXIT_SUCCESS
    logger.error(message)
    return EXIT_PARTIAL_FAILURE


def _cmd_query(args: argparse.Namespace, cfg: ImportConfig) -> int:
    with _open_store(cfg) as store:
        if args.command == "delete-range":
            try:
                deleted = store.delete_range(args.min_date, args.max_date)
            except DeleteRangeError as e:
                logger.error(f"delete-range: {e}")
                return EXIT_FATAL
            print(f"deleted={deleted} range={args.min_date}..{args.max_date}")
            return EXIT_SUCCESS
        try:
            rows = schedule_query.fetch_all(
                store,
                page_size=cfg.page_size,
                retries=cfg.fetch_retries,
                backoff_seconds=cfg.retry_backoff_seconds,
            )
        except FetchError as e:
            logger.error(f"fetch: {e}")
            return EXIT_FATAL

    if args.command == "dates":
        for d in schedule_query.available_dates(rows):
            print(d)
    elif args.command == "show":
        entries = schedule_query.class_schedule(rows, args.year, args.class_name, args.exams_only)
        for e in entries:
            print(
                f"{_row_label(e.row)}\t{e.slot.content or ''}\t"
                f"{e.slot.teacher or ''}\t{e.slot.period_count or ''}"
            )
    elif args.command == "daily":
        for row in schedule_query.daily_schedule(rows, args.date):
            print(_row_label(row))
            for (year, class_name), slot in sorted(row.classes.items()):
                if not slot.is_empty:
                    print(f"  {year}年{class_name}: {slot.content or ''} / {slot.teacher or ''}")
    elif args.command == "teacher":
        if args.name is None:
            for name in schedule_query.instructors(rows):
                print(name)
        else:
            for e in schedule_query.instructor_schedule(rows, args.name):
                print(f"{_row_label(e.row)}\t{e.year}年{e.class_name}\t{e.slot.content or ''}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    app_logger = setup_logging()
    # None のときのみ sys.argv を読む (テストで [] を渡すケース)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        set_debug(True)
        app_logger.debug("debug mode enabled")

    load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command in ("upload", "inspect") and not args.file.is_file():
        logger.error(f"file not found: {args.file}")
        return EXIT_FATAL

    if args.command == "inspect":
        return _cmd_inspect(args.file, cfg)

    if args.command == "check":
        check = check_connection(cfg.database)
        if check.ok:
            logger.info("database connection ok")
            return EXIT_SUCCESS
        logger.error(f"database connection failed: {check.error}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    try:
        if args.command == "upload":
            return _cmd_upload(args.file, cfg, error_log, args.dry_run)
        return _cmd_query(args, cfg)
    except ConfigurationError as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL
    except psycopg2.Error as e:
        logger.error(f"database: {str(e).strip()}")
        return EXIT_FATAL
    finally:
        path = error_log.flush()
        if path is not None:
            logger.info(f"error log written: {path}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
