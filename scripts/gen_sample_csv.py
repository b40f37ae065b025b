#!/usr/bin/env python3
"""Synthetic schedule CSV generator (動作確認・性能確認用).

Generates a timetable CSV in the upload format:
- Header row: 日付, 曜日, 時限 and the 1〜3年 x A/B/N class grid
- One row per (date, period), weekdays only
- Shift_JIS (cp932) by default, like files exported from Excel on Windows

Optionally writes the headers in their mojibake form (UTF-8 bytes re-read as
Shift_JIS) to exercise header normalization.
"""
from __future__ import annotations

import argparse
import sys
from datetime import date, timedelta
from pathlib import Path

import numpy as np
import pandas as pd

from curriculum_import.models.schedule_row import CANONICAL_COLUMNS, CLASS_NAMES, YEARS

WEEKDAYS = "月火水木金土日"
SUBJECTS = ["国語", "数学", "英語", "理科", "社会", "情報", "簿記", "ビジネス文書"]
TEACHERS = ["佐藤", "鈴木", "高橋", "田中", "伊藤", "渡辺"]
SPECIAL_COUNTS = ["試験", "模試", "実習2"]


def school_days(start: date, days: int) -> list[date]:
    result = []
    d = start
    while len(result) < days:
        if d.weekday() < 5:
            result.append(d)
        d += timedelta(days=1)
    return result


def generate_schedule(start: date, days: int, periods: int, seed: int = 42) -> pd.DataFrame:
    """Build the timetable DataFrame (column order = table column order)."""
    rng = np.random.default_rng(seed)
    records: list[dict[str, str]] = []
    for d in school_days(start, days):
        for period in range(1, periods + 1):
            record = {
                "日付": f"{d.year}/{d.month}/{d.day}",
                "曜日": WEEKDAYS[d.weekday()],
                "時限": str(period),
            }
            for year in YEARS:
                for class_name in CLASS_NAMES:
                    prefix = f"{year}年{class_name}クラス"
                    if rng.random() < 0.2:
                        # 空きコマ
                        record[f"{prefix}の授業内容"] = ""
                        record[f"{prefix}担当講師名"] = ""
                        record[f"{prefix}コマ数"] = ""
                        continue
                    record[f"{prefix}の授業内容"] = str(rng.choice(SUBJECTS))
                    record[f"{prefix}担当講師名"] = str(rng.choice(TEACHERS))
                    if rng.random() < 0.05:
                        record[f"{prefix}コマ数"] = str(rng.choice(SPECIAL_COUNTS))
                    else:
                        record[f"{prefix}コマ数"] = "1"
            records.append(record)
    return pd.DataFrame(records, columns=list(CANONICAL_COLUMNS))


def mojibake(text: str) -> str:
    """UTF-8 bytes read back as Shift_JIS (the corruption seen in uploads)."""
    return text.encode("utf-8").decode("cp932", errors="replace")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate a synthetic schedule CSV for upload testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 1 month, 4 periods per day
  %(prog)s data/sample.csv

  # One semester as UTF-8 TSV
  %(prog)s data/semester.tsv --days 90 --encoding utf-8 --tsv

  # Mojibake headers
  %(prog)s data/broken.csv --mojibake-headers
        """,
    )
    parser.add_argument("output", type=Path, help="Output CSV path")
    parser.add_argument("--start", type=date.fromisoformat, default=date(2025, 9, 1), help="First date (YYYY-MM-DD)")
    parser.add_argument("--days", type=int, default=20, help="Number of school days (default: 20)")
    parser.add_argument("--periods", type=int, default=4, help="Periods per day (default: 4)")
    parser.add_argument("--encoding", default="cp932", help="Output encoding (default: cp932)")
    parser.add_argument("--tsv", action="store_true", help="Tab separated output")
    parser.add_argument("--mojibake-headers", action="store_true", help="Corrupt the header row")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.days <= 0 or args.periods <= 0:
        print("Error: --days and --periods must be positive", file=sys.stderr)
        return 1

    df = generate_schedule(args.start, args.days, args.periods, args.seed)
    if args.mojibake_headers:
        df.columns = [mojibake(c) for c in df.columns]

    args.output.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(
        args.output,
        sep="\t" if args.tsv else ",",
        index=False,
        encoding=args.encoding,
        errors="replace",
    )
    print(f"wrote {len(df)} rows -> {args.output} ({args.encoding})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
