from __future__ import annotations

import re

"""Header normalization for schedule CSV files.

アップロードされる CSV のヘッダは、本体のエンコーディング判定とは無関係に
ファイル自体へ文字化けした状態で焼き込まれていることがある (UTF-8 のバイト列を
Shift_JIS として保存し直したもの)。そのため以下の順で段階的に正規化する:

1. 既知ヘッダ表との完全一致
2. 既知ヘッダ表のキーを部分文字列として含む
3. `<学年>年<クラス>クラス<項目>` 形式 (文字化け版も含む) の分解・再構成
4. 文字化けした「模擬試験」
5. いずれにも該当しなければそのまま
"""

__all__ = [
    "DATE_FIELD",
    "WEEKDAY_FIELD",
    "PERIOD_FIELD",
    "TIME_FIELD",
    "MOCK_EXAM_FIELD",
    "CONTENT_SUFFIX",
    "TEACHER_SUFFIX",
    "PERIOD_COUNT_SUFFIX",
    "class_field",
    "normalize_header",
]

DATE_FIELD = "日付"
WEEKDAY_FIELD = "曜日"
PERIOD_FIELD = "時限"
TIME_FIELD = "時間"  # 旧形式の時限列
MOCK_EXAM_FIELD = "模擬試験"

CONTENT_SUFFIX = "の授業内容"
TEACHER_SUFFIX = "担当講師名"
PERIOD_COUNT_SUFFIX = "コマ数"

# 挿入順 = 部分一致の探索順
HEADER_MAPPING: dict[str, str] = {
    "�ｿ譌･莉�": DATE_FIELD,  # BOM 付き
    "譌･莉�": DATE_FIELD,
    DATE_FIELD: DATE_FIELD,
    "譖懈律": WEEKDAY_FIELD,
    WEEKDAY_FIELD: WEEKDAY_FIELD,
    "譎る俣": TIME_FIELD,
    TIME_FIELD: TIME_FIELD,
    "譎る剞": PERIOD_FIELD,
    PERIOD_FIELD: PERIOD_FIELD,
    "時": PERIOD_FIELD,
    "限": PERIOD_FIELD,
}

# 項目名の部分一致表 (文字化け版 → 正規形)
SUFFIX_MAPPING: tuple[tuple[str, str], ...] = (
    ("縺ｮ謗域･ｭ蜀�ｮｹ", CONTENT_SUFFIX),
    ("授業内容", CONTENT_SUFFIX),
    ("諡�ｽ楢ｬ帛ｸｫ蜷�", TEACHER_SUFFIX),
    ("担当講師", TEACHER_SUFFIX),
    ("繧ｳ繝樊焚", PERIOD_COUNT_SUFFIX),
    (PERIOD_COUNT_SUFFIX, PERIOD_COUNT_SUFFIX),
)

CORRUPTED_MOCK_EXAM = "讓｡謫ｬ隧ｦ鬨�"

CLASS_HEADER_PATTERN = re.compile(r"(\d+)(?:年|蟷ｴ)([A-Z])(?:クラス|繧ｯ繝ｩ繧ｹ)(.+)")


def class_field(year: int, class_name: str, suffix: str) -> str:
    """Canonical column name of one class-grid field, e.g. ``1年Aクラスコマ数``."""
    return f"{year}年{class_name}クラス{suffix}"


def _normalize_suffix(suffix: str) -> str:
    for pattern, replacement in SUFFIX_MAPPING:
        if pattern in suffix:
            return replacement
    return suffix


def normalize_header(header: str) -> str:
    """Map one raw CSV header onto its canonical column name.

    First matching rule wins; unknown headers are returned unchanged.
    """
    mapped = HEADER_MAPPING.get(header)
    if mapped is not None:
        return mapped

    for pattern, replacement in HEADER_MAPPING.items():
        if pattern in header:
            return replacement

    match = CLASS_HEADER_PATTERN.search(header)
    if match:
        year, class_name, suffix = match.groups()
        return f"{year}年{class_name}クラス{_normalize_suffix(suffix)}"

    if CORRUPTED_MOCK_EXAM in header:
        return MOCK_EXAM_FIELD

    return header
