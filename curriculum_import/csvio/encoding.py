from __future__ import annotations

import codecs
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .values import count_corruption

"""Heuristic encoding detection for uploaded schedule files.

Each candidate encoding is decoded with replacement semantics (a browser
``TextDecoder`` never raises either) and scored by the number of corruption
indicators in the result. The lowest score wins; ties go to the candidate
listed first. This is a heuristic, not a charset sniffer: partial corruption
is accepted here and nulled later cell by cell.
"""

__all__ = [
    "DEFAULT_ENCODINGS",
    "DecodeError",
    "EncodingCandidate",
    "decode_candidates",
    "detect_encoding",
]

logger = logging.getLogger(__name__)

# cp932 = ブラウザの "shift-jis" と同等 (NEC/IBM 拡張文字を含む)
DEFAULT_ENCODINGS: tuple[str, ...] = ("cp932", "utf-8", "euc_jp")


class DecodeError(Exception):
    """Raised when no candidate encoding could decode the buffer at all."""


@dataclass(frozen=True)
class EncodingCandidate:
    encoding: str
    text: str
    corruption_count: int


def decode_candidates(data: bytes, encodings: Sequence[str]) -> list[EncodingCandidate]:
    """Decode ``data`` with every usable encoding, in list order."""
    results: list[EncodingCandidate] = []
    for encoding in encodings:
        try:
            codecs.lookup(encoding)
            text = data.decode(encoding, errors="replace")
        except (LookupError, UnicodeError) as e:
            logger.debug("encoding candidate skipped encoding=%s err=%s", encoding, e)
            continue
        results.append(
            EncodingCandidate(encoding=encoding, text=text, corruption_count=count_corruption(text))
        )
    return results


def detect_encoding(data: bytes, encodings: Sequence[str] = DEFAULT_ENCODINGS) -> EncodingCandidate:
    """Return the candidate with the fewest corruption indicators.

    Raises:
        DecodeError: none of ``encodings`` could decode ``data``.
    """
    candidates = decode_candidates(data, encodings)
    if not candidates:
        raise DecodeError(f"could not determine encoding (tried: {', '.join(encodings) or '-'})")

    # min() は同点時に先頭要素を返す = 指定順優先
    best = min(candidates, key=lambda c: c.corruption_count)
    logger.debug(
        "encoding scores=%s selected=%s",
        {c.encoding: c.corruption_count for c in candidates},
        best.encoding,
    )
    return best
