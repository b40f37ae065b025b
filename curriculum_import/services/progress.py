from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

One bar per upload, advanced once per insert chunk. In non-TTY environments
(CI, redirected output) the bar is disabled so no control sequences are
written.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress tracker over insert chunks.

    The bar advances optimistically: failed chunks count as processed too,
    their outcome is reported in the postfix and the final summary.
    """

    def __init__(self, total_chunks: int, *, description: str = "Uploading") -> None:
        self.total_chunks = total_chunks
        self.description = description
        self.current_chunk = 0
        self.failed_chunks = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_chunks,
                desc=description,
                unit="chunk",
                leave=True,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def finish_chunk(self, success: bool = True) -> None:
        self.current_chunk += 1
        if not success:
            self.failed_chunks += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)

    def set_postfix(self, **kwargs: Any) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
