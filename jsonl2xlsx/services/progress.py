from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Row progress display with tqdm (TTY only).

The total number of rows is unknown while streaming, so the bar is a plain
counter. It writes to stderr and is disabled when stderr is not a terminal
(pipes, CI) so that nothing leaks into redirected diagnostics.
"""

__all__ = [
    "RowProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stderr is a TTY and progress should be displayed."""
    return sys.stderr.isatty()


class RowProgress:
    """Counter of accepted / rejected rows shown while the stream is read."""

    def __init__(self, *, description: str = "Rows", enabled: bool = True) -> None:
        self.description = description
        self.rows = 0
        self.rejected = 0

        self.enabled = enabled and is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=None,
                desc=description,
                unit="row",
                file=sys.stderr,
                leave=False,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def row_written(self) -> None:
        self.rows += 1
        if self.pbar is not None:
            self.pbar.update(1)

    def row_rejected(self) -> None:
        self.rejected += 1
        if self.pbar is not None:
            self.pbar.set_postfix(rejected=self.rejected)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> RowProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
