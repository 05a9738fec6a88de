from __future__ import annotations

from pathlib import Path

from ..models.error_record import ErrorRecord

"""Error log buffering for rejected input lines.

Records are collected in memory while the stream is read and flushed once,
at the end of the run, as JSON Lines (one ErrorRecord per line, fixed keys).
The run is single threaded so no locking is needed.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]


class ErrorLogBuffer:
    """In-memory buffer for error records. ``flush`` appends JSON Lines to ``path``."""

    def __init__(self, path: Path) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path = path

    @property
    def file_path(self) -> Path:
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path:
        fp = self._file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
