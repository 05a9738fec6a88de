from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for rejected input lines.

One record per config or row line that could not be decoded. Records are
written as JSON Lines with a fixed key set when ``--error-log`` is given.
"""

__all__ = [
    "ErrorRecord",
    "STAGE_CONFIG",
    "STAGE_ROW",
]

STAGE_CONFIG = "config"
STAGE_ROW = "row"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        line: 1-based input line number of the rejected line
        stage: ``config`` or ``row``
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Decoder / validation message
    """
    timestamp: str  # ISO8601 UTC
    line: int
    stage: str
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(line: int, stage: str, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            line=line,
            stage=stage,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
