from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import tzinfo
from enum import Enum

from ..config.loader import ConfigError, parse_config_line, resolve_timezone
from ..excel.layout import SheetLayout, build_fallback_layout, build_layout
from ..excel.rows import append_row
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import SheetConfig
from ..models.error_record import STAGE_CONFIG, STAGE_ROW, ErrorRecord
from .progress import RowProgress

logger = logging.getLogger(__name__)

"""Stream driver: the line-by-line state machine of a conversion run.

States: AWAITING_CONFIG -> STREAMING_ROWS -> FINALIZING (terminal)

- AWAITING_CONFIG: the first non-blank line is tried as the config. A line
  that fails is reported and the next line is tried again, until one is
  accepted or input ends.
- STREAMING_ROWS: each line is decoded as a JSON object and written to the
  next row. A line that fails is reported and dropped; the row counter only
  advances on accepted rows, so written rows stay contiguous.
- A blank line ends input in either state, as does end of stream.
- FINALIZING: without an accepted config a one-column fallback document is
  substituted so the run still has something valid to write.
"""

__all__ = [
    "StreamState",
    "StreamResult",
    "StreamDriver",
]


class StreamState(Enum):
    AWAITING_CONFIG = "awaiting_config"
    STREAMING_ROWS = "streaming_rows"
    FINALIZING = "finalizing"


@dataclass(frozen=True)
class StreamResult:
    """Outcome of a finished stream, handed to the output sink."""
    layout: SheetLayout
    config: SheetConfig | None
    rows_written: int
    rows_rejected: int
    config_errors: int
    used_fallback: bool
    elapsed_seconds: float

    @property
    def output_file(self) -> str | None:
        if self.config is None or self.config.writes_to_stdout:
            return None
        return self.config.output_file


class StreamDriver:
    """Consumes input lines and mutates one in-memory document.

    The driver owns the row counter (``next_row``); it is passed explicitly to
    the row writer on each call.
    """

    def __init__(
        self,
        config: SheetConfig | None = None,
        *,
        default_timezone: tzinfo | None = None,
        error_log: ErrorLogBuffer | None = None,
        progress: RowProgress | None = None,
    ) -> None:
        self.default_timezone = default_timezone
        self.error_log = error_log
        self.progress = progress
        self.state = StreamState.AWAITING_CONFIG
        self.config: SheetConfig | None = None
        self.layout: SheetLayout | None = None
        self.next_row = 0
        self.line_number = 0
        self.rows_written = 0
        self.rows_rejected = 0
        self.config_errors = 0
        self._started = time.perf_counter()
        if config is not None:
            self._accept_config(config)

    def _accept_config(self, config: SheetConfig) -> None:
        timezone = resolve_timezone(config.timezone) if config.timezone else self.default_timezone
        try:
            layout = build_layout(config, timezone=timezone)
        except ValueError as e:
            raise ConfigError(f"layout: {e}") from e
        self.config = config
        self.layout = layout
        self.next_row = config.first_record_row
        self.state = StreamState.STREAMING_ROWS
        logger.info(
            f"config accepted: sheet='{config.sheet_name}' columns={config.column_count} "
            f"sub_header={'yes' if config.sub_header else 'no'} "
            f"output={config.output_file or '<stdout>'}"
        )

    def _reject(self, stage: str, error_type: str, error: Exception) -> None:
        logger.error(
            f"line {self.line_number}: {stage} rejected ({error_type}): {error}",
            exc_info=error if logger.isEnabledFor(logging.DEBUG) else None,
        )
        if self.error_log is not None:
            self.error_log.append(
                ErrorRecord.create(self.line_number, stage, error_type, str(error))
            )

    def _feed_config(self, text: str) -> None:
        try:
            self._accept_config(parse_config_line(text))
        except ConfigError as e:
            self.config_errors += 1
            kind = "CONFIG_DECODE_ERROR" if isinstance(e.__cause__, json.JSONDecodeError) else "CONFIG_INVALID"
            self._reject(STAGE_CONFIG, kind, e)

    def _feed_row(self, text: str) -> None:
        try:
            record = json.loads(text)
        except json.JSONDecodeError as e:
            self._row_rejected("ROW_DECODE_ERROR", e)
            return
        if not isinstance(record, dict):
            self._row_rejected(
                "ROW_NOT_OBJECT",
                ValueError(f"expected a JSON object, got {type(record).__name__}"),
            )
            return
        written = append_row(self.layout, self.next_row, record)
        logger.debug(f"line {self.line_number}: row {self.next_row} written ({written} cells)")
        self.next_row += 1
        self.rows_written += 1
        if self.progress is not None:
            self.progress.row_written()

    def _row_rejected(self, error_type: str, error: Exception) -> None:
        self.rows_rejected += 1
        self._reject(STAGE_ROW, error_type, error)
        if self.progress is not None:
            self.progress.row_rejected()

    def feed(self, line: str) -> bool:
        """Consume one input line.

        Returns:
            False once input has ended (blank line sentinel); True otherwise
        """
        if self.state is StreamState.FINALIZING:
            return False
        self.line_number += 1
        text = line.strip()
        if not text:
            logger.debug(f"line {self.line_number}: blank line, end of input")
            self.state = StreamState.FINALIZING
            return False
        if self.state is StreamState.AWAITING_CONFIG:
            self._feed_config(text)
        else:
            self._feed_row(text)
        return True

    def run(self, lines: Iterable[str]) -> StreamResult:
        """Feed ``lines`` until the blank-line sentinel or end of stream."""
        for line in lines:
            if not self.feed(line):
                break
        return self.finalize()

    def finalize(self) -> StreamResult:
        self.state = StreamState.FINALIZING
        if self.layout is None:
            logger.warning("no valid config line received; writing a single-column fallback document")
            self.layout = build_fallback_layout()
        return StreamResult(
            layout=self.layout,
            config=self.config,
            rows_written=self.rows_written,
            rows_rejected=self.rows_rejected,
            config_errors=self.config_errors,
            used_fallback=self.layout.is_fallback,
            elapsed_seconds=time.perf_counter() - self._started,
        )
