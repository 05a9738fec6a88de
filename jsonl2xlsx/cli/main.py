from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO, TextIO

from dotenv import load_dotenv

from ..config.loader import ConfigError, load_config_file, resolve_timezone
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..services.progress import RowProgress
from ..services.sink import OutputError, write_output
from ..services.stream import StreamDriver
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env (existing environment variables win)
- Optional config file (--config); otherwise the first input line is the config
- Stream stdin through the StreamDriver
- Write the document to the configured file or to stdout
- Log a SUMMARY line on stderr

Exit status is 0 for every completed run, including the fallback document,
and 1 when the document cannot be written or the startup config is unusable.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1

ENV_TIMEZONE = "JSONL2XLSX_TIMEZONE"
ENV_DEBUG = "JSONL2XLSX_DEBUG"


def _load_env_file(path: Path) -> None:
    """Load .env using python-dotenv; values already in the environment win."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=False)
    except OSError as e:  # pragma: no cover
        print(f"WARN failed to load {path}: {e}", file=sys.stderr)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="jsonl2xlsx",
        description="Convert JSON Lines on stdin into a styled XLSX worksheet",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging (diagnostics include tracebacks)")
    p.add_argument("--config", metavar="PATH", help="Read the sheet config from a YAML/JSON file instead of the first input line")
    p.add_argument("--error-log", metavar="PATH", help="Append rejected lines as JSON Lines error records to PATH")
    p.add_argument("--no-progress", action="store_true", help="Never show the row counter on stderr")
    return p.parse_args(argv)


def _stdin_lines() -> Iterable[str]:
    stream = sys.stdin
    if hasattr(stream, "reconfigure"):
        # undecodable bytes become U+FFFD; the line still goes through json.loads
        stream.reconfigure(encoding="utf-8", errors="replace")
    return stream


def main(
    argv: list[str] | None = None,
    stdin: Iterable[str] | None = None,
    stdout: TextIO | BinaryIO | None = None,
) -> int:
    # None -> real command line; [] stays empty (tests)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    logger = setup_logging()
    if args.debug or os.getenv(ENV_DEBUG) == "1":
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        default_tz = resolve_timezone(os.getenv(ENV_TIMEZONE))
    except ConfigError as e:
        logger.error(f"{ENV_TIMEZONE}: {e}")
        return EXIT_FATAL

    config = None
    if args.config:
        try:
            config = load_config_file(Path(args.config))
        except ConfigError as e:
            logger.error(f"config: {e}")
            return EXIT_FATAL

    error_log = ErrorLogBuffer(Path(args.error_log)) if args.error_log else None
    lines = stdin if stdin is not None else _stdin_lines()

    with RowProgress(enabled=not args.no_progress) as progress:
        try:
            driver = StreamDriver(
                config,
                default_timezone=default_tz,
                error_log=error_log,
                progress=progress,
            )
        except ConfigError as e:
            logger.error(f"config: {e}")
            return EXIT_FATAL
        result = driver.run(lines)

    if error_log is not None:
        try:
            path = error_log.flush()
            logger.info(f"error log: {path}")
        except OSError as e:
            # rejected lines were already reported on stderr
            logger.warning(f"error log not written: {e}")

    try:
        write_output(result.layout.workbook, result.output_file, stdout=stdout)
    except OutputError as e:
        logger.error(f"output: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result)
    # log_summary adds the "SUMMARY " prefix itself
    log_summary(summary_line[len("SUMMARY "):])
    return EXIT_SUCCESS
