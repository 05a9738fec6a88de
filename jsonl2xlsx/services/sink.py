from __future__ import annotations

import io
import logging
import sys
from pathlib import Path
from typing import BinaryIO, TextIO

from openpyxl import Workbook

logger = logging.getLogger(__name__)

"""Output sink: serialize the finished document exactly once.

- no output file: the XLSX bytes go to the binary stdout and nothing else is
  written there
- output file: the workbook is saved to the path, then the resolved path is
  printed on stdout as the run's success signal

Any failure is raised as OutputError; the CLI turns it into exit status 1.
"""

__all__ = [
    "OutputError",
    "write_output",
    "workbook_bytes",
]


class OutputError(Exception):
    """Raised when the document cannot be serialized or written."""


def workbook_bytes(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _binary_stdout(stdout: TextIO | BinaryIO | None) -> BinaryIO:
    stream = stdout if stdout is not None else sys.stdout
    # text streams expose the underlying byte stream as .buffer
    return getattr(stream, "buffer", stream)


def write_output(
    workbook: Workbook,
    output_file: str | None,
    stdout: TextIO | BinaryIO | None = None,
) -> Path | None:
    """Write ``workbook`` to ``output_file`` or to stdout.

    Args:
        workbook: Finished document
        output_file: Target path; None/blank selects stdout
        stdout: Stream override (tests); defaults to sys.stdout

    Returns:
        The resolved path written, or None when the document went to stdout

    Raises:
        OutputError: serialization or I/O failure
    """
    if output_file is None or not output_file.strip():
        try:
            data = workbook_bytes(workbook)
            out = _binary_stdout(stdout)
            out.write(data)
            out.flush()
        except (OSError, ValueError, TypeError) as e:
            raise OutputError(f"cannot write document to stdout: {e}") from e
        logger.debug(f"document written to stdout ({len(data)} bytes)")
        return None

    path = Path(output_file).expanduser().resolve()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(path)
    except (OSError, ValueError, TypeError) as e:
        raise OutputError(f"cannot write document to {path}: {e}") from e
    text_out = stdout if stdout is not None else sys.stdout
    print(str(path), file=text_out, flush=True)
    logger.debug(f"document written to {path}")
    return path
