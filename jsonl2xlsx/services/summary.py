from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .stream import StreamResult

"""SUMMARY line rendering.

Format:
SUMMARY rows={written} rejected={rejected} config_errors={n} fallback={yes|no} elapsed_sec={elapsed}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: StreamResult) -> str:
    """Render the SUMMARY line for a finished run.

    Examples:
        >>> from types import SimpleNamespace
        >>> r = SimpleNamespace(rows_written=3, rows_rejected=1, config_errors=0,
        ...                     used_fallback=False, elapsed_seconds=2.0)
        >>> render_summary_line(r)
        'SUMMARY rows=3 rejected=1 config_errors=0 fallback=no elapsed_sec=2'
    """
    return (
        f"SUMMARY rows={result.rows_written} "
        f"rejected={result.rows_rejected} "
        f"config_errors={result.config_errors} "
        f"fallback={'yes' if result.used_fallback else 'no'} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
