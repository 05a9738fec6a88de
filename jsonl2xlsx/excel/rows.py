from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from openpyxl.cell.cell import MergedCell
from openpyxl.utils.exceptions import IllegalCharacterError

from ..models.config_models import ColumnSchema, ColumnType, SheetConfig
from .coerce import SKIP, coerce
from .layout import SheetLayout

"""Row writer: one decoded record -> one worksheet row.

Each column is looked up by exact key, coerced and written independently;
a value that does not coerce leaves only its own cell empty. Cells covered by
a header merge are never written.
"""

__all__ = [
    "effective_type",
    "append_row",
]

logger = logging.getLogger(__name__)


def effective_type(config: SheetConfig, column: ColumnSchema, row_index: int) -> str:
    """Type used to coerce ``column`` on ``row_index``.

    The sub-header row is always written as text, whatever the column type.
    """
    if config.sub_header and row_index == config.sub_header_row:
        return ColumnType.STRING.value
    return column.type


def append_row(layout: SheetLayout, row_index: int, record: Mapping[str, Any]) -> int:
    """Write ``record`` into ``row_index`` of the layout's worksheet.

    Args:
        layout: Document built by build_layout (must carry a config)
        row_index: 1-based target row, owned by the caller
        record: Decoded JSON object; missing keys are treated as null

    Returns:
        Number of cells written (skipped values are not counted)
    """
    config = layout.config
    if config is None:
        raise ValueError("cannot append rows to a document without a column schema")
    ws = layout.worksheet
    written = 0
    for column in config.columns:
        result = coerce(
            record.get(column.name),
            effective_type(config, column, row_index),
            layout.timezone,
        )
        if result is SKIP:
            continue
        cell = ws.cell(row=row_index, column=column.index)
        if isinstance(cell, MergedCell):
            logger.debug(f"cell {cell.coordinate} is covered by a header merge; value for '{column.name}' dropped")
            continue
        try:
            cell.value = result.value
        except IllegalCharacterError:
            logger.debug(f"cell {cell.coordinate}: value for '{column.name}' contains characters not allowed in XLSX")
            continue
        if isinstance(result.value, str) and cell.data_type == "f":
            # text starting with "=" stays text
            cell.data_type = "s"
        layout.style_for(row_index, column.index).apply(cell)
        written += 1
    return written
