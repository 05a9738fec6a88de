from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import tzinfo

from openpyxl import Workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.cell_range import CellRange
from openpyxl.worksheet.worksheet import Worksheet

from ..models.config_models import ColumnSchema, ColumnType, HorizontalAlignment, SheetConfig

"""Worksheet layout construction.

Builds the initial, still empty document from a SheetConfig:
1. one sheet named after the config
2. header row 1: bold, left aligned, optional height
3. per column: type default number format and width, explicit width and
   font colour overrides
4. header captions with rotation / alignment; merged header cells are black
5. horizontal and vertical header merges; a merge that intersects an
   earlier one replaces it
6. optional sub-header row 2 styled as text
7. frozen rows / columns

openpyxl does not push column styles onto the cells written later, so the
per-column cell styles are kept on the SheetLayout and applied by the row
writer.
"""

__all__ = [
    "CellStyle",
    "SheetLayout",
    "TYPE_FORMATS",
    "TEXT_FORMAT",
    "build_layout",
    "build_fallback_layout",
]

logger = logging.getLogger(__name__)

HEADER_ROW = 1
TEXT_FORMAT = "@"
BLACK = "FF000000"
FALLBACK_SHEET_NAME = "Sheet1"
FALLBACK_CAPTION = "Column1"

# type -> (number format, default width)
TYPE_FORMATS: dict[ColumnType, tuple[str, int]] = {
    ColumnType.PERCENT: ("0%", 7),
    ColumnType.INTEGER: ("#,##0", 10),
    ColumnType.DECIMAL: ("#,##0.0##", 10),
    ColumnType.DATE: ("dd.mm.yyyy", 10),
    ColumnType.DATE_UTC: ("dd.mm.yyyy", 10),
    ColumnType.TIME: ("hh:mm:ss", 10),
    ColumnType.TIME_UTC: ("hh:mm:ss", 10),
    ColumnType.DATETIME: ("dd.mm.yyyy hh:mm:ss", 20),
    ColumnType.DATETIME_UTC: ("dd.mm.yyyy hh:mm:ss", 20),
}


@dataclass(frozen=True)
class CellStyle:
    """Style a written cell inherits from its column (and row)."""
    number_format: str | None = None
    font: Font | None = None
    alignment: Alignment | None = None

    def apply(self, cell) -> None:
        if self.number_format is not None:
            cell.number_format = self.number_format
        if self.font is not None:
            cell.font = self.font
        if self.alignment is not None:
            cell.alignment = self.alignment


@dataclass
class SheetLayout:
    """The document being built plus what the row writer needs from the layout."""
    workbook: Workbook
    worksheet: Worksheet
    config: SheetConfig | None
    column_styles: dict[int, CellStyle] = field(default_factory=dict)
    sub_header_styles: dict[int, CellStyle] = field(default_factory=dict)
    timezone: tzinfo | None = None

    @property
    def is_fallback(self) -> bool:
        return self.config is None

    def style_for(self, row_index: int, column_index: int) -> CellStyle:
        if self.config is not None and row_index == self.config.sub_header_row:
            return self.sub_header_styles.get(column_index, CellStyle(number_format=TEXT_FORMAT))
        return self.column_styles.get(column_index, CellStyle())


def _new_sheet(sheet_name: str) -> tuple[Workbook, Worksheet]:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    return wb, ws


def _alignment(rotation: int, horizontal, vertical) -> Alignment | None:
    kwargs = {}
    if rotation is not None and rotation >= 0:
        kwargs["text_rotation"] = rotation
    if horizontal is not None:
        kwargs["horizontal"] = horizontal.value
    if vertical is not None:
        kwargs["vertical"] = vertical.value
    return Alignment(**kwargs) if kwargs else None


def _apply_column_defaults(ws: Worksheet, column: ColumnSchema) -> CellStyle:
    """Type-driven format/width, explicit width and font colour for one column."""
    dim = ws.column_dimensions[get_column_letter(column.index)]
    number_format = None
    kind = column.column_type
    if kind in TYPE_FORMATS:
        number_format, default_width = TYPE_FORMATS[kind]
        dim.number_format = number_format
        dim.width = default_width
    if column.width > 0:
        dim.width = column.width
    font = None
    if column.font_color:
        font = Font(color=column.font_color)
        dim.font = font
    return CellStyle(number_format=number_format, font=font)


def _write_header_cell(ws: Worksheet, column: ColumnSchema) -> None:
    cell = ws.cell(row=HEADER_ROW, column=column.index)
    if isinstance(cell, MergedCell):
        # covered by a merge declared on an earlier column
        logger.debug(f"header cell {cell.coordinate} is inside a merged range; caption '{column.header_caption}' not written")
        return
    cell.value = column.header_caption
    color = column.font_color
    if column.is_merged and color:
        color = BLACK
    cell.font = Font(bold=True, color=color)
    cell.alignment = _alignment(
        column.header_rotation,
        column.header_alignment_h or HorizontalAlignment.LEFT,
        column.header_alignment_v,
    )


def _merge(ws: Worksheet, column: ColumnSchema, target: CellRange) -> None:
    # intersecting merge ranges make XLSX invalid; the later merge wins
    for existing in list(ws.merged_cells.ranges):
        if not existing.isdisjoint(target):
            logger.warning(
                f"column '{column.name}': merge {target.coord} overlaps {existing.coord}; "
                f"{existing.coord} is unmerged"
            )
            ws.unmerge_cells(existing.coord)
    ws.merge_cells(target.coord)


def _merge_header(ws: Worksheet, column: ColumnSchema) -> None:
    if column.merge_h > 0:
        _merge(ws, column, CellRange(
            min_col=column.index,
            min_row=HEADER_ROW,
            max_col=column.index + column.merge_h,
            max_row=HEADER_ROW,
        ))
    if column.merge_v > 0:
        _merge(ws, column, CellRange(
            min_col=column.index,
            min_row=HEADER_ROW,
            max_col=column.index,
            max_row=HEADER_ROW + column.merge_v,
        ))


def _style_sub_header(ws: Worksheet, config: SheetConfig, column_styles: dict[int, CellStyle]) -> dict[int, CellStyle]:
    row = config.sub_header_row
    dim = ws.row_dimensions[row]
    alignment = _alignment(
        config.sub_header_rotation,
        config.sub_header_alignment_h,
        config.sub_header_alignment_v,
    )
    if alignment is not None:
        dim.alignment = alignment
    if config.sub_header_height > 0:
        dim.height = config.sub_header_height
    dim.number_format = TEXT_FORMAT
    return {
        index: CellStyle(number_format=TEXT_FORMAT, font=style.font, alignment=alignment)
        for index, style in column_styles.items()
    }


def _freeze(ws: Worksheet, rows: int, columns: int) -> None:
    if rows <= 0 and columns <= 0:
        return
    ws.freeze_panes = f"{get_column_letter(columns + 1)}{rows + 1}"


def build_layout(config: SheetConfig, timezone: tzinfo | None = None) -> SheetLayout:
    """Create the styled, empty document for ``config``.

    Args:
        config: Parsed sheet configuration (column indices already assigned)
        timezone: Zone used by the row writer for non-UTC date types

    Returns:
        SheetLayout ready to receive rows from ``config.first_record_row``
    """
    wb, ws = _new_sheet(config.sheet_name)

    header = ws.row_dimensions[HEADER_ROW]
    header.font = Font(bold=True)
    header.alignment = Alignment(horizontal="left")
    if config.header_height > 0:
        header.height = config.header_height

    column_styles: dict[int, CellStyle] = {}
    for column in config.columns:
        column_styles[column.index] = _apply_column_defaults(ws, column)
        _merge_header(ws, column)
        _write_header_cell(ws, column)

    sub_header_styles: dict[int, CellStyle] = {}
    if config.sub_header:
        sub_header_styles = _style_sub_header(ws, config, column_styles)

    _freeze(ws, config.freeze_rows, config.freeze_columns)

    logger.debug(
        f"layout built: sheet='{config.sheet_name}' columns={config.column_count} "
        f"sub_header={config.sub_header} merges={len(ws.merged_cells.ranges)}"
    )
    return SheetLayout(
        workbook=wb,
        worksheet=ws,
        config=config,
        column_styles=column_styles,
        sub_header_styles=sub_header_styles,
        timezone=timezone,
    )


def build_fallback_layout() -> SheetLayout:
    """Minimal document used when no config line was ever accepted."""
    wb, ws = _new_sheet(FALLBACK_SHEET_NAME)
    cell = ws.cell(row=HEADER_ROW, column=1, value=FALLBACK_CAPTION)
    cell.font = Font(bold=True)
    cell.alignment = Alignment(horizontal="left")
    return SheetLayout(workbook=wb, worksheet=ws, config=None)
