from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Config dataclasses for the JSON Lines -> XLSX converter.

The configuration record is the first non-blank input line (or a file passed
with ``--config``). It declares the sheet layout and the ordered column schema.
Both objects are immutable once the loader has assigned column indices.
"""

__all__ = [
    "ColumnType",
    "HorizontalAlignment",
    "VerticalAlignment",
    "ColumnSchema",
    "SheetConfig",
]


class ColumnType(str, Enum):
    """Semantic column types understood by the coercer and the layout builder.

    Unknown type names are kept verbatim on the column and behave like STRING.
    """
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    PERCENT = "percent"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    DATE_UTC = "date+utc"
    TIME_UTC = "time+utc"
    DATETIME_UTC = "datetime+utc"

    @classmethod
    def lookup(cls, name: str | None) -> ColumnType | None:
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def is_temporal(self) -> bool:
        return self in _TEMPORAL_TYPES

    @property
    def is_utc(self) -> bool:
        return self in (ColumnType.DATE_UTC, ColumnType.TIME_UTC, ColumnType.DATETIME_UTC)


_TEMPORAL_TYPES = frozenset({
    ColumnType.DATE,
    ColumnType.TIME,
    ColumnType.DATETIME,
    ColumnType.DATE_UTC,
    ColumnType.TIME_UTC,
    ColumnType.DATETIME_UTC,
})


class _ParsableEnum(str, Enum):
    """Closed enumeration parsed from free-form config strings.

    ``parse`` is total: blank input means "not set" (None), a known name
    (case-insensitive) returns the member and anything else raises ValueError.
    """

    @classmethod
    def parse(cls, name: str | None):
        if name is None or not str(name).strip():
            return None
        wanted = str(name).strip().lower()
        for member in cls:
            if member.name.replace("_", "").lower() == wanted.replace("_", ""):
                return member
        allowed = ", ".join(m.label for m in cls)
        raise ValueError(f"unknown {cls.__name__} '{name}' (allowed: {allowed})")

    @property
    def label(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))


class HorizontalAlignment(_ParsableEnum):
    # values are the openpyxl / OOXML attribute values
    CENTER = "center"
    CENTER_CONTINUOUS = "centerContinuous"
    DISTRIBUTED = "distributed"
    FILL = "fill"
    GENERAL = "general"
    JUSTIFY = "justify"
    LEFT = "left"
    RIGHT = "right"


class VerticalAlignment(_ParsableEnum):
    BOTTOM = "bottom"
    CENTER = "center"
    DISTRIBUTED = "distributed"
    JUSTIFY = "justify"
    TOP = "top"


@dataclass(frozen=True)
class ColumnSchema:
    """One declared output column.

    ``index`` is 1-based and always derived from the column's position in the
    config, never taken from the input. ``name`` is the record key the value
    is read from (exact match); ``caption`` is the header text.
    """
    index: int
    name: str
    caption: str = ""
    type: str = ColumnType.STRING.value
    width: int = 0
    header_rotation: int = 0
    header_alignment_h: HorizontalAlignment | None = HorizontalAlignment.LEFT
    header_alignment_v: VerticalAlignment | None = VerticalAlignment.TOP
    merge_h: int = 0
    merge_v: int = 0
    font_color: str | None = None  # AARRGGBB, already resolved from hex or name

    @property
    def column_type(self) -> ColumnType | None:
        """Known type of this column, None when the name is not recognised."""
        return ColumnType.lookup(self.type)

    @property
    def is_merged(self) -> bool:
        return self.merge_h > 0 or self.merge_v > 0

    @property
    def header_caption(self) -> str:
        if self.caption is None or not self.caption.strip():
            return ""
        return self.caption


@dataclass(frozen=True)
class SheetConfig:
    """Root configuration object for one conversion run."""
    columns: tuple[ColumnSchema, ...]
    output_file: str | None = None  # None/blank -> binary document on stdout
    sheet_name: str = "Sheet1"
    freeze_rows: int = 0
    freeze_columns: int = 0
    header_height: int = 0  # 0 = document default
    sub_header: bool = False
    sub_header_height: int = 0
    sub_header_rotation: int = 0
    sub_header_alignment_h: HorizontalAlignment | None = HorizontalAlignment.CENTER
    sub_header_alignment_v: VerticalAlignment | None = VerticalAlignment.CENTER
    timezone: str | None = None  # IANA zone for local date types; None = system local

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def first_record_row(self) -> int:
        # the first record after the config always lands in row 2; with a
        # sub-header that row is the sub-header and is written as text
        return 2

    @property
    def sub_header_row(self) -> int | None:
        return 2 if self.sub_header else None

    @property
    def writes_to_stdout(self) -> bool:
        return self.output_file is None or not self.output_file.strip()
