"""Domain models for the JSON Lines -> XLSX converter.

Configuration records (sheet layout and column schema) and the structured
error record used for rejected input lines.
"""

from .config_models import (
    ColumnSchema,
    ColumnType,
    HorizontalAlignment,
    SheetConfig,
    VerticalAlignment,
)
from .error_record import STAGE_CONFIG, STAGE_ROW, ErrorRecord

__all__ = [
    # Configuration models
    "ColumnSchema",
    "ColumnType",
    "HorizontalAlignment",
    "SheetConfig",
    "VerticalAlignment",
    # Diagnostics
    "ErrorRecord",
    "STAGE_CONFIG",
    "STAGE_ROW",
]
