from __future__ import annotations

import json
import re
from datetime import tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError
from PIL import ImageColor

from ..models.config_models import (
    ColumnSchema,
    ColumnType,
    HorizontalAlignment,
    SheetConfig,
    VerticalAlignment,
)

"""Config loader for the sheet configuration record.

Responsibilities:
- Decode the config line (JSON) or a config file (YAML/JSON)
- Match keys case-insensitively (``OutputFile`` == ``outputfile``)
- Validate against config_schema.json
- Apply defaults, assign 1-based column indices from declaration order
- Parse alignment names, font colours and the timezone; fail closed on
  anything unknown so a bad config is rejected before any row is read
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "parse_config_line",
    "parse_config_data",
    "load_config_file",
    "resolve_timezone",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

DEFAULT_SHEET_NAME = "Sheet1"
# openpyxl / Excel sheet title rules
_SHEET_NAME_MAX = 31
_SHEET_NAME_INVALID = re.compile(r"[\\*?:/\[\]]")
_HEX_COLOR = re.compile(r"^#([0-9A-Fa-f]{3}|[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")

_schema_cache: dict[str, Any] | None = None
_MISSING = object()


class ConfigError(Exception):
    pass


def _load_schema() -> dict[str, Any]:
    global _schema_cache
    if _schema_cache is None:
        if not SCHEMA_PATH.exists():
            raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
        try:
            _schema_cache = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid schema file: {e}") from e
    return _schema_cache


def _lower_keys(data: Any) -> Any:
    """Lower-case the keys of the root object and of each column object."""
    if not isinstance(data, dict):
        return data
    lowered = {str(k).lower(): v for k, v in data.items()}
    columns = lowered.get("columns")
    if isinstance(columns, list):
        lowered["columns"] = [
            {str(k).lower(): v for k, v in c.items()} if isinstance(c, dict) else c
            for c in columns
        ]
    return lowered


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate normalized config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema is unavailable or the data violates it
            (missing ``columns``, wrong types, negative counts, bad rotation).
    """
    schema = _load_schema()
    try:
        jsonschema.validate(data, schema)
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {where}: {e.message}") from e


def _int(value: Any, default: int = 0) -> int:
    return default if value is None else int(value)


def _text(value: Any) -> str | None:
    if value is None or not str(value).strip():
        return None
    return str(value)


def _alignment(enum_cls, raw: Any, default, field: str):
    # absent key -> default; explicit blank -> not set
    if raw is _MISSING:
        return default
    try:
        return enum_cls.parse(raw)
    except ValueError as e:
        raise ConfigError(f"{field}: {e}") from e


def parse_font_color(raw: str | None) -> str | None:
    """Resolve a configured font colour to an ``AARRGGBB`` string.

    ``#RGB``, ``#RRGGBB`` and ``#AARRGGBB`` are RGB literals; any other value
    is looked up as a named colour (CSS names, e.g. ``red``, ``DarkBlue``).
    Blank means no colour.
    """
    text = _text(raw)
    if text is None:
        return None
    text = text.strip()
    if text.startswith("#"):
        match = _HEX_COLOR.match(text)
        if match is None:
            raise ConfigError(f"fontColor: invalid hex colour '{text}'")
        digits = match.group(1).upper()
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        if len(digits) == 6:
            digits = "FF" + digits
        return digits
    try:
        rgb = ImageColor.getrgb(text.lower())
    except ValueError as e:
        raise ConfigError(f"fontColor: unknown colour name '{text}'") from e
    r, g, b = rgb[:3]
    return f"FF{r:02X}{g:02X}{b:02X}"


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Return the ZoneInfo for ``name``; None (system local time) when blank."""
    text = _text(name)
    if text is None:
        return None
    try:
        return ZoneInfo(text.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"timezone: unknown zone '{text}'") from e


def _sheet_name(raw: Any) -> str:
    name = _text(raw)
    if name is None:
        return DEFAULT_SHEET_NAME
    if len(name) > _SHEET_NAME_MAX:
        raise ConfigError(f"sheetName: longer than {_SHEET_NAME_MAX} characters: '{name}'")
    if _SHEET_NAME_INVALID.search(name):
        raise ConfigError(f"sheetName: contains a character not allowed in sheet names: '{name}'")
    return name


def _column(position: int, raw: dict[str, Any]) -> ColumnSchema:
    field = f"columns[{position}]"
    type_name = _text(raw.get("type")) or ColumnType.STRING.value
    return ColumnSchema(
        index=position + 1,
        name=raw["name"],
        caption=raw.get("caption") or "",
        type=type_name.strip(),
        width=_int(raw.get("width")),
        header_rotation=_int(raw.get("headerrotation")),
        header_alignment_h=_alignment(
            HorizontalAlignment,
            raw.get("headeralignmenth", _MISSING),
            HorizontalAlignment.LEFT,
            f"{field}.headerAlignmentH",
        ),
        header_alignment_v=_alignment(
            VerticalAlignment,
            raw.get("headeralignmentv", _MISSING),
            VerticalAlignment.TOP,
            f"{field}.headerAlignmentV",
        ),
        merge_h=_int(raw.get("mergeh")),
        merge_v=_int(raw.get("mergev")),
        font_color=parse_font_color(raw.get("fontcolor")),
    )


def parse_config_data(data: Any) -> SheetConfig:
    """Build a SheetConfig from an already decoded mapping."""
    if not isinstance(data, dict):
        raise ConfigError(f"config must be a JSON object, got {type(data).__name__}")
    data = _lower_keys(data)
    _validate_config_schema(data)

    timezone = _text(data.get("timezone"))
    resolve_timezone(timezone)  # fail early on unknown zones

    columns = tuple(_column(i, c) for i, c in enumerate(data["columns"]))
    return SheetConfig(
        columns=columns,
        output_file=_text(data.get("outputfile")),
        sheet_name=_sheet_name(data.get("sheetname")),
        freeze_rows=_int(data.get("freezerows")),
        freeze_columns=_int(data.get("freezecolumns")),
        header_height=_int(data.get("headerheight")),
        sub_header=bool(data.get("subheader") or False),
        sub_header_height=_int(data.get("subheaderheight")),
        sub_header_rotation=_int(data.get("subheaderrotation")),
        sub_header_alignment_h=_alignment(
            HorizontalAlignment,
            data.get("subheaderalignmenth", _MISSING),
            HorizontalAlignment.CENTER,
            "subHeaderAlignmentH",
        ),
        sub_header_alignment_v=_alignment(
            VerticalAlignment,
            data.get("subheaderalignmentv", _MISSING),
            VerticalAlignment.CENTER,
            "subHeaderAlignmentV",
        ),
        timezone=timezone.strip() if timezone else None,
    )


def parse_config_line(line: str) -> SheetConfig:
    """Decode one input line as the sheet configuration."""
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid json: {e}") from e
    return parse_config_data(data)


def load_config_file(path: Path) -> SheetConfig:
    """Load the sheet configuration from a YAML (or JSON) file."""
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    return parse_config_data(data)
