from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any

from ..models.config_models import ColumnType

"""Typed value coercion for data cells.

``coerce`` turns one decoded JSON value into the value stored in a cell. It
never raises: a value that cannot be converted to the declared type yields
SKIP and the cell stays empty, so one bad field cannot drop the rest of the
row. ``None`` (missing key or JSON null) is SKIP for every type.

Date/time sources:
- int (not bool): milliseconds since the Unix epoch, UTC
- ISO-8601 string: an already decoded date/time value; offset-aware values
  keep their instant, naive values are local wall time
Non-UTC types are expressed in local time (or ``tz``), ``+utc`` types in UTC.
Results are naive datetimes because XLSX cells carry no zone.
"""

__all__ = [
    "Coerced",
    "CoercionResult",
    "SKIP",
    "INT32_MIN",
    "INT32_MAX",
    "coerce",
    "from_unix_millis",
]

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_TRUE_WORDS = frozenset({"true"})
_FALSE_WORDS = frozenset({"false"})


class _Skip:
    """Outcome for "leave the cell empty"."""
    _instance: _Skip | None = None

    def __new__(cls) -> _Skip:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:  # pragma: no cover (trivial)
        return "SKIP"

    def __bool__(self) -> bool:
        return False


SKIP = _Skip()


@dataclass(frozen=True)
class Coerced:
    """Outcome carrying the typed cell value."""
    value: Any


CoercionResult = Coerced | _Skip


class _CoercionFailure(Exception):
    pass


def from_unix_millis(millis: int) -> datetime:
    """Epoch milliseconds -> aware UTC datetime."""
    return UNIX_EPOCH + timedelta(milliseconds=millis)


def _fail(value: Any) -> Any:
    raise _CoercionFailure(f"cannot coerce {value!r}")


def _to_integer(value: Any) -> int:
    if isinstance(value, bool):
        result = int(value)
    elif isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            _fail(value)
        result = round(value)  # half to even
    elif isinstance(value, str):
        text = value.strip()
        try:
            result = int(text)
        except ValueError:
            _fail(value)
    else:
        _fail(value)
    if not INT32_MIN <= result <= INT32_MAX:
        _fail(value)
    return result


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            _fail(value)
        if not result.is_finite():
            _fail(value)
        return result
    return _fail(value)


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            _fail(value)
        return value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return _fail(value)


def _to_instant(value: Any, tz: tzinfo | None) -> datetime:
    """Aware datetime for a temporal source value.

    Naive sources are local wall time: attached to ``tz`` when given,
    otherwise to the system local zone.
    """
    if isinstance(value, bool):
        _fail(value)
    if isinstance(value, int):
        try:
            return from_unix_millis(value)
        except (OverflowError, OSError, ValueError) as e:
            raise _CoercionFailure(str(e)) from e
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise _CoercionFailure(str(e)) from e
    else:
        return _fail(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz) if tz is not None else parsed.astimezone()
    return parsed


def _to_datetime(value: Any, utc: bool, tz: tzinfo | None) -> datetime:
    instant = _to_instant(value, tz)
    if utc:
        converted = instant.astimezone(UTC)
    elif tz is not None:
        converted = instant.astimezone(tz)
    else:
        converted = instant.astimezone()
    return converted.replace(tzinfo=None)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def coerce(value: Any, declared_type: str | None, tz: tzinfo | None = None) -> CoercionResult:
    """Convert ``value`` to the cell value for ``declared_type``.

    Args:
        value: Decoded JSON value (None for a missing key)
        declared_type: Column type name; unknown names are treated as string
        tz: Zone for non-UTC date types; None means the system local zone

    Returns:
        ``Coerced(value)`` or ``SKIP``
    """
    if value is None:
        return SKIP
    kind = ColumnType.lookup(declared_type)
    try:
        if kind is ColumnType.INTEGER:
            return Coerced(_to_integer(value))
        if kind in (ColumnType.DECIMAL, ColumnType.PERCENT):
            return Coerced(_to_decimal(value))
        if kind is ColumnType.BOOLEAN:
            return Coerced(_to_boolean(value))
        if kind is not None and kind.is_temporal:
            return Coerced(_to_datetime(value, kind.is_utc, tz))
        return Coerced(_to_text(value))
    except (_CoercionFailure, ArithmeticError, OSError, TypeError, ValueError):
        return SKIP
