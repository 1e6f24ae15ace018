"""
Cell value converters for workbook import and export.

Import converters never raise: unparseable input falls back to the
type's default value (empty string, zero, False, or "now" for dates).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from django.utils import timezone

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

STRING = "string"
INT = "int"
FLOAT = "float"
BOOL = "bool"
DATE = "date"

KINDS = (STRING, INT, FLOAT, BOOL, DATE)


def _normalize_number(value: str) -> str:
    return value.replace(",", "").strip()


def to_str(value: Any, default: str = "") -> str:
    """
    Read a cell as trimmed text.

    Integral floats lose their ".0" so numeric mobile numbers and ids
    read back the way they were typed.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    elif isinstance(value, datetime):
        text = format_date(value)
    else:
        text = str(value)
    text = text.strip()
    return text if text else default


def to_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, int):
        return value
    text = _normalize_number(str(value))
    try:
        return int(text)
    except ValueError:
        pass
    # inf and nan have no integer form
    try:
        return int(float(text))
    except (ValueError, OverflowError):
        return default


def to_float(value: Any, default: float = 0.0) -> float:
    """
    Read a cell as a float.

    Thousands separators are stripped first, so "12,345.50" reads as 12345.5.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(_normalize_number(str(value)))
    except ValueError:
        return default


def to_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
    return default


def to_date(value: Any) -> datetime:
    """
    Read a cell as an aware datetime.

    Accepts native datetime cells and strings in DATE_FORMAT. Anything else
    yields the current time.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = to_str(value)
        try:
            parsed = datetime.strptime(text, DATE_FORMAT)
        except ValueError:
            return timezone.now()
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def format_date(value: datetime | None) -> str:
    if value is None:
        return ""
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    return value.strftime(DATE_FORMAT)


_READERS = {
    STRING: to_str,
    INT: to_int,
    FLOAT: to_float,
    BOOL: to_bool,
    DATE: to_date,
}

_DEFAULTS = {
    STRING: "",
    INT: 0,
    FLOAT: 0.0,
    BOOL: False,
}


def read_cell(kind: str, value: Any) -> Any:
    """Convert a raw cell value to the Python type for ``kind``."""
    return _READERS[kind](value)


def default_for(kind: str) -> Any:
    """Value used when a column is absent from the sheet."""
    if kind == DATE:
        return timezone.now()
    return _DEFAULTS[kind]


def write_cell(kind: str, value: Any) -> Any:
    """Convert a record field to a sheet-native scalar."""
    if kind == DATE:
        return format_date(value)
    if value is None:
        return _DEFAULTS[kind]
    if kind == INT:
        return int(value)
    if kind == FLOAT:
        return float(value)
    if kind == BOOL:
        return bool(value)
    return str(value)
