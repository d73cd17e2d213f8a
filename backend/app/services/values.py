# backend/app/services/values.py
"""
Cell value model and coercion helpers.

Rows are plain ``Dict[str, CellValue]`` mappings. Every helper here is total
over ``CellValue``: anything outside the union is treated through its string
form, so no caller ever has to special-case an unexpected type.
"""
from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Union

CellValue = Union[None, bool, int, float, str, date, datetime]
Row = Dict[str, CellValue]

MISSING_LITERALS = ("", "null")
BLANK_LABEL = "(blank)"
UNKNOWN_LABEL = "Unknown"

_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_RADIX_RE = re.compile(r"^0([xXoObB])([0-9a-fA-F]+)$")
_RADIX_BASES = {"x": 16, "o": 8, "b": 2}
_DATE_LIKE_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$"
)


class ValueKind(str, Enum):
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    NULL = "null"
    DATE_LIKE = "date"


def classify(value: Any) -> ValueKind:
    """Return the tagged-union kind of a raw cell value."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, numbers.Number):
        return ValueKind.NUMBER
    if isinstance(value, (date, datetime)):
        return ValueKind.DATE_LIKE
    if isinstance(value, str) and _DATE_LIKE_RE.match(value.strip()):
        return ValueKind.DATE_LIKE
    return ValueKind.STRING


def is_missing(value: Any) -> bool:
    """None, empty string and the literal string "null" count as missing."""
    if value is None:
        return True
    return isinstance(value, str) and value in MISSING_LITERALS


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _parse_number(text: str) -> float:
    text = text.strip()
    if not text:
        return math.nan
    if _DECIMAL_RE.match(text):
        return float(text)
    match = _RADIX_RE.match(text)
    if match:
        try:
            return float(int(match.group(2), _RADIX_BASES[match.group(1).lower()]))
        except ValueError:
            return math.nan
    if text in ("Infinity", "+Infinity"):
        return math.inf
    if text == "-Infinity":
        return -math.inf
    return math.nan


def to_number(value: Any) -> float:
    """
    Best-effort numeric coercion. Returns NaN when the value has no numeric
    reading (None, empty or non-numeric strings, dates).
    """
    kind = classify(value)
    if kind is ValueKind.NULL or kind is ValueKind.DATE_LIKE:
        return math.nan
    if kind is ValueKind.BOOLEAN:
        return 1.0 if value else 0.0
    if kind is ValueKind.NUMBER:
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
        except (TypeError, ValueError):
            return math.nan
    if isinstance(value, str):
        return _parse_number(value)
    return _parse_number(str(value))


def is_numeric_like(value: Any) -> bool:
    if value is None or (isinstance(value, str) and value == ""):
        return False
    return math.isfinite(to_number(value))


def number_or_zero(value: Any) -> float:
    """Lossy coercion used for summation: anything without a number becomes 0."""
    number = to_number(value)
    return 0.0 if math.isnan(number) else number


def to_label(value: Any) -> str:
    """String form of a cell, rendered the way a browser would display it."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def canonical(value: Any) -> Any:
    """JSON-stable form of a cell used for row identity."""
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, numbers.Number):
        number = to_number(value)
        if math.isfinite(number) and number.is_integer():
            return int(number)
        return number
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def cell(row: Mapping[str, Any], column: str) -> Any:
    """Read a cell; rows that are not mappings behave as all-null."""
    if not isinstance(row, Mapping):
        return None
    return row.get(column)
