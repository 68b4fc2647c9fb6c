"""Typed conversion of raw spreadsheet cells.

Spreadsheets are edited by hand, so a bad cell never raises: it becomes
``None`` and the reason is reported back to the caller as a warning string.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Optional, Tuple, Union

from dateutil import parser as date_parser

from .descriptors import ColumnDescriptor, ColumnType

logger = logging.getLogger(__name__)

CellValue = Union[str, int, float, None]

# Numbers are read from the longest leading numeric prefix, so "1500.5" is an
# INTEGER 1500 and "12abc" is 12; only a cell with no such prefix is nulled.
_INTEGER_PREFIX_RE = re.compile(r"[+-]?[0-9]+")
_REAL_PREFIX_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def parse_event_time(raw: str) -> Optional[int]:
    """Parse a loosely formatted date such as ``October 25 2025 07:00 PM``.

    Naive values are interpreted in the process's local timezone. Returns the
    instant as milliseconds since the epoch, or ``None`` when unparseable.
    """
    if not raw or not raw.strip():
        return None
    try:
        parsed = date_parser.parse(raw)
    except (ValueError, OverflowError):
        return None
    try:
        return round(parsed.timestamp() * 1000)
    except (ValueError, OverflowError, OSError):
        return None


def try_coerce(
    raw: Optional[str],
    declared_type: ColumnType,
    *,
    timestamp: bool = False,
) -> Tuple[CellValue, Optional[str]]:
    """Return ``(value, warning)``; ``warning`` is set when the cell was nulled."""
    if raw is None or raw == "":
        return None, None

    if timestamp:
        value = parse_event_time(raw)
        if value is None:
            return None, f"invalid date {raw!r}"
        return value, None

    if declared_type is ColumnType.INTEGER:
        match = _INTEGER_PREFIX_RE.match(raw.lstrip())
        if match is None:
            return None, f"invalid integer {raw!r}"
        return int(match.group(), 10), None

    if declared_type is ColumnType.REAL:
        match = _REAL_PREFIX_RE.match(raw.lstrip())
        if match is None:
            return None, f"invalid real {raw!r}"
        number = float(match.group())
        if not math.isfinite(number):
            return None, f"real out of range {raw!r}"
        return number, None

    return raw, None


def coerce(raw: Optional[str], declared_type: ColumnType, *, timestamp: bool = False) -> CellValue:
    """Coerce ``raw`` to ``declared_type``, logging and nulling bad cells."""
    value, warning = try_coerce(raw, declared_type, timestamp=timestamp)
    if warning:
        logger.warning("Coercion to %s failed: %s", declared_type.value, warning)
    return value


def coerce_column(raw: Optional[str], column: ColumnDescriptor) -> Tuple[CellValue, Optional[str]]:
    return try_coerce(raw, column.declared_type, timestamp=column.timestamp)
