"""Canonical definition of the weather reading columns."""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


class Column(str, Enum):
    """Columns of a reading, in CSV order."""

    timestamp = "timestamp"
    temperature = "temperature"
    rainfall = "rainfall"
    humidity = "humidity"
    wind_speed = "wind_speed"
    visibility = "visibility"


class ValueKind(str, Enum):
    integer = "integer"
    real = "real"
    enum = "enum"


class Visibility(str, Enum):
    """Visibility scale from very poor to excellent."""

    VP = "VP"
    P = "P"
    M = "M"
    G = "G"
    VG = "VG"
    E = "E"


CSV_COLUMNS: Tuple[Column, ...] = tuple(Column)
DATA_COLUMNS: Tuple[Column, ...] = tuple(c for c in Column if c is not Column.timestamp)
NON_NEGATIVE_COLUMNS: FrozenSet[Column] = frozenset({Column.rainfall, Column.wind_speed})
VISIBILITY_CODES: FrozenSet[str] = frozenset(v.value for v in Visibility)
# timestamps are stored as signed 64-bit SQL integers
TIMESTAMP_MIN = -(2**63)
TIMESTAMP_MAX = 2**63 - 1

_KINDS: Dict[Column, ValueKind] = {
    Column.timestamp: ValueKind.integer,
    Column.temperature: ValueKind.real,
    Column.rainfall: ValueKind.real,
    Column.humidity: ValueKind.real,
    Column.wind_speed: ValueKind.real,
    Column.visibility: ValueKind.enum,
}


def lookup_column(name: object) -> Optional[Column]:
    """Return the column called ``name`` or ``None`` when it is not part of the schema."""
    if not isinstance(name, str):
        return None
    try:
        return Column(name)
    except ValueError:
        return None


def column_exists(name: object) -> bool:
    return lookup_column(name) is not None


def column_kind(column: Column) -> ValueKind:
    return _KINDS[column]


def enum_codes(column: Column) -> FrozenSet[str]:
    """Closed set of valid codes for an enum column; empty for numeric columns."""
    if column is Column.visibility:
        return VISIBILITY_CODES
    return frozenset()
