"""Validation of untyped JSON search bodies into :class:`QuerySpec` values.

All checks happen here so the plan builder can assume every column, operator
and value it receives is well typed.
"""

from __future__ import annotations

import json
import math
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from models.query import (
    AggregateOp,
    AggregateSpec,
    FilterOperator,
    FilterValue,
    Predicate,
    QuerySpec,
    SortKey,
    SortOrder,
)
from models.schema import (
    TIMESTAMP_MAX,
    TIMESTAMP_MIN,
    Column,
    ValueKind,
    column_kind,
    enum_codes,
    lookup_column,
)
from services.errors import (
    InvalidClause,
    InvalidEnum,
    InvalidQueryBody,
    TypeMismatch,
    UnknownAggregateOperator,
    UnknownColumn,
    UnknownOperator,
)

_DESCENDING_ALIASES = frozenset({"descending", "desc"})
_OPERATOR_NAMES = ", ".join(op.value for op in FilterOperator)
_AGGREGATE_NAMES = ", ".join(op.value for op in AggregateOp)
# averaging or summing category codes has no meaning
_NUMERIC_ONLY_AGGREGATES = frozenset({AggregateOp.SUM, AggregateOp.AVG})


def decode_query_body(raw: Union[bytes, str]) -> Any:
    """Decode a raw request body; an empty body means "no criteria"."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidQueryBody("Request body must be UTF-8 encoded JSON.") from exc
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidQueryBody("Request body must be valid JSON.") from exc


def _require_column(name: Any, clause: str) -> Column:
    if name is None:
        raise InvalidClause(f"{clause} requires a column.", clause=clause)
    column = lookup_column(name)
    if column is None:
        raise UnknownColumn(f"Unknown column {name!r}.", clause=clause, column=str(name))
    return column


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_filter_value(column: Column, op: FilterOperator, value: Any) -> FilterValue:
    kind = column_kind(column)
    label = f"{column.value}.{op.value}"

    if kind is ValueKind.enum:
        if not isinstance(value, str):
            raise TypeMismatch(
                f"{label} expects a visibility code.", clause="filters", column=column.value
            )
        if value not in enum_codes(column):
            raise InvalidEnum(
                f"{label} must be one of {', '.join(sorted(enum_codes(column)))}.",
                clause="filters",
                column=column.value,
            )
        return value

    if not _is_number(value):
        raise TypeMismatch(f"{label} expects a number.", clause="filters", column=column.value)

    if kind is ValueKind.integer:
        if isinstance(value, float):
            if not math.isfinite(value) or not value.is_integer():
                raise TypeMismatch(
                    f"{label} expects a whole number of seconds.",
                    clause="filters",
                    column=column.value,
                )
            value = int(value)
        if not TIMESTAMP_MIN <= value <= TIMESTAMP_MAX:
            raise TypeMismatch(f"{label} is out of range.", clause="filters", column=column.value)
        return value

    try:
        real = float(value)
    except OverflowError:
        raise TypeMismatch(f"{label} is out of range.", clause="filters", column=column.value) from None
    if not math.isfinite(real):
        raise TypeMismatch(f"{label} expects a number.", clause="filters", column=column.value)
    return real


def _parse_predicate(column: Column, raw: Any) -> Predicate:
    if not isinstance(raw, dict) or not raw:
        raise InvalidClause(
            f"Filter on {column.value} must be an object with at least one of {_OPERATOR_NAMES}.",
            clause="filters",
            column=column.value,
        )

    bounds: Dict[str, FilterValue] = {}
    for name, value in raw.items():
        try:
            op = FilterOperator(name)
        except ValueError:
            raise UnknownOperator(
                f"Unknown operator {name!r} on {column.value}; expected one of {_OPERATOR_NAMES}.",
                clause="filters",
                column=column.value,
            ) from None
        bounds[op.value] = _coerce_filter_value(column, op, value)
    return Predicate(**bounds)


def parse_filters(raw: Any) -> Mapping[Column, Predicate]:
    if raw is None:
        return MappingProxyType({})
    if not isinstance(raw, dict):
        raise InvalidClause("filters must be an object.", clause="filters")

    filters: Dict[Column, Predicate] = {}
    for name, predicate in raw.items():
        column = _require_column(name, "filters")
        filters[column] = _parse_predicate(column, predicate)
    return MappingProxyType(filters)


def parse_sort(raw: Any) -> Optional[SortKey]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidClause("sort must be an object.", clause="sort")

    column = _require_column(raw.get("column"), "sort")
    order = raw.get("order")
    # anything that is not an explicit descending alias sorts ascending
    if isinstance(order, str) and order in _DESCENDING_ALIASES:
        return SortKey(column=column, order=SortOrder.descending)
    return SortKey(column=column, order=SortOrder.ascending)


def parse_aggregate(raw: Any) -> Optional[AggregateSpec]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidClause("aggregate must be an object.", clause="aggregate")

    column = _require_column(raw.get("column"), "aggregate")
    if column is Column.timestamp:
        raise InvalidClause(
            "aggregate column must be a data column, not timestamp.",
            clause="aggregate",
            column=column.value,
        )

    name = raw.get("operator")
    try:
        operator = AggregateOp(name.upper()) if isinstance(name, str) else None
    except ValueError:
        operator = None
    if operator is None:
        raise UnknownAggregateOperator(
            f"Unknown aggregate operator {name!r}; expected one of {_AGGREGATE_NAMES}.",
            clause="aggregate",
            column=column.value,
        )

    if operator in _NUMERIC_ONLY_AGGREGATES and column_kind(column) is ValueKind.enum:
        raise TypeMismatch(
            f"{operator.value} requires a numeric column.",
            clause="aggregate",
            column=column.value,
        )
    return AggregateSpec(column=column, operator=operator)


def parse_query_spec(body: Any) -> QuerySpec:
    """Validate ``body`` (decoded JSON) into a :class:`QuerySpec`.

    ``None`` yields an empty ``QuerySpec``. Unknown top-level keys are ignored.
    """
    if body is None:
        return QuerySpec()
    if not isinstance(body, dict):
        raise InvalidQueryBody("Search body must be a JSON object.")

    return QuerySpec(
        filters=parse_filters(body.get("filters")),
        sort=parse_sort(body.get("sort")),
        aggregate=parse_aggregate(body.get("aggregate")),
    )
