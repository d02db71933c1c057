"""Validated, immutable representation of a search request."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple, Union

from models.schema import Column

FilterValue = Union[int, float, str]


class FilterOperator(str, Enum):
    gte = "gte"
    lte = "lte"
    eq = "eq"


class SortOrder(str, Enum):
    ascending = "ascending"
    descending = "descending"


class AggregateOp(str, Enum):
    COUNT = "COUNT"
    MAX = "MAX"
    MIN = "MIN"
    SUM = "SUM"
    AVG = "AVG"


@dataclass(frozen=True)
class Predicate:
    """Comparison bounds for a single column; every bound that is set must hold."""

    gte: Optional[FilterValue] = None
    lte: Optional[FilterValue] = None
    eq: Optional[FilterValue] = None

    def clauses(self) -> Iterator[Tuple[FilterOperator, FilterValue]]:
        for op in FilterOperator:
            value = getattr(self, op.value)
            if value is not None:
                yield op, value


@dataclass(frozen=True)
class SortKey:
    column: Column
    order: SortOrder = SortOrder.ascending


@dataclass(frozen=True)
class AggregateSpec:
    column: Column
    operator: AggregateOp


@dataclass(frozen=True)
class QuerySpec:
    filters: Mapping[Column, Predicate] = field(default_factory=lambda: MappingProxyType({}))
    sort: Optional[SortKey] = None
    aggregate: Optional[AggregateSpec] = None
