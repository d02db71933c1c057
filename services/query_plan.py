"""Compilation of a validated :class:`QuerySpec` into SQLAlchemy statements."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from sqlalchemy import ColumnElement, Select, and_, func, select, true
from sqlalchemy.orm import InstrumentedAttribute

from datastore.db import ReadingRow
from models.query import AggregateOp, FilterOperator, Predicate, QuerySpec, SortKey, SortOrder
from models.schema import Column

_COLUMNS: Dict[Column, InstrumentedAttribute] = {
    column: getattr(ReadingRow, column.value) for column in Column
}

_COMPARATORS: Dict[FilterOperator, Callable[[Any, Any], ColumnElement[bool]]] = {
    FilterOperator.gte: operator.ge,
    FilterOperator.lte: operator.le,
    FilterOperator.eq: operator.eq,
}

_AGGREGATES: Dict[AggregateOp, Callable[[Any], ColumnElement[Any]]] = {
    AggregateOp.COUNT: func.count,
    AggregateOp.MAX: func.max,
    AggregateOp.MIN: func.min,
    AggregateOp.SUM: func.sum,
    AggregateOp.AVG: func.avg,
}


@dataclass(frozen=True)
class AggregateClause:
    op: AggregateOp
    column: Column

    @property
    def label(self) -> str:
        return self.op.value.lower()

    def expression(self) -> ColumnElement[Any]:
        return _AGGREGATES[self.op](_COLUMNS[self.column]).label(self.label)


@dataclass(frozen=True, eq=False)
class Plan:
    """Executable form of a search: predicate, optional ordering, optional aggregate.

    ``sort`` has no effect on :meth:`aggregate_statement`, whose result is a
    single summary row.
    """

    predicate: ColumnElement[bool]
    order_by: Optional[ColumnElement[Any]] = None
    aggregate: Optional[AggregateClause] = None

    def rows_statement(self) -> Select:
        statement = select(ReadingRow).where(self.predicate)
        if self.order_by is not None:
            statement = statement.order_by(self.order_by)
        # insertion order breaks ties and orders unsorted results
        return statement.order_by(ReadingRow.id)

    def aggregate_statement(self) -> Select:
        if self.aggregate is None:
            raise ValueError("Plan has no aggregate clause.")
        return select(self.aggregate.expression()).where(self.predicate)


def build_predicate(filters: Mapping[Column, Predicate]) -> ColumnElement[bool]:
    """AND together one comparison per (column, operator, value) triple."""
    conditions = [
        _COMPARATORS[op](_COLUMNS[column], value)
        for column, predicate in filters.items()
        for op, value in predicate.clauses()
    ]
    return and_(true(), *conditions)


def build_order_by(sort: Optional[SortKey]) -> Optional[ColumnElement[Any]]:
    if sort is None:
        return None
    attribute = _COLUMNS[sort.column]
    return attribute.desc() if sort.order is SortOrder.descending else attribute.asc()


def build_plan(spec: QuerySpec) -> Plan:
    aggregate = None
    if spec.aggregate is not None:
        aggregate = AggregateClause(op=spec.aggregate.operator, column=spec.aggregate.column)
    return Plan(
        predicate=build_predicate(spec.filters),
        order_by=build_order_by(spec.sort),
        aggregate=aggregate,
    )
