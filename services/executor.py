"""Runs compiled plans against the reading store and shapes the results."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from datastore.readings_table import ReadingStore
from models.query import AggregateOp
from models.records import Reading
from models.schema import Column
from services.errors import QueryExecutionFailed
from services.query_plan import Plan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowsResult:
    rows: List[Reading] = field(default_factory=list)

    def to_payload(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in self.rows]


@dataclass(frozen=True)
class AggregateResult:
    """Single summary value; ``None`` for MAX/MIN/SUM/AVG when no rows match."""

    operator: AggregateOp
    column: Column
    value: Optional[Union[int, float, str]]

    def to_payload(self) -> Dict[str, Dict[str, Any]]:
        return {self.operator.value.lower(): {self.column.value: self.value}}


SearchResult = Union[RowsResult, AggregateResult]


class QueryExecutor:

    def __init__(self, store: ReadingStore) -> None:
        self.store = store

    def execute(self, plan: Plan) -> SearchResult:
        try:
            if plan.aggregate is None:
                return RowsResult(rows=self.store.find(plan.rows_statement()))
            value = self.store.aggregate(plan.aggregate_statement())
        except SQLAlchemyError as exc:
            logger.warning("Store rejected search plan", extra={"reason": str(exc)})
            raise QueryExecutionFailed("Invalid search parameters provided.") from exc

        if plan.aggregate.op is AggregateOp.COUNT and value is None:
            value = 0
        return AggregateResult(
            operator=plan.aggregate.op,
            column=plan.aggregate.column,
            value=value,
        )
