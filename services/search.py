"""Search orchestration: parse, compile and execute one request."""

from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any, Dict

from datastore.readings_table import build_default_store
from services.errors import PayloadError, SchemaValidationError
from services.executor import AggregateResult, QueryExecutor, SearchResult
from services.query_parser import parse_query_spec
from services.query_plan import build_plan

logger = logging.getLogger(__name__)


class QueryService:
    """Compiles every request into a fresh plan; nothing is cached between searches."""

    def __init__(self, executor: QueryExecutor) -> None:
        self.executor = executor

    def search(self, body: Any) -> SearchResult:
        start_time = time.perf_counter()
        try:
            spec = parse_query_spec(body)
        except SchemaValidationError as exc:
            logger.warning(
                "Rejected search request",
                extra={"clause": exc.clause, "column": exc.column, "reason": exc.message},
            )
            raise
        except PayloadError as exc:
            logger.warning("Rejected search request", extra={"reason": str(exc)})
            raise

        result = self.executor.execute(build_plan(spec))

        extra: Dict[str, Any] = {"duration_ms": int((time.perf_counter() - start_time) * 1000)}
        if isinstance(result, AggregateResult):
            extra["operator"] = result.operator.value
            extra["column"] = result.column.value
        else:
            extra["row_count"] = len(result.rows)
        logger.info("Search completed", extra=extra)
        return result


@lru_cache
def build_default_query_service() -> QueryService:
    return QueryService(executor=QueryExecutor(store=build_default_store()))
