"""Error taxonomy raised by the ingestion, query and auth services."""

from __future__ import annotations

from typing import Optional


class WeatherStoreError(Exception):
    """Base class for every request-scoped failure."""


class AuthError(WeatherStoreError):
    pass


class InvalidCredentials(AuthError):
    def __init__(self) -> None:
        super().__init__("Invalid login credentials.")


class InvalidToken(AuthError):
    pass


class PayloadError(WeatherStoreError):
    """The request body is empty or could not be decoded at all."""


class EmptyOrInvalidPayload(PayloadError):
    pass


class InvalidQueryBody(PayloadError):
    pass


class SchemaValidationError(WeatherStoreError):
    """A well-formed payload references columns, operators or values outside the schema."""

    def __init__(
        self,
        message: str,
        *,
        clause: Optional[str] = None,
        column: Optional[str] = None,
        row_number: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.clause = clause
        self.column = column
        self.row_number = row_number


class MalformedRow(SchemaValidationError):
    pass


class InvalidEnum(SchemaValidationError):
    pass


class NegativeValue(SchemaValidationError):
    pass


class UnknownColumn(SchemaValidationError):
    pass


class UnknownOperator(SchemaValidationError):
    pass


class TypeMismatch(SchemaValidationError):
    pass


class InvalidClause(SchemaValidationError):
    pass


class UnknownAggregateOperator(SchemaValidationError):
    pass


class ExecutionError(WeatherStoreError):
    """The store rejected or failed to run an operation; the cause is chained."""


class QueryExecutionFailed(ExecutionError):
    pass


class IngestionFailed(ExecutionError):
    pass
