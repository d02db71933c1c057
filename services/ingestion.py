"""CSV decoding and normalization of weather readings."""

from __future__ import annotations

import csv
import io
import logging
import math
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Sequence, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError

from datastore.readings_table import ReadingStore, build_default_store
from models.records import Reading
from models.schema import (
    CSV_COLUMNS,
    NON_NEGATIVE_COLUMNS,
    TIMESTAMP_MAX,
    TIMESTAMP_MIN,
    VISIBILITY_CODES,
    Column,
    Visibility,
)
from services.errors import (
    EmptyOrInvalidPayload,
    IngestionFailed,
    InvalidEnum,
    MalformedRow,
    NegativeValue,
    PayloadError,
    SchemaValidationError,
)

logger = logging.getLogger(__name__)

INVALID_CSV_MESSAGE = "Invalid csv file provided."


@dataclass(frozen=True)
class IngestionReceipt:
    accepted: int


def decode_rows(text: str) -> Iterator[Tuple[int, List[str]]]:
    """Yield ``(row_number, fields)`` for every data row, skipping the header line.

    Row numbers are 1-based file lines, so the first data row is row 2.
    """
    if not text.strip():
        raise EmptyOrInvalidPayload(INVALID_CSV_MESSAGE)

    reader = csv.reader(io.StringIO(text), strict=True)
    try:
        header = next(reader, None)
        if header is None:
            raise EmptyOrInvalidPayload(INVALID_CSV_MESSAGE)
        for row_number, fields in enumerate(reader, start=2):
            if not fields:
                continue
            if len(fields) != len(CSV_COLUMNS):
                raise MalformedRow(
                    f"Row {row_number}: expected {len(CSV_COLUMNS)} fields, got {len(fields)}.",
                    row_number=row_number,
                )
            yield row_number, fields
    except csv.Error as exc:
        raise EmptyOrInvalidPayload(INVALID_CSV_MESSAGE) from exc


def _coerce_real(raw: str, column: Column, row_number: int) -> float:
    candidate = raw.strip()
    if not candidate:
        raise MalformedRow(
            f"Row {row_number}: missing {column.value}.",
            column=column.value,
            row_number=row_number,
        )
    try:
        value = float(candidate)
    except ValueError:
        raise MalformedRow(
            f"Row {row_number}: {column.value} is not a number.",
            column=column.value,
            row_number=row_number,
        ) from None
    if not math.isfinite(value):
        raise MalformedRow(
            f"Row {row_number}: {column.value} must be a finite number.",
            column=column.value,
            row_number=row_number,
        )
    if column in NON_NEGATIVE_COLUMNS and value < 0:
        raise NegativeValue(
            f"Row {row_number}: {column.value} cannot be negative.",
            column=column.value,
            row_number=row_number,
        )
    return value


def _coerce_timestamp(raw: str, row_number: int) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        real = _coerce_real(raw, Column.timestamp, row_number)
        if not real.is_integer():
            raise MalformedRow(
                f"Row {row_number}: timestamp must be a whole number of seconds.",
                column=Column.timestamp.value,
                row_number=row_number,
            ) from None
        value = int(real)
    if not TIMESTAMP_MIN <= value <= TIMESTAMP_MAX:
        raise MalformedRow(
            f"Row {row_number}: timestamp is out of range.",
            column=Column.timestamp.value,
            row_number=row_number,
        )
    return value


def _coerce_visibility(raw: str, row_number: int) -> Visibility:
    candidate = raw.strip()
    if candidate not in VISIBILITY_CODES:
        raise InvalidEnum(
            f"Row {row_number}: visibility must be one of {', '.join(v.value for v in Visibility)}.",
            column=Column.visibility.value,
            row_number=row_number,
        )
    return Visibility(candidate)


def normalize_row(fields: Sequence[str], row_number: int) -> Reading:
    """Coerce one positional CSV row into a typed reading."""
    if len(fields) != len(CSV_COLUMNS):
        raise MalformedRow(
            f"Row {row_number}: expected {len(CSV_COLUMNS)} fields, got {len(fields)}.",
            row_number=row_number,
        )
    timestamp, temperature, rainfall, humidity, wind_speed, visibility = fields
    return Reading(
        timestamp=_coerce_timestamp(timestamp, row_number),
        temperature=_coerce_real(temperature, Column.temperature, row_number),
        rainfall=_coerce_real(rainfall, Column.rainfall, row_number),
        humidity=_coerce_real(humidity, Column.humidity, row_number),
        wind_speed=_coerce_real(wind_speed, Column.wind_speed, row_number),
        visibility=_coerce_visibility(visibility, row_number),
    )


def normalize_batch(text: str) -> List[Reading]:
    """Validate every row of ``text``; the first invalid row rejects the whole batch."""
    readings = [normalize_row(fields, row_number) for row_number, fields in decode_rows(text)]
    if not readings:
        raise EmptyOrInvalidPayload(INVALID_CSV_MESSAGE)
    return readings


class IngestionService:
    """Validates uploaded CSV batches and hands them to the store."""

    def __init__(self, store: ReadingStore) -> None:
        self.store = store

    def ingest(self, payload: Union[bytes, str]) -> IngestionReceipt:
        start_time = time.perf_counter()
        text = self._decode_payload(payload)

        try:
            readings = normalize_batch(text)
        except (PayloadError, SchemaValidationError) as exc:
            logger.warning(
                "Rejected sensor upload",
                extra={"reason": str(exc), "row_number": getattr(exc, "row_number", None)},
            )
            raise

        try:
            accepted = self.store.append_many(readings)
        except SQLAlchemyError as exc:
            logger.exception("Failed to persist sensor upload", extra={"row_count": len(readings)})
            raise IngestionFailed("Failed to store sensor readings.") from exc

        logger.info(
            "Stored sensor upload",
            extra={
                "accepted": accepted,
                "duration_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return IngestionReceipt(accepted=accepted)

    @staticmethod
    def _decode_payload(payload: Union[bytes, str]) -> str:
        if isinstance(payload, str):
            return payload
        try:
            return payload.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise EmptyOrInvalidPayload(INVALID_CSV_MESSAGE) from exc


@lru_cache
def build_default_ingestion_service() -> IngestionService:
    return IngestionService(store=build_default_store())
