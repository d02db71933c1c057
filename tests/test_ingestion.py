from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from datastore.db import ReadingRow
from datastore.readings_table import ReadingStore
from models.records import Reading
from models.schema import Visibility
from services.errors import (
    EmptyOrInvalidPayload,
    IngestionFailed,
    InvalidEnum,
    MalformedRow,
    NegativeValue,
)
from services.ingestion import IngestionService, decode_rows, normalize_batch, normalize_row

HEADER = "timestamp,temperature,rainfall,humidity,wind_speed,visibility\n"


def test_normalize_row_coerces_numeric_fields() -> None:
    reading = normalize_row(["1700000000", "12.5", "0", "101.5", "4", " VG "], row_number=2)

    assert reading == Reading(
        timestamp=1700000000,
        temperature=12.5,
        rainfall=0.0,
        humidity=101.5,
        wind_speed=4.0,
        visibility=Visibility.VG,
    )


def test_normalize_row_accepts_whole_number_decimal_timestamp() -> None:
    assert normalize_row(["10.0", "1", "1", "1", "1", "E"], row_number=2).timestamp == 10


@pytest.mark.parametrize(
    "fields, error",
    [
        (["abc", "1", "1", "1", "1", "G"], MalformedRow),
        (["10.5", "1", "1", "1", "1", "G"], MalformedRow),
        (["1111111111111111111111111", "1", "1", "1", "1", "G"], MalformedRow),
        (["-9223372036854775809", "1", "1", "1", "1", "G"], MalformedRow),
        (["10", "warm", "1", "1", "1", "G"], MalformedRow),
        (["10", "", "1", "1", "1", "G"], MalformedRow),
        (["10", "nan", "1", "1", "1", "G"], MalformedRow),
        (["10", "1", "-0.1", "1", "1", "G"], NegativeValue),
        (["10", "1", "1", "1", "-3", "G"], NegativeValue),
        (["10", "1", "1", "1", "1", "foggy"], InvalidEnum),
        (["10", "1", "1", "1", "1", "vg"], InvalidEnum),
    ],
)
def test_normalize_row_rejects_invalid_fields(fields, error) -> None:
    with pytest.raises(error) as excinfo:
        normalize_row(fields, row_number=7)

    assert excinfo.value.row_number == 7


def test_decode_rows_skips_header_and_blank_lines() -> None:
    rows = list(decode_rows(HEADER + "1,2,3,4,5,G\n\n6,7,8,9,10,E\n"))

    assert rows == [
        (2, ["1", "2", "3", "4", "5", "G"]),
        (4, ["6", "7", "8", "9", "10", "E"]),
    ]


def test_decode_rows_reports_wrong_column_count() -> None:
    with pytest.raises(MalformedRow) as excinfo:
        list(decode_rows(HEADER + "1,2,3,4,5,G\n1,2,3\n"))

    assert excinfo.value.row_number == 3


def test_decode_rows_rejects_bad_quoting() -> None:
    with pytest.raises(EmptyOrInvalidPayload):
        list(decode_rows(HEADER + '1,2,3,4,5,"G"x\n'))


@pytest.mark.parametrize("text", ["", "   \n", HEADER])
def test_normalize_batch_rejects_empty_payloads(text: str) -> None:
    with pytest.raises(EmptyOrInvalidPayload):
        normalize_batch(text)


def test_ingest_round_trips_every_row(store: ReadingStore, sample_csv: str) -> None:
    receipt = IngestionService(store=store).ingest(sample_csv.encode("utf-8"))

    assert receipt.accepted == 5
    stored = store.find(select(ReadingRow).order_by(ReadingRow.id))
    assert stored == normalize_batch(sample_csv)


def test_ingest_keeps_duplicate_timestamps(store: ReadingStore) -> None:
    IngestionService(store=store).ingest(HEADER + "5,1,1,1,1,G\n5,2,2,2,2,P\n")

    assert store.count() == 2


def test_ingest_with_one_bad_row_stores_nothing(store: ReadingStore) -> None:
    service = IngestionService(store=store)
    csv_body = HEADER + "1,10,0,40,5,G\n2,not-a-number,0,40,5,G\n3,12,0,40,5,G\n"

    with pytest.raises(MalformedRow) as excinfo:
        service.ingest(csv_body)

    assert excinfo.value.column == "temperature"
    assert excinfo.value.row_number == 3
    assert store.count() == 0


def test_ingest_rejects_timestamp_beyond_storage_range(store: ReadingStore) -> None:
    service = IngestionService(store=store)
    csv_body = HEADER + "1,10,0,40,5,G\n1111111111111111111111111,10,0,40,5,G\n"

    with pytest.raises(MalformedRow) as excinfo:
        service.ingest(csv_body)

    assert excinfo.value.column == "timestamp"
    assert excinfo.value.row_number == 3
    assert store.count() == 0


def test_ingest_empty_body_stores_nothing(store: ReadingStore) -> None:
    with pytest.raises(EmptyOrInvalidPayload):
        IngestionService(store=store).ingest(b"")

    assert store.count() == 0


def test_ingest_rejects_undecodable_bytes(store: ReadingStore) -> None:
    with pytest.raises(EmptyOrInvalidPayload):
        IngestionService(store=store).ingest(b"\xff\xfe\x00bad")


class _FailingStore:
    def append_many(self, readings) -> int:
        raise OperationalError("INSERT", {}, Exception("disk full"))


def test_ingest_wraps_store_failures(sample_csv: str) -> None:
    service = IngestionService(store=_FailingStore())  # type: ignore[arg-type]

    with pytest.raises(IngestionFailed) as excinfo:
        service.ingest(sample_csv)

    assert isinstance(excinfo.value.__cause__, OperationalError)
