from __future__ import annotations

from functools import lru_cache
from typing import Any, Iterable, List

from sqlalchemy import Engine, Select, func, select
from sqlalchemy.orm import sessionmaker

from datastore.db import ReadingRow, build_default_engine
from models.records import Reading


class ReadingStore:
    """Append-only persistence for readings plus execution of compiled selects."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def append_many(self, readings: Iterable[Reading]) -> int:
        """Persist ``readings`` in one transaction; nothing is written if any insert fails."""
        rows = [ReadingRow.from_reading(reading) for reading in readings]
        with self._sessions.begin() as session:
            session.add_all(rows)
        return len(rows)

    def find(self, statement: Select) -> List[Reading]:
        with self._sessions() as session:
            return [row.to_reading() for row in session.scalars(statement)]

    def aggregate(self, statement: Select) -> Any:
        with self._sessions() as session:
            return session.execute(statement).scalar_one()

    def count(self) -> int:
        with self._sessions() as session:
            return session.execute(select(func.count(ReadingRow.id))).scalar_one()


@lru_cache
def build_default_store() -> ReadingStore:
    return ReadingStore(engine=build_default_engine())
