"""SQLAlchemy engine, declarative base and table mappings for the reading store."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import Engine, Float, Integer, String, create_engine, make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool

from models.records import Reading
from models.schema import Visibility
from settings import get_settings


class Base(DeclarativeBase):
    """Base class for ORM models."""


class ReadingRow(Base):
    __tablename__ = "weather_readings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # not unique: duplicate timestamps are stored as separate rows
    timestamp: Mapped[int] = mapped_column(Integer, index=True)
    temperature: Mapped[float] = mapped_column(Float)
    rainfall: Mapped[float] = mapped_column(Float)
    humidity: Mapped[float] = mapped_column(Float)
    wind_speed: Mapped[float] = mapped_column(Float)
    visibility: Mapped[str] = mapped_column(String(2))

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingRow":
        return cls(
            timestamp=reading.timestamp,
            temperature=reading.temperature,
            rainfall=reading.rainfall,
            humidity=reading.humidity,
            wind_speed=reading.wind_speed,
            visibility=reading.visibility.value,
        )

    def to_reading(self) -> Reading:
        return Reading(
            timestamp=self.timestamp,
            temperature=self.temperature,
            rainfall=self.rainfall,
            humidity=self.humidity,
            wind_speed=self.wind_speed,
            visibility=Visibility(self.visibility),
        )


class UserRow(Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(255))


def create_database_engine(url: str) -> Engine:
    """Create an engine for ``url`` and make sure every table exists."""
    parsed = make_url(url)
    kwargs: Dict[str, Any] = {}
    if parsed.get_backend_name() == "sqlite":
        # FastAPI serves requests from a thread pool
        kwargs["connect_args"] = {"check_same_thread": False}
        database = parsed.database
        if not database or database == ":memory:":
            kwargs["poolclass"] = StaticPool
        else:
            Path(database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, **kwargs)
    Base.metadata.create_all(bind=engine)
    return engine


@lru_cache
def build_default_engine(url: Optional[str] = None) -> Engine:
    settings = get_settings()
    database_url = settings.database_url if url is None else url
    return create_database_engine(database_url)
