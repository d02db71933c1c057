from __future__ import annotations

from typing import Callable, Iterator

import pytest
from sqlalchemy import Engine

from datastore.db import build_default_engine, create_database_engine
from datastore.readings_table import ReadingStore, build_default_store
from datastore.users_table import build_default_user_store
from services.auth import build_default_auth_service
from services.ingestion import IngestionService, build_default_ingestion_service
from services.search import build_default_query_service
from settings import get_settings

SAMPLE_CSV = """timestamp,temperature,rainfall,humidity,wind_speed,visibility
1000,10,0,40,5,G
1001,15,1.5,55,3,VG
1002,20,3,70,12,M
1003,25,0,30,8,E
1004,15,0.5,90,0,G
"""

DEFAULT_CACHES = (
    get_settings,
    build_default_engine,
    build_default_store,
    build_default_user_store,
    build_default_auth_service,
    build_default_ingestion_service,
    build_default_query_service,
)


def clear_default_caches() -> None:
    for cache in DEFAULT_CACHES:
        cache.cache_clear()


@pytest.fixture
def engine(tmp_path) -> Iterator[Engine]:
    engine = create_database_engine(f"sqlite:///{tmp_path / 'weather.sqlite3'}")
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine: Engine) -> ReadingStore:
    return ReadingStore(engine=engine)


@pytest.fixture
def sample_csv() -> str:
    return SAMPLE_CSV


@pytest.fixture
def seeded_store(store: ReadingStore) -> ReadingStore:
    IngestionService(store=store).ingest(SAMPLE_CSV)
    return store


@pytest.fixture
def default_environment(tmp_path, monkeypatch) -> Iterator[None]:
    """Point every default factory at a scratch database."""
    monkeypatch.setenv("WEATHER_DATABASE_URL", f"sqlite:///{tmp_path / 'app.sqlite3'}")
    monkeypatch.setenv("AUTH_TOKEN_SECRET", "weather-store-test-signing-secret")
    monkeypatch.setenv("ADMIN_EMAIL", "admin@admin.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "pass")
    clear_default_caches()
    yield
    build_default_engine().dispose()
    clear_default_caches()


@pytest.fixture
def clear_caches() -> Callable[[], None]:
    return clear_default_caches
