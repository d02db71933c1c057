from __future__ import annotations

from sqlalchemy import inspect

from datastore.db import build_default_engine
from services.auth import build_default_auth_service
from settings import get_settings


def test_environment_overrides_apply(monkeypatch, tmp_path, clear_caches) -> None:
    database_path = tmp_path / "nested" / "weather.sqlite3"

    monkeypatch.setenv("WEATHER_DATABASE_URL", f"sqlite:///{database_path}")
    monkeypatch.setenv("AUTH_TOKEN_SECRET", "custom-weather-store-signing-secret")
    monkeypatch.setenv("AUTH_TOKEN_TTL_SECONDS", "120")
    monkeypatch.setenv("LOG_LEVEL", " debug ")
    clear_caches()

    settings = get_settings()
    engine = build_default_engine()
    auth = build_default_auth_service()

    try:
        assert settings.database_url == f"sqlite:///{database_path}"
        assert settings.log_level == "DEBUG"
        assert auth.signer.ttl_seconds == 120
        assert database_path.parent.is_dir()
        assert set(inspect(engine).get_table_names()) == {"weather_readings", "users"}
    finally:
        engine.dispose()
        clear_caches()


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("AUTH_TOKEN_TTL_SECONDS", "soon")
    monkeypatch.setenv("ADMIN_EMAIL", "   ")
    monkeypatch.delenv("WEATHER_DATABASE_URL", raising=False)
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.token_ttl_seconds == 86400
        assert settings.admin_email is None
        assert settings.database_url == "sqlite:///./tmp/weather.sqlite3"
    finally:
        get_settings.cache_clear()
