from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATABASE_URL_ENV = "WEATHER_DATABASE_URL"
_TOKEN_SECRET_ENV = "AUTH_TOKEN_SECRET"
_TOKEN_TTL_ENV = "AUTH_TOKEN_TTL_SECONDS"
_ADMIN_EMAIL_ENV = "ADMIN_EMAIL"
_ADMIN_PASSWORD_ENV = "ADMIN_PASSWORD"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    database_url: str
    token_secret: str
    token_ttl_seconds: int
    admin_email: Optional[str]
    admin_password: Optional[str]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=_read_str_env(_DATABASE_URL_ENV, "sqlite:///./tmp/weather.sqlite3"),
        token_secret=_read_str_env(_TOKEN_SECRET_ENV, "change-me-weather-store-token-secret"),
        token_ttl_seconds=_read_positive_int(_TOKEN_TTL_ENV, 86400),
        admin_email=_read_optional_env(_ADMIN_EMAIL_ENV, None),
        admin_password=_read_optional_env(_ADMIN_PASSWORD_ENV, None),
        log_level=_read_log_level("INFO"),
    )
