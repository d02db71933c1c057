from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import register_exception_handlers, router
from datastore.db import build_default_engine
from datastore.readings_table import build_default_store
from datastore.users_table import build_default_user_store
from logging_config import configure_logging
from services.auth import build_default_auth_service
from services.ingestion import build_default_ingestion_service
from services.search import build_default_query_service
from settings import get_settings

logger = logging.getLogger(__name__)

_SERVICE_FACTORIES = (
    build_default_query_service,
    build_default_ingestion_service,
    build_default_auth_service,
    build_default_store,
    build_default_user_store,
)


def _seed_admin() -> None:
    settings = get_settings()
    if not settings.admin_email or not settings.admin_password:
        return
    if build_default_auth_service().ensure_user(settings.admin_email, settings.admin_password):
        logger.info("Seeded admin user", extra={"email": settings.admin_email})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    engine = build_default_engine()
    _seed_admin()
    try:
        yield
    finally:
        for factory in _SERVICE_FACTORIES:
            factory.cache_clear()
        engine.dispose()
        build_default_engine.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Weather Sensor Store",
        description="Stores weather sensor CSV uploads and answers filter, sort and aggregate searches.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    register_exception_handlers(app)
    return app

app = create_app()
