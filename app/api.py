"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.schemas import ErrorResponse, LoginRequest, LoginResponse, UploadResponse
from services.auth import AuthService, build_default_auth_service
from services.errors import (
    AuthError,
    ExecutionError,
    IngestionFailed,
    InvalidCredentials,
    PayloadError,
    SchemaValidationError,
)
from services.ingestion import IngestionService, build_default_ingestion_service
from services.query_parser import decode_query_body
from services.search import QueryService, build_default_query_service

logger = logging.getLogger(__name__)

router = APIRouter()
bearer_scheme = HTTPBearer(auto_error=False)

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def get_auth_service() -> AuthService:
    return build_default_auth_service()


def get_ingestion_service() -> IngestionService:
    return build_default_ingestion_service()


def get_query_service() -> QueryService:
    return build_default_query_service()


def require_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> str:
    """Resolve the caller's email from the bearer token before any body is read."""
    token = credentials.credentials if credentials is not None else None
    return auth.verify_token(token)


@router.post(
    "/api/login",
    response_model=LoginResponse,
    responses={status.HTTP_403_FORBIDDEN: {"model": ErrorResponse}},
    summary="Exchange credentials for an access token.",
)
async def login(
    payload: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    token = await run_in_threadpool(auth.authenticate, payload.email, payload.password)
    return LoginResponse(access_token=token)


@router.post(
    "/api/sensors/upload",
    response_model=UploadResponse,
    responses=_ERROR_RESPONSES,
    summary="Store a CSV batch of sensor readings.",
)
async def upload_readings(
    request: Request,
    _email: str = Depends(require_token),
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> UploadResponse:
    body = await request.body()
    receipt = await run_in_threadpool(ingestion.ingest, body)
    return UploadResponse(accepted=receipt.accepted)


@router.post(
    "/api/sensors/search",
    responses=_ERROR_RESPONSES,
    summary="Filter, sort or aggregate stored readings.",
)
async def search_readings(
    request: Request,
    _email: str = Depends(require_token),
    queries: QueryService = Depends(get_query_service),
) -> Any:
    body = decode_query_body(await request.body())
    result = await run_in_threadpool(queries.search, body)
    return result.to_payload()


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


def _error_response(status_code: int, message: str, clause: Optional[str] = None) -> JSONResponse:
    content = ErrorResponse(message=message, clause=clause).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=content)


async def _handle_auth_error(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, InvalidCredentials):
        return _error_response(status.HTTP_403_FORBIDDEN, str(exc))
    logger.info("Rejected unauthenticated request", extra={"reason": str(exc)})
    return _error_response(status.HTTP_401_UNAUTHORIZED, "Invalid access token.")


async def _handle_payload_error(request: Request, exc: Exception) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))


async def _handle_validation_error(request: Request, exc: SchemaValidationError) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, exc.message, exc.clause)


async def _handle_execution_error(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, IngestionFailed):
        message = "Failed to store sensor readings."
    else:
        message = "Invalid search parameters provided."
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, _handle_auth_error)
    app.add_exception_handler(PayloadError, _handle_payload_error)
    app.add_exception_handler(SchemaValidationError, _handle_validation_error)
    app.add_exception_handler(ExecutionError, _handle_execution_error)
