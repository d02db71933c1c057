"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Credentials posted to the login endpoint; missing fields fail like wrong ones."""

    email: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")


class UploadResponse(BaseModel):
    message: str = "Success!"
    accepted: int = Field(..., ge=0, description="Number of readings stored from the upload.")


class ErrorResponse(BaseModel):
    message: str
    clause: Optional[str] = None
