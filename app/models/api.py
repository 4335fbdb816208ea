"""
API Models - Pydantic models for HTTP responses.

Request bodies are parsed by app.services.request_validator so that both JSON
objects and JSON-encoded strings are accepted.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VerifyResponse(BaseModel):
    """POST /api/verify success response."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    active: bool
    expiry_millis: int | None = Field(None, alias="expiryMillis")
    reason: str | None = None


class ErrorResponse(BaseModel):
    """Error response body for every non-200 outcome."""

    error: str
    details: Any = None


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str
    version: str
    credentials_configured: bool
    play_api_version: str
