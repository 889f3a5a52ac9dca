"""Common schemas used across the API."""

from typing import Any

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Structured error detail.

    Codes in use: INTERNAL_ERROR (store unavailable, unexpected failures),
    SESSION_NOT_FOUND, ITEM_NOT_CACHED.
    """

    code: str
    message: str
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """Standard error body: { "error": { "code", "message", "detail" } }."""

    error: ErrorDetail
