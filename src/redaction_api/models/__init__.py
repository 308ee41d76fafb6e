"""Pydantic models for API request/response schemas."""

from .schemas import (
    ErrorResponse,
    FileResult,
    HealthResponse,
    ReadyzResponse,
    RedactPdfResponse,
)

__all__ = [
    "ErrorResponse",
    "FileResult",
    "HealthResponse",
    "ReadyzResponse",
    "RedactPdfResponse",
]
