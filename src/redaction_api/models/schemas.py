"""Pydantic schemas for the document redaction API."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Serialized with camelCase keys, as the web client expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileResult(_CamelModel):
    filename: str
    status: str = "completed"
    redacted_base64: Optional[str] = None
    page_count: int = Field(0, ge=0)
    redactions_count: int = Field(0, ge=0)
    entities_count: int = Field(0, ge=0)
    signature_count: int = Field(0, ge=0)
    language: Optional[str] = None
    dropped_chunks: int = Field(0, ge=0)
    signature_model_failed: bool = False
    error: Optional[str] = None


class RedactPdfResponse(_CamelModel):
    files: List[FileResult] = Field(default_factory=list)
    combined_base64: Optional[str] = None
    total_entities: int = 0
    total_redactions: int = 0
    files_merged: int = 0
    excluded_address: Optional[str] = None
    address_was_excluded: bool = False
    dropped_chunks: int = 0


class ErrorResponse(BaseModel):
    error: str
    message: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    signature_model_enabled: bool = False


class ReadyzResponse(BaseModel):
    status: str
    checks: dict[str, str] = Field(default_factory=dict)
