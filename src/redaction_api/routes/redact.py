"""PDF redaction endpoint."""

import base64
import logging
from typing import List, Optional

import filetype
from fastapi import APIRouter, File, Form, UploadFile, status
from starlette.requests import Request

from pii_redaction import BatchResult, ValidationError, build_pipeline

from ..config import get_settings
from ..models.schemas import ErrorResponse, FileResult, RedactPdfResponse
from ..rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Redaction"])


def _verify_pdf_content(data: bytes, label: str) -> None:
    """Verify that an upload is a PDF using MIME type detection."""
    if not data:
        raise ValidationError(f"File is empty: {label}")
    kind = filetype.guess(data)
    if kind is None:
        raise ValidationError(f"File type could not be determined: {label}")
    if kind.mime != "application/pdf":
        raise ValidationError(f"File is not a valid PDF (detected: {kind.mime}): {label}")


def _b64(data: Optional[bytes]) -> Optional[str]:
    return base64.b64encode(data).decode("ascii") if data else None


def _build_response(batch: BatchResult, exclude_address: Optional[str]) -> RedactPdfResponse:
    files = [
        FileResult(
            filename=doc.filename,
            status=doc.status,
            redacted_base64=_b64(doc.redacted_pdf),
            page_count=doc.page_count,
            redactions_count=doc.regions_produced,
            entities_count=doc.entities_found,
            signature_count=doc.signature_regions,
            language=doc.language or None,
            dropped_chunks=doc.dropped_chunks,
            signature_model_failed=doc.signature_model_failed,
            error=doc.error,
        )
        for doc in batch.documents
    ]
    return RedactPdfResponse(
        files=files,
        combined_base64=_b64(batch.combined_pdf),
        total_entities=batch.total_entities,
        total_redactions=batch.total_regions,
        files_merged=len(batch.documents),
        excluded_address=exclude_address,
        address_was_excluded=bool(exclude_address),
        dropped_chunks=batch.dropped_chunks,
    )


@router.post(
    "/redact-pdf",
    response_model=RedactPdfResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Redact PII and signatures from one or more PDFs",
)
@limiter.limit("30/minute")
async def redact_pdf(
    request: Request,
    files: Optional[List[UploadFile]] = File(None, alias="files[]"),
    exclude_address: Optional[str] = Form(None, alias="excludeAddress"),
) -> RedactPdfResponse:
    settings = get_settings()
    exclude_address = exclude_address.strip() if exclude_address and exclude_address.strip() else None

    if not files:
        raise ValidationError("No files uploaded")
    if len(files) > settings.max_batch_size:
        raise ValidationError(
            f"Too many files: {len(files)} (maximum {settings.max_batch_size})"
        )

    documents = []
    for i, upload in enumerate(files):
        filename = upload.filename or f"file-{i + 1}.pdf"
        contents = await upload.read()
        if len(contents) > settings.max_file_size_bytes:
            raise ValidationError(
                f"File size exceeds maximum allowed size of {settings.max_file_size_mb}MB: {filename}"
            )
        _verify_pdf_content(contents, filename)
        documents.append((filename, contents))

    logger.info(
        "Processing %d PDF files (exclude address: %s)",
        len(documents), "yes" if exclude_address else "no",
    )

    pipeline = build_pipeline(**settings.pipeline_kwargs())
    try:
        batch = await pipeline.process_batch_async(documents, exclude_address=exclude_address)
    finally:
        pipeline.close()

    response = _build_response(batch, exclude_address)
    if len(batch.failed) == len(batch.documents):
        logger.error("All %d documents failed", len(batch.documents))
        raise AllDocumentsFailed(response)

    logger.info(
        "PDF redaction completed: %d files, %d entities, %d redactions",
        response.files_merged, response.total_entities, response.total_redactions,
    )
    return response


class AllDocumentsFailed(Exception):
    """Raised when no document in a request could be redacted."""

    def __init__(self, response: RedactPdfResponse):
        errors = "; ".join(f"{f.filename}: {f.error}" for f in response.files if f.error)
        super().__init__(errors or "All documents failed")
        self.response = response
