"""Error taxonomy for the redaction pipeline.

Fatal errors (``ConfigurationError``, ``ValidationError``,
``ExtractionFailure``, ``RenderingFailure``) abort a request or a document.
Non-fatal errors (``DetectionChunkFailure``, ``SignatureModelFailure``) are
raised by the clients and caught by the pipeline, which degrades to a partial
result and records the loss in the document counts.
"""

from typing import Optional


class RedactionError(Exception):
    """Base class for all pipeline errors."""

    fatal = True


class ConfigurationError(RedactionError):
    """Missing credentials or endpoints; raised before any processing."""


class ValidationError(RedactionError):
    """Rejected input (no files, too many files, not a PDF, too large)."""


class ExtractionFailure(RedactionError):
    """The OCR engine failed or did not finish in time."""

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class DetectionChunkFailure(RedactionError):
    """One NER chunk could not be analysed; its entities are omitted."""

    fatal = False

    def __init__(self, message: str, chunk_index: int, chunk_offset: int):
        super().__init__(message)
        self.chunk_index = chunk_index
        self.chunk_offset = chunk_offset


class SignatureModelFailure(RedactionError):
    """The signature-image model call failed; an empty result is used."""

    fatal = False


class RenderingFailure(RedactionError):
    """The external renderer could not produce a redacted document."""


class StageTransitionError(RedactionError):
    """A document pipeline attempted to move backwards through its stages."""
