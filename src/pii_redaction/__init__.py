"""PII and signature redaction pipeline for OCR'd PDF documents."""

from .pipeline import PipelineStage, RedactionPipeline
from .factory import build_pipeline
from .errors import (
    ConfigurationError,
    DetectionChunkFailure,
    ExtractionFailure,
    RedactionError,
    RenderingFailure,
    SignatureModelFailure,
    ValidationError,
)
from .models.entities import (
    BatchResult,
    DocumentAnalysis,
    DocumentResult,
    Entity,
    RedactionPlan,
    RedactionRegion,
)
from .tuning import DEFAULT_THRESHOLDS, Thresholds

__all__ = [
    "RedactionPipeline",
    "PipelineStage",
    "build_pipeline",
    "ConfigurationError",
    "DetectionChunkFailure",
    "ExtractionFailure",
    "RedactionError",
    "RenderingFailure",
    "SignatureModelFailure",
    "ValidationError",
    "BatchResult",
    "DocumentAnalysis",
    "DocumentResult",
    "Entity",
    "RedactionPlan",
    "RedactionRegion",
    "DEFAULT_THRESHOLDS",
    "Thresholds",
]
