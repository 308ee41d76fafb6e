"""Data models for the redaction pipeline."""

from .entities import (
    POINTS_PER_INCH,
    SIGNATURE_CATEGORY,
    BatchResult,
    DocumentAnalysis,
    DocumentResult,
    Entity,
    EntitySource,
    NERResult,
    Page,
    PageUnit,
    RedactionPlan,
    RedactionRegion,
    Span,
    Style,
    Word,
)

__all__ = [
    "POINTS_PER_INCH",
    "SIGNATURE_CATEGORY",
    "BatchResult",
    "DocumentAnalysis",
    "DocumentResult",
    "Entity",
    "EntitySource",
    "NERResult",
    "Page",
    "PageUnit",
    "RedactionPlan",
    "RedactionRegion",
    "Span",
    "Style",
    "Word",
]
