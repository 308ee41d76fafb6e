"""OCR extraction module."""

from .base import BaseExtractor
from .document_intelligence import DocumentIntelligenceExtractor, PollState

__all__ = ["BaseExtractor", "DocumentIntelligenceExtractor", "PollState"]
