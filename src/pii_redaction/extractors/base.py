"""Abstract base class for OCR extractors."""

from abc import ABC, abstractmethod

from ..models.entities import DocumentAnalysis


class BaseExtractor(ABC):
    """Interface for document OCR extractors."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> DocumentAnalysis:
        """
        Run OCR over a PDF document.

        Args:
            pdf_bytes: Raw bytes of the source PDF.

        Returns:
            DocumentAnalysis with the canonical text, pages with word
            geometry, and style spans.

        Raises:
            ExtractionFailure: OCR failed or did not complete in time.
        """
