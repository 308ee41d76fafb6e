"""Abstract base class for PDF redactors."""

from abc import ABC, abstractmethod
from typing import Sequence

from ..models.entities import RedactionRegion


class BaseRedactor(ABC):
    """Interface for document redactors."""

    @abstractmethod
    def redact(
        self,
        pdf_bytes: bytes,
        regions: Sequence[RedactionRegion],
        filename: str = "document.pdf",
    ) -> bytes:
        """
        Burn the given regions into a PDF.

        Args:
            pdf_bytes: Raw bytes of the source PDF.
            regions: Page-relative rectangles in points.
            filename: Name used when the document is sent elsewhere.

        Returns:
            Bytes of the redacted PDF.

        Raises:
            RenderingFailure: the redacted document could not be produced.
        """
