"""Local PDF helpers built on PyMuPDF."""

import logging
from typing import Sequence

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


def count_pages(pdf_bytes: bytes) -> int:
    """Number of pages in a PDF; 0 when the bytes cannot be parsed."""
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            return doc.page_count
    except (RuntimeError, ValueError) as e:
        logger.warning("Could not count PDF pages: %s", e)
        return 0


def combine_pdfs(documents: Sequence[bytes]) -> bytes:
    """Concatenate PDFs in order into a single document."""
    if not documents:
        raise ValueError("combine_pdfs() needs at least one document")

    combined = fitz.open()
    try:
        for pdf_bytes in documents:
            with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
                combined.insert_pdf(doc)
        logger.info("Combined %d documents into %d pages", len(documents), combined.page_count)
        return combined.tobytes()
    finally:
        combined.close()
