"""PDF redaction module."""

from .base import BaseRedactor
from .pdf_utils import combine_pdfs, count_pages
from .remote_renderer import RemoteRenderer

__all__ = ["BaseRedactor", "RemoteRenderer", "combine_pdfs", "count_pages"]
