"""Redaction through the external PDF rendering service."""

import json
import logging
from typing import Optional, Sequence

import httpx

from .base import BaseRedactor
from ..errors import RenderingFailure
from ..http_retry import error_message, retry_policy
from ..models.entities import RedactionRegion

logger = logging.getLogger(__name__)

_retry_policy = retry_policy(logger)


class RemoteRenderer(BaseRedactor):
    """POST the document and its regions to ``{base_url}/redact``."""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 120.0,
    ):
        self.url = f"{base_url.strip().rstrip('/')}/redact"
        self.client = client or httpx.Client(timeout=timeout)
        self.timeout = timeout

    def redact(
        self,
        pdf_bytes: bytes,
        regions: Sequence[RedactionRegion],
        filename: str = "document.pdf",
    ) -> bytes:
        payload = [r.to_dict() for r in regions]
        logger.info("Sending %d redactions for %s to renderer", len(payload), filename)
        try:
            response = self._post(pdf_bytes, payload, filename)
        except httpx.HTTPError as e:
            raise RenderingFailure(f"Renderer failed for {filename}: {error_message(e)}") from e

        if not response.content:
            raise RenderingFailure(f"Renderer returned an empty document for {filename}")
        return response.content

    @_retry_policy
    def _post(self, pdf_bytes: bytes, payload: list, filename: str) -> httpx.Response:
        response = self.client.post(
            self.url,
            files={"file": (filename, pdf_bytes, "application/pdf")},
            data={"redactions": json.dumps(payload)},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response
