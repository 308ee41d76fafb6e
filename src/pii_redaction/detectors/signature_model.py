"""Client for the external signature-image detection model."""

import json
import logging
from typing import List, Optional, Sequence

import httpx

from ..errors import SignatureModelFailure
from ..http_retry import error_message, retry_policy
from ..models.entities import SIGNATURE_CATEGORY, RedactionRegion

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300.0

_retry_policy = retry_policy(logger)


def _signature_region(item: dict) -> RedactionRegion:
    region = RedactionRegion.from_dict(item)
    region.text = region.text or "[Signature]"
    region.category = SIGNATURE_CATEGORY
    return region


class SignatureModelClient:
    """Ask the renderer service's image model for signatures the OCR heuristics missed.

    Already-detected signatures are sent along so the model can skip them.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.url = f"{base_url.strip().rstrip('/')}/detect-signatures"
        self.client = client or httpx.Client(timeout=timeout)
        self.timeout = timeout

    def detect(
        self,
        pdf_bytes: bytes,
        existing: Sequence[RedactionRegion] = (),
        filename: str = "document.pdf",
    ) -> List[RedactionRegion]:
        """Return additional signature regions.

        Raises:
            SignatureModelFailure: the call failed, the response could not
                be parsed or the model reported ``success: false``.
        """
        try:
            data = self._post(pdf_bytes, [r.to_dict() for r in existing], filename)
        except (httpx.HTTPError, ValueError) as e:
            raise SignatureModelFailure(f"Signature model call failed: {error_message(e)}") from e

        if not isinstance(data, dict):
            raise SignatureModelFailure("Signature model returned an unexpected response")
        if not data.get("success"):
            raise SignatureModelFailure(
                f"Signature model reported failure: {data.get('error') or data.get('message') or 'unknown'}"
            )

        try:
            regions = [_signature_region(item) for item in data.get("signatures") or []]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SignatureModelFailure(f"Malformed signature in model response: {e!r}") from e
        logger.info("Signature model found %d signatures", len(regions))
        return regions

    @_retry_policy
    def _post(self, pdf_bytes: bytes, existing: List[dict], filename: str) -> dict:
        response = self.client.post(
            self.url,
            files={"file": (filename, pdf_bytes, "application/pdf")},
            data={"existing_signatures": json.dumps(existing)},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()
