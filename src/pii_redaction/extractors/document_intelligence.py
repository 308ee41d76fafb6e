"""OCR with Azure Document Intelligence (``prebuilt-read``).

The analyze call is asynchronous on the service side: a ``202`` response
carries an ``Operation-Location`` that is polled until the analysis leaves
the ``notStarted``/``running`` states. Polling is a bounded tenacity loop
(fixed interval, capped by attempts and by total elapsed time).
"""

import logging
from enum import Enum
from typing import Optional

import httpx
from tenacity import (
    RetryError,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from .base import BaseExtractor
from ..errors import ExtractionFailure
from ..http_retry import error_message, retry_policy
from ..models.entities import DocumentAnalysis

logger = logging.getLogger(__name__)

API_VERSION = "2023-07-31"
MODEL_ID = "prebuilt-read"

_PENDING = ("notStarted", "running")

_retry_policy = retry_policy(logger)


class PollState(str, Enum):
    SUBMITTED = "submitted"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class DocumentIntelligenceExtractor(BaseExtractor):
    """Extract text, word polygons and handwriting styles from a PDF."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        client: Optional[httpx.Client] = None,
        poll_interval: float = 1.0,
        max_poll_attempts: int = 120,
        max_wait_seconds: float = 300.0,
        timeout: float = 60.0,
    ):
        self.url = (
            f"{endpoint.strip().rstrip('/')}/formrecognizer/documentModels/{MODEL_ID}:analyze"
        )
        self.api_key = api_key
        self.client = client or httpx.Client(timeout=timeout)
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.max_wait_seconds = max_wait_seconds

    def extract(self, pdf_bytes: bytes) -> DocumentAnalysis:
        state = PollState.SUBMITTED
        try:
            response = self._submit(pdf_bytes)
        except httpx.HTTPError as e:
            raise ExtractionFailure(f"OCR failed: {error_message(e)}", status=state.value) from e

        if response.status_code == 202:
            location = response.headers.get("operation-location")
            if not location:
                raise ExtractionFailure(
                    "OCR request accepted but no Operation-Location header was returned",
                    status=state.value,
                )
            logger.info("Waiting for Document Intelligence analysis")
            data = self._wait_for_result(location)
        else:
            try:
                data = response.json()
            except ValueError as e:
                raise ExtractionFailure(
                    f"OCR returned an unreadable response: {e}", status=state.value
                ) from e

        try:
            analysis = DocumentAnalysis.from_dict(data.get("analyzeResult") or {})
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ExtractionFailure(
                f"OCR returned a malformed result: {e!r}", status=PollState.SUCCEEDED.value
            ) from e
        logger.info(
            "OCR %s: %d pages, %d characters, %d styles",
            PollState.SUCCEEDED.value,
            len(analysis.pages), len(analysis.content), len(analysis.styles),
        )
        return analysis

    def _wait_for_result(self, location: str) -> dict:
        poller = Retrying(
            stop=stop_after_attempt(self.max_poll_attempts) | stop_after_delay(self.max_wait_seconds),
            wait=wait_fixed(self.poll_interval),
            retry=retry_if_result(lambda data: data.get("status") in _PENDING),
        )
        try:
            data = poller(self._poll_once, location)
        except RetryError as e:
            attempts = e.last_attempt.attempt_number
            raise ExtractionFailure(
                f"OCR did not complete after {attempts} status checks",
                status=PollState.TIMED_OUT.value,
            ) from e
        except httpx.HTTPError as e:
            raise ExtractionFailure(
                f"OCR failed: {error_message(e)}", status=PollState.POLLING.value
            ) from e
        except ValueError as e:
            raise ExtractionFailure(
                f"OCR status check returned an unreadable response: {e}",
                status=PollState.POLLING.value,
            ) from e
        return data

    def _poll_once(self, location: str) -> dict:
        data = self._get(location)
        if not isinstance(data, dict):
            raise ExtractionFailure(
                "OCR status check returned an unexpected response",
                status=PollState.POLLING.value,
            )
        status = data.get("status")
        logger.debug("Analysis status: %s", status)
        if status == "failed":
            error = data.get("error") or {}
            raise ExtractionFailure(
                f"Document Intelligence analysis failed: {error.get('message', 'unknown error')}",
                status=PollState.FAILED.value,
            )
        return data

    @_retry_policy
    def _submit(self, pdf_bytes: bytes) -> httpx.Response:
        response = self.client.post(
            self.url,
            params={"api-version": API_VERSION},
            content=pdf_bytes,
            headers={
                "Ocp-Apim-Subscription-Key": self.api_key,
                "Content-Type": "application/pdf",
            },
        )
        response.raise_for_status()
        return response

    @_retry_policy
    def _get(self, location: str) -> dict:
        response = self.client.get(location, headers={"Ocp-Apim-Subscription-Key": self.api_key})
        response.raise_for_status()
        return response.json()
