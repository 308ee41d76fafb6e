"""Factory for constructing a fully wired redaction pipeline."""

from typing import Optional

import httpx

from .detectors.azure_language import DEFAULT_CHUNK_SIZE, LANGUAGE_SAMPLE_SIZE, AzureLanguageDetector
from .detectors.patterns import PatternDetectorBank
from .detectors.signature_model import DEFAULT_TIMEOUT_SECONDS, SignatureModelClient
from .detectors.signatures import SignatureDetector
from .errors import ConfigurationError
from .extractors.document_intelligence import DocumentIntelligenceExtractor
from .geometry import CoordinateMapper
from .pipeline import DEFAULT_MAX_BATCH_SIZE, RedactionPipeline
from .redactors.remote_renderer import RemoteRenderer
from .tuning import DEFAULT_THRESHOLDS, Thresholds
from .whitelist import WhitelistFilter, default_whitelist, load_whitelist

DEFAULT_HTTP_TIMEOUT = 60.0


def build_pipeline(
    # Azure Document Intelligence (OCR)
    document_intelligence_endpoint: str = "",
    document_intelligence_key: str = "",
    ocr_poll_interval: float = 1.0,
    ocr_max_poll_attempts: int = 120,
    ocr_max_wait_seconds: float = 300.0,
    # Azure AI Language (language detection + PII)
    language_endpoint: str = "",
    language_key: str = "",
    ner_chunk_size: int = DEFAULT_CHUNK_SIZE,
    language_sample_size: int = LANGUAGE_SAMPLE_SIZE,
    # Renderer service (redaction + signature model)
    renderer_url: str = "",
    signature_model_enabled: bool = True,
    signature_model_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    # Core
    whitelist_path: Optional[str] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    http_client: Optional[httpx.Client] = None,
) -> RedactionPipeline:
    """Build a RedactionPipeline wired to the Azure services and the renderer.

    Raises ConfigurationError before anything is processed when a required
    endpoint or key is missing.
    """
    required = {
        "document_intelligence_endpoint": document_intelligence_endpoint,
        "document_intelligence_key": document_intelligence_key,
        "language_endpoint": language_endpoint,
        "language_key": language_key,
        "renderer_url": renderer_url,
    }
    missing = [name for name, value in required.items() if not value or not value.strip()]
    if missing:
        raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")

    whitelist = load_whitelist(whitelist_path) if whitelist_path else default_whitelist()

    # One pool for every remote call; closed with the pipeline unless the caller supplied it.
    owned_client = None
    if http_client is None:
        http_client = owned_client = httpx.Client(timeout=DEFAULT_HTTP_TIMEOUT)

    signature_model = None
    if signature_model_enabled:
        signature_model = SignatureModelClient(
            renderer_url, client=http_client, timeout=signature_model_timeout
        )

    return RedactionPipeline(
        extractor=DocumentIntelligenceExtractor(
            document_intelligence_endpoint,
            document_intelligence_key,
            client=http_client,
            poll_interval=ocr_poll_interval,
            max_poll_attempts=ocr_max_poll_attempts,
            max_wait_seconds=ocr_max_wait_seconds,
        ),
        entity_detector=AzureLanguageDetector(
            language_endpoint,
            language_key,
            client=http_client,
            chunk_size=ner_chunk_size,
            language_sample_size=language_sample_size,
        ),
        redactor=RemoteRenderer(renderer_url, client=http_client),
        pattern_bank=PatternDetectorBank(),
        whitelist_filter=WhitelistFilter(whitelist, thresholds),
        mapper=CoordinateMapper(thresholds),
        signature_detector=SignatureDetector(thresholds),
        signature_model=signature_model,
        thresholds=thresholds,
        max_batch_size=max_batch_size,
        http_client=owned_client,
    )
