"""Main document redaction pipeline orchestrator."""

import asyncio
import functools
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import httpx

from .detectors.base import BaseEntityDetector
from .detectors.patterns import PatternDetectorBank
from .detectors.signature_model import SignatureModelClient
from .detectors.signatures import SignatureDetector
from .errors import RedactionError, RenderingFailure, SignatureModelFailure, StageTransitionError, ValidationError
from .extractors.base import BaseExtractor
from .geometry import CoordinateMapper, TextSpanIndex
from .merging import merge_entities
from .models.entities import (
    BatchResult,
    DocumentAnalysis,
    DocumentResult,
    Entity,
    RedactionPlan,
    RedactionRegion,
)
from .redactors.base import BaseRedactor
from .redactors.pdf_utils import combine_pdfs, count_pages
from .tuning import DEFAULT_THRESHOLDS, Thresholds
from .whitelist import WhitelistFilter

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_SIZE = 10

# (filename, pdf bytes)
BatchDocument = Tuple[str, bytes]


class PipelineStage(str, Enum):
    """Per-document stages, in the only order they may be entered."""

    EXTRACTED = "extracted"
    LANGUAGE_DETECTED = "language_detected"
    ENTITIES_COLLECTED = "entities_collected"
    MERGED = "merged"
    FILTERED = "filtered"
    MAPPED = "mapped"
    SIGNATURES_DETECTED = "signatures_detected"
    ASSEMBLED = "assembled"
    RENDERED = "rendered"


_STAGE_ORDER = {stage: i for i, stage in enumerate(PipelineStage)}


class StageTracker:
    """Records the current stage of one document and refuses to go backwards."""

    def __init__(self, result: Optional[DocumentResult] = None):
        self.result = result
        self.stage: Optional[PipelineStage] = None

    def advance(self, stage: PipelineStage) -> None:
        if self.stage is not None and _STAGE_ORDER[stage] <= _STAGE_ORDER[self.stage]:
            raise StageTransitionError(
                f"Cannot move from {self.stage.value} to {stage.value}"
            )
        self.stage = stage
        if self.result is not None:
            self.result.stage = stage.value
            logger.debug("%s: %s", self.result.filename, stage.value)


def _ignore_stage(stage: PipelineStage) -> None:
    pass


class RedactionPipeline:
    """Orchestrates OCR -> detect -> reconcile -> map -> render for PDF documents."""

    def __init__(
        self,
        extractor: BaseExtractor,
        entity_detector: BaseEntityDetector,
        redactor: Optional[BaseRedactor] = None,
        pattern_bank: Optional[PatternDetectorBank] = None,
        whitelist_filter: Optional[WhitelistFilter] = None,
        mapper: Optional[CoordinateMapper] = None,
        signature_detector: Optional[SignatureDetector] = None,
        signature_model: Optional[SignatureModelClient] = None,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        http_client: Optional[httpx.Client] = None,
    ):
        """``http_client``, when given, is owned by the pipeline and closed by ``close()``."""
        self.extractor = extractor
        self.entity_detector = entity_detector
        self.redactor = redactor
        self.pattern_bank = pattern_bank or PatternDetectorBank()
        self.whitelist_filter = whitelist_filter or WhitelistFilter(thresholds=thresholds)
        self.mapper = mapper or CoordinateMapper(thresholds)
        self.signature_detector = signature_detector or SignatureDetector(thresholds)
        self.signature_model = signature_model
        self.max_batch_size = max_batch_size
        self.http_client = http_client

    def close(self) -> None:
        """Release the pooled HTTP connections of the remote collaborators."""
        if self.http_client is not None and not self.http_client.is_closed:
            self.http_client.close()

    def __enter__(self) -> "RedactionPipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- pure core ---------------------------------------------------------

    def plan(
        self,
        analysis: DocumentAnalysis,
        ner_entities: Sequence[Entity],
        exclude_address: Optional[str] = None,
    ) -> RedactionPlan:
        """Reconcile detections for one OCR'd document and compute its regions.

        No network calls are made: patterns run locally, NER entities are
        supplied by the caller.
        """
        return self._plan(analysis, ner_entities, exclude_address, _ignore_stage)

    def _plan(
        self,
        analysis: DocumentAnalysis,
        ner_entities: Sequence[Entity],
        exclude_address: Optional[str],
        advance: Callable[[PipelineStage], None],
    ) -> RedactionPlan:
        text = analysis.content
        valid_ner = [e for e in ner_entities if e.is_valid_for(text)]
        if len(valid_ner) != len(ner_entities):
            logger.warning(
                "Discarded %d NER entities outside the document text",
                len(ner_entities) - len(valid_ner),
            )

        pattern_entities = self.pattern_bank.detect(text)
        merged = merge_entities(valid_ner, pattern_entities)
        advance(PipelineStage.MERGED)

        entities = self.whitelist_filter.filter(merged, exclude_address)
        advance(PipelineStage.FILTERED)

        index = TextSpanIndex(analysis.pages)
        pii_regions = self.mapper.map(entities, index) if entities else []
        advance(PipelineStage.MAPPED)

        signature_regions = self.signature_detector.detect(analysis, index)
        advance(PipelineStage.SIGNATURES_DETECTED)

        return RedactionPlan(
            entities=entities,
            pii_regions=pii_regions,
            signature_regions=signature_regions,
        )

    # -- single document ---------------------------------------------------

    def process(
        self,
        document_bytes: bytes,
        exclude_address: Optional[str] = None,
        filename: Optional[str] = None,
        render: bool = True,
    ) -> DocumentResult:
        """Run the full pipeline for one PDF.

        Fatal errors do not propagate: the returned result carries
        ``status="failed"``, the stage reached and the error message.
        """
        return self._process(
            document_bytes,
            exclude_address=exclude_address,
            filename=filename or "document.pdf",
            render=render,
            passthrough_if_empty=True,
        )

    def _process(
        self,
        document_bytes: bytes,
        exclude_address: Optional[str],
        filename: str,
        render: bool,
        passthrough_if_empty: bool,
    ) -> DocumentResult:
        result = DocumentResult(filename=filename)
        tracker = StageTracker(result)
        start_time = time.time()

        try:
            logger.info("Running OCR on %s...", filename)
            analysis = self.extractor.extract(document_bytes)
            tracker.advance(PipelineStage.EXTRACTED)
            result.page_count = len(analysis.pages) or count_pages(document_bytes)

            text = analysis.content
            if text.strip():
                result.language = self.entity_detector.detect_language(text)
            else:
                result.language = self.entity_detector.default_language
            tracker.advance(PipelineStage.LANGUAGE_DETECTED)

            logger.info("Detecting PII in %s (%s)...", filename, result.language)
            ner = self.entity_detector.detect(text, result.language) if text else None
            ner_entities = ner.entities if ner else []
            result.dropped_chunks = ner.dropped_chunks if ner else 0
            tracker.advance(PipelineStage.ENTITIES_COLLECTED)

            plan = self._plan(analysis, ner_entities, exclude_address, tracker.advance)
            signature_regions = plan.signature_regions + self._model_signatures(
                document_bytes, plan.signature_regions, filename, result
            )

            result.entities = plan.entities
            result.regions = plan.pii_regions + signature_regions
            result.pii_regions = len(plan.pii_regions)
            result.signature_regions = len(signature_regions)
            tracker.advance(PipelineStage.ASSEMBLED)
            logger.info(
                "%s: %d entities, %d PII + %d signature regions",
                filename, result.entities_found, result.pii_regions, result.signature_regions,
            )

            if render:
                result.redacted_pdf = self._render(
                    document_bytes, result.regions, filename, passthrough_if_empty
                )
                tracker.advance(PipelineStage.RENDERED)

        except RedactionError as e:
            result.status = "failed"
            result.error = str(e)
            logger.error(
                "Processing %s failed after stage %s: %s",
                filename, result.stage or "none", e,
            )
        except Exception as e:
            result.status = "failed"
            result.error = f"Unexpected error: {e!r}"
            logger.exception(
                "Unexpected error processing %s after stage %s",
                filename, result.stage or "none",
            )

        result.processing_time_seconds = time.time() - start_time
        return result

    def _model_signatures(
        self,
        document_bytes: bytes,
        existing: List[RedactionRegion],
        filename: str,
        result: DocumentResult,
    ) -> List[RedactionRegion]:
        if self.signature_model is None:
            return []
        try:
            return self.signature_model.detect(document_bytes, existing, filename)
        except SignatureModelFailure as e:
            logger.warning("Signature model unavailable for %s: %s", filename, e)
            result.signature_model_failed = True
            return []

    def _render(
        self,
        document_bytes: bytes,
        regions: List[RedactionRegion],
        filename: str,
        passthrough_if_empty: bool,
    ) -> bytes:
        if not regions and passthrough_if_empty:
            logger.info("No redactions for %s, returning the original document", filename)
            return document_bytes
        if self.redactor is None:
            raise RenderingFailure("No renderer configured")
        return self.redactor.redact(document_bytes, regions, filename)

    # -- batches -----------------------------------------------------------

    def process_batch(
        self,
        documents: Sequence[BatchDocument],
        exclude_address: Optional[str] = None,
        render: bool = True,
    ) -> BatchResult:
        """Process documents in parallel and combine the redacted outputs.

        A failing document is reported in its own result; the others still
        complete and are combined in input order.
        """
        if not documents:
            raise ValidationError("No documents provided")
        if len(documents) > self.max_batch_size:
            raise ValidationError(
                f"Too many documents: {len(documents)} (maximum {self.max_batch_size})"
            )

        single = len(documents) == 1
        work = functools.partial(
            self._run_batch_item,
            exclude_address=exclude_address,
            render=render,
            passthrough_if_empty=single,
        )
        logger.info("Processing batch of %d documents", len(documents))
        with ThreadPoolExecutor(max_workers=min(len(documents), self.max_batch_size)) as pool:
            results = list(pool.map(work, documents))

        batch = BatchResult(documents=results)
        outputs = [r.redacted_pdf for r in results if r.succeeded and r.redacted_pdf]
        if len(outputs) == 1:
            batch.combined_pdf = outputs[0]
        elif outputs:
            try:
                batch.combined_pdf = combine_pdfs(outputs)
            except (RuntimeError, ValueError) as e:
                raise RenderingFailure(f"Could not combine redacted documents: {e}") from e

        logger.info(
            "Batch complete: %d documents, %d failed, %d entities, %d regions",
            len(results), len(batch.failed), batch.total_entities, batch.total_regions,
        )
        return batch

    def _run_batch_item(
        self,
        document: BatchDocument,
        exclude_address: Optional[str],
        render: bool,
        passthrough_if_empty: bool,
    ) -> DocumentResult:
        filename, document_bytes = document
        return self._process(
            document_bytes,
            exclude_address=exclude_address,
            filename=filename,
            render=render,
            passthrough_if_empty=passthrough_if_empty,
        )

    # -- async wrappers ----------------------------------------------------

    async def process_async(
        self,
        document_bytes: bytes,
        exclude_address: Optional[str] = None,
        filename: Optional[str] = None,
        render: bool = True,
    ) -> DocumentResult:
        """Run ``process`` in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(
                self.process,
                document_bytes,
                exclude_address=exclude_address,
                filename=filename,
                render=render,
            ),
        )

    async def process_batch_async(
        self,
        documents: Sequence[BatchDocument],
        exclude_address: Optional[str] = None,
        render: bool = True,
    ) -> BatchResult:
        """Run ``process_batch`` in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(
                self.process_batch, documents, exclude_address=exclude_address, render=render
            ),
        )
