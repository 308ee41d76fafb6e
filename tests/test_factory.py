"""Unit tests for pipeline construction and the local PDF helpers."""

import json

import fitz  # PyMuPDF
import httpx
import pytest
from conftest import entity, make_pdf

from pii_redaction import ConfigurationError, RedactionPipeline, build_pipeline
from pii_redaction.detectors import AzureLanguageDetector, SignatureModelClient
from pii_redaction.extractors import DocumentIntelligenceExtractor
from pii_redaction.redactors import RemoteRenderer, combine_pdfs, count_pages
from pii_redaction.tuning import Thresholds

CONFIG = dict(
    document_intelligence_endpoint="https://ocr.example.com",
    document_intelligence_key="ocr-key",
    language_endpoint="https://lang.example.com",
    language_key="lang-key",
    renderer_url="http://renderer:8080",
)


class TestBuildPipeline:
    def test_wires_remote_services(self):
        pipeline = build_pipeline(**CONFIG, ner_chunk_size=2000, max_batch_size=4)

        assert isinstance(pipeline, RedactionPipeline)
        assert isinstance(pipeline.extractor, DocumentIntelligenceExtractor)
        assert isinstance(pipeline.entity_detector, AzureLanguageDetector)
        assert isinstance(pipeline.redactor, RemoteRenderer)
        assert isinstance(pipeline.signature_model, SignatureModelClient)
        assert pipeline.entity_detector.chunk_size == 2000
        assert pipeline.max_batch_size == 4
        assert pipeline.redactor.url == "http://renderer:8080/redact"
        assert pipeline.signature_model.url == "http://renderer:8080/detect-signatures"

    def test_one_shared_client_closed_with_pipeline(self):
        pipeline = build_pipeline(**CONFIG)
        client = pipeline.http_client

        assert client is not None
        assert pipeline.extractor.client is client
        assert pipeline.entity_detector.client is client
        assert pipeline.redactor.client is client
        assert pipeline.signature_model.client is client

        pipeline.close()
        assert client.is_closed

    def test_caller_client_left_open(self):
        client = httpx.Client()
        pipeline = build_pipeline(**CONFIG, http_client=client)

        assert pipeline.http_client is None
        assert pipeline.redactor.client is client
        pipeline.close()
        assert not client.is_closed
        client.close()

    def test_signature_model_can_be_disabled(self):
        pipeline = build_pipeline(**CONFIG, signature_model_enabled=False)
        assert pipeline.signature_model is None

    def test_thresholds_shared(self):
        thresholds = Thresholds(word_padding=0.0)
        pipeline = build_pipeline(**CONFIG, thresholds=thresholds)
        assert pipeline.mapper.thresholds is thresholds
        assert pipeline.whitelist_filter.thresholds is thresholds
        assert pipeline.signature_detector.thresholds is thresholds

    @pytest.mark.parametrize("missing", sorted(CONFIG))
    def test_missing_setting_rejected(self, missing):
        config = {**CONFIG, missing: "  "}
        with pytest.raises(ConfigurationError, match=missing):
            build_pipeline(**config)

    def test_reports_every_missing_setting(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_pipeline()
        message = str(exc_info.value)
        for name in CONFIG:
            assert name in message

    def test_custom_whitelist_file(self, tmp_path):
        path = tmp_path / "whitelist.json"
        path.write_text(json.dumps({"role_words": ["Makler"]}), encoding="utf-8")

        pipeline = build_pipeline(**CONFIG, whitelist_path=str(path))

        assert pipeline.whitelist_filter.is_excluded(entity("Makler", "Person", 0))
        assert not pipeline.whitelist_filter.is_excluded(entity("Notar", "Person", 0))


class TestPdfUtils:
    def test_count_pages(self):
        assert count_pages(make_pdf(pages=3)) == 3

    def test_count_pages_unreadable(self):
        assert count_pages(b"not a pdf") == 0

    def test_combine_in_order(self):
        combined = combine_pdfs([make_pdf(1, text="first"), make_pdf(2, text="second")])

        with fitz.open(stream=combined, filetype="pdf") as doc:
            assert doc.page_count == 3
            assert "first" in doc[0].get_text()
            assert "second" in doc[2].get_text()

    def test_combine_nothing(self):
        with pytest.raises(ValueError):
            combine_pdfs([])
