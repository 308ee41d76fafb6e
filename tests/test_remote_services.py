"""Unit tests for the renderer and signature-model clients and the shared retry policy."""

import httpx
import pytest

from pii_redaction.detectors import SignatureModelClient
from pii_redaction.errors import RenderingFailure, SignatureModelFailure
from pii_redaction.http_retry import error_message, is_transient
from pii_redaction.models.entities import SIGNATURE_CATEGORY, RedactionRegion
from pii_redaction.redactors import RemoteRenderer

BASE_URL = "http://renderer:8080/"


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def _region(**overrides):
    values = dict(page_index=0, x=10.0, y=20.0, width=30.0, height=5.0, text="Anna", category="Person")
    values.update(overrides)
    return RedactionRegion(**values)


class TestIsTransient:
    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    def test_retryable_statuses(self, status):
        request = httpx.Request("POST", "http://x")
        exc = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(status, request=request))
        assert is_transient(exc)

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_client_errors_not_retried(self, status):
        request = httpx.Request("POST", "http://x")
        exc = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(status, request=request))
        assert not is_transient(exc)

    def test_transport_errors_retried(self):
        assert is_transient(httpx.ConnectError("refused"))

    def test_other_errors_not_retried(self):
        assert not is_transient(ValueError("bad json"))


class TestErrorMessage:
    def test_azure_error_body(self):
        request = httpx.Request("POST", "http://x")
        response = httpx.Response(400, json={"error": {"code": "InvalidRequest", "message": "Bad input"}}, request=request)
        assert error_message(httpx.HTTPStatusError("x", request=request, response=response)) == "Bad input"

    def test_non_json_body(self):
        request = httpx.Request("POST", "http://x")
        response = httpx.Response(502, content=b"<html>", request=request)
        assert error_message(httpx.HTTPStatusError("x", request=request, response=response)) == "HTTP 502"

    def test_plain_exception(self):
        assert error_message(RuntimeError("down")) == "down"


class TestRemoteRenderer:
    def test_posts_document_and_regions(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, content=b"%PDF-redacted")

        renderer = RemoteRenderer(BASE_URL, client=_client(handler))
        output = renderer.redact(b"%PDF-1.7", [_region()], filename="kaufvertrag.pdf")

        assert output == b"%PDF-redacted"
        request = seen["request"]
        assert request.method == "POST"
        assert str(request.url) == "http://renderer:8080/redact"
        body = request.read()
        assert b'name="redactions"' in body
        assert b'"pageIndex": 0' in body
        assert b'"category": "Person"' in body
        assert b'filename="kaufvertrag.pdf"' in body
        assert b"%PDF-1.7" in body

    def test_http_error(self):
        def handler(request):
            return httpx.Response(422, json={"error": {"message": "Invalid regions"}})

        renderer = RemoteRenderer(BASE_URL, client=_client(handler))
        with pytest.raises(RenderingFailure, match="Invalid regions"):
            renderer.redact(b"%PDF", [_region()])

    def test_empty_response(self):
        renderer = RemoteRenderer(BASE_URL, client=_client(lambda request: httpx.Response(200)))
        with pytest.raises(RenderingFailure, match="empty"):
            renderer.redact(b"%PDF", [])

    def test_transient_error_retried(self, monkeypatch):
        monkeypatch.setattr("time.sleep", lambda seconds: None)
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, content=b"%PDF-ok")

        renderer = RemoteRenderer(BASE_URL, client=_client(handler))

        assert renderer.redact(b"%PDF", []) == b"%PDF-ok"
        assert len(calls) == 3

    def test_gives_up_after_three_attempts(self, monkeypatch):
        monkeypatch.setattr("time.sleep", lambda seconds: None)
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        renderer = RemoteRenderer(BASE_URL, client=_client(handler))

        with pytest.raises(RenderingFailure):
            renderer.redact(b"%PDF", [])
        assert len(calls) == 3


class TestSignatureModelClient:
    def test_returns_signature_regions(self):
        seen = {}

        def handler(request):
            seen["body"] = request.read()
            seen["url"] = str(request.url)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "signatures": [
                        {"pageIndex": 1, "x": 100, "y": 700, "width": 120, "height": 40},
                        {"pageIndex": 0, "x": 50, "y": 600, "width": 80, "height": 30, "text": "[Sig]"},
                    ],
                },
            )

        client = SignatureModelClient(BASE_URL, client=_client(handler))
        existing = [_region(category=SIGNATURE_CATEGORY, text="[Signature: Max...]")]

        regions = client.detect(b"%PDF", existing, filename="a.pdf")

        assert seen["url"] == "http://renderer:8080/detect-signatures"
        assert b'name="existing_signatures"' in seen["body"]
        assert b'"category": "Signature"' in seen["body"]
        assert [(r.page_index, r.x, r.text) for r in regions] == [(1, 100.0, "[Signature]"), (0, 50.0, "[Sig]")]
        assert all(r.category == SIGNATURE_CATEGORY for r in regions)

    def test_model_reports_failure(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "error": "model not loaded"})

        client = SignatureModelClient(BASE_URL, client=_client(handler))
        with pytest.raises(SignatureModelFailure, match="model not loaded"):
            client.detect(b"%PDF")

    def test_http_error(self):
        def handler(request):
            return httpx.Response(404)

        client = SignatureModelClient(BASE_URL, client=_client(handler))
        with pytest.raises(SignatureModelFailure):
            client.detect(b"%PDF")

    def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, content=b"not json")

        client = SignatureModelClient(BASE_URL, client=_client(handler))
        with pytest.raises(SignatureModelFailure):
            client.detect(b"%PDF")

    def test_signature_missing_coordinates(self):
        def handler(request):
            return httpx.Response(200, json={"success": True, "signatures": [{"x": 1}]})

        client = SignatureModelClient(BASE_URL, client=_client(handler))
        with pytest.raises(SignatureModelFailure, match="Malformed signature"):
            client.detect(b"%PDF")

    def test_non_object_response(self):
        def handler(request):
            return httpx.Response(200, json=[{"pageIndex": 0}])

        client = SignatureModelClient(BASE_URL, client=_client(handler))
        with pytest.raises(SignatureModelFailure, match="unexpected response"):
            client.detect(b"%PDF")
