"""Unit tests for central log shipping."""

import logging
import sys

import httpx
import structlog

from redaction_api.logging_config import CentralLogHandler, _ContextQueueHandler


def _record(msg="Processing %d PDF files", args=(2,), level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="redaction_api.routes.redact",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def _handler(handler_fn, token="secret"):
    client = httpx.Client(transport=httpx.MockTransport(handler_fn))
    return CentralLogHandler("https://logs.example.com/ingest", token, "pdf-redaction", client=client)


class TestBuildPayload:
    def test_payload_fields(self):
        handler = _handler(lambda request: httpx.Response(204))

        payload = handler.build_payload(_record(filename_count=2))

        assert payload["level"] == "info"
        assert payload["service"] == "pdf-redaction"
        assert payload["message"] == "Processing 2 PDF files"
        assert payload["context"]["logger"] == "redaction_api.routes.redact"
        assert payload["context"]["filename_count"] == 2
        assert payload["error"] is None
        assert payload["timestamp"].endswith("+00:00")

    def test_exception_details(self):
        handler = _handler(lambda request: httpx.Response(204))
        try:
            raise ValueError("bad page")
        except ValueError:
            record = _record("Unhandled exception", (), logging.ERROR, exc_info=sys.exc_info())

        payload = handler.build_payload(record)

        assert payload["level"] == "error"
        assert payload["error"] == {"type": "ValueError", "message": "bad page"}

    def test_structlog_context_merged(self):
        handler = _handler(lambda request: httpx.Response(204))
        record = _record(_structlog_context={"request_id": "req_1_abc"})

        payload = handler.build_payload(record)

        assert payload["context"]["request_id"] == "req_1_abc"
        assert "_structlog_context" not in payload["context"]


class TestEmit:
    def test_posts_with_bearer_token(self):
        seen = []

        def handler_fn(request):
            seen.append(request)
            return httpx.Response(204)

        _handler(handler_fn).emit(_record())

        assert len(seen) == 1
        assert seen[0].headers["Authorization"] == "Bearer secret"
        assert str(seen[0].url) == "https://logs.example.com/ingest"

    def test_no_token_no_header(self):
        seen = []

        def handler_fn(request):
            seen.append(request)
            return httpx.Response(204)

        _handler(handler_fn, token="").emit(_record())

        assert "Authorization" not in seen[0].headers

    def test_delivery_failure_goes_to_stderr(self, monkeypatch, capsys):
        monkeypatch.setattr("time.sleep", lambda seconds: None)
        calls = []

        def handler_fn(request):
            calls.append(request)
            return httpx.Response(503)

        _handler(handler_fn).emit(_record())

        assert len(calls) == 3
        assert "Central log delivery failed" in capsys.readouterr().err


class TestContextQueueHandler:
    def test_prepare_captures_context(self):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id="req_42_beef")
        try:
            handler = _ContextQueueHandler(None)
            prepared = handler.prepare(_record())
        finally:
            structlog.contextvars.clear_contextvars()

        assert prepared.getMessage() == "Processing 2 PDF files"
        assert prepared._structlog_context == {"request_id": "req_42_beef"}
