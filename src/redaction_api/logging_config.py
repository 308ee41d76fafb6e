"""Logging setup for the API: structlog rendering plus optional central shipping.

Both stdlib ``logging`` records (the pipeline) and structlog events (the
middleware) are rendered by the same structlog processor chain, as JSON lines
or as coloured console output. When a central log URL is configured, records
at INFO and above are also posted to it from a background thread.
"""

import copy
import logging
import queue
import sys
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Optional

import httpx
import structlog
from tenacity import retry, stop_after_attempt, wait_exponential

_listener: Optional[QueueListener] = None

# LogRecord attributes that are not user-supplied context
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({})).keys()) | {"message", "asctime"}


class CentralLogHandler(logging.Handler):
    """POST each record as JSON to a log collector with a bearer token.

    Delivery is retried three times; a record that still cannot be delivered
    is reported on stderr and dropped.
    """

    def __init__(
        self,
        url: str,
        token: str = "",
        service: str = "pdf-redaction",
        client: Optional[httpx.Client] = None,
        level: int = logging.INFO,
    ):
        super().__init__(level)
        self.url = url
        self.service = service
        self.client = client or httpx.Client(timeout=5.0)
        self.headers = {"Authorization": f"Bearer {token}"} if token else {}

    def build_payload(self, record: logging.LogRecord) -> dict:
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        context.update(getattr(record, "_structlog_context", None) or {})
        context["logger"] = record.name

        error = None
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            error = {"type": type(exc).__name__, "message": str(exc)}

        return {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "service": self.service,
            "message": record.getMessage(),
            "context": context,
            "error": error,
        }

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=0.5, max=4), reraise=True)
    def _send(self, payload: dict) -> None:
        response = self.client.post(self.url, json=payload, headers=self.headers)
        response.raise_for_status()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._send(self.build_payload(record))
        except httpx.HTTPError as e:
            sys.stderr.write(f"Central log delivery failed ({e}): {record.getMessage()}\n")


class _ContextQueueHandler(QueueHandler):
    """Capture structlog context vars on the caller's thread before queueing."""

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        record = copy.copy(record)
        record.message = record.getMessage()
        record.msg = record.message
        record.args = None
        record._structlog_context = structlog.contextvars.get_contextvars()
        return record


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    central_log_url: str = "",
    central_log_token: str = "",
    service_name: str = "pdf-redaction",
) -> None:
    """Configure structlog and the root logger."""
    global _listener

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if log_format.lower() == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    # Remove existing handlers (avoid duplicates on reload)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root.addHandler(console)

    if _listener is not None:
        _listener.stop()
        _listener = None

    if central_log_url:
        log_queue: queue.Queue = queue.Queue(-1)
        central = CentralLogHandler(central_log_url, central_log_token, service_name)
        _listener = QueueListener(log_queue, central, respect_handler_level=True)
        _listener.start()
        root.addHandler(_ContextQueueHandler(log_queue))

    # Silence noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def shutdown_logging() -> None:
    """Flush and stop the central log shipper, if running."""
    global _listener
    if _listener is not None:
        _listener.stop()
        _listener = None
