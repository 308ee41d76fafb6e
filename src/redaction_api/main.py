"""FastAPI application for the PDF PII redaction service."""

import logging
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version, PackageNotFoundError

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from pii_redaction import ConfigurationError, ValidationError

from .config import get_settings, load_settings
from .logging_config import setup_logging, shutdown_logging
from .middleware import RequestIDMiddleware
from .rate_limit import limiter
from .routes import health_router, redact_router
from .routes.redact import AllDocumentsFailed

logger = logging.getLogger(__name__)


def _get_version() -> str:
    try:
        return pkg_version("pdf-pii-redaction")
    except PackageNotFoundError:
        return "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = load_settings()
    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        central_log_url=settings.central_log_url,
        central_log_token=settings.central_log_token,
        service_name=settings.service_name,
    )
    logger.info("Starting PDF redaction API")
    logger.info(
        "Signature model=%s, max batch=%d, NER chunk size=%d",
        settings.signature_model_enabled, settings.max_batch_size, settings.ner_chunk_size,
    )
    yield
    logger.info("Shutting down")
    shutdown_logging()


app = FastAPI(
    title="PDF PII Redaction API",
    description=(
        "Detects personal data and handwritten signatures in OCR'd PDF "
        "documents and returns redacted copies."
    ),
    version=_get_version(),
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

settings = get_settings()
allow_all = settings.cors_origins_list == ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=not allow_all,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.warning("Rejected request: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "invalid_request", "message": str(exc), "detail": None},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Service misconfigured: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "configuration_error", "message": str(exc), "detail": None},
    )


@app.exception_handler(AllDocumentsFailed)
async def all_documents_failed_handler(request: Request, exc: AllDocumentsFailed):
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": "redaction_failed", "message": str(exc), "detail": None},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred.",
            "detail": str(exc) if logger.isEnabledFor(logging.DEBUG) else None,
        },
    )


app.include_router(health_router)
app.include_router(redact_router)


def main():
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "redaction_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
    )


if __name__ == "__main__":
    main()
