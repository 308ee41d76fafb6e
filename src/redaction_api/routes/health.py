"""Health check endpoints."""

from datetime import datetime, timezone
from importlib.metadata import version as pkg_version, PackageNotFoundError

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..models.schemas import HealthResponse, ReadyzResponse

router = APIRouter(tags=["Health"])


def _safe_version() -> str:
    try:
        return pkg_version("pdf-pii-redaction")
    except PackageNotFoundError:
        return "1.0.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the service is running and healthy.",
)
async def health_check() -> HealthResponse:
    """Return service health status."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        version=_safe_version(),
        timestamp=datetime.now(timezone.utc),
        signature_model_enabled=settings.signature_model_enabled,
    )


@router.get(
    "/healthz",
    summary="Liveness probe",
    description="Liveness probe for container orchestrators.",
)
async def liveness() -> dict:
    """Return liveness status without dependency checks."""
    return {"status": "alive"}


@router.get(
    "/readyz",
    response_model=ReadyzResponse,
    summary="Readiness probe",
    description="Readiness probe that checks the external services are configured.",
    responses={503: {"description": "Service not ready"}},
)
async def readiness():
    """Check if the service is ready to accept traffic."""
    settings = get_settings()
    required = {
        "document_intelligence": (settings.azure_docintel_endpoint, settings.azure_docintel_key),
        "language": (settings.azure_language_endpoint, settings.azure_language_key),
        "renderer": (settings.pdf_renderer_url,),
    }

    checks: dict[str, str] = {}
    for name, values in required.items():
        checks[name] = "ok" if all(values) else "error: not configured"
    all_ok = all(v == "ok" for v in checks.values())

    response = ReadyzResponse(
        status="ready" if all_ok else "not_ready",
        checks=checks,
    )
    if not all_ok:
        return JSONResponse(status_code=503, content=response.model_dump())
    return response
