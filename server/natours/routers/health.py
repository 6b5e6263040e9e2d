"""Health, readiness, service info and Prometheus metrics endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.dependencies import get_db
from ..core.observability import SERVICE_NAME, SERVICE_VERSION, get_prometheus_metrics
from ..schemas.health import HealthResponse, HealthStatus, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Health Check")
async def health_check() -> JSONResponse:
    """
    Health check endpoint.

    Returns current service status and timestamp.
    """
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        service=SERVICE_NAME,
        timestamp=datetime.now(timezone.utc),
        version=SERVICE_VERSION,
        environment=settings.environment,
    )

    logger.debug("Health check requested", extra={"status": response_data.status.value})

    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/ready", response_model=ReadinessResponse, summary="Readiness Check")
async def readiness_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Readiness check that runs a trivial query against the database.

    Returns 503 while the database is unreachable.
    """
    try:
        await db.execute(text("SELECT 1"))
        checks = {"database": "ok"}
    except SQLAlchemyError as e:
        logger.warning("Readiness check failed", extra={"error": str(e)})
        checks = {"database": "error"}

    ready = all(value == "ok" for value in checks.values())
    response_data = ReadinessResponse(
        status=HealthStatus.READY if ready else HealthStatus.UNAVAILABLE,
        service=SERVICE_NAME,
        checks=checks,
    )
    return JSONResponse(status_code=200 if ready else 503, content=response_data.model_dump(mode="json"))


@router.get("/info", summary="Service Information")
async def service_info() -> dict:
    """Service name, version and the API surface."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": "Tours, users, reviews and bookings REST API",
        "environment": settings.environment,
        "debug": settings.debug,
        "endpoints": {
            "tours": "/api/v1/tours",
            "users": "/api/v1/users",
            "reviews": "/api/v1/reviews",
            "bookings": "/api/v1/bookings",
            "health": "/health",
            "readiness": "/ready",
            "metrics": "/metrics",
            "docs": "/docs" if settings.debug else None,
        },
    }


@router.get("/metrics", response_class=Response, summary="Prometheus Metrics")
async def metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(content=get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
