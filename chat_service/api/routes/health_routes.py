"""
Health Check API Routes
Liveness and Prometheus metrics endpoints.
"""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Response

from chat_service.api.validators.chat_validators import HealthResponse
from chat_service.dependencies import get_metrics
from chat_service.utils.formatters import format_timestamp
from chat_service.utils.metrics import MetricsCollector

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy", timestamp=format_timestamp(datetime.now(timezone.utc)))


@router.get("/metrics")
async def prometheus_metrics(
        metrics: Annotated[MetricsCollector, Depends(get_metrics)]
) -> Response:
    """Prometheus metrics endpoint."""
    return Response(metrics.export(), media_type=metrics.content_type)
