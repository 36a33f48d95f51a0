# backend/discovery/routes/v1/health.py
"""
Health and metrics endpoints for monitoring and load balancer probes.

Both are PUBLIC (no identity header required). /metrics exposes the
Prometheus collectors fed by the @measure_operation decorators.
"""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Response

from ...api.dependencies import get_store_breaker
from ...core.config import settings
from ...monitoring.prometheus_metrics import prometheus_metrics
from ...services.search.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health(breaker: CircuitBreaker = Depends(get_store_breaker)) -> dict:
    """
    Liveness probe.

    The service stays healthy while the listing store circuit is open because
    reads are served from the sample dataset; the circuit state is reported
    for dashboards.
    """
    return {
        "status": "healthy",
        "environment": settings.environment,
        "listing_store_circuit": breaker.state.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/metrics", include_in_schema=False, response_class=Response, response_model=None)
def metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
