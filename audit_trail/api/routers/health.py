# audit_trail/api/routers/health.py

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from audit_trail.api.dependencies import get_metrics
from audit_trail.config.settings import get_settings
from audit_trail.observability.metrics import MetricsCollector

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Health check with correlation ID from request state."""
    settings = get_settings()
    return {
        "status": "ok",
        "correlation_id": request.state.correlation_id,
        "environment": settings.environment,
        "version": settings.version,
        "event_store_backend": settings.event_store_backend,
    }


@router.get("/metrics")
async def metrics(collector: Annotated[MetricsCollector, Depends(get_metrics)]):
    if not get_settings().enable_metrics:
        return JSONResponse(status_code=404, content={"detail": "Metrics are disabled"})
    return collector.export_metrics()
