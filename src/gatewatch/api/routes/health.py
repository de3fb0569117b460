"""Health, readiness, liveness and metrics endpoints."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Dict

import psutil
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from gatewatch.health.aggregator import HealthAggregator
from gatewatch.health.metrics import METRICS_CONTENT_TYPE
from gatewatch.health.models import ProbeStatus

router = APIRouter(tags=["health"])


def _aggregator(request: Request) -> HealthAggregator:
    return request.app.state.services.aggregator


def _now() -> str:
    return datetime.now(UTC).isoformat()


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    status = await _aggregator(request).get_health_status()
    return JSONResponse(status.to_dict(), status_code=status.status.http_status)


@router.get("/health/ready")
async def readiness(request: Request) -> JSONResponse:
    status = await _aggregator(request).get_health_status()
    if status.database.status is ProbeStatus.CONNECTED:
        return JSONResponse({"status": "ready", "timestamp": _now()})
    return JSONResponse(
        {"status": "not ready", "reason": "Database not connected", "timestamp": _now()},
        status_code=503,
    )


@router.get("/health/live")
async def liveness(request: Request) -> Dict[str, Any]:
    """Process-level only; never consults dependencies."""
    memory = psutil.Process().memory_info()
    return {
        "status": "alive",
        "uptime": _aggregator(request).uptime_seconds,
        "memory": {"rss": memory.rss, "vms": memory.vms},
        "timestamp": _now(),
    }


@router.get("/health/instances")
async def instance_health(request: Request) -> Dict[str, Any]:
    status = await _aggregator(request).get_health_status()
    registry = request.app.state.services.registry
    return {
        "summary": {
            "total": status.instances.total,
            "active": status.instances.active,
            "inactive": status.instances.inactive,
        },
        "timestamp": _now(),
        "details": [
            {"name": h.name, "id": h.id, "connection_state": h.connection_state.value}
            for h in registry.snapshot()
        ],
    }


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    try:
        body = await _aggregator(request).get_metrics()
    except Exception as exc:
        return JSONResponse(
            {"error": "Failed to generate metrics", "message": str(exc), "timestamp": _now()},
            status_code=500,
        )
    return PlainTextResponse(body, media_type=METRICS_CONTENT_TYPE)
