"""Health check routes.

GET /health        service status, Neo4j connectivity, configured stages
GET /health/ready  readiness probe (Neo4j up and pipeline built)
GET /health/live   liveness probe
"""

from __future__ import annotations

import logging
import os
import time
from datetime import UTC, datetime
from enum import Enum

from fastapi import APIRouter, FastAPI, Request
from pydantic import BaseModel, Field

from src.clients.graph_gateway import GraphStoreHandle


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

SERVICE_NAME = "nexus-hr"
SERVICE_VERSION = os.environ.get("SERVICE_VERSION", "0.1.0")


def _now() -> str:
    return datetime.now(UTC).isoformat()


# =============================================================================
# Models
# =============================================================================

class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class DependencyStatus(str, Enum):
    UP = "up"
    DOWN = "down"
    UNKNOWN = "unknown"


class DependencyHealth(BaseModel):
    """Status of one backing service."""

    name: str
    status: DependencyStatus
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    """GET /health body."""

    status: HealthStatus
    service: str = SERVICE_NAME
    version: str = SERVICE_VERSION
    timestamp: str = Field(default_factory=_now)
    uptime_seconds: float | None = None
    pipeline_stages: list[str] = Field(
        default_factory=list,
        description="Stages the loaded pipeline runs, empty when not loaded",
    )
    dependencies: list[DependencyHealth] = Field(default_factory=list)


class ReadinessResponse(BaseModel):
    ready: bool
    checks: dict[str, bool] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    alive: bool = True
    timestamp: str = Field(default_factory=_now)


# =============================================================================
# Helpers
# =============================================================================

def mark_started(app: FastAPI, started_at: datetime | None = None) -> None:
    """Record the service start time on ``app.state`` for uptime reporting."""
    app.state.started_at = started_at or datetime.now(UTC)


def uptime_seconds(app: FastAPI) -> float | None:
    started_at: datetime | None = getattr(app.state, "started_at", None)
    if started_at is None:
        return None
    return (datetime.now(UTC) - started_at).total_seconds()


async def check_neo4j(store: GraphStoreHandle | None) -> DependencyHealth:
    """Probe Neo4j through the application's store handle.

    Args:
        store: Graph store handle, or None when the lifespan did not create one

    Returns:
        UNKNOWN without a store, otherwise UP or DOWN with the probe latency
    """
    if store is None:
        return DependencyHealth(
            name="neo4j",
            status=DependencyStatus.UNKNOWN,
            message="Graph store not configured",
        )

    start = time.perf_counter()
    healthy = await store.health_check()
    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    if not healthy:
        logger.warning("Neo4j probe failed after %.1f ms", latency_ms)
    return DependencyHealth(
        name="neo4j",
        status=DependencyStatus.UP if healthy else DependencyStatus.DOWN,
        latency_ms=latency_ms,
        message=None if healthy else "Connectivity check failed",
    )


def calculate_overall_status(dependencies: list[DependencyHealth]) -> HealthStatus:
    """DOWN anywhere is unhealthy, UNKNOWN anywhere is degraded."""
    statuses = {d.status for d in dependencies}
    if DependencyStatus.DOWN in statuses:
        return HealthStatus.UNHEALTHY
    if DependencyStatus.UNKNOWN in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=HealthResponse, summary="Health check")
async def health_check(request: Request) -> HealthResponse:
    state = request.app.state
    dependencies = [await check_neo4j(getattr(state, "graph_store", None))]
    pipeline = getattr(state, "pipeline", None)

    return HealthResponse(
        status=calculate_overall_status(dependencies),
        uptime_seconds=uptime_seconds(request.app),
        pipeline_stages=list(pipeline.stage_order) if pipeline is not None else [],
        dependencies=dependencies,
    )


@router.get("/ready", response_model=ReadinessResponse, summary="Readiness probe")
async def readiness_check(request: Request) -> ReadinessResponse:
    state = request.app.state
    neo4j = await check_neo4j(getattr(state, "graph_store", None))
    checks = {
        "neo4j": neo4j.status == DependencyStatus.UP,
        "pipeline_loaded": getattr(state, "pipeline", None) is not None,
    }
    return ReadinessResponse(ready=all(checks.values()), checks=checks)


@router.get("/live", response_model=LivenessResponse, summary="Liveness probe")
async def liveness_check() -> LivenessResponse:
    return LivenessResponse()


__all__ = [
    "DependencyHealth",
    "DependencyStatus",
    "HealthResponse",
    "HealthStatus",
    "LivenessResponse",
    "ReadinessResponse",
    "calculate_overall_status",
    "check_neo4j",
    "mark_started",
    "router",
    "uptime_seconds",
]
