"""
Health check endpoints.

This module provides health monitoring endpoints for:
- Liveness probes (ping)
- Readiness probes (ready)
- Deep health checks (health with ?deep=true)

Usage:
    GET /           - Full health check
    GET /health     - Full health check (alias)
    GET /ping       - Simple liveness probe
    GET /ready      - Readiness probe
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from scripture_gateway.config import get_logger
from scripture_gateway.domain import ServiceKind
from scripture_gateway.models import HealthResponse, PingResponse, ReadinessResponse, ServiceStatus
from scripture_gateway.result import Success
from scripture_gateway.state import AppState, get_app_state

logger = get_logger("routes.health")

router = APIRouter(tags=["Health"])

API_VERSION = "1.0.0"


# =============================================================================
# Health Check Endpoint
# =============================================================================

@router.get(
    "/",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns service state and per-provider availability.",
    responses={
        200: {"description": "Service is healthy or degraded"},
        503: {"description": "No provider is available"},
    },
)
@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check (alias)",
    description="Alias for root health check endpoint.",
    responses={
        200: {"description": "Service is healthy or degraded"},
        503: {"description": "No provider is available"},
    },
)
async def health_check(
    state: AppState = Depends(get_app_state),
    deep: bool = Query(
        default=False,
        description="Fetch John 3:16 from every available provider",
    ),
) -> HealthResponse | JSONResponse:
    """
    Returns detailed health status including provider information.

    The health check reports status as:
    - **healthy**: Ready, with at least one generative provider
    - **degraded**: Ready but only scripture lookup works, or a deep probe failed
    - **unhealthy**: No provider available
    """
    registry = state.registry
    providers: dict[str, Any] = {}
    probe_failed = False

    for provider in registry.ordered_providers():
        available = provider.is_available()
        entry: dict[str, Any] = {
            "display_name": provider.display_name,
            "kind": provider.descriptor.service_kind.value,
            "priority": provider.priority,
            "available": available,
            "status": ServiceStatus.HEALTHY.value if available else "unavailable",
        }
        if provider.initialization_error:
            entry["error"] = provider.initialization_error

        if deep and available:
            start_time = time.perf_counter()
            result = await state.service.probe(provider.provider_id)
            entry["latency_ms"] = round((time.perf_counter() - start_time) * 1000, 2)
            entry["healthy"] = isinstance(result, Success)
            if not entry["healthy"]:
                probe_failed = True
                entry["status"] = ServiceStatus.UNHEALTHY.value
                entry["error"] = result.message
                logger.warning("Deep health check failed for %s: %s", provider.provider_id, result.message)

        providers[provider.provider_id] = entry

    stats = registry.statistics()
    services: dict[str, Any] = {
        "ready": state.is_ready(),
        "state": state.service.state.value,
        "providers": providers,
    }

    if not state.is_ready():
        overall_status = ServiceStatus.UNHEALTHY
    elif stats.generative_available == 0 or probe_failed:
        overall_status = ServiceStatus.DEGRADED
    else:
        overall_status = ServiceStatus.HEALTHY

    response = HealthResponse(
        status=overall_status.value,
        services=services,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=API_VERSION,
    )

    if overall_status is ServiceStatus.UNHEALTHY:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(),
        )
    return response


# =============================================================================
# Liveness Probe
# =============================================================================

@router.get(
    "/ping",
    response_model=PingResponse,
    summary="Liveness probe",
    description="Simple ping endpoint for keepalive checks. Does not verify provider health.",
)
async def ping() -> PingResponse:
    """Always returns 200 while the server is running."""
    return PingResponse(status="ok")


# =============================================================================
# Readiness Probe
# =============================================================================

@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Kubernetes-style readiness probe.",
    responses={
        200: {"description": "Service is ready to accept requests"},
        503: {"description": "Service is not ready"},
    },
)
async def readiness_check(
    state: AppState = Depends(get_app_state),
) -> ReadinessResponse | JSONResponse:
    """
    Returns 200 once configuration produced at least one usable provider.
    """
    checks = {
        "configured": state.is_ready(),
        "scripture_lookup": bool(state.registry.ordered_available_providers(ServiceKind.SCRIPTURE_LOOKUP)),
        "generative": bool(state.registry.ordered_available_providers(ServiceKind.GENERATIVE)),
    }
    response = ReadinessResponse(ready=checks["configured"], checks=checks)

    if not response.ready:
        logger.warning("Readiness check failed: state=%s", state.service.state.value)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(),
        )
    return response
