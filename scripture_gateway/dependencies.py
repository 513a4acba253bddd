"""
FastAPI dependencies for dependency injection.

This module centralizes all FastAPI dependencies for:
- Application state injection
- Rate limiting (shared slowapi limiter)
- Client identification

Usage:
    from scripture_gateway.dependencies import get_app_state, limiter

    @router.post("/endpoint")
    @limiter.limit(settings.RATE_LIMIT)
    async def endpoint(request: Request, state: AppState = Depends(get_app_state)):
        ...
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request
from slowapi import Limiter

from scripture_gateway.config import get_logger

if TYPE_CHECKING:
    from scripture_gateway.state import AppState

logger = get_logger("dependencies")


# =============================================================================
# Application State
# =============================================================================

async def get_app_state(request: Request) -> "AppState":
    """
    FastAPI dependency to get application state.

    Provides access to the provider registry and the scripture service.

    Raises:
        RuntimeError: If application state is not initialized
    """
    if not hasattr(request.app.state, "app_state"):
        logger.error("Application state not initialized")
        raise RuntimeError("Application state not initialized")
    return request.app.state.app_state


# =============================================================================
# Client Information
# =============================================================================

def get_client_ip(request: Request) -> str:
    """
    Get the real client IP address.

    Checks X-Forwarded-For and X-Real-IP headers before falling
    back to the direct client IP.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


# =============================================================================
# Rate Limiting
# =============================================================================

limiter = Limiter(key_func=get_client_ip)
