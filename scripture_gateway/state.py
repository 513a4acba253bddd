"""
Application state management.

Holds the provider registry and the scripture service built at startup.
Nothing here is a module-level singleton; the FastAPI lifespan creates one
AppState and stores it on ``app.state``.
"""
from __future__ import annotations

from dataclasses import dataclass

from scripture_gateway.config import Settings, get_logger, settings
from scripture_gateway.dependencies import get_app_state
from scripture_gateway.providers import ProviderRegistry, build_default_registry
from scripture_gateway.retry import RetryEngine, RetryPolicy
from scripture_gateway.services.orchestrator import ScriptureService

logger = get_logger("state")


@dataclass
class AppState:
    """Central container for shared application resources."""
    registry: ProviderRegistry
    service: ScriptureService

    @classmethod
    def create(cls, app_settings: Settings | None = None) -> "AppState":
        """
        Build the registry, configure every provider and wrap it in a service.

        A configuration with no usable provider does not abort startup; the
        service starts DEGRADED and answers every operation with a
        "not configured" failure.
        """
        app_settings = app_settings or settings
        registry = build_default_registry(timeout=app_settings.PROVIDER_TIMEOUT_SECONDS)
        policy = RetryPolicy(
            max_attempts=app_settings.MAX_ATTEMPTS,
            initial_delay=app_settings.RETRY_INITIAL_DELAY,
            max_delay=app_settings.RETRY_MAX_DELAY,
        )
        service = ScriptureService(registry, RetryEngine(policy))
        outcome = service.configure(app_settings.provider_configs())

        for provider in registry.ordered_providers():
            logger.info(
                "Provider %-12s | priority=%3d | %s",
                provider.provider_id,
                provider.priority,
                "OK" if provider.is_available() else (provider.initialization_error or "DISABLED"),
            )
        if not outcome.any_succeeded:
            logger.warning("No provider could be configured; set at least one API key in .env")

        return cls(registry=registry, service=service)

    def is_ready(self) -> bool:
        return self.service.is_ready()


__all__ = ["AppState", "get_app_state"]
