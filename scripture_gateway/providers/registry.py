"""
Provider registry.

Holds the registered providers, answers priority-ordered queries per
service kind, and configures everything in one pass. The map is guarded by
a re-entrant lock; ``configure()`` itself runs outside that lock because
each provider swaps its own state atomically.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Mapping, Union

from scripture_gateway.config import get_logger
from scripture_gateway.domain import ProviderConfig, ProviderDescriptor, ServiceKind

from .interface import GenerativeProviderInterface, ScriptureProviderInterface

logger = get_logger("providers.registry")

Provider = Union[ScriptureProviderInterface, GenerativeProviderInterface]


@dataclass
class ConfigurationOutcome:
    """
    Result of ``configure_all``.

    Attributes:
        results: provider_id -> configure() return value
        errors: provider_id -> diagnostic, for providers that failed with one
    """
    results: dict[str, bool] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def any_succeeded(self) -> bool:
        return any(self.results.values())

    @property
    def all_succeeded(self) -> bool:
        return bool(self.results) and all(self.results.values())


@dataclass(frozen=True)
class RegistryStatistics:
    total: int
    available: int
    scripture_total: int
    scripture_available: int
    generative_total: int
    generative_available: int


class ProviderRegistry:
    """
    Registry of scripture and generative providers.

    Ordering is by ascending priority; ties keep registration order.
    Re-registering an id replaces the old entry and counts as a new
    registration.

    Example:
        >>> registry = ProviderRegistry()
        >>> registry.register(GeminiProvider())
        >>> outcome = registry.configure_all(settings.provider_configs())
        >>> registry.ordered_available_providers(ServiceKind.GENERATIVE)
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._providers: dict[str, Provider] = {}

    def register(self, provider: Provider) -> None:
        provider_id = provider.provider_id
        with self._lock:
            replaced = self._providers.pop(provider_id, None)
            self._providers[provider_id] = provider
        if replaced is not None:
            logger.info("Provider %s re-registered", provider_id)
        else:
            logger.debug("Provider %s registered (priority=%d)", provider_id, provider.priority)

    def unregister(self, provider_id: str) -> bool:
        with self._lock:
            return self._providers.pop(provider_id, None) is not None

    def get(self, provider_id: str) -> Provider | None:
        with self._lock:
            return self._providers.get(provider_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        with self._lock:
            return provider_id in self._providers

    def ordered_providers(self, kind: ServiceKind | None = None) -> list[Provider]:
        """Providers of ``kind`` (all when None) sorted by priority."""
        with self._lock:
            providers = list(self._providers.values())
        if kind is not None:
            providers = [p for p in providers if p.descriptor.service_kind == kind]
        # sorted() is stable, so equal priorities keep registration order
        return sorted(providers, key=lambda p: p.priority)

    def ordered_available_providers(self, kind: ServiceKind | None = None) -> list[Provider]:
        return [p for p in self.ordered_providers(kind) if p.is_available()]

    def descriptors(self) -> list[ProviderDescriptor]:
        return [p.descriptor for p in self.ordered_providers()]

    def configure_all(self, configs: Mapping[str, ProviderConfig]) -> ConfigurationOutcome:
        """
        Configure every registered provider that has an entry in ``configs``.

        Never short-circuits. A provider raising from configure() is recorded
        as failed with the exception text.
        """
        outcome = ConfigurationOutcome()
        for provider in self.ordered_providers():
            config = configs.get(provider.provider_id)
            if config is None:
                logger.debug("No configuration for %s, skipping", provider.provider_id)
                continue
            try:
                ok = provider.configure(config)
            except Exception as e:
                logger.error("Configuring %s raised: %s", provider.provider_id, e)
                outcome.results[provider.provider_id] = False
                outcome.errors[provider.provider_id] = f"{type(e).__name__}: {e}"
                continue

            outcome.results[provider.provider_id] = ok
            if not ok and provider.initialization_error:
                outcome.errors[provider.provider_id] = provider.initialization_error

        logger.info(
            "Provider configuration | configured=%d/%d | errors=%d",
            sum(outcome.results.values()),
            len(outcome.results),
            len(outcome.errors),
        )
        return outcome

    def statistics(self) -> RegistryStatistics:
        providers = self.ordered_providers()
        scripture = [p for p in providers if p.descriptor.service_kind == ServiceKind.SCRIPTURE_LOOKUP]
        generative = [p for p in providers if p.descriptor.service_kind == ServiceKind.GENERATIVE]
        return RegistryStatistics(
            total=len(providers),
            available=sum(1 for p in providers if p.is_available()),
            scripture_total=len(scripture),
            scripture_available=sum(1 for p in scripture if p.is_available()),
            generative_total=len(generative),
            generative_available=sum(1 for p in generative if p.is_available()),
        )
