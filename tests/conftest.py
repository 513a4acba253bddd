"""
Scripture Gateway - Test Configuration

Fake providers with call counters and fixtures shared by all tests.
"""
from __future__ import annotations

from collections import Counter
from typing import Any, Callable

import pytest

from scripture_gateway.domain import (
    ProviderConfig,
    ProviderDescriptor,
    ScoreResult,
    ServiceKind,
    VerseReference,
    VerseText,
)
from scripture_gateway.providers.interface import (
    GenerativeProviderInterface,
    ScriptureProviderInterface,
)
from scripture_gateway.providers.registry import ProviderRegistry
from scripture_gateway.retry import RetryEngine, RetryPolicy
from scripture_gateway.services.orchestrator import ScriptureService


class _FakeMixin:
    """Scripted outcomes, consumed in order; the last one repeats."""

    def _setup(self, provider_id: str, priority: int, kind: ServiceKind, display_name: str | None, outcomes):
        self._descriptor = ProviderDescriptor(
            provider_id=provider_id,
            display_name=display_name or provider_id,
            service_kind=kind,
            default_model="fake-model",
            priority=priority,
        )
        self.outcomes = list(outcomes)
        self.calls: Counter[str] = Counter()
        self.received: list[tuple[str, tuple]] = []
        self._available = False
        self._error: str | None = None
        self.configure_raises: Exception | None = None

    @property
    def descriptor(self) -> ProviderDescriptor:
        return self._descriptor

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def configure(self, config: ProviderConfig) -> bool:
        if self.configure_raises is not None:
            raise self.configure_raises
        if not config.enabled:
            self._available, self._error = False, None
        elif not config.credential.strip():
            self._available, self._error = False, f"{self.display_name} API key is missing"
        else:
            self._available, self._error = True, None
        return self._available

    @property
    def initialization_error(self) -> str | None:
        return self._error

    def is_available(self) -> bool:
        return self._available

    async def _respond(self, operation: str, *args: Any):
        self.calls[operation] += 1
        self.received.append((operation, args))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeGenerativeProvider(_FakeMixin, GenerativeProviderInterface):
    def __init__(self, provider_id: str, priority: int, outcomes, display_name: str | None = None):
        self._setup(provider_id, priority, ServiceKind.GENERATIVE, display_name, outcomes)

    async def fetch_scripture(self, ref, translation, system_prompt, user_prompt):
        return await self._respond("fetch_scripture", ref, translation, system_prompt, user_prompt)

    async def get_key_takeaway(self, verse_ref, system_prompt, user_prompt):
        return await self._respond("get_key_takeaway", verse_ref, system_prompt, user_prompt)

    async def get_score(self, verse_ref, user_comment, system_prompt, user_prompt, feedback_prompt):
        return await self._respond("get_score", verse_ref, user_comment, system_prompt, user_prompt, feedback_prompt)

    async def validate_takeaway(self, system_prompt, user_prompt):
        return await self._respond("validate_takeaway", system_prompt, user_prompt)

    async def find_verses_by_description(self, description, system_prompt, user_prompt):
        return await self._respond("find_verses_by_description", description, system_prompt, user_prompt)


class FakeScriptureProvider(_FakeMixin, ScriptureProviderInterface):
    def __init__(self, provider_id: str, priority: int, outcomes, display_name: str | None = None,
                 translations: frozenset[str] = frozenset({"ESV"})):
        self._setup(provider_id, priority, ServiceKind.SCRIPTURE_LOOKUP, display_name, outcomes)
        self._translations = translations

    @property
    def supported_translations(self) -> frozenset[str]:
        return self._translations

    async def fetch_scripture(self, ref):
        return await self._respond("fetch_scripture", ref)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def john_3_16() -> VerseReference:
    return VerseReference("John", 3, 16, 16)


@pytest.fixture
def john_3_16_text() -> list[VerseText]:
    return [VerseText(16, "For God so loved the world, that he gave his only Son.")]


@pytest.fixture
def sample_score() -> ScoreResult:
    return ScoreResult(85, "Accurately reflects the verse.", "Keep going.")


@pytest.fixture
def make_generative() -> Callable[..., FakeGenerativeProvider]:
    return FakeGenerativeProvider


@pytest.fixture
def make_scripture() -> Callable[..., FakeScriptureProvider]:
    return FakeScriptureProvider


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def retry_engine(sleeps) -> RetryEngine:
    """Default policy with a recording sleep so tests never wait."""
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return RetryEngine(RetryPolicy(max_attempts=3, initial_delay=1.0, max_delay=10.0), sleep=fake_sleep)


@pytest.fixture
def build_service(retry_engine) -> Callable[..., ScriptureService]:
    """
    Register the given providers and configure each with a credential.

    Pass ``configure=False`` to leave the service UNCONFIGURED.
    """
    def _build(*providers, configure: bool = True, configs: dict[str, ProviderConfig] | None = None):
        registry = ProviderRegistry()
        for provider in providers:
            registry.register(provider)
        service = ScriptureService(registry, retry_engine)
        if configure:
            service.configure(configs or {p.provider_id: ProviderConfig(credential="test-key") for p in providers})
        return service

    return _build

