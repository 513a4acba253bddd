"""
Scripture service orchestration.

``ScriptureService`` is the single entry point the application uses. For
each operation it asks the registry for the available providers in priority
order, wraps each attempt in the retry engine, and returns the first
success. When every provider fails, one aggregate failure naming each
provider's reason is returned.

Flow (scripture fetch):
    1. Scripture lookup providers that serve the requested translation
    2. Generative providers, with centrally defined prompts
    3. Aggregate failure
"""
from __future__ import annotations

import threading
from enum import Enum
from typing import Awaitable, Callable, Mapping, Sequence, TypeVar

from scripture_gateway.config import get_logger, redact_secrets
from scripture_gateway.domain import (
    ProviderConfig,
    ScoreResult,
    ServiceKind,
    VerseReference,
    VerseText,
)
from scripture_gateway.exceptions import NotConfiguredError, ValidationError, mentions_quota
from scripture_gateway.providers.registry import ConfigurationOutcome, Provider, ProviderRegistry
from scripture_gateway.result import Failure, OperationResult, Success
from scripture_gateway.retry import RetryEngine
from scripture_gateway.utils import sanitize_text

from . import prompts

logger = get_logger("orchestrator")

T = TypeVar("T")

PROBE_REFERENCE = VerseReference("John", 3, 16, 16)


class ServiceState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURING = "configuring"
    READY = "ready"
    DEGRADED = "degraded"


def _blank_input(operation: str, **fields: str) -> Failure | None:
    """A ValidationError failure naming the fields left empty after sanitising."""
    empty = [name for name, value in fields.items() if not value]
    if not empty:
        return None
    error = ValidationError(f"{operation} requires non-empty {', '.join(empty)}")
    return Failure(error.message, cause=error)


class ScriptureService:
    """
    Façade over the provider registry.

    Constructible (no module-level singleton) so tests and the HTTP layer
    each own their instance.

    Example:
        >>> service = ScriptureService(build_default_registry())
        >>> service.configure(settings.provider_configs())
        >>> result = await service.get_key_takeaway("John 3:16")
    """

    def __init__(self, registry: ProviderRegistry, retry_engine: RetryEngine | None = None) -> None:
        self._registry = registry
        self._retry = retry_engine or RetryEngine()
        self._lock = threading.Lock()
        self._state = ServiceState.UNCONFIGURED
        self._last_outcome: ConfigurationOutcome | None = None

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def state(self) -> ServiceState:
        with self._lock:
            return self._state

    @property
    def last_outcome(self) -> ConfigurationOutcome | None:
        with self._lock:
            return self._last_outcome

    def configure(self, configs: Mapping[str, ProviderConfig]) -> ConfigurationOutcome:
        """
        Configure every registered provider.

        READY when at least one provider succeeded, DEGRADED otherwise.
        """
        with self._lock:
            self._state = ServiceState.CONFIGURING

        outcome = self._registry.configure_all(configs)

        with self._lock:
            self._last_outcome = outcome
            self._state = ServiceState.READY if outcome.any_succeeded else ServiceState.DEGRADED
            state = self._state

        if state is ServiceState.READY:
            logger.info(
                "Scripture service ready | providers=%s",
                ", ".join(pid for pid, ok in outcome.results.items() if ok),
            )
        else:
            logger.error(
                "Scripture service degraded, no provider configured | errors=%s",
                redact_secrets("; ".join(f"{k}: {v}" for k, v in outcome.errors.items())),
            )
        return outcome

    def is_ready(self) -> bool:
        return self.state is ServiceState.READY and bool(self._registry.ordered_available_providers())

    def _not_configured(self, operation: str) -> Failure:
        outcome = self.last_outcome
        detail = ""
        if outcome is not None and outcome.errors:
            detail = ": " + "; ".join(f"{k}: {v}" for k, v in outcome.errors.items())
        error = NotConfiguredError(redact_secrets(f"AI service not configured for {operation}{detail}"))
        return Failure(error.message, cause=error)

    # =========================================================================
    # Fallback Loop
    # =========================================================================

    async def _run(
        self,
        operation: str,
        providers: Sequence[Provider],
        call: Callable[[Provider], Awaitable[OperationResult[T]]],
    ) -> OperationResult[T]:
        """
        Try ``providers`` in order, returning the first success.

        Every attempt emits one log record with ``provider``, ``operation``
        and ``outcome`` in ``extra``.
        """
        if self.state is not ServiceState.READY or not providers:
            logger.warning("%s requested but no provider is available", operation)
            return self._not_configured(operation)

        reasons: list[str] = []
        for provider in providers:
            result = await self._retry.call(
                lambda: call(provider),
                label=f"{provider.provider_id}.{operation}",
            )
            if isinstance(result, Success):
                logger.info(
                    "%s succeeded with %s", operation, provider.display_name,
                    extra={"provider": provider.provider_id, "operation": operation, "outcome": "success"},
                )
                return result

            log = logger.info if mentions_quota(result.message) else logger.warning
            log(
                "%s failed with %s (%s): %s",
                operation, provider.display_name, result.error_type, result.message,
                extra={"provider": provider.provider_id, "operation": operation, "outcome": "failure"},
            )
            reasons.append(f"{provider.display_name}: {result.message}")

        message = redact_secrets(
            f"All available providers ({len(providers)}) failed for {operation}: " + "; ".join(reasons)
        )
        logger.error(message)
        return Failure(message, cause=result.cause)

    def _generative(self) -> list[Provider]:
        return self._registry.ordered_available_providers(ServiceKind.GENERATIVE)

    # =========================================================================
    # Operations
    # =========================================================================

    async def fetch_scripture(self, ref: VerseReference, translation: str = "ESV") -> OperationResult[list[VerseText]]:
        """
        Fetch verse text.

        Lookup providers serving ``translation`` are tried before generative
        providers.
        """
        wanted = translation.strip().upper()
        lookup = [
            p for p in self._registry.ordered_available_providers(ServiceKind.SCRIPTURE_LOOKUP)
            if wanted in {t.upper() for t in p.supported_translations}
        ]
        generative = self._generative()
        system_prompt = prompts.SCRIPTURE_SCHOLAR
        user_prompt = prompts.scripture_prompt(ref, translation)

        async def call(provider: Provider) -> OperationResult[list[VerseText]]:
            if provider.descriptor.service_kind is ServiceKind.SCRIPTURE_LOOKUP:
                return await provider.fetch_scripture(ref)
            return await provider.fetch_scripture(ref, translation, system_prompt, user_prompt)

        return await self._run("fetch_scripture", lookup + generative, call)

    async def get_key_takeaway(self, verse_ref: str) -> OperationResult[str]:
        verse_ref = sanitize_text(verse_ref)
        invalid = _blank_input("get_key_takeaway", verse_ref=verse_ref)
        if invalid is not None:
            return invalid
        system_prompt = prompts.TAKEAWAY_EXPERT
        user_prompt = prompts.takeaway_prompt(verse_ref)
        return await self._run(
            "get_key_takeaway",
            self._generative(),
            lambda p: p.get_key_takeaway(verse_ref, system_prompt, user_prompt),
        )

    async def get_ai_score(self, verse_ref: str, user_comment: str) -> OperationResult[ScoreResult]:
        verse_ref = sanitize_text(verse_ref)
        user_comment = sanitize_text(user_comment)
        invalid = _blank_input("get_ai_score", verse_ref=verse_ref, user_comment=user_comment)
        if invalid is not None:
            return invalid
        system_prompt = prompts.SCORING_EXPERT
        user_prompt = prompts.score_prompt(verse_ref, user_comment)
        feedback_prompt = prompts.application_feedback_prompt(verse_ref, user_comment)
        return await self._run(
            "get_ai_score",
            self._generative(),
            lambda p: p.get_score(verse_ref, user_comment, system_prompt, user_prompt, feedback_prompt),
        )

    async def validate_takeaway(self, verse_ref: str, takeaway: str) -> OperationResult[bool]:
        verse_ref = sanitize_text(verse_ref)
        takeaway = sanitize_text(takeaway)
        invalid = _blank_input("validate_takeaway", verse_ref=verse_ref, takeaway=takeaway)
        if invalid is not None:
            return invalid
        system_prompt = prompts.TAKEAWAY_VALIDATOR
        user_prompt = prompts.takeaway_validation_prompt(verse_ref, takeaway)
        return await self._run(
            "validate_takeaway",
            self._generative(),
            lambda p: p.validate_takeaway(system_prompt, user_prompt),
        )

    async def find_verses_by_description(self, description: str) -> OperationResult[list[VerseReference]]:
        description = sanitize_text(description)
        invalid = _blank_input("find_verses_by_description", description=description)
        if invalid is not None:
            return invalid
        system_prompt = prompts.VERSE_FINDER
        user_prompt = prompts.verse_search_prompt(description)
        return await self._run(
            "find_verses_by_description",
            self._generative(),
            lambda p: p.find_verses_by_description(description, system_prompt, user_prompt),
        )

    # =========================================================================
    # Diagnostics
    # =========================================================================

    async def probe(self, provider_id: str) -> OperationResult[list[VerseText]]:
        """
        Fetch John 3:16 from one provider, without fallback or retry.

        Used by the deep health check.
        """
        provider = self._registry.get(provider_id)
        if provider is None:
            return Failure(f"Unknown provider: {provider_id}")
        if not provider.is_available():
            reason = provider.initialization_error or "disabled or never configured"
            error = NotConfiguredError(f"{provider.display_name} is not configured: {reason}")
            return Failure(error.message, cause=error)

        if provider.descriptor.service_kind is ServiceKind.SCRIPTURE_LOOKUP:
            return await provider.fetch_scripture(PROBE_REFERENCE)
        return await provider.fetch_scripture(
            PROBE_REFERENCE,
            "ESV",
            prompts.SCRIPTURE_SCHOLAR,
            prompts.scripture_prompt(PROBE_REFERENCE, "ESV"),
        )
