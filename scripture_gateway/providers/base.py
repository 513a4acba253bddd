"""
Shared provider machinery.

``ConfigurableProvider`` owns validation and the atomic swap of the active
configuration and client. ``CompletionProvider`` adds everything generative
backends have in common: timeout enforcement, SDK error translation, and
handing each reply to the normalizer. Concrete generative providers only
implement client construction, one completion call and (optionally) error
translation.
"""
from __future__ import annotations

import asyncio
import threading
from dataclasses import replace
from typing import Any, ClassVar

from scripture_gateway.config import get_logger, settings
from scripture_gateway.domain import (
    ProviderConfig,
    ProviderDescriptor,
    ScoreResult,
    VerseReference,
    VerseText,
)
from scripture_gateway.exceptions import (
    MalformedResponseError,
    NetworkError,
    NotConfiguredError,
    ProviderError,
    classify_exception,
)
from scripture_gateway.result import Failure, OperationResult, Success
from scripture_gateway.services import normalizer, prompts
from scripture_gateway.utils import truncate_text

from .interface import GenerativeProviderInterface

logger = get_logger("providers")


class ConfigurableProvider:
    """
    Configuration lifecycle shared by every provider.

    The active ``(config, client)`` pair is replaced under a per-provider
    lock, so an in-flight call keeps the snapshot it started with while a
    reconfiguration happens.
    """

    DESCRIPTOR: ClassVar[ProviderDescriptor]
    requires_credential: ClassVar[bool] = True
    requires_base_url: ClassVar[bool] = False

    def __init__(self, timeout: float | None = None) -> None:
        self._lock = threading.Lock()
        self._config: ProviderConfig | None = None
        self._client: Any = None
        self._init_error: str | None = None
        self._timeout = timeout if timeout is not None else settings.PROVIDER_TIMEOUT_SECONDS

    @property
    def descriptor(self) -> ProviderDescriptor:
        return self.DESCRIPTOR

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def initialization_error(self) -> str | None:
        with self._lock:
            return self._init_error

    @property
    def active_config(self) -> ProviderConfig | None:
        with self._lock:
            return self._config

    def is_available(self) -> bool:
        with self._lock:
            return self._client is not None

    def _validate(self, config: ProviderConfig) -> str | None:
        """Return a diagnostic when ``config`` cannot be used."""
        name = self.DESCRIPTOR.display_name
        if self.requires_credential and not (config.credential or "").strip():
            return f"{name} API key is missing"
        if self.requires_base_url and not (config.base_url or "").strip():
            return f"{name} base URL is missing"
        if not 0.0 <= config.temperature <= 1.0:
            return f"{name} temperature must be between 0.0 and 1.0, got {config.temperature}"
        return None

    def _create_client(self, config: ProviderConfig) -> Any:
        """Build the transport object used by calls. Must not perform I/O."""
        raise NotImplementedError

    def _reset(self, error: str | None) -> None:
        with self._lock:
            self._config = None
            self._client = None
            self._init_error = error

    def configure(self, config: ProviderConfig) -> bool:
        """
        Validate ``config`` and swap it in.

        A disabled config clears the provider without recording an error.
        Any failure leaves the provider unavailable.
        """
        name = self.DESCRIPTOR.display_name
        if not config.enabled:
            self._reset(None)
            logger.info("%s disabled by configuration", name)
            return False

        error = self._validate(config)
        if error:
            self._reset(error)
            logger.warning("%s configuration rejected: %s", name, error)
            return False

        resolved = replace(
            config,
            model_name=(config.model_name or "").strip() or self.DESCRIPTOR.default_model,
            credential=(config.credential or "").strip(),
            base_url=(config.base_url or "").strip().rstrip("/") or None,
        )
        try:
            client = self._create_client(resolved)
        except Exception as e:
            message = f"Failed to initialize {name}: {e}"
            self._reset(message)
            logger.error(message)
            return False

        with self._lock:
            self._config = resolved
            self._client = client
            self._init_error = None
        logger.info("%s configured (model=%s)", name, resolved.model_name or "n/a")
        return True

    def _snapshot(self) -> tuple[ProviderConfig | None, Any]:
        with self._lock:
            return self._config, self._client

    def _not_configured(self) -> Failure:
        name = self.DESCRIPTOR.display_name
        reason = self.initialization_error or "configure() has not succeeded"
        error = NotConfiguredError(f"{name} is not configured: {reason}")
        return Failure(error.message, cause=error)

    def _timed_out(self) -> Failure:
        error = NetworkError(f"{self.DESCRIPTOR.display_name} timed out after {self._timeout:g}s")
        return Failure(error.message, cause=error)


class CompletionProvider(ConfigurableProvider, GenerativeProviderInterface):
    """
    Base class for generative providers.

    Subclasses implement:
    - ``_create_client(config)``: construct the SDK client
    - ``_complete(client, config, system_prompt, user_prompt, max_tokens)``:
      one completion call returning the reply text
    - ``_translate_error(exc)``: optional SDK-specific error mapping
    """

    SCRIPTURE_TOKENS: ClassVar[int] = 500
    TAKEAWAY_TOKENS: ClassVar[int] = 300
    SCORE_TOKENS: ClassVar[int] = 800
    FEEDBACK_TOKENS: ClassVar[int] = 300
    VALIDATION_TOKENS: ClassVar[int] = 50
    SEARCH_TOKENS: ClassVar[int] = 400

    async def _complete(
        self,
        client: Any,
        config: ProviderConfig,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
    ) -> str:
        raise NotImplementedError

    def _translate_error(self, exc: Exception) -> ProviderError:
        return classify_exception(exc)

    async def _generate(self, system_prompt: str, user_prompt: str, max_tokens: int) -> OperationResult[str]:
        """Run one completion bounded by the provider timeout."""
        config, client = self._snapshot()
        if config is None or client is None:
            return self._not_configured()

        try:
            text = await asyncio.wait_for(
                self._complete(client, config, system_prompt, user_prompt, max_tokens),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            return self._timed_out()
        except Exception as e:
            error = self._translate_error(e)
            return Failure(error.message, cause=error)

        if not text or not text.strip():
            error = MalformedResponseError(f"{self.display_name} returned an empty response")
            return Failure(error.message, cause=error)

        logger.debug("%s reply: %s", self.provider_id, truncate_text(text))
        return Success(text)

    async def fetch_scripture(
        self,
        ref: VerseReference,
        translation: str,
        system_prompt: str,
        user_prompt: str,
    ) -> OperationResult[list[VerseText]]:
        reply = await self._generate(system_prompt, user_prompt, self.SCRIPTURE_TOKENS)
        if isinstance(reply, Failure):
            return reply
        return normalizer.parse_verses(reply.value, ref)

    async def get_key_takeaway(
        self,
        verse_ref: str,
        system_prompt: str,
        user_prompt: str,
    ) -> OperationResult[str]:
        reply = await self._generate(system_prompt, user_prompt, self.TAKEAWAY_TOKENS)
        if isinstance(reply, Failure):
            return reply
        return normalizer.parse_takeaway(reply.value)

    async def get_score(
        self,
        verse_ref: str,
        user_comment: str,
        system_prompt: str,
        user_prompt: str,
        feedback_prompt: str,
    ) -> OperationResult[ScoreResult]:
        reply = await self._generate(system_prompt, user_prompt, self.SCORE_TOKENS)
        if isinstance(reply, Failure):
            return reply
        score = normalizer.parse_score(reply.value)
        if isinstance(score, Failure):
            return score

        feedback = await self._generate(prompts.FEEDBACK_EXPERT, feedback_prompt, self.FEEDBACK_TOKENS)
        if isinstance(feedback, Success):
            score.value.application_feedback = normalizer.strip_code_fences(feedback.value)
        else:
            logger.warning(
                "%s could not produce application feedback for %s: %s",
                self.display_name, verse_ref, feedback.message,
            )
        return score

    async def validate_takeaway(self, system_prompt: str, user_prompt: str) -> OperationResult[bool]:
        reply = await self._generate(system_prompt, user_prompt, self.VALIDATION_TOKENS)
        if isinstance(reply, Failure):
            return reply
        return normalizer.parse_boolean(reply.value)

    async def find_verses_by_description(
        self,
        description: str,
        system_prompt: str,
        user_prompt: str,
    ) -> OperationResult[list[VerseReference]]:
        reply = await self._generate(system_prompt, user_prompt, self.SEARCH_TOKENS)
        if isinstance(reply, Failure):
            return reply
        return normalizer.parse_verse_references(reply.value)


def chat_messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
    """OpenAI-style message list."""
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
