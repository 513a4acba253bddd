"""
Groq generative provider.

Uses Groq's OpenAI-compatible API for fast inference.
"""
from __future__ import annotations

import groq

from scripture_gateway.config import get_logger
from scripture_gateway.domain import ProviderConfig, ProviderDescriptor, ServiceKind
from scripture_gateway.exceptions import NetworkError, ProviderError, RateLimitedError, error_for_status

from .base import CompletionProvider, chat_messages

logger = get_logger("providers.groq")


class GroqProvider(CompletionProvider):
    """Groq chat completions (non-streaming)."""

    DESCRIPTOR = ProviderDescriptor(
        provider_id="groq_ai",
        display_name="Groq AI",
        service_kind=ServiceKind.GENERATIVE,
        default_model="llama-3.3-70b-versatile",
        priority=30,
    )

    def _create_client(self, config: ProviderConfig) -> groq.AsyncGroq:
        return groq.AsyncGroq(api_key=config.credential, max_retries=0, timeout=self.timeout)

    async def _complete(
        self,
        client: groq.AsyncGroq,
        config: ProviderConfig,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
    ) -> str:
        response = await client.chat.completions.create(
            model=config.model_name,
            messages=chat_messages(system_prompt, user_prompt),
            temperature=config.temperature,
            max_tokens=max_tokens,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    def _translate_error(self, exc: Exception) -> ProviderError:
        if isinstance(exc, groq.RateLimitError):
            return RateLimitedError(f"Groq rate limit hit: {exc.message}")
        if isinstance(exc, groq.APIStatusError):
            return error_for_status(exc.status_code, exc.message)
        if isinstance(exc, groq.APIConnectionError):
            return NetworkError(f"Groq connection failed: {exc}")
        return super()._translate_error(exc)
