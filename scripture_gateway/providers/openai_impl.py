"""
OpenAI chat completion provider, plus DeepSeek through the same SDK.

DeepSeek exposes an OpenAI-compatible endpoint, so it only differs in its
descriptor and default base URL.
"""
from __future__ import annotations

import openai

from scripture_gateway.config import get_logger
from scripture_gateway.domain import ProviderConfig, ProviderDescriptor, ServiceKind
from scripture_gateway.exceptions import NetworkError, ProviderError, error_for_status

from .base import CompletionProvider, chat_messages

logger = get_logger("providers.openai")


class OpenAIProvider(CompletionProvider):
    """
    OpenAI chat completions.

    SDK-level retries are disabled; the retry engine owns retry policy.
    """

    DESCRIPTOR = ProviderDescriptor(
        provider_id="openai",
        display_name="OpenAI",
        service_kind=ServiceKind.GENERATIVE,
        default_model="gpt-4o-mini",
        priority=20,
    )
    default_base_url: str | None = None

    def _create_client(self, config: ProviderConfig) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(
            api_key=config.credential,
            base_url=config.base_url or self.default_base_url,
            max_retries=0,
            timeout=self.timeout,
        )

    async def _complete(
        self,
        client: openai.AsyncOpenAI,
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
        if isinstance(exc, openai.APIStatusError):
            return error_for_status(exc.status_code, exc.message)
        if isinstance(exc, openai.APIConnectionError):
            # APITimeoutError is a subclass
            return NetworkError(f"{self.display_name} connection failed: {exc}")
        return super()._translate_error(exc)


class DeepSeekProvider(OpenAIProvider):
    """DeepSeek chat completions via its OpenAI-compatible API."""

    DESCRIPTOR = ProviderDescriptor(
        provider_id="deepseek_ai",
        display_name="DeepSeek AI",
        service_kind=ServiceKind.GENERATIVE,
        default_model="deepseek-chat",
        priority=100,
    )
    default_base_url = "https://api.deepseek.com"
