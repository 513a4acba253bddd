"""
Gemini generative provider.

Uses Google's genai library (async client) for completions.
"""
from __future__ import annotations

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from scripture_gateway.config import get_logger
from scripture_gateway.domain import ProviderConfig, ProviderDescriptor, ServiceKind
from scripture_gateway.exceptions import ProviderError, error_for_status

from .base import CompletionProvider

logger = get_logger("providers.gemini")


class GeminiProvider(CompletionProvider):
    """Gemini completions via ``client.aio.models.generate_content``."""

    DESCRIPTOR = ProviderDescriptor(
        provider_id="gemini_ai",
        display_name="Gemini AI",
        service_kind=ServiceKind.GENERATIVE,
        default_model="gemini-2.0-flash",
        priority=10,
    )

    def _create_client(self, config: ProviderConfig) -> genai.Client:
        return genai.Client(api_key=config.credential)

    async def _complete(
        self,
        client: genai.Client,
        config: ProviderConfig,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
    ) -> str:
        gen_config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=config.temperature,
            max_output_tokens=max_tokens,
        )
        response = await client.aio.models.generate_content(
            model=config.model_name,
            contents=user_prompt,
            config=gen_config,
        )
        return response.text or ""

    def _translate_error(self, exc: Exception) -> ProviderError:
        if isinstance(exc, genai_errors.APIError):
            return error_for_status(exc.code or 0, exc.message or str(exc))
        return super()._translate_error(exc)
