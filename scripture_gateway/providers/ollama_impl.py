"""
Ollama generative provider for self-hosted models.

Talks to ``POST {base_url}/api/generate`` with streaming disabled. A
credential is optional (servers behind an authenticating proxy); the base
URL is required.
"""
from __future__ import annotations

from typing import Any

import aiohttp

from scripture_gateway.config import get_logger
from scripture_gateway.domain import ProviderConfig, ProviderDescriptor, ServiceKind
from scripture_gateway.exceptions import (
    MalformedResponseError,
    NetworkError,
    ProviderError,
    error_for_status,
)

from .base import CompletionProvider

logger = get_logger("providers.ollama")


class OllamaProvider(CompletionProvider):
    """Completions from an Ollama server."""

    DESCRIPTOR = ProviderDescriptor(
        provider_id="ollama_ai",
        display_name="Ollama AI",
        service_kind=ServiceKind.GENERATIVE,
        default_model="llama3.1",
        priority=40,
    )
    requires_credential = False
    requires_base_url = True

    def _create_client(self, config: ProviderConfig) -> str:
        # No persistent client; the endpoint URL is the transport handle.
        return f"{config.base_url}/api/generate"

    async def _post(self, url: str, payload: dict[str, Any], headers: dict[str, str]) -> tuple[int, Any]:
        """
        Send one request.

        Returns:
            (status, body) where body is decoded JSON on HTTP 200 and raw text
            otherwise.
        """
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, json=payload, headers=headers) as response:
                if response.status != 200:
                    return response.status, await response.text()
                return response.status, await response.json(content_type=None)

    async def _complete(
        self,
        client: str,
        config: ProviderConfig,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
    ) -> str:
        payload = {
            "model": config.model_name,
            "system": system_prompt,
            "prompt": user_prompt,
            "stream": False,
            "options": {"temperature": config.temperature, "num_predict": max_tokens},
        }
        headers = {"Content-Type": "application/json"}
        if config.credential:
            headers["Authorization"] = f"Bearer {config.credential}"

        status, body = await self._post(client, payload, headers)
        if status != 200:
            raise error_for_status(status, str(body)[:300])
        if not isinstance(body, dict):
            raise MalformedResponseError("Ollama returned a non-object body")
        if body.get("error"):
            raise error_for_status(500, str(body["error"]))
        return str(body.get("response") or "")

    def _translate_error(self, exc: Exception) -> ProviderError:
        if isinstance(exc, aiohttp.ClientResponseError):
            return error_for_status(exc.status, exc.message)
        if isinstance(exc, aiohttp.ClientError):
            return NetworkError(f"Ollama request failed: {exc}")
        return super()._translate_error(exc)


class ReformedBibleProvider(OllamaProvider):
    """Bible-expert model served by the same Ollama server."""

    DESCRIPTOR = ProviderDescriptor(
        provider_id="reformed_bible_ai",
        display_name="Reformed Bible AI",
        service_kind=ServiceKind.GENERATIVE,
        default_model="hf.co/mradermacher/Protestant-Christian-Bible-Expert-v2.0-12B-i1-GGUF:IQ4_XS",
        priority=2,
    )
