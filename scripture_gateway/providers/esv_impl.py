"""
ESV Bible lookup provider.

Fetches passage text from the ESV API (https://api.esv.org). Verse numbers
are requested inline as ``[n]`` markers and split by the normalizer.
"""
from __future__ import annotations

import asyncio
from typing import Any

import aiohttp

from scripture_gateway.config import get_logger
from scripture_gateway.domain import (
    ProviderConfig,
    ProviderDescriptor,
    ServiceKind,
    VerseReference,
    VerseText,
)
from scripture_gateway.exceptions import (
    MalformedResponseError,
    NetworkError,
    classify_exception,
    error_for_status,
)
from scripture_gateway.result import Failure, OperationResult
from scripture_gateway.services import normalizer

from .base import ConfigurableProvider
from .interface import ScriptureProviderInterface

logger = get_logger("providers.esv")

ESV_API_URL = "https://api.esv.org/v3/passage/text/"


class EsvProvider(ConfigurableProvider, ScriptureProviderInterface):
    """
    ESV passage text lookup.

    Only serves the ESV translation; the orchestrator falls back to
    generative providers for anything else.
    """

    DESCRIPTOR = ProviderDescriptor(
        provider_id="esv_bible",
        display_name="ESV Bible",
        service_kind=ServiceKind.SCRIPTURE_LOOKUP,
        default_model="",
        priority=1,
    )

    @property
    def supported_translations(self) -> frozenset[str]:
        return frozenset({"ESV"})

    def _create_client(self, config: ProviderConfig) -> str:
        return config.base_url or ESV_API_URL

    @staticmethod
    def build_params(ref: VerseReference) -> dict[str, str]:
        return {
            "q": ref.passage_query(),
            "include-passage-references": "false",
            "include-verse-numbers": "true",
            "include-footnotes": "false",
            "include-headings": "false",
        }

    async def _request(self, url: str, params: dict[str, str], headers: dict[str, str]) -> tuple[int, Any]:
        """
        Send one GET request.

        Returns:
            (status, body) where body is decoded JSON on HTTP 200 and raw text
            otherwise.
        """
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, params=params, headers=headers) as response:
                if response.status != 200:
                    return response.status, await response.text()
                return response.status, await response.json(content_type=None)

    async def fetch_scripture(self, ref: VerseReference) -> OperationResult[list[VerseText]]:
        config, url = self._snapshot()
        if config is None or url is None:
            return self._not_configured()

        headers = {"Authorization": f"Token {config.credential}"}
        try:
            status, body = await asyncio.wait_for(
                self._request(url, self.build_params(ref), headers),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return self._timed_out()
        except aiohttp.ClientError as e:
            error = NetworkError(f"ESV request failed: {e}")
            return Failure(error.message, cause=error)
        except Exception as e:
            error = classify_exception(e)
            return Failure(error.message, cause=error)

        if status != 200:
            error = error_for_status(status, str(body)[:300])
            logger.warning("ESV lookup for %s failed: %s", ref, error.message)
            return Failure(error.message, cause=error)

        passages = body.get("passages") if isinstance(body, dict) else None
        if not passages or not any(isinstance(p, str) and p.strip() for p in passages):
            error = MalformedResponseError(f"No passage text returned for {ref}")
            return Failure(error.message, cause=error)

        text = " ".join(p.strip() for p in passages if isinstance(p, str))
        return normalizer.parse_numbered_passage(text, ref)
