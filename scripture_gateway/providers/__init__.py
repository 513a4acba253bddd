"""
Provider layer for swappable implementations.

Each provider type has an abstract interface that concrete implementations
must satisfy. The registry orders providers by priority and the
orchestrator falls back through them, so backends can be added or disabled
without code changes elsewhere.

Directory Structure:
    providers/
    ├── __init__.py        # This file - builds the default registry
    ├── interface.py       # Abstract interfaces all providers implement
    ├── base.py            # Shared configuration and completion machinery
    ├── registry.py        # Priority-ordered provider registry
    ├── esv_impl.py        # ESV Bible lookup (priority 1)
    ├── gemini_impl.py     # Gemini (priority 10)
    ├── openai_impl.py     # OpenAI (20) and DeepSeek (100)
    ├── groq_impl.py       # Groq (30)
    └── ollama_impl.py     # Self-hosted Ollama (40) and Reformed Bible AI (2)
"""
from __future__ import annotations

from .esv_impl import EsvProvider
from .gemini_impl import GeminiProvider
from .groq_impl import GroqProvider
from .interface import GenerativeProviderInterface, ScriptureProviderInterface
from .ollama_impl import OllamaProvider, ReformedBibleProvider
from .openai_impl import DeepSeekProvider, OpenAIProvider
from .registry import ConfigurationOutcome, ProviderRegistry, RegistryStatistics


def build_default_registry(timeout: float | None = None) -> ProviderRegistry:
    """Create a registry holding one instance of every built-in provider."""
    registry = ProviderRegistry()
    for provider_cls in (
        EsvProvider,
        GeminiProvider,
        OpenAIProvider,
        GroqProvider,
        OllamaProvider,
        DeepSeekProvider,
        ReformedBibleProvider,
    ):
        registry.register(provider_cls(timeout=timeout))
    return registry


__all__ = [
    "build_default_registry",
    "ConfigurationOutcome",
    "DeepSeekProvider",
    "EsvProvider",
    "GeminiProvider",
    "GenerativeProviderInterface",
    "GroqProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "ProviderRegistry",
    "ReformedBibleProvider",
    "RegistryStatistics",
    "ScriptureProviderInterface",
]
