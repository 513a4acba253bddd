"""
Abstract interfaces for scripture and generative providers.

All providers must implement one of these interfaces so that the registry
and the orchestrator can treat them interchangeably. The orchestrator never
branches on a concrete provider type, only on ``descriptor.service_kind``.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from scripture_gateway.domain import (
    ProviderConfig,
    ProviderDescriptor,
    ScoreResult,
    VerseReference,
    VerseText,
)
from scripture_gateway.result import OperationResult


class ProviderInterface(ABC):
    """
    Capabilities shared by every provider.

    All implementations must provide:
    - An immutable descriptor (id, display name, kind, default model, priority)
    - Configuration with validation
    - A cheap availability check that performs no I/O
    """

    @property
    @abstractmethod
    def descriptor(self) -> ProviderDescriptor:
        """Immutable identity of this provider."""
        pass

    @property
    def provider_id(self) -> str:
        return self.descriptor.provider_id

    @property
    def display_name(self) -> str:
        return self.descriptor.display_name

    @property
    def default_model(self) -> str:
        return self.descriptor.default_model

    @property
    def priority(self) -> int:
        return self.descriptor.priority

    @abstractmethod
    def configure(self, config: ProviderConfig) -> bool:
        """
        Validate and apply a configuration.

        Args:
            config: Provider configuration

        Returns:
            True when the provider is ready to serve calls. On False the
            reason is available from ``initialization_error``.
        """
        pass

    @property
    @abstractmethod
    def initialization_error(self) -> str | None:
        """Diagnostic from the last failed configure(), None otherwise."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is configured and usable (no I/O)."""
        pass


class ScriptureProviderInterface(ProviderInterface):
    """Dedicated Bible-text lookup service."""

    @property
    @abstractmethod
    def supported_translations(self) -> frozenset[str]:
        """Upper-case translation codes this provider can serve."""
        pass

    @abstractmethod
    async def fetch_scripture(self, ref: VerseReference) -> OperationResult[list[VerseText]]:
        """
        Fetch the verses of ``ref``.

        Returns:
            Success with verses in order, or Failure. Never raises for
            expected failures.
        """
        pass


class GenerativeProviderInterface(ProviderInterface):
    """
    General-purpose text-completion service.

    Prompts are supplied by the caller; implementations only transport them
    and normalise the reply.
    """

    @abstractmethod
    async def fetch_scripture(
        self,
        ref: VerseReference,
        translation: str,
        system_prompt: str,
        user_prompt: str,
    ) -> OperationResult[list[VerseText]]:
        pass

    @abstractmethod
    async def get_key_takeaway(
        self,
        verse_ref: str,
        system_prompt: str,
        user_prompt: str,
    ) -> OperationResult[str]:
        pass

    @abstractmethod
    async def get_score(
        self,
        verse_ref: str,
        user_comment: str,
        system_prompt: str,
        user_prompt: str,
        feedback_prompt: str,
    ) -> OperationResult[ScoreResult]:
        """
        Score the user's comment, then request application feedback.

        A failed feedback request leaves ``application_feedback`` empty and
        does not fail the score.
        """
        pass

    @abstractmethod
    async def validate_takeaway(
        self,
        system_prompt: str,
        user_prompt: str,
    ) -> OperationResult[bool]:
        pass

    @abstractmethod
    async def find_verses_by_description(
        self,
        description: str,
        system_prompt: str,
        user_prompt: str,
    ) -> OperationResult[list[VerseReference]]:
        pass
