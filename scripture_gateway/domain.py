"""
Domain value types shared by providers, the registry and the orchestrator.

These are plain dataclasses (no I/O, no configuration imports) so that every
other module can depend on them without import cycles.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum


class ServiceKind(str, Enum):
    """Capability set a provider implements."""
    SCRIPTURE_LOOKUP = "scripture_lookup"
    GENERATIVE = "generative"


@dataclass(frozen=True)
class ProviderDescriptor:
    """
    Immutable identity of a provider implementation.

    Attributes:
        provider_id: Unique registry key
        display_name: Human-readable name used in diagnostics
        service_kind: Which capability interface the provider implements
        default_model: Model used when the config does not name one
        priority: Fallback order (lower is tried first)
    """
    provider_id: str
    display_name: str
    service_kind: ServiceKind
    default_model: str
    priority: int


@dataclass
class ProviderConfig:
    """
    Caller-owned configuration handed to ``configure()``.

    ``base_url`` is only consulted by providers that talk to a configurable
    endpoint (self-hosted or OpenAI-compatible servers).
    """
    model_name: str = ""
    credential: str = field(default="", repr=False)
    temperature: float = 0.7
    enabled: bool = True
    base_url: str | None = None


_REFERENCE_RE = re.compile(
    r"^\s*(?P<book>.+?)\s+(?P<chapter>\d+)\s*:\s*(?P<start>\d+)(?:\s*[-–]\s*(?P<end>\d+))?\s*$"
)


@dataclass(frozen=True)
class VerseReference:
    """A contiguous verse range inside one chapter."""
    book: str
    chapter: int
    start_verse: int
    end_verse: int

    def __post_init__(self) -> None:
        if not self.book or not self.book.strip():
            raise ValueError("Book name cannot be empty")
        if self.chapter < 1:
            raise ValueError(f"Chapter must be positive, got {self.chapter}")
        if self.start_verse < 1:
            raise ValueError(f"Start verse must be positive, got {self.start_verse}")
        if self.end_verse < self.start_verse:
            raise ValueError(
                f"End verse ({self.end_verse}) cannot precede start verse ({self.start_verse})"
            )

    @classmethod
    def parse(cls, text: str) -> "VerseReference":
        """
        Parse a reference such as ``"John 3:16"`` or ``"1 John 1:8-10"``.

        Raises:
            ValueError: If the text is not a chapter:verse reference
        """
        match = _REFERENCE_RE.match(text or "")
        if not match:
            raise ValueError(f"Invalid verse reference: {text!r}")
        start = int(match.group("start"))
        end = int(match.group("end")) if match.group("end") else start
        return cls(
            book=match.group("book").strip(),
            chapter=int(match.group("chapter")),
            start_verse=start,
            end_verse=end,
        )

    @property
    def is_single_verse(self) -> bool:
        return self.start_verse == self.end_verse

    def passage_query(self) -> str:
        """Range form always including the end verse, e.g. ``John 3:16-16``."""
        return f"{self.book} {self.chapter}:{self.start_verse}-{self.end_verse}"

    def __str__(self) -> str:
        if self.is_single_verse:
            return f"{self.book} {self.chapter}:{self.start_verse}"
        return f"{self.book} {self.chapter}:{self.start_verse}-{self.end_verse}"


@dataclass(frozen=True)
class VerseText:
    """One verse of scripture text."""
    verse_number: int
    text: str


@dataclass
class ScoreResult:
    """Evaluation of how a user applies a verse."""
    context_score: int
    context_explanation: str
    application_feedback: str = ""

    def __post_init__(self) -> None:
        self.context_score = max(0, min(100, int(self.context_score)))
