"""
Pydantic models for request/response validation and OpenAPI documentation.

This module defines all data transfer objects (DTOs) used in the API:
- Request models with validation
- Response payloads for each scripture operation
- Health and readiness responses
- The generic ApiResponse envelope

Usage:
    from scripture_gateway.models import ScriptureRequest, ApiResponse
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from scripture_gateway.config import settings
from scripture_gateway.domain import ScoreResult, VerseReference, VerseText

# =============================================================================
# Type Variables for Generic Models
# =============================================================================

T = TypeVar("T")


# =============================================================================
# Enums
# =============================================================================

class ServiceStatus(str, Enum):
    """Status values for health checks."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


# =============================================================================
# Request Models
# =============================================================================

class _TextRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class ScriptureRequest(_TextRequest):
    """
    Scripture lookup request.

    Example:
        >>> ScriptureRequest(reference="John 3:16-18", translation="ESV")
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={"examples": [{"reference": "John 3:16", "translation": "ESV"}]},
    )

    reference: str = Field(
        ...,
        min_length=3,
        max_length=100,
        description="Verse reference such as 'John 3:16' or '1 John 1:8-10'",
    )
    translation: str = Field(
        default="ESV",
        min_length=2,
        max_length=20,
        description="Translation code",
    )

    @field_validator("reference")
    @classmethod
    def validate_reference(cls, v: str) -> str:
        VerseReference.parse(v)
        return v

    @field_validator("translation")
    @classmethod
    def uppercase_translation(cls, v: str) -> str:
        return v.upper()

    def to_reference(self) -> VerseReference:
        return VerseReference.parse(self.reference)


class TakeawayRequest(_TextRequest):
    verse_ref: str = Field(..., min_length=3, max_length=100, examples=["John 3:16"])


class ValidateTakeawayRequest(_TextRequest):
    verse_ref: str = Field(..., min_length=3, max_length=100, examples=["John 3:16"])
    takeaway: str = Field(..., min_length=1, max_length=settings.MAX_TEXT_LENGTH)


class ScoreRequest(_TextRequest):
    verse_ref: str = Field(..., min_length=3, max_length=100, examples=["John 3:16"])
    user_comment: str = Field(
        ...,
        min_length=1,
        max_length=settings.MAX_TEXT_LENGTH,
        description="The user's explanation or application of the verse",
    )


class VerseSearchRequest(_TextRequest):
    description: str = Field(
        ...,
        min_length=2,
        max_length=500,
        description="Topic or description of the verses wanted",
        examples=["God's love for the world"],
    )


# =============================================================================
# Response Payloads
# =============================================================================

class VerseModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    verse_number: int
    text: str

    @classmethod
    def from_domain(cls, verse: VerseText) -> "VerseModel":
        return cls(verse_number=verse.verse_number, text=verse.text)


class ScriptureData(BaseModel):
    reference: str
    translation: str
    verses: list[VerseModel]


class TakeawayData(BaseModel):
    verse_ref: str
    takeaway: str


class ValidationData(BaseModel):
    verse_ref: str
    is_valid: bool


class ScoreData(BaseModel):
    verse_ref: str
    context_score: int = Field(..., ge=0, le=100)
    context_explanation: str
    application_feedback: str = ""

    @classmethod
    def from_domain(cls, verse_ref: str, score: ScoreResult) -> "ScoreData":
        return cls(
            verse_ref=verse_ref,
            context_score=score.context_score,
            context_explanation=score.context_explanation,
            application_feedback=score.application_feedback,
        )


class VerseReferenceModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference: str
    book: str
    chapter: int
    start_verse: int
    end_verse: int

    @classmethod
    def from_domain(cls, ref: VerseReference) -> "VerseReferenceModel":
        return cls(
            reference=str(ref),
            book=ref.book,
            chapter=ref.chapter,
            start_verse=ref.start_verse,
            end_verse=ref.end_verse,
        )


class VerseSearchData(BaseModel):
    description: str
    verses: list[VerseReferenceModel]


class ProviderInfo(BaseModel):
    provider_id: str
    display_name: str
    service_kind: str
    priority: int
    default_model: str
    available: bool
    initialization_error: str | None = None


class ProvidersData(BaseModel):
    state: str
    providers: list[ProviderInfo]
    statistics: dict[str, int]


# =============================================================================
# Error / Health Models
# =============================================================================

class ErrorResponse(BaseModel):
    """
    Standard error response format.

    All API errors return this format for consistency.
    """

    model_config = ConfigDict(frozen=True)

    detail: str = Field(..., description="Error message")
    error_type: str = Field(
        ...,
        description="Error classification",
        examples=["NotConfiguredError", "RateLimitedError", "ValidationError"],
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the error occurred",
    )


class HealthResponse(BaseModel):
    """Health check response with per-provider statuses."""

    status: str = Field(
        ...,
        description="Overall health status",
        examples=["healthy", "degraded", "unhealthy"],
    )
    services: dict[str, Any] = Field(..., description="Individual service health statuses")
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    version: str = Field(default="1.0.0", description="API version")


class ReadinessResponse(BaseModel):
    """Readiness probe response for container orchestration."""

    model_config = ConfigDict(frozen=True)

    ready: bool = Field(..., description="Whether the service is ready to accept requests")
    checks: dict[str, bool] = Field(default_factory=dict, description="Individual readiness check results")


class PingResponse(BaseModel):
    """Simple ping response."""

    model_config = ConfigDict(frozen=True)

    status: str = Field(default="ok", description="Ping status")


# =============================================================================
# Generic Response Wrapper
# =============================================================================

class ApiResponse(BaseModel, Generic[T]):
    """
    Generic API response wrapper for consistent response format.

    Example:
        >>> response = ApiResponse(success=True, data=TakeawayData(verse_ref="John 3:16", takeaway="..."))
    """

    success: bool = Field(..., description="Whether the request was successful")
    data: T | None = Field(default=None, description="Response data (when successful)")
    error: ErrorResponse | None = Field(default=None, description="Error details (when unsuccessful)")
    meta: dict[str, Any] | None = Field(default=None, description="Additional metadata")
