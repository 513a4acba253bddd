"""
Custom exceptions for the scripture gateway.

This module provides a consistent exception hierarchy used both as the
``cause`` of provider failures and for error rendering at the API layer.

Exception Hierarchy:
    GatewayException (base)
    ├── ValidationError (400)
    ├── NotConfiguredError (503)
    └── ProviderError (503)
        ├── NetworkError (504)            retryable
        ├── RateLimitedError (429)        retryable
        ├── ServerOverloadedError (503)   retryable
        ├── UnauthorizedError (502)
        ├── BadRequestError (502)
        └── MalformedResponseError (502)

Usage:
    from scripture_gateway.exceptions import error_for_status

    raise error_for_status(429, "Quota exceeded for requests per minute")
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, ClassVar


class GatewayException(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code for API response
        details: Additional error details (optional)
        error_code: Machine-readable error code (optional)
        retryable: Whether the retry engine may re-attempt the same provider
    """

    default_message: str = "An error occurred"
    default_status_code: int = 500
    retryable: ClassVar[bool] = False

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
        error_code: str | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.status_code = status_code or self.default_status_code
        self.details = details
        self.error_code = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to the API error body.

        ``details`` may hold raw vendor text and is kept out of responses.
        """
        return {
            "detail": self.message,
            "error_type": self.error_code,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, status_code={self.status_code})"


# =============================================================================
# Availability Errors
# =============================================================================

class NotConfiguredError(GatewayException):
    """
    No provider is available for the requested operation.

    Examples:
        - No credentials supplied at all
        - Every provider failed its configure() validation
    """

    default_message = "AI service not configured"
    default_status_code = 503


# =============================================================================
# Client Errors (4xx)
# =============================================================================

class ValidationError(GatewayException):
    """Raised when API input validation fails."""

    default_message = "Validation error"
    default_status_code = 400


# =============================================================================
# Provider Errors
# =============================================================================

class ProviderError(GatewayException):
    """
    A backend call failed.

    Used directly for failures that fit no narrower kind; those are
    treated as terminal for the current provider.
    """

    default_message = "Provider error"
    default_status_code = 503


class NetworkError(ProviderError):
    """Transport-level failure: timeout, refused connection, reset socket."""

    default_message = "Network error contacting provider"
    default_status_code = 504
    retryable = True


class RateLimitedError(ProviderError):
    """HTTP 429 or a vendor quota message."""

    default_message = "Provider rate limit exceeded"
    default_status_code = 429
    retryable = True


class ServerOverloadedError(ProviderError):
    """HTTP 502/503/504 or a vendor 'overloaded' message."""

    default_message = "Provider temporarily unavailable"
    default_status_code = 503
    retryable = True


class UnauthorizedError(ProviderError):
    """The credential was rejected (HTTP 401/403)."""

    default_message = "Provider rejected the credential"
    default_status_code = 502


class BadRequestError(ProviderError):
    """The provider rejected the request shape (HTTP 400/404/422)."""

    default_message = "Provider rejected the request"
    default_status_code = 502


class MalformedResponseError(ProviderError):
    """The reply could not be normalised into a valid result."""

    default_message = "Provider returned a malformed response"
    default_status_code = 502


# =============================================================================
# Classification Helpers
# =============================================================================

QUOTA_MARKERS: tuple[str, ...] = (
    "rate limit", "rate_limit", "ratelimit", "quota", "resource_exhausted",
    "resource exhausted", "too many requests",
)
OVERLOAD_MARKERS: tuple[str, ...] = ("overloaded", "unavailable", "try again later")
NETWORK_MARKERS: tuple[str, ...] = (
    "timed out", "timeout", "connection reset", "connection refused",
    "connection aborted", "broken pipe", "network is unreachable",
)
# Client libraries sometimes fail to decode the error body of a transient
# server error and surface the decode error instead.
DECODE_ARTIFACT_MARKERS: tuple[str, ...] = (
    "missing field", "missingfield", "unexpected end of json",
    "response validation", "incomplete chunked read",
)


def mentions_quota(text: str) -> bool:
    """True when free text carries quota / rate-limit vocabulary."""
    lowered = text.lower()
    return any(marker in lowered for marker in QUOTA_MARKERS) or "exceeded" in lowered


def error_for_status(status_code: int, message: str = "") -> ProviderError:
    """
    Map an HTTP status code (plus vendor text) onto a ProviderError.

    The status code decides first. Vendor text is only consulted for
    quota/overload wording that some APIs send with a generic status.

    Args:
        status_code: HTTP status returned by the backend
        message: Error body or SDK message

    Returns:
        ProviderError subclass instance
    """
    detail = f"HTTP {status_code}: {message}".strip().rstrip(":") if message else f"HTTP {status_code}"
    lowered = message.lower()

    if status_code == 429:
        return RateLimitedError(detail, details=message or None)
    if status_code in (502, 503, 504):
        return ServerOverloadedError(detail, details=message or None)
    if status_code in (401, 403):
        return UnauthorizedError(detail, details=message or None)
    if status_code in (400, 404, 405, 413, 422):
        return BadRequestError(detail, details=message or None)
    if any(marker in lowered for marker in QUOTA_MARKERS):
        return RateLimitedError(detail, details=message or None)
    if any(marker in lowered for marker in OVERLOAD_MARKERS):
        return ServerOverloadedError(detail, details=message or None)
    return ProviderError(detail, details=message or None)


def classify_exception(exc: BaseException) -> ProviderError:
    """
    Convert an arbitrary exception raised during a provider call.

    Args:
        exc: Exception to classify

    Returns:
        The exception itself when it already is a ProviderError, otherwise a
        ProviderError subclass describing it.
    """
    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return NetworkError("Request timed out", details=type(exc).__name__)

    text = str(exc)
    lowered = text.lower()
    type_name = type(exc).__name__.lower()

    if isinstance(exc, (ConnectionError, OSError)) or "timeout" in type_name or "connection" in type_name:
        return NetworkError(f"Network error: {text or type(exc).__name__}")

    if any(marker in lowered for marker in QUOTA_MARKERS) or "429" in lowered:
        return RateLimitedError(text)
    if any(marker in lowered for marker in OVERLOAD_MARKERS) or "503" in lowered:
        return ServerOverloadedError(text)
    if any(marker in lowered for marker in NETWORK_MARKERS):
        return NetworkError(text)
    if any(marker in lowered for marker in DECODE_ARTIFACT_MARKERS):
        return ServerOverloadedError(f"Transient response decoding error: {text}")

    if isinstance(exc, (json.JSONDecodeError, ValueError, KeyError, IndexError, TypeError)):
        return MalformedResponseError(f"Unexpected response shape: {text or type(exc).__name__}")

    return ProviderError(text or type(exc).__name__)
