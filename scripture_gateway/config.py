"""
Centralized configuration using Pydantic BaseSettings.

This module owns every tunable of the gateway:
- Server and logging settings
- Per-provider credentials and model identifiers
- Timeout and retry/backoff parameters
- Rate limiting and CORS for the HTTP surface

Configuration Philosophy:
    - .env: Only sensitive data (API keys, credentials)
    - config.py: All application settings with sensible defaults

A provider without a credential is not an error here. It simply fails its
own ``configure()`` call and the orchestrator falls back to the others.

Usage:
    from scripture_gateway.config import settings, get_logger

    configs = settings.provider_configs()
"""
from __future__ import annotations

import logging
import re
from functools import cached_property, lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scripture_gateway.domain import ProviderConfig


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Configuration Sources:
        1. Environment variables
        2. .env file (if present)
        3. Default values (defined below)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    HOST: str = Field(
        default="0.0.0.0",
        description="Server host (0.0.0.0 for external access, 127.0.0.1 for local only)",
    )
    PORT: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Server port number",
    )
    DEBUG: bool = Field(
        default=False,
        description="Debug mode - enables auto reload (NEVER use in production)",
    )
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    # =========================================================================
    # Scripture Lookup Provider (ESV API, https://api.esv.org)
    # =========================================================================

    ESV_API_KEY: str = Field(
        default="",
        description="ESV API token (sent as 'Authorization: Token <key>')",
    )
    ESV_API_URL: str = Field(
        default="https://api.esv.org/v3/passage/text/",
        description="ESV passage text endpoint",
    )

    # =========================================================================
    # Generative Providers
    # =========================================================================
    # Sensitive: API keys loaded from .env
    # Configuration: Model IDs change as vendors release new models

    GEMINI_API_KEY: str = Field(
        default="",
        description="Google Gemini API key",
    )
    GEMINI_MODEL_ID: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model identifier",
    )

    OPENAI_API_KEY: str = Field(
        default="",
        description="OpenAI API key",
    )
    OPENAI_MODEL_ID: str = Field(
        default="gpt-4o-mini",
        description="OpenAI chat model identifier",
    )

    GROQ_API_KEY: str = Field(
        default="",
        description="Groq API key",
    )
    GROQ_MODEL_ID: str = Field(
        default="llama-3.3-70b-versatile",
        description="Groq model identifier",
    )

    OLLAMA_BASE_URL: str = Field(
        default="",
        description="Base URL of a self-hosted Ollama server (empty disables the provider)",
    )
    OLLAMA_API_KEY: str = Field(
        default="",
        description="Optional bearer token for an Ollama server behind a proxy",
    )
    OLLAMA_MODEL_ID: str = Field(
        default="llama3.1",
        description="Ollama model tag",
    )

    REFORMED_BIBLE_MODEL_ID: str = Field(
        default="hf.co/mradermacher/Protestant-Christian-Bible-Expert-v2.0-12B-i1-GGUF:IQ4_XS",
        description="Bible-expert model tag served by the Ollama server",
    )
    REFORMED_BIBLE_BASE_URL: str = Field(
        default="",
        description="Ollama server for the Bible-expert model (empty uses OLLAMA_BASE_URL)",
    )

    DEEPSEEK_API_KEY: str = Field(
        default="",
        description="DeepSeek API key",
    )
    DEEPSEEK_MODEL_ID: str = Field(
        default="deepseek-chat",
        description="DeepSeek model identifier",
    )
    DEEPSEEK_BASE_URL: str = Field(
        default="https://api.deepseek.com",
        description="DeepSeek OpenAI-compatible endpoint",
    )

    GENERATION_TEMPERATURE: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Sampling temperature applied to every generative provider",
    )
    DISABLED_PROVIDERS_CSV: str = Field(
        default="",
        description="Comma-separated provider ids to keep disabled (e.g. 'groq_ai,deepseek_ai')",
    )

    # =========================================================================
    # Timeout & Retry Configuration
    # =========================================================================
    # Exponential backoff for transient failures (overload, rate limits, timeouts)

    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Maximum time a single provider call may take",
    )
    MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts per provider before falling back to the next one",
    )
    RETRY_INITIAL_DELAY: float = Field(
        default=1.0,
        ge=0,
        description="Initial delay between attempts in seconds (doubles each attempt)",
    )
    RETRY_MAX_DELAY: float = Field(
        default=10.0,
        ge=0,
        description="Maximum delay between attempts (caps exponential growth)",
    )

    # =========================================================================
    # HTTP Surface
    # =========================================================================

    MAX_TEXT_LENGTH: int = Field(
        default=5000,
        ge=1,
        description="Maximum length of user-supplied text embedded in prompts",
    )
    RATE_LIMIT: str = Field(
        default="60/minute",
        pattern=r"^\d+/(second|minute|hour|day)$",
        description="Rate limit for scripture endpoints (format: 'count/period')",
    )
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated allowed origins ('*' for all, restrict in production)",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Ensure LOG_LEVEL is uppercase."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("OLLAMA_BASE_URL", "REFORMED_BIBLE_BASE_URL", "ESV_API_URL", "DEEPSEEK_BASE_URL", mode="before")
    @classmethod
    def strip_url(cls, v: str) -> str:
        """Strip whitespace around URLs."""
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def validate_retry_window(self) -> "Settings":
        """RETRY_MAX_DELAY must not undercut RETRY_INITIAL_DELAY."""
        if self.RETRY_MAX_DELAY < self.RETRY_INITIAL_DELAY:
            raise ValueError(
                "RETRY_MAX_DELAY must be greater than or equal to RETRY_INITIAL_DELAY"
            )
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @cached_property
    def DISABLED_PROVIDERS(self) -> frozenset[str]:
        """Provider ids explicitly disabled by the operator."""
        return frozenset(
            p.strip().lower() for p in self.DISABLED_PROVIDERS_CSV.split(",") if p.strip()
        )

    @cached_property
    def CORS_ORIGINS_LIST(self) -> list[str]:
        """Get list of CORS origins."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    # =========================================================================
    # Provider Configuration Map
    # =========================================================================

    def provider_configs(self) -> dict[str, ProviderConfig]:
        """
        Build the provider configuration map consumed by the registry.

        Returns:
            Mapping of provider id to ProviderConfig. Providers without a
            credential are still included so that their configure() attempt
            reports a diagnostic.
        """
        temperature = self.GENERATION_TEMPERATURE

        def build(provider_id: str, model: str, credential: str, base_url: str | None = None) -> ProviderConfig:
            return ProviderConfig(
                model_name=model,
                credential=credential,
                temperature=temperature,
                enabled=provider_id not in self.DISABLED_PROVIDERS,
                base_url=base_url or None,
            )

        return {
            "esv_bible": build("esv_bible", "", self.ESV_API_KEY, self.ESV_API_URL),
            "gemini_ai": build("gemini_ai", self.GEMINI_MODEL_ID, self.GEMINI_API_KEY),
            "openai": build("openai", self.OPENAI_MODEL_ID, self.OPENAI_API_KEY),
            "groq_ai": build("groq_ai", self.GROQ_MODEL_ID, self.GROQ_API_KEY),
            "ollama_ai": build("ollama_ai", self.OLLAMA_MODEL_ID, self.OLLAMA_API_KEY, self.OLLAMA_BASE_URL),
            "deepseek_ai": build("deepseek_ai", self.DEEPSEEK_MODEL_ID, self.DEEPSEEK_API_KEY, self.DEEPSEEK_BASE_URL),
            "reformed_bible_ai": build(
                "reformed_bible_ai",
                self.REFORMED_BIBLE_MODEL_ID,
                self.OLLAMA_API_KEY,
                self.REFORMED_BIBLE_BASE_URL or self.OLLAMA_BASE_URL,
            ),
        }


# =============================================================================
# Settings Factory with Caching
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache for singleton behavior while allowing
    cache invalidation in tests.
    """
    return Settings()


# Convenience alias for direct access
settings = get_settings()


# =============================================================================
# Logging Configuration
# =============================================================================

SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r'(Bearer\s+)[^\s"\']+', re.I), r'\1[REDACTED]'),
    (re.compile(r'(Token\s+)[A-Fa-f0-9]{16,}'), r'\1[REDACTED]'),
    (re.compile(r'(api[_-]?key["\']?\s*[:=]\s*["\']?)[^"\'\s&]+', re.I), r'\1[REDACTED]'),
    (re.compile(r'(key=)[^"\'\s&]+', re.I), r'\1[REDACTED]'),
    (re.compile(r'(token["\']?\s*[:=]\s*["\']?)[^"\'\s]+', re.I), r'\1[REDACTED]'),
    (re.compile(r'(password["\']?\s*[:=]\s*["\']?)[^"\'\s]+', re.I), r'\1[REDACTED]'),
    (re.compile(r'\b(sk|gsk)-[A-Za-z0-9_\-]{8,}'), '[REDACTED]'),
]


def redact_secrets(text: str) -> str:
    """Replace credentials embedded in free text with ``[REDACTED]``."""
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SanitizingFormatter(logging.Formatter):
    """
    Logging formatter that redacts sensitive information.

    Automatically redacts:
    - Bearer / Token authorization values
    - API keys (including vendor-prefixed secret keys)
    - Tokens
    - Passwords
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with sensitive data redaction."""
        return redact_secrets(super().format(record))


NOISY_LOGGERS: tuple[str, ...] = (
    "httpx", "httpcore", "google", "google_genai", "aiohttp", "openai", "groq", "urllib3",
)


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    handler = logging.StreamHandler()
    handler.setFormatter(SanitizingFormatter(log_format))

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[handler],
        force=True,
    )

    # Suppress noisy third-party loggers
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        Configured logging.Logger instance
    """
    return logging.getLogger(name)


# Initialize logging on module load
configure_logging(settings.LOG_LEVEL)
