"""
Utility functions for the scripture gateway.

Provides common functionality for:
- Sanitizing user text before it is embedded in prompts
- Shortening provider replies for log output
"""
from __future__ import annotations

import re
import unicodedata

from scripture_gateway.config import get_logger, settings

logger = get_logger("utils")


# =============================================================================
# Input Sanitization
# =============================================================================

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]')
_EXCESSIVE_WHITESPACE = re.compile(r'\s{10,}')


def sanitize_text(text: str, max_length: int | None = None) -> str:
    """
    Sanitize user input text for safe inclusion in a prompt.

    - Normalizes Unicode (NFC form)
    - Removes control characters (keeps newlines and tabs)
    - Collapses excessive whitespace
    - Strips leading/trailing whitespace
    - Truncates to max_length (defaults to settings.MAX_TEXT_LENGTH)

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text string
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFC", text)
    text = _CONTROL_CHARS.sub("", text)
    text = _EXCESSIVE_WHITESPACE.sub(" ", text)
    text = text.strip()

    limit = max_length if max_length is not None else settings.MAX_TEXT_LENGTH
    if limit and len(text) > limit:
        text = text[:limit]
        logger.debug("Text truncated to %d characters", limit)

    return text


# =============================================================================
# Text Processing Utilities
# =============================================================================

def truncate_text(text: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to max_length, adding suffix if truncated.

    Used to keep raw provider replies readable in log lines.
    """
    text = text.replace("\n", " ")
    if len(text) <= max_length:
        return text

    target_length = max_length - len(suffix)
    if target_length <= 0:
        return suffix[:max_length]

    return text[:target_length].rstrip() + suffix
