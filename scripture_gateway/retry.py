"""
Retry logic with exponential backoff for single provider calls.

The engine is provider-agnostic: it wraps any zero-argument coroutine
function that returns an ``OperationResult``. Exceptions raised by the
callable are converted into ``Failure`` values so nothing escapes the
orchestration boundary. ``asyncio.CancelledError`` is deliberately not
caught; cancelling the caller aborts the in-flight call and the backoff
sleep.

Usage:
    engine = RetryEngine(RetryPolicy.from_settings())
    result = await engine.call(lambda: provider.get_key_takeaway(...), label="gemini_ai.takeaway")
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from scripture_gateway.config import get_logger, settings
from scripture_gateway.exceptions import (
    GatewayException,
    NETWORK_MARKERS,
    OVERLOAD_MARKERS,
    QUOTA_MARKERS,
    classify_exception,
)
from scripture_gateway.result import Failure, OperationResult

logger = get_logger("retry")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff parameters."""
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays cannot be negative")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.MAX_ATTEMPTS,
            initial_delay=settings.RETRY_INITIAL_DELAY,
            max_delay=settings.RETRY_MAX_DELAY,
        )

    def delays(self) -> list[float]:
        """Sleep durations between consecutive attempts."""
        delays: list[float] = []
        current = self.initial_delay
        for _ in range(self.max_attempts - 1):
            delays.append(min(current, self.max_delay))
            current = min(current * 2, self.max_delay)
        return delays


def is_retryable_failure(failure: Failure) -> bool:
    """
    Decide whether a failure is transient.

    Structured causes decide on their own ``retryable`` flag. Free-text
    heuristics only apply when a failure carries no exception at all.
    """
    cause = failure.cause
    if isinstance(cause, GatewayException):
        return cause.retryable
    if cause is not None:
        return classify_exception(cause).retryable

    lowered = failure.message.lower()
    markers = QUOTA_MARKERS + OVERLOAD_MARKERS + NETWORK_MARKERS
    return any(marker in lowered for marker in markers) or "429" in lowered or "503" in lowered


class RetryEngine:
    """
    Wraps one provider call with bounded retry.

    Example:
        >>> engine = RetryEngine(RetryPolicy(max_attempts=3, initial_delay=0.5))
        >>> result = await engine.call(fetch, label="esv_bible.fetch_scripture")
    """

    def __init__(self, policy: RetryPolicy | None = None, sleep: Sleep | None = None) -> None:
        self._policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep or asyncio.sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def call(
        self,
        func: Callable[[], Awaitable[OperationResult[T]]],
        label: str = "provider call",
    ) -> OperationResult[T]:
        """
        Execute ``func`` until it succeeds, fails terminally, or attempts run out.

        Args:
            func: Zero-argument coroutine function returning an OperationResult
            label: Name used in log lines

        Returns:
            The first Success, the first non-retryable Failure, or the last
            Failure once max_attempts is exhausted.
        """
        policy = self._policy
        delay = policy.initial_delay
        result: OperationResult[T] = Failure(f"{label}: no attempt made")

        for attempt in range(1, policy.max_attempts + 1):
            try:
                result = await func()
            except GatewayException as e:
                result = Failure(e.message, cause=e)
            except Exception as e:
                error = classify_exception(e)
                result = Failure(error.message, cause=error)

            if isinstance(result, Failure):
                if not is_retryable_failure(result):
                    if attempt > 1:
                        logger.info(
                            "Non-retryable failure for %s on attempt %d/%d: %s",
                            label, attempt, policy.max_attempts, result.message,
                        )
                    return result

                if attempt >= policy.max_attempts:
                    logger.warning(
                        "All %d attempts exhausted for %s: %s",
                        policy.max_attempts, label, result.message,
                    )
                    return result

                wait = min(delay, policy.max_delay)
                logger.warning(
                    "Attempt %d/%d failed for %s (%s), retrying in %.2fs",
                    attempt, policy.max_attempts, label, result.error_type, wait,
                )
                await self._sleep(wait)
                delay = min(delay * 2, policy.max_delay)
                continue

            if attempt > 1:
                logger.info("%s succeeded on attempt %d/%d", label, attempt, policy.max_attempts)
            return result

        return result
