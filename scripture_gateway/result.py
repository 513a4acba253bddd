"""
Tagged result type returned by every provider and orchestrator operation.

Expected failures (network errors, malformed replies, missing configuration)
travel as ``Failure`` values instead of exceptions, so an empty result and a
failed call stay distinguishable.

Usage:
    result = await service.get_key_takeaway("John 3:16")
    if isinstance(result, Success):
        print(result.value)
    else:
        print(result.message)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome carrying a value."""
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """
    Failed outcome.

    Attributes:
        message: Diagnostic safe to show to an end user
        cause: Underlying exception, when there is one
    """
    message: str
    cause: Exception | None = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def error_type(self) -> str:
        """Name of the error kind, used by the HTTP layer."""
        return type(self.cause).__name__ if self.cause is not None else "Failure"

    @classmethod
    def from_exception(cls, exc: Exception, prefix: str | None = None) -> "Failure":
        """Build a Failure whose message is derived from ``exc``."""
        message = getattr(exc, "message", None) or str(exc) or type(exc).__name__
        if prefix:
            message = f"{prefix}: {message}"
        return cls(message=message, cause=exc)


OperationResult = Union[Success[T], Failure]
