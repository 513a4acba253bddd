"""Tests for the retry/backoff engine."""
import asyncio

import pytest

from scripture_gateway.exceptions import (
    BadRequestError,
    MalformedResponseError,
    NetworkError,
    RateLimitedError,
    ServerOverloadedError,
    UnauthorizedError,
    error_for_status,
)
from scripture_gateway.result import Failure, Success
from scripture_gateway.retry import RetryEngine, RetryPolicy, is_retryable_failure


def scripted(*outcomes):
    """Zero-argument coroutine function returning/raising outcomes in order."""
    queue = list(outcomes)
    calls = {"count": 0}

    async def func():
        calls["count"] += 1
        outcome = queue.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return func, calls


class TestRetryPolicy:
    def test_delays_double_and_cap(self):
        policy = RetryPolicy(max_attempts=6, initial_delay=1.0, max_delay=5.0)
        assert policy.delays() == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestClassification:
    @pytest.mark.parametrize("error", [
        RateLimitedError("429"), ServerOverloadedError("503"), NetworkError("timed out"),
    ])
    def test_transient_causes_are_retryable(self, error):
        assert is_retryable_failure(Failure(error.message, cause=error))

    @pytest.mark.parametrize("error", [
        UnauthorizedError("401"), BadRequestError("400"), MalformedResponseError("bad json"),
    ])
    def test_terminal_causes_are_not_retryable(self, error):
        assert not is_retryable_failure(Failure(error.message, cause=error))

    @pytest.mark.parametrize("status,body", [
        (400, "Quota project not set for this request"),
        (400, "Model temporarily unavailable for this argument"),
        (404, "resource_exhausted"),
    ])
    def test_client_error_status_wins_over_wording(self, status, body):
        error = error_for_status(status, body)
        assert isinstance(error, BadRequestError)
        assert not is_retryable_failure(Failure(error.message, cause=error))

    def test_generic_status_falls_back_to_wording(self):
        assert isinstance(error_for_status(500, "Quota exceeded"), RateLimitedError)
        assert isinstance(error_for_status(500, "The model is overloaded"), ServerOverloadedError)

    def test_raw_exception_cause_is_classified(self):
        assert is_retryable_failure(Failure("x", cause=ConnectionResetError("reset")))
        assert not is_retryable_failure(Failure("x", cause=KeyError("choices")))

    def test_message_heuristics_without_cause(self):
        assert is_retryable_failure(Failure("The model is overloaded"))
        assert is_retryable_failure(Failure("Quota exceeded for requests"))
        assert not is_retryable_failure(Failure("Invalid argument"))


class TestRetryEngine:
    @pytest.mark.asyncio
    async def test_success_first_try(self, retry_engine, sleeps):
        func, calls = scripted(Success("ok"))
        assert await retry_engine.call(func) == Success("ok")
        assert calls["count"] == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_rate_limited_twice_then_success(self, retry_engine, sleeps):
        limited = Failure("429", cause=RateLimitedError("429"))
        func, calls = scripted(limited, limited, Success("ok"))
        assert await retry_engine.call(func, label="a.op") == Success("ok")
        assert calls["count"] == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_unauthorized_makes_one_attempt(self, retry_engine, sleeps):
        denied = Failure("401", cause=UnauthorizedError("401"))
        func, calls = scripted(denied, Success("never"))
        assert await retry_engine.call(func) is denied
        assert calls["count"] == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_exhaustion_returns_last_failure(self, retry_engine, sleeps):
        first = Failure("503 a", cause=ServerOverloadedError("a"))
        last = Failure("503 c", cause=ServerOverloadedError("c"))
        func, calls = scripted(first, first, last)
        assert await retry_engine.call(func) is last
        assert calls["count"] == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_raised_exceptions_become_failures(self, retry_engine):
        func, calls = scripted(TimeoutError(), Success("ok"))
        assert await retry_engine.call(func) == Success("ok")
        assert calls["count"] == 2

    @pytest.mark.asyncio
    async def test_non_retryable_exception_stops(self, retry_engine):
        func, calls = scripted(ValueError("bad shape"), Success("never"))
        result = await retry_engine.call(func)
        assert isinstance(result, Failure)
        assert isinstance(result.cause, MalformedResponseError)
        assert calls["count"] == 1

    @pytest.mark.asyncio
    async def test_delay_is_capped(self, sleeps):
        async def fake_sleep(delay):
            sleeps.append(delay)

        engine = RetryEngine(RetryPolicy(max_attempts=4, initial_delay=3.0, max_delay=5.0), sleep=fake_sleep)
        overloaded = Failure("x", cause=ServerOverloadedError("x"))
        func, _ = scripted(overloaded, overloaded, overloaded, overloaded)
        await engine.call(func)
        assert sleeps == [3.0, 5.0, 5.0]

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        engine = RetryEngine(RetryPolicy(max_attempts=3, initial_delay=10.0, max_delay=10.0))
        overloaded = Failure("x", cause=ServerOverloadedError("x"))
        func, calls = scripted(overloaded, overloaded, overloaded)

        task = asyncio.create_task(engine.call(func))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert calls["count"] == 1
