"""
Tests for the retry wrapper around source calls.
"""

import asyncio

import pytest

from attestation_sources.retry import RetryPolicy, retry_with_backoff
from core.exceptions import (
    RetryExhaustedError,
    SourceDecodeError,
    TransientSourceError,
)


class Recorder:
    """Collects requested sleep durations."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def scripted(*outcomes):
    """Operation that raises or returns the queued outcomes in order."""
    queue = list(outcomes)
    calls = []

    async def operation():
        calls.append(1)
        outcome = queue.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    operation.calls = calls
    return operation


class TestRetryPolicy:

    def test_exponential_delays(self):
        policy = RetryPolicy(max_attempts=4, base_delay_seconds=1.0, backoff_factor=2.0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]


class TestRetryWithBackoff:

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        sleep = Recorder()
        result = await retry_with_backoff(scripted("ok"), RetryPolicy(), sleep=sleep)
        assert result == "ok"
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_recovers_after_transient_errors(self):
        sleep = Recorder()
        operation = scripted(
            TransientSourceError("HTTP 503"),
            TransientSourceError("HTTP 503"),
            "ok",
        )
        policy = RetryPolicy(max_attempts=3, base_delay_seconds=1.0, backoff_factor=2.0)

        assert await retry_with_backoff(operation, policy, sleep=sleep) == "ok"
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion(self):
        sleep = Recorder()
        operation = scripted(*(TransientSourceError("HTTP 503") for _ in range(3)))

        with pytest.raises(RetryExhaustedError) as exc_info:
            await retry_with_backoff(operation, RetryPolicy(max_attempts=3), chain="celo", sleep=sleep)

        assert exc_info.value.attempts == 3
        assert exc_info.value.chain == "celo"
        assert isinstance(exc_info.value.cause, TransientSourceError)
        # No wait after the final attempt
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self):
        sleep = Recorder()
        operation = scripted(SourceDecodeError("bad shape"), "never")

        with pytest.raises(SourceDecodeError):
            await retry_with_backoff(operation, RetryPolicy(), sleep=sleep)
        assert len(operation.calls) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self):
        operation = scripted(KeyError("boom"))
        with pytest.raises(KeyError):
            await retry_with_backoff(operation, RetryPolicy(), sleep=Recorder())

    @pytest.mark.asyncio
    async def test_attempt_timeout_is_retryable(self):
        attempts = []

        async def slow_then_fast():
            attempts.append(1)
            if len(attempts) == 1:
                await asyncio.sleep(1)
            return "ok"

        policy = RetryPolicy(max_attempts=2, base_delay_seconds=0.0, attempt_timeout_seconds=0.01)

        assert await retry_with_backoff(slow_then_fast, policy, sleep=Recorder()) == "ok"
        assert len(attempts) == 2
