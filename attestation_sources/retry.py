"""
Retry wrapper for source calls.

Exponential backoff: the wait before attempt ``n + 1`` is
``base_delay * factor ** (n - 1)``. Only retryable errors are retried;
anything else propagates on the first failure.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from core.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    DEFAULT_RETRY_MAX_ATTEMPTS,
)
from core.exceptions import RetryExhaustedError, SyncException, TransientSourceError


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff settings."""
    max_attempts: int = DEFAULT_RETRY_MAX_ATTEMPTS
    base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS
    backoff_factor: float = DEFAULT_RETRY_BACKOFF_FACTOR
    attempt_timeout_seconds: Optional[float] = DEFAULT_REQUEST_TIMEOUT_SECONDS

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.base_delay_seconds * (self.backoff_factor ** (attempt - 1))



def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, SyncException):
        return error.is_retryable
    return isinstance(error, asyncio.TimeoutError)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    description: str = "source call",
    chain: Optional[str] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``operation`` until it succeeds or the policy is exhausted.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Retry policy
        description: Name used in log lines
        chain: Chain the call belongs to
        sleep: Sleep coroutine (injectable for tests)

    Returns:
        Result of the first successful attempt

    Raises:
        RetryExhaustedError: Every attempt failed with a retryable error
        SyncException: First non-retryable error, unchanged
    """
    last_error: Optional[BaseException] = None
    prefix = f"[{chain}] " if chain else ""

    for attempt in range(1, policy.max_attempts + 1):
        try:
            if policy.attempt_timeout_seconds:
                return await asyncio.wait_for(
                    operation(),
                    timeout=policy.attempt_timeout_seconds,
                )
            return await operation()

        except asyncio.TimeoutError as e:
            last_error = TransientSourceError(
                f"{description} timed out after {policy.attempt_timeout_seconds}s",
                chain=chain,
                cause=e,
            )
        except Exception as e:
            if not _is_retryable(e):
                raise
            last_error = e

        if attempt < policy.max_attempts:
            wait_time = policy.delay_for(attempt)
            logger.warning(
                f"{prefix}{description} failed, retry {attempt}/{policy.max_attempts - 1} "
                f"in {wait_time:.1f}s: {last_error}"
            )
            await sleep(wait_time)

    raise RetryExhaustedError(
        f"{description} failed after {policy.max_attempts} attempts",
        attempts=policy.max_attempts,
        chain=chain,
        cause=last_error,
    )
