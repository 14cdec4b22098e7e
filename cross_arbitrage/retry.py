"""
Bounded retry with exponential backoff for asynchronous operations.

A single executor is shared by the network lookups and the advisory call so
both follow the same "retry only when the service is unavailable" policy.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .constants import (
    DEFAULT_BACKOFF_BASE_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    SERVICE_UNAVAILABLE_STATUS,
)
from .exceptions import RetryExhaustedError, TransientServiceError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
RetryPredicate = Callable[[BaseException], bool]
BackoffFunction = Callable[[int], float]
SleepFunction = Callable[[float], Awaitable[None]]


def is_service_unavailable(error: BaseException) -> bool:
    """Transient policy: retry exactly the 503 "service unavailable" class."""
    if isinstance(error, TransientServiceError):
        return True
    for attr in ("status", "status_code"):
        if getattr(error, attr, None) == SERVICE_UNAVAILABLE_STATUS:
            return True
    return False


def exponential_backoff(base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS) -> BackoffFunction:
    """Delay before retry ``n`` (1-indexed) is ``base * 2**n``: 2s, 4s, 8s..."""

    def delay(retry_number: int) -> float:
        return base_seconds * (2**retry_number)

    return delay


class RetryExecutor:
    """
    Runs an operation until it succeeds, fails permanently, or runs out of attempts.

    Errors rejected by ``is_retryable`` propagate unchanged after the first
    attempt. When every attempt fails with a retryable error the last error is
    wrapped in ``RetryExhaustedError``.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        is_retryable: RetryPredicate = is_service_unavailable,
        backoff: Optional[BackoffFunction] = None,
        sleep: SleepFunction = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValidationError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.is_retryable = is_retryable
        self.backoff = backoff or exponential_backoff()
        self._sleep = sleep

    async def execute(
        self,
        operation: Operation,
        max_attempts: Optional[int] = None,
        is_retryable: Optional[RetryPredicate] = None,
        backoff: Optional[BackoffFunction] = None,
        description: str = "operation",
    ) -> T:
        """
        Execute ``operation`` with the configured retry policy.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            max_attempts: Override of the executor's attempt bound
            is_retryable: Override of the transient-error predicate
            backoff: Override of the backoff function
            description: Label used in log and error messages

        Returns:
            The operation's result

        Raises:
            RetryExhaustedError: If every attempt failed with a retryable error
            Exception: Any non-retryable error, unchanged
        """
        attempts_allowed = max_attempts if max_attempts is not None else self.max_attempts
        if attempts_allowed < 1:
            raise ValidationError(f"max_attempts must be >= 1, got {attempts_allowed}")
        retryable = is_retryable or self.is_retryable
        delay_for = backoff or self.backoff

        last_error: Optional[BaseException] = None
        for attempt in range(1, attempts_allowed + 1):
            try:
                return await operation()
            except Exception as e:
                if not retryable(e):
                    raise
                last_error = e
                if attempt >= attempts_allowed:
                    break
                delay = delay_for(attempt)
                logger.warning(
                    f"{description} failed on attempt {attempt}/{attempts_allowed} "
                    f"({e}); retrying in {delay:.1f}s"
                )
                await self._sleep(delay)

        logger.error(f"{description} failed after {attempts_allowed} attempts: {last_error}")
        raise RetryExhaustedError(
            f"{description} failed after {attempts_allowed} attempts: {last_error}",
            attempts=attempts_allowed,
            last_error=last_error,
        ) from last_error
