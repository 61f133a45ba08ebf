"""
concept-llm - Retry Logic with Explicit Outcomes

Each attempt of a retried operation reports a tagged outcome instead of
signalling through exceptions:

    Success(value) | RetryableFailure(reason) | FatalFailure(error)

The driver decides from the tag alone whether to stop, back off and try
again, or give up, so the retry limit and the set of retryable failures are
explicit and testable without a backend.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior.

    Attributes:
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Exponential backoff base (default: 2.0)
        jitter: Add random jitter to prevent thundering herd (default: True)
        jitter_factor: Jitter randomization factor 0-1 (default: 0.1)
    """

    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.1

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.exponential_base < 1.0:
            raise ValueError("exponential_base must be >= 1.0")
        if not 0 <= self.jitter_factor <= 1:
            raise ValueError("jitter_factor must be between 0 and 1")


def exponential_backoff(
    attempt: int,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    jitter_factor: float = 0.1,
) -> float:
    """
    Calculate exponential backoff delay with optional jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Initial delay in seconds
        exponential_base: Base for exponential calculation
        max_delay: Maximum delay cap
        jitter: Whether to add random jitter
        jitter_factor: Jitter randomization factor (0-1)

    Returns:
        Delay in seconds

    Example:
        >>> exponential_backoff(0, jitter=False)
        1.0
        >>> exponential_backoff(2, jitter=False)
        4.0
    """
    delay = min(base_delay * (exponential_base**attempt), max_delay)

    if jitter and jitter_factor > 0 and delay > 0:
        jitter_amount = delay * jitter_factor
        delay = max(0.0, delay + random.uniform(-jitter_amount, jitter_amount))

    return delay


@dataclass(frozen=True)
class Success(Generic[T]):
    """Attempt produced a usable value."""

    value: T


@dataclass(frozen=True)
class RetryableFailure:
    """Attempt failed in a way another attempt may fix."""

    reason: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FatalFailure:
    """Attempt failed in a way no retry can fix."""

    error: Exception


Outcome = Success[T] | RetryableFailure | FatalFailure


@dataclass
class RetryResult(Generic[T]):
    """Final state of a retried operation."""

    outcome: Success[T] | RetryableFailure | FatalFailure
    attempts: int

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, Success)


async def retry_outcomes(
    attempt: Callable[[int], Awaitable[Success[T] | RetryableFailure | FatalFailure]],
    max_attempts: int,
    config: RetryConfig | None = None,
    on_retry: Callable[[int, RetryableFailure], None] | None = None,
) -> RetryResult[T]:
    """
    Run ``attempt`` until it succeeds, fails fatally, or ``max_attempts`` is reached.

    Args:
        attempt: Coroutine function receiving the 1-based attempt number
        max_attempts: Total attempts allowed (>= 1)
        config: Backoff configuration between retryable failures
        on_retry: Optional callback called before each retry (attempt, failure)

    Returns:
        RetryResult with the last outcome and the number of attempts made
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    config = config or RetryConfig()
    outcome: Success[T] | RetryableFailure | FatalFailure = RetryableFailure("not attempted")

    for attempt_number in range(1, max_attempts + 1):
        outcome = await attempt(attempt_number)

        if isinstance(outcome, Success):
            if attempt_number > 1:
                logger.info(
                    f"Retry succeeded after {attempt_number} attempts",
                    extra={"attempt": attempt_number},
                )
            return RetryResult(outcome=outcome, attempts=attempt_number)

        if isinstance(outcome, FatalFailure):
            logger.debug(
                f"Fatal failure, not retrying: {outcome.error}",
                extra={"attempt": attempt_number, "error_type": type(outcome.error).__name__},
            )
            return RetryResult(outcome=outcome, attempts=attempt_number)

        if attempt_number >= max_attempts:
            break

        delay = exponential_backoff(
            attempt=attempt_number - 1,
            base_delay=config.base_delay,
            exponential_base=config.exponential_base,
            max_delay=config.max_delay,
            jitter=config.jitter,
            jitter_factor=config.jitter_factor,
        )

        logger.warning(
            f"Retry attempt {attempt_number + 1}/{max_attempts} after {delay:.2f}s: {outcome.reason}",
            extra={
                "attempt": attempt_number + 1,
                "max_attempts": max_attempts,
                "delay_seconds": delay,
                "reason": outcome.reason,
            },
        )

        if on_retry:
            try:
                on_retry(attempt_number + 1, outcome)
            except Exception as callback_error:
                logger.error(f"Retry callback failed: {callback_error}")

        if delay > 0:
            await asyncio.sleep(delay)

    logger.error(
        f"All {max_attempts} attempts exhausted",
        extra={"max_attempts": max_attempts, "reason": getattr(outcome, "reason", None)},
    )
    return RetryResult(outcome=outcome, attempts=max_attempts)
