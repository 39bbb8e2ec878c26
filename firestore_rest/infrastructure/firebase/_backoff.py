"""Retry with exponential backoff under a wall-clock budget.

The executor knows nothing about HTTP: an operation is a zero-argument
coroutine factory that raises on failure, and a predicate decides whether
that failure is transient. Transient failures are retried after a growing,
jittered delay until the operation succeeds, a permanent failure
propagates, or the next delay would overrun the budget.
"""

import asyncio
import random
import time
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import TypeVar

from firestore_rest.core.config import Settings, get_settings
from firestore_rest.domain.exceptions import BudgetExhaustedException
from firestore_rest.infrastructure.firebase._api_errors import is_retryable_error
from firestore_rest.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    """Backoff tuning; delays in seconds."""

    initial_interval: float = 0.5
    multiplier: float = 1.5
    randomization_factor: float = 0.5
    max_interval: float = 60.0
    max_elapsed_time: float = 60.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "BackoffPolicy":
        settings = settings or get_settings()
        return cls(
            initial_interval=settings.retry_initial_interval_seconds,
            multiplier=settings.retry_multiplier,
            randomization_factor=settings.retry_randomization_factor,
            max_interval=settings.retry_max_interval_seconds,
            max_elapsed_time=settings.request_retry_max_elapsed_seconds,
        )

    def delays(self, rng: random.Random | None = None) -> Iterator[float]:
        """Yield successive randomized delays (infinite)."""
        rng = rng or random
        interval = self.initial_interval
        while True:
            delta = self.randomization_factor * interval
            yield rng.uniform(interval - delta, interval + delta)
            interval = min(interval * self.multiplier, self.max_interval)


async def execute(
    operation: Callable[[], Awaitable[T]],
    max_elapsed_time: float | None = None,
    *,
    policy: BackoffPolicy | None = None,
    retryable_check: Callable[[Exception], bool] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Run operation, retrying transient failures with exponential backoff.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.
        max_elapsed_time: Budget in seconds; defaults to policy.max_elapsed_time.
        policy: Backoff tuning; defaults to BackoffPolicy.from_settings().
        retryable_check: Failure classifier; defaults to is_retryable_error.
        sleep: Awaitable delay, injectable for tests.
        clock: Monotonic clock, injectable for tests.

    Returns:
        The operation's result.

    Raises:
        BudgetExhaustedException: If the budget ran out on a transient failure.
        Exception: The failure itself if it is permanent.
    """
    policy = policy or BackoffPolicy.from_settings()
    budget = policy.max_elapsed_time if max_elapsed_time is None else max_elapsed_time
    retryable_check = retryable_check or is_retryable_error

    delays = policy.delays()
    start = clock()
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            if not retryable_check(e):
                raise

            delay = next(delays)
            elapsed = clock() - start
            if elapsed + delay > budget:
                logger.error(
                    "Retry budget exhausted after %d attempts (%.1fs): %s",
                    attempt,
                    elapsed,
                    e,
                )
                raise BudgetExhaustedException(e, attempt, elapsed) from e

            logger.warning(
                "Attempt %d failed: %s. Retrying in %.2fs...", attempt, e, delay
            )
            await sleep(delay)
