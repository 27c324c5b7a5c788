"""Retry-with-deadline primitive shared by the bootstrap and health-check polls.

Usage:
    from cf_cli.helpers.retry import constant_backoff, retry_with_deadline

    handler = retry_with_deadline(
        get_healthy_handler,
        backoff=constant_backoff(5),
        max_duration=120,
        retryable=lambda e: isinstance(e, HandlerUnhealthyError),
    )
"""

import itertools
import time
from typing import Callable, Iterator, Optional, TypeVar

from .logger import get_logger

logger = get_logger("retry")

T = TypeVar("T")


def constant_backoff(interval: float) -> Callable[[], Iterator[float]]:
    """Backoff that always waits ``interval`` seconds."""

    def delays() -> Iterator[float]:
        return itertools.repeat(float(interval))

    return delays


def fibonacci_backoff(base: float) -> Callable[[], Iterator[float]]:
    """Backoff following the Fibonacci sequence: base, 2*base, 3*base, 5*base..."""

    def delays() -> Iterator[float]:
        a, b = base, 2 * base
        while True:
            yield a
            a, b = b, a + b

    return delays


def retry_with_deadline(
    fn: Callable[[], T],
    backoff: Callable[[], Iterator[float]],
    retryable: Callable[[Exception], bool],
    max_duration: Optional[float] = None,
    max_retries: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Call ``fn`` until it succeeds, a non-retryable error occurs or the budget runs out.

    Args:
        fn: Zero-argument callable to invoke
        backoff: Factory returning an iterator of delays in seconds
        retryable: Predicate deciding whether an exception may be retried
        max_duration: Total time budget in seconds. The final wait is clamped to
            the remaining budget so the last attempt happens at the deadline.
        max_retries: Maximum number of retries after the first attempt
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        Whatever ``fn`` returns on success

    Raises:
        The last exception raised by ``fn`` when it is not retryable or when
        the retry budget is exhausted.
    """
    start = clock()
    delays = backoff()
    retries = 0

    while True:
        try:
            return fn()
        except Exception as e:
            if not retryable(e):
                raise
            last_error = e

        if max_retries is not None and retries >= max_retries:
            raise last_error

        delay = next(delays)
        if max_duration is not None:
            remaining = max_duration - (clock() - start)
            if remaining <= 0:
                raise last_error
            delay = min(delay, remaining)

        retries += 1
        logger.debug(f"Retry {retries} in {delay:.1f}s after: {last_error}")
        sleep(delay)
