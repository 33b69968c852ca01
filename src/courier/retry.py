"""Bounded-retry wrapper for transient store reads.

Makes exactly ``max_attempts`` calls. Between attempts it sleeps
``attempt * base_delay`` seconds (linear backoff). When every attempt fails
the last exception propagates unchanged.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE: tuple[type[BaseException], ...] = (sqlite3.OperationalError,)


def with_retry(
    fn: Callable[[], T],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = _RETRYABLE,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call *fn* until it succeeds or *max_attempts* calls have failed.

    Args:
        fn: Zero-argument callable performing the read.
        max_attempts: Total number of calls (>= 1).
        base_delay: Seconds; the wait after attempt *n* is ``n * base_delay``.
        retry_on: Exception types treated as transient. Anything else
            propagates immediately.
        sleep: Injected for tests.

    Returns:
        The first successful result of *fn*.

    Raises:
        ValueError: If *max_attempts* < 1.
        Exception: The error raised by the final attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except retry_on as exc:
            if attempt == max_attempts:
                logger.error("Store read failed after %d attempts: %s", attempt, exc)
                raise
            delay = attempt * base_delay
            logger.warning(
                "Store read attempt %d failed (%s), retrying in %.1fs", attempt, exc, delay
            )
            sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
