"""Exponential backoff retry decorator for third-party API calls.

Wraps outbound provider requests so a single dropped connection or read
timeout against Jamendo or the Internet Archive does not surface as a
failed search. Only transport-level failures are retried; HTTP error
statuses are the provider's answer and are not.

Usage::

    from infrastructure.retry import with_retry

    @with_retry(max_attempts=3, base_seconds=0.5, exceptions=(httpx.TransportError,))
    def fetch(url: str) -> httpx.Response:
        return client.get(url)
"""

from __future__ import annotations

import functools
import logging
import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_DEFAULT_RETRYABLE: tuple[type[Exception], ...] = (
    TimeoutError,
    ConnectionError,
)


def with_retry(
    *,
    max_attempts: int = 3,
    base_seconds: float = 0.5,
    max_seconds: float = 5.0,
    jitter: bool = True,
    exceptions: tuple[type[Exception], ...] = _DEFAULT_RETRYABLE,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[F], F]:
    """Decorator factory for exponential backoff retry.

    Args:
        max_attempts: Total attempts including the first try.
        base_seconds: Wait before the second attempt; doubles each time.
        max_seconds: Cap on a single wait.
        jitter: Scale each wait by a random ±25%.
        exceptions: Exception types that trigger a retry.
        sleep: Sleep function; tests pass a no-op.

    Returns:
        Decorator that wraps the function with retry logic. After the last
        attempt the final exception is re-raised unchanged.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    if attempt == max_attempts:
                        raise
                    wait = min(base_seconds * (2 ** (attempt - 1)), max_seconds)
                    if jitter:
                        wait *= 1 + random.uniform(-0.25, 0.25)  # noqa: S311
                    logger.warning(
                        "retry: %s attempt %d/%d failed (%s), retrying in %.2fs",
                        func.__name__,
                        attempt,
                        max_attempts,
                        exc,
                        wait,
                    )
                    sleep(wait)
            raise AssertionError("unreachable")

        return wrapper  # type: ignore[return-value]

    return decorator
