"""Per-client fixed-window rate limiter.

Guards the ``/api`` surface: each client (keyed by remote address) may make
``max_requests`` calls per ``window_seconds``; the counter resets when the
window elapses. Defaults to 100 requests per 15 minutes.

Two backends:
- Redis (``INCR`` + ``EXPIRE`` on a per-window key) when ``redis_url`` is
  given and reachable, so several API workers share one budget.
- In-process counters otherwise (single worker, or Redis down at startup).

Usage::

    from infrastructure.rate_limiter import RateLimiter

    limiter = RateLimiter(max_requests=100, window_seconds=900)

    if not limiter.allow(request.client.host):
        raise ApiError(429, "Too many requests", "Rate limit exceeded. Please try again later.")
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import redis as redis_lib

logger = logging.getLogger(__name__)

_DEFAULT_MAX = 100
_DEFAULT_WINDOW = 15 * 60  # seconds
_NS = "catalog:rl:"


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window rate limiter with optional Redis backing.

    Args:
        max_requests: Maximum requests allowed per window (default: 100).
        window_seconds: Window length in seconds (default: 900).
        redis_url: Redis connection URL. None keeps counters in process.
        clock: Time source returning seconds; injectable for tests.
    """

    def __init__(
        self,
        max_requests: int = _DEFAULT_MAX,
        window_seconds: int = _DEFAULT_WINDOW,
        redis_url: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_requests <= 0:
            raise ValueError(f"max_requests must be positive, got {max_requests}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {window_seconds}")
        self._max = max_requests
        self._window = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_sweep = clock() + window_seconds
        self._lock = threading.Lock()
        self._client: Any = None
        if redis_url:
            try:
                self._client = redis_lib.from_url(
                    redis_url, decode_responses=True, socket_timeout=0.5
                )
                self._client.ping()
            except redis_lib.RedisError as exc:
                logger.warning(
                    "RateLimiter: Redis unavailable (%s), using in-process counters", exc
                )
                self._client = None

    @property
    def max_requests(self) -> int:
        return self._max

    @property
    def window_seconds(self) -> int:
        return self._window

    @property
    def shared(self) -> bool:
        """True if counters live in Redis."""
        return self._client is not None

    def allow(self, client_id: str) -> bool:
        """Count one request from *client_id* and report whether it is allowed.

        Args:
            client_id: Remote address or other stable client key.

        Returns:
            True if the request fits in the current window, False if rate-limited.
        """
        if self._client is not None:
            try:
                return self._allow_redis(client_id)
            except redis_lib.RedisError as exc:
                logger.warning("RateLimiter: Redis error (%s), counting in process", exc)
        return self._allow_local(client_id)

    @property
    def tracked_clients(self) -> int:
        """Number of clients holding an in-process window."""
        with self._lock:
            return len(self._windows)

    def _sweep_expired(self, now: float) -> None:
        # Caller holds the lock. Runs at most once per window.
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self._window
        if expired:
            logger.debug("RateLimiter: dropped %d expired client windows", len(expired))

    def _allow_local(self, client_id: str) -> bool:
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep_expired(now)
            window = self._windows.get(client_id)
            if window is None or now >= window.reset_at:
                self._windows[client_id] = _Window(count=1, reset_at=now + self._window)
                return True
            if window.count >= self._max:
                logger.warning(
                    "RateLimiter: client '%s' exceeded %d req/%ds",
                    client_id,
                    self._max,
                    self._window,
                )
                return False
            window.count += 1
            return True

    def _allow_redis(self, client_id: str) -> bool:
        slot = int(self._clock() // self._window)
        key = f"{_NS}{client_id}:{slot}"
        pipe = self._client.pipeline()
        pipe.incr(key)
        pipe.expire(key, self._window)
        count = int(pipe.execute()[0])
        if count > self._max:
            logger.warning(
                "RateLimiter: client '%s' exceeded %d req/%ds",
                client_id,
                self._max,
                self._window,
            )
            return False
        return True

    def remaining(self, client_id: str) -> int:
        """Return requests left for *client_id* in the current window."""
        if self._client is not None:
            slot = int(self._clock() // self._window)
            try:
                used = self._client.get(f"{_NS}{client_id}:{slot}")
            except redis_lib.RedisError as exc:
                logger.warning("RateLimiter.remaining error: %s", exc)
            else:
                return max(0, self._max - int(used or 0))
        with self._lock:
            window = self._windows.get(client_id)
            if window is None or self._clock() >= window.reset_at:
                return self._max
            return max(0, self._max - window.count)

    def reset(self) -> None:
        """Forget all in-process counters."""
        with self._lock:
            self._windows.clear()
