"""Circuit breaker for third-party music API calls.

One breaker guards each upstream provider (Jamendo, Internet Archive,
Freesound, Spotify). When a provider keeps failing, the breaker opens and
free-music requests for it fail fast with 503 instead of each one waiting
out timeouts and retries. Catalog and streaming routes never go through a
breaker.

States::

    CLOSED ──(N consecutive failures)──→ OPEN ──(reset timeout)──→ HALF-OPEN
      ↑                                                               │
      └───────────────────────(probe succeeds)───────────────────────┘
                                          └──(probe fails)──→ OPEN

Usage::

    from infrastructure.circuit_breaker import CircuitBreaker, CircuitOpenError

    breaker = CircuitBreaker(name="jamendo", failure_threshold=3)

    try:
        payload = breaker.call(client.get_json, "/tracks", params)
    except CircuitOpenError:
        raise ApiError(503, ...)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from infrastructure.metrics import record_circuit_rejected, record_circuit_trip

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker state machine states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised instead of calling the provider while the circuit is OPEN.

    Args:
        name: Breaker name (the provider id).
        reset_in_seconds: Approximate seconds until the next probe is allowed.
    """

    def __init__(self, name: str, reset_in_seconds: float) -> None:
        self.name = name
        self.reset_in_seconds = reset_in_seconds
        super().__init__(
            f"Circuit '{name}' is OPEN, service unavailable. "
            f"Will probe again in ~{reset_in_seconds:.0f}s."
        )


@dataclass
class CircuitStats:
    """Runtime counters for one breaker."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0


class CircuitBreaker:
    """Thread-safe circuit breaker.

    Args:
        name: Provider id used in logs, metrics and error messages.
        failure_threshold: Consecutive failures that trip the breaker.
        reset_timeout_seconds: Time to stay OPEN before allowing a probe.
        exceptions: Exception types counted as failures. Others propagate
            without touching the failure count.
        clock: Time source in seconds; injectable for tests.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        reset_timeout_seconds: float = 30.0,
        exceptions: tuple[type[Exception], ...] = (Exception,),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._failure_threshold = failure_threshold
        self._reset_timeout = reset_timeout_seconds
        self._tracked_exceptions = exceptions
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0
        self._lock = threading.Lock()
        self.stats = CircuitStats()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def _transition_to(self, new_state: CircuitState) -> None:
        """Change state and log it. Caller holds the lock."""
        old_state, self._state = self._state, new_state
        logger.warning(
            "CircuitBreaker '%s': %s → %s",
            self.name,
            old_state.value.upper(),
            new_state.value.upper(),
        )

    def _before_call(self) -> None:
        with self._lock:
            self.stats.total_calls += 1
            if self._state != CircuitState.OPEN:
                return
            waited = self._clock() - self._opened_at
            if waited >= self._reset_timeout:
                self._transition_to(CircuitState.HALF_OPEN)
                return
            self.stats.rejected_calls += 1
        record_circuit_rejected(self.name)
        raise CircuitOpenError(self.name, max(0.0, self._reset_timeout - waited))

    def _on_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            self.stats.successful_calls += 1
            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.CLOSED)
                logger.info("CircuitBreaker '%s': service recovered", self.name)

    def _on_failure(self, exc: Exception) -> None:
        tripped = False
        with self._lock:
            self._failure_count += 1
            self.stats.failed_calls += 1
            if self._state == CircuitState.HALF_OPEN or (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self._failure_threshold
            ):
                self._opened_at = self._clock()
                self._transition_to(CircuitState.OPEN)
                tripped = True
        if tripped:
            record_circuit_trip(self.name)
            logger.error(
                "CircuitBreaker '%s': TRIPPED after %d failures. Last: %s",
                self.name,
                self._failure_count,
                exc,
            )

    def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run *func* through the breaker.

        Raises:
            CircuitOpenError: The circuit is OPEN; *func* was not called.
            Exception: Whatever *func* raised (recorded as a failure when tracked).
        """
        self._before_call()
        try:
            result = func(*args, **kwargs)
        except self._tracked_exceptions as exc:
            self._on_failure(exc)
            raise
        self._on_success()
        return result

    def reset(self) -> None:
        """Force the circuit back to CLOSED."""
        with self._lock:
            self._failure_count = 0
            if self._state != CircuitState.CLOSED:
                self._transition_to(CircuitState.CLOSED)

    def status(self) -> dict[str, Any]:
        """Snapshot of state and counters for diagnostics."""
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "failure_threshold": self._failure_threshold,
                "reset_timeout_seconds": self._reset_timeout,
                "stats": {
                    "total": self.stats.total_calls,
                    "success": self.stats.successful_calls,
                    "failed": self.stats.failed_calls,
                    "rejected": self.stats.rejected_calls,
                },
            }
