"""Prometheus metrics for the song catalog API.

Metrics:
    catalog_stream_requests_total       Counter of /api/stream outcomes by status code
    catalog_stream_bytes_total          Audio bytes written to clients
    catalog_stream_aborted_total        Streams abandoned mid-transfer, by reason
    catalog_rate_limited_total          Requests rejected by the rate limiter
    catalog_circuit_breaker_trips_total     Times a circuit breaker tripped to OPEN
    catalog_circuit_breaker_rejected_total  Calls rejected while circuit is OPEN
    catalog_provider_requests_total     Third-party music API calls by service and outcome
    catalog_provider_latency_seconds    Third-party music API latency by service

All metrics live in a private registry so tests and multiple app
instances do not collide with the default global registry.

Usage::

    from infrastructure.metrics import record_stream_request

    record_stream_request(status=206)
"""

from __future__ import annotations

import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_REGISTRY = CollectorRegistry()

stream_requests_total = Counter(
    "catalog_stream_requests_total",
    "Audio stream requests by response status",
    ["status"],
    registry=_REGISTRY,
)

stream_bytes_total = Counter(
    "catalog_stream_bytes_total",
    "Audio bytes written to clients",
    registry=_REGISTRY,
)

stream_aborted_total = Counter(
    "catalog_stream_aborted_total",
    "Audio streams abandoned before completion",
    ["reason"],
    registry=_REGISTRY,
)

rate_limited_total = Counter(
    "catalog_rate_limited_total",
    "Requests rejected by rate limiter",
    registry=_REGISTRY,
)

circuit_breaker_trips_total = Counter(
    "catalog_circuit_breaker_trips_total",
    "Number of times a circuit breaker tripped to OPEN state",
    ["breaker_name"],
    registry=_REGISTRY,
)

circuit_breaker_rejected_total = Counter(
    "catalog_circuit_breaker_rejected_total",
    "Requests rejected because circuit was OPEN (short-circuited)",
    ["breaker_name"],
    registry=_REGISTRY,
)

provider_requests_total = Counter(
    "catalog_provider_requests_total",
    "Third-party music API calls by service and outcome",
    ["service", "outcome"],
    registry=_REGISTRY,
)

provider_latency_seconds = Histogram(
    "catalog_provider_latency_seconds",
    "Third-party music API latency in seconds",
    ["service"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
    registry=_REGISTRY,
)


def record_stream_request(status: int) -> None:
    """Record the final status of an /api/stream request."""
    stream_requests_total.labels(status=str(status)).inc()


def record_stream_bytes(count: int) -> None:
    """Add *count* bytes to the streamed-bytes counter."""
    if count > 0:
        stream_bytes_total.inc(count)


def record_stream_aborted(reason: str) -> None:
    """Increment aborted-stream counter.

    Args:
        reason: ``"client_write_error"`` or ``"truncated"``.
    """
    stream_aborted_total.labels(reason=reason).inc()


def record_rate_limited() -> None:
    """Increment rate-limited requests counter."""
    rate_limited_total.inc()


def record_circuit_trip(breaker_name: str) -> None:
    """Increment circuit breaker trip counter."""
    circuit_breaker_trips_total.labels(breaker_name=breaker_name).inc()


def record_circuit_rejected(breaker_name: str) -> None:
    """Increment circuit breaker rejected-call counter."""
    circuit_breaker_rejected_total.labels(breaker_name=breaker_name).inc()


def record_provider_call(*, service: str, outcome: str, latency_seconds: float) -> None:
    """Record one third-party music API call.

    Args:
        service: Provider id (jamendo, internetarchive, freesound, spotify).
        outcome: ``"success"``, ``"error"`` or ``"rejected"``.
        latency_seconds: Wall-clock time of the call.
    """
    provider_requests_total.labels(service=service, outcome=outcome).inc()
    provider_latency_seconds.labels(service=service).observe(latency_seconds)


def get_metrics_response() -> tuple[bytes, str]:
    """Generate Prometheus text exposition format.

    Returns:
        Tuple of (body_bytes, content_type_string).
    """
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Context manager for measuring latency.

    Usage::

        with LatencyTimer() as t:
            data = client.get(url)
        record_provider_call(service="jamendo", outcome="success", latency_seconds=t.elapsed)
    """

    def __init__(self) -> None:
        self._start: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        self.elapsed = time.perf_counter() - self._start
