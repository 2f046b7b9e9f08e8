"""Infrastructure layer: cross-cutting concerns of the song catalog API.

Modules:
    rate_limiter     Per-client fixed-window rate limiter (Redis or in-process).
    retry            Exponential backoff retry decorator.
    circuit_breaker  Circuit breaker for third-party music APIs.
    metrics          Prometheus metrics registry.
    log_config       Root logger setup for the server process.
"""
