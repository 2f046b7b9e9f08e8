"""Tests for infrastructure/ resilience layer.

Covers:
- RateLimiter: fixed window allow/deny, window reset, per-client isolation,
  Redis backend and fallback to in-process counters
- retry decorator: backoff, max attempts, exception filtering
- metrics: exposition, LatencyTimer
- configure_logging: single handler, noisy loggers silenced
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

import pytest
import redis

from infrastructure.log_config import configure_logging
from infrastructure.metrics import (
    LatencyTimer,
    get_metrics_response,
    record_provider_call,
    record_rate_limited,
    record_stream_request,
)
from infrastructure.rate_limiter import RateLimiter
from infrastructure.retry import with_retry

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, now: float = 10_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _make_mock_redis(count: int = 1) -> MagicMock:
    """Mock Redis client whose INCR pipeline reports *count*."""
    client = MagicMock()
    client.ping.return_value = True
    client.pipeline.return_value.execute.return_value = [count, True]
    client.get.return_value = str(count)
    return client


# ---------------------------------------------------------------------------
# RateLimiter: in-process
# ---------------------------------------------------------------------------


class TestRateLimiterLocal:
    def test_allows_up_to_max_then_denies(self) -> None:
        limiter = RateLimiter(max_requests=3, window_seconds=60)
        assert [limiter.allow("1.2.3.4") for _ in range(4)] == [True, True, True, False]

    def test_clients_are_independent(self) -> None:
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        assert limiter.allow("a")
        assert not limiter.allow("a")
        assert limiter.allow("b")

    def test_window_expiry_resets_count(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        assert limiter.allow("a")
        assert not limiter.allow("a")
        clock.now += 60
        assert limiter.allow("a")

    def test_expired_clients_are_evicted(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        for i in range(500):
            limiter.allow(f"10.0.{i // 256}.{i % 256}")
        assert limiter.tracked_clients == 500

        clock.now += 3600
        assert limiter.allow("192.168.0.1")
        assert limiter.tracked_clients == 1

    def test_live_windows_survive_sweep(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.allow("old")
        clock.now += 30
        limiter.allow("recent")
        clock.now += 31
        limiter.allow("new")
        assert limiter.tracked_clients == 2
        assert not limiter.allow("recent")

    def test_remaining(self) -> None:
        limiter = RateLimiter(max_requests=5, window_seconds=60)
        assert limiter.remaining("a") == 5
        limiter.allow("a")
        limiter.allow("a")
        assert limiter.remaining("a") == 3

    def test_reset_clears_counters(self) -> None:
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        limiter.allow("a")
        limiter.reset()
        assert limiter.allow("a")

    def test_not_shared_without_redis(self) -> None:
        assert RateLimiter().shared is False

    @pytest.mark.parametrize(("max_requests", "window"), [(0, 60), (10, 0)])
    def test_invalid_parameters(self, max_requests: int, window: int) -> None:
        with pytest.raises(ValueError, match="must be positive"):
            RateLimiter(max_requests=max_requests, window_seconds=window)


# ---------------------------------------------------------------------------
# RateLimiter: Redis backend
# ---------------------------------------------------------------------------


class TestRateLimiterRedis:
    def test_uses_redis_counter(self) -> None:
        client = _make_mock_redis(count=1)
        with patch("infrastructure.rate_limiter.redis_lib.from_url", return_value=client):
            limiter = RateLimiter(max_requests=2, window_seconds=60, redis_url="redis://x")
        assert limiter.shared is True
        assert limiter.allow("a") is True
        client.pipeline.return_value.incr.assert_called_once()
        key = client.pipeline.return_value.incr.call_args.args[0]
        assert key.startswith("catalog:rl:a:")
        client.pipeline.return_value.expire.assert_called_once_with(key, 60)

    def test_denies_when_counter_exceeds_max(self) -> None:
        client = _make_mock_redis(count=3)
        with patch("infrastructure.rate_limiter.redis_lib.from_url", return_value=client):
            limiter = RateLimiter(max_requests=2, window_seconds=60, redis_url="redis://x")
        assert limiter.allow("a") is False
        assert limiter.remaining("a") == 0

    def test_unreachable_redis_falls_back_at_startup(self) -> None:
        client = _make_mock_redis()
        client.ping.side_effect = redis.ConnectionError("no redis")
        with patch("infrastructure.rate_limiter.redis_lib.from_url", return_value=client):
            limiter = RateLimiter(max_requests=1, window_seconds=60, redis_url="redis://x")
        assert limiter.shared is False
        assert limiter.allow("a")
        assert not limiter.allow("a")

    def test_redis_error_during_call_counts_in_process(self) -> None:
        client = _make_mock_redis()
        client.pipeline.return_value.execute.side_effect = redis.ConnectionError("gone")
        with patch("infrastructure.rate_limiter.redis_lib.from_url", return_value=client):
            limiter = RateLimiter(max_requests=1, window_seconds=60, redis_url="redis://x")
        assert limiter.allow("a") is True
        assert limiter.allow("a") is False


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


class TestRetry:
    def test_returns_first_success(self) -> None:
        sleeps: list[float] = []

        @with_retry(max_attempts=3, sleep=sleeps.append)
        def fn() -> str:
            return "ok"

        assert fn() == "ok"
        assert sleeps == []

    def test_retries_then_succeeds_with_backoff(self) -> None:
        sleeps: list[float] = []
        calls = {"n": 0}

        @with_retry(max_attempts=3, base_seconds=0.5, jitter=False, sleep=sleeps.append)
        def flaky() -> str:
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("blip")
            return "ok"

        assert flaky() == "ok"
        assert sleeps == [0.5, 1.0]

    def test_wait_is_capped(self) -> None:
        sleeps: list[float] = []

        @with_retry(
            max_attempts=4, base_seconds=2.0, max_seconds=3.0, jitter=False, sleep=sleeps.append
        )
        def always_fails() -> None:
            raise TimeoutError("slow")

        with pytest.raises(TimeoutError):
            always_fails()
        assert sleeps == [2.0, 3.0, 3.0]

    def test_final_exception_reraised_unchanged(self) -> None:
        error = ConnectionError("down")

        @with_retry(max_attempts=2, sleep=lambda _: None)
        def fn() -> None:
            raise error

        with pytest.raises(ConnectionError) as exc_info:
            fn()
        assert exc_info.value is error

    def test_non_retryable_exception_propagates_immediately(self) -> None:
        calls = {"n": 0}

        @with_retry(max_attempts=3, sleep=lambda _: None)
        def fn() -> None:
            calls["n"] += 1
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            fn()
        assert calls["n"] == 1

    def test_invalid_max_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            with_retry(max_attempts=0)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TestMetrics:
    def test_exposition_contains_recorded_series(self) -> None:
        record_stream_request(206)
        record_rate_limited()
        record_provider_call(service="jamendo", outcome="success", latency_seconds=0.2)
        body, content_type = get_metrics_response()
        text = body.decode()
        assert content_type.startswith("text/plain")
        assert 'catalog_stream_requests_total{status="206"}' in text
        assert "catalog_rate_limited_total" in text
        assert 'catalog_provider_requests_total{service="jamendo",outcome="success"}' in text

    def test_latency_timer_measures_elapsed(self) -> None:
        with LatencyTimer() as timer:
            pass
        assert timer.elapsed >= 0.0


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_installs_single_handler(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            configure_logging(logging.DEBUG)
            configure_logging(logging.DEBUG)
            assert len(root.handlers) == 1
            assert root.level == logging.DEBUG
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
