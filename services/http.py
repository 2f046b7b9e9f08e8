"""
Shared HTTP plumbing for third-party music providers.

``ProviderClient`` sends one JSON request through three layers:

1. ``with_retry``: retries transport failures (connect/read errors) with
   exponential backoff.
2. ``CircuitBreaker``: one per provider; fails fast with
   ``CircuitOpenError`` after repeated failures.
3. Error mapping: HTTP error statuses, transport failures and undecodable
   bodies all surface as ``ProviderError`` so routes handle one type.

Every call is timed and recorded in ``catalog_provider_*`` metrics.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from infrastructure.circuit_breaker import CircuitBreaker, CircuitOpenError
from infrastructure.metrics import LatencyTimer, record_provider_call
from infrastructure.retry import with_retry
from services.errors import ProviderError

logger = logging.getLogger(__name__)


class ProviderClient:
    """
    JSON-over-HTTP client for one provider.

    Args:
        service: Provider id used in errors, logs and metrics.
        http: Shared ``httpx.Client`` (owns timeouts and connection pool).
        breaker: Circuit breaker dedicated to this provider.
        max_attempts: Attempts per request for transport failures.
        retry_base_seconds: First backoff delay.
    """

    def __init__(
        self,
        service: str,
        http: httpx.Client,
        breaker: CircuitBreaker,
        *,
        max_attempts: int = 3,
        retry_base_seconds: float = 0.5,
    ) -> None:
        self.service = service
        self._http = http
        self._breaker = breaker
        self._max_attempts = max_attempts
        self._retry_base = retry_base_seconds

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        data: Mapping[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            CircuitOpenError: The provider's breaker is open; nothing was sent.
            ProviderError: Transport failure after retries, HTTP error
                status, or a body that is not JSON.
        """

        @with_retry(
            max_attempts=self._max_attempts,
            base_seconds=self._retry_base,
            exceptions=(httpx.TransportError,),
        )
        def _send() -> Any:
            response = self._http.request(
                method, url, params=params, headers=headers, data=data, auth=auth
            )
            response.raise_for_status()
            return response.json()

        outcome = "error"
        timer = LatencyTimer()
        try:
            with timer:
                payload = self._breaker.call(_send)
            outcome = "success"
        except CircuitOpenError:
            outcome = "rejected"
            raise
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("%s %s returned HTTP %d", self.service, url, status)
            raise ProviderError(
                self.service, f"upstream responded with HTTP {status}", status
            ) from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s unreachable: %s", self.service, url, exc)
            raise ProviderError(self.service, f"upstream unreachable ({exc})") from exc
        except ValueError as exc:
            logger.warning("%s %s returned invalid JSON: %s", self.service, url, exc)
            raise ProviderError(self.service, "upstream returned invalid JSON") from exc
        finally:
            record_provider_call(
                service=self.service, outcome=outcome, latency_seconds=timer.elapsed
            )
        return payload

    def get_json(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return self.request_json("GET", url, params=params, headers=headers)
