"""Failures of the third-party music provider layer."""

from __future__ import annotations


class ProviderError(Exception):
    """An upstream music API failed or answered with something unusable.

    Args:
        service: Provider id (``jamendo``, ``internetarchive``, ...).
        message: Human-readable reason.
        status_code: Upstream HTTP status, when there was a response.
    """

    def __init__(self, service: str, message: str, status_code: int | None = None) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class ProviderNotConfiguredError(ProviderError):
    """The provider needs credentials that are not configured."""

    def __init__(self, service: str, setting: str) -> None:
        self.setting = setting
        super().__init__(service, f"{setting} is not configured")


class UnsupportedServiceError(ValueError):
    """The requested service id is unknown, or does not offer the operation."""

    def __init__(self, service: str, operation: str | None = None) -> None:
        self.service = service
        self.operation = operation
        if operation:
            message = f"Service {service} not supported for {operation}"
        else:
            message = f"Unknown service: {service}"
        super().__init__(message)
