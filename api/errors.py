"""
Error envelope and exception handlers.

Every failure leaves the API as::

    {"success": false, "error": "<short reason>", "message": "<detail>"}

Routes raise ``ApiError`` for request-level problems (bad id, unknown song)
and let typed domain exceptions propagate; ``register_exception_handlers``
maps each type to its status code in one place.
"""

from __future__ import annotations

import logging
import math

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.schemas.common import ErrorResponse
from core.ranges import RangeNotSatisfiableError
from infrastructure.circuit_breaker import CircuitOpenError
from services.errors import ProviderError, ProviderNotConfiguredError, UnsupportedServiceError
from services.streamer import AudioFileNotFoundError, AudioResourceError

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """
    A request failure with a fixed status code and envelope text.

    Args:
        status_code: HTTP status to answer with.
        error: Short reason (``error`` field of the envelope).
        message: Optional longer explanation.
        headers: Extra response headers.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.message = message
        self.headers = headers
        super().__init__(error)

    @classmethod
    def bad_request(cls, error: str, message: str | None = None) -> ApiError:
        return cls(400, error, message)

    @classmethod
    def not_found(cls, error: str, message: str | None = None) -> ApiError:
        return cls(404, error, message)


def error_response(
    status_code: int,
    error: str,
    message: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("query", "path"))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "")


def register_exception_handlers(app: FastAPI, *, expose_internal_errors: bool) -> None:
    """
    Install the JSON envelope handlers on *app*.

    Args:
        app: Application to configure.
        expose_internal_errors: Include the exception text of unexpected
            failures in the 500 body (development only).
    """

    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
        return error_response(exc.status_code, exc.error, exc.message, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, "Invalid request", _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return error_response(
                404, "Endpoint not found", f"Cannot {request.method} {request.url.path}"
            )
        return error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RangeNotSatisfiableError)
    async def _range_error(request: Request, exc: RangeNotSatisfiableError) -> JSONResponse:
        return error_response(
            416,
            "Range not satisfiable",
            f"Requested range {exc.range_header!r} is outside 0-{exc.total_size - 1}",
            headers={"Content-Range": exc.content_range, "Accept-Ranges": "bytes"},
        )

    @app.exception_handler(AudioFileNotFoundError)
    async def _audio_missing(request: Request, exc: AudioFileNotFoundError) -> JSONResponse:
        logger.warning("%s %s: %s", request.method, request.url.path, exc)
        return error_response(404, "Audio file not found")

    @app.exception_handler(AudioResourceError)
    async def _audio_error(request: Request, exc: AudioResourceError) -> JSONResponse:
        logger.error("%s %s: %s", request.method, request.url.path, exc)
        return error_response(500, "Audio file unavailable", str(exc))

    @app.exception_handler(UnsupportedServiceError)
    async def _unsupported_service(
        request: Request, exc: UnsupportedServiceError
    ) -> JSONResponse:
        return error_response(400, "Unsupported service", str(exc))

    @app.exception_handler(ProviderNotConfiguredError)
    async def _not_configured(request: Request, exc: ProviderNotConfiguredError) -> JSONResponse:
        return error_response(503, "Service not configured", str(exc))

    @app.exception_handler(ProviderError)
    async def _provider_error(request: Request, exc: ProviderError) -> JSONResponse:
        logger.warning("%s %s: %s", request.method, request.url.path, exc)
        return error_response(502, "Upstream service error", str(exc))

    @app.exception_handler(CircuitOpenError)
    async def _circuit_open(request: Request, exc: CircuitOpenError) -> JSONResponse:
        retry_after = max(math.ceil(exc.reset_in_seconds), 1)
        return error_response(
            503,
            "Service temporarily unavailable",
            str(exc),
            headers={"Retry-After": str(retry_after)},
        )

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = str(exc) if expose_internal_errors else "Internal server error"
        return error_response(500, "Something went wrong!", message)
