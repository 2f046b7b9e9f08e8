"""
FastAPI dependency providers.

Singletons (settings, catalog, rate limiter, HTTP client, circuit breakers,
free-music service) are created on first use and reused for the lifetime
of the process; tests replace them through ``app.dependency_overrides``.

The second half of the module holds request validators. Each one turns a
raw path or query value into a typed value or raises ``ApiError`` (400)
with the envelope text clients already rely on.
"""

import logging
import os
from datetime import UTC, datetime
from typing import Annotated

import httpx
from dotenv import load_dotenv
from fastapi import Depends, Request

from api.errors import ApiError
from core.catalog import CatalogFilters, CatalogStore, build_default_catalog
from core.config import Settings
from core.text import normalize_key, parse_int
from infrastructure.circuit_breaker import CircuitBreaker
from infrastructure.metrics import record_rate_limited
from infrastructure.rate_limiter import RateLimiter
from services.free_music import SERVICE_IDS, FreeMusicService
from services.http import ProviderClient
from services.jamendo import JamendoClient

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Return the process-wide ``Settings``.

    Loads ``.env`` (if present) into the environment on first call, then
    builds settings from ``os.environ``.
    """
    global _settings  # noqa: PLW0603
    if _settings is None:
        load_dotenv()
        _settings = Settings.from_env(os.environ)
    return _settings


_catalog: CatalogStore | None = None


def get_catalog() -> CatalogStore:
    """Return the catalog store singleton, seeded with the built-in songs."""
    global _catalog  # noqa: PLW0603
    if _catalog is None:
        settings = get_settings()
        _catalog = CatalogStore(
            build_default_catalog(settings.public_base_url, datetime.now(UTC))
        )
    return _catalog


_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Return a cached RateLimiter singleton.

    Uses Redis when ``REDIS_URL`` is set and reachable, in-process
    counters otherwise.
    """
    global _rate_limiter  # noqa: PLW0603
    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = RateLimiter(
            max_requests=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
            redis_url=settings.redis_url,
        )
    return _rate_limiter


Limiter = Annotated[RateLimiter, Depends(get_rate_limiter)]


def enforce_rate_limit(request: Request, limiter: Limiter) -> None:
    """Router-level dependency rejecting clients over their request budget."""
    client_id = request.client.host if request.client else "unknown"
    if not limiter.allow(client_id):
        record_rate_limited()
        logger.info("rate limit exceeded for %s on %s", client_id, request.url.path)
        raise ApiError(
            429,
            "Too many requests",
            "Rate limit exceeded. Please try again later.",
            headers={"Retry-After": str(limiter.window_seconds)},
        )


# ---------------------------------------------------------------------------
# Third-party music providers
# ---------------------------------------------------------------------------

_http_client: httpx.Client | None = None


def get_http_client() -> httpx.Client:
    """Return the shared outbound ``httpx.Client`` (connection pool + timeout)."""
    global _http_client  # noqa: PLW0603
    if _http_client is None:
        _http_client = httpx.Client(
            timeout=get_settings().http_timeout_seconds,
            headers={"User-Agent": "song-catalog-api/1.0"},
            follow_redirects=True,
        )
    return _http_client


def close_http_client() -> None:
    global _http_client  # noqa: PLW0603
    if _http_client is not None:
        _http_client.close()
        _http_client = None


# One breaker per provider: each API has its own quota and fails independently.
_breakers: dict[str, CircuitBreaker] = {}


def get_provider_breaker(service: str) -> CircuitBreaker:
    """Return the circuit breaker for *service*, creating it on first use."""
    breaker = _breakers.get(service)
    if breaker is None:
        breaker = _breakers.setdefault(
            service,
            CircuitBreaker(name=service, failure_threshold=3, reset_timeout_seconds=30.0),
        )
    return breaker


_free_music: FreeMusicService | None = None


def get_free_music_service() -> FreeMusicService:
    """Return the free-music aggregation service singleton."""
    global _free_music  # noqa: PLW0603
    if _free_music is None:
        settings = get_settings()
        http = get_http_client()
        clients = {
            service: ProviderClient(service, http, get_provider_breaker(service))
            for service in sorted(SERVICE_IDS)
        }
        spotify = None
        if settings.spotify_client_id and settings.spotify_client_secret:
            spotify = (settings.spotify_client_id, settings.spotify_client_secret)
        _free_music = FreeMusicService(
            JamendoClient(clients.pop("jamendo"), settings.jamendo_client_id),
            clients,
            freesound_api_key=settings.freesound_api_key,
            spotify_credentials=spotify,
        )
    return _free_music


# ---------------------------------------------------------------------------
# Request validators
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_settings)]


def valid_song_id(song_id: str) -> int:
    """Parse the ``{song_id}`` path segment."""
    parsed = parse_int(song_id)
    if parsed is None:
        raise ApiError.bad_request("Invalid song ID", "Song ID must be a valid number")
    return parsed


def supported_language(lang: str, settings: SettingsDep) -> str:
    """Check ``{lang}`` against the configured supported languages."""
    if not lang.strip():
        raise ApiError.bad_request("Invalid language", "Language parameter is required")
    supported = {normalize_key(name) for name in settings.supported_languages}
    if normalize_key(lang) not in supported:
        raise ApiError.bad_request(
            "Unsupported language",
            f"Language '{lang}' is not supported. "
            f"Supported languages: {', '.join(settings.supported_languages)}",
        )
    return lang


def search_query(q: str | None = None) -> str:
    """Validate ``?q=``: required, at least two characters after trimming."""
    query = (q or "").strip()
    if not query:
        raise ApiError.bad_request(
            "Invalid search query", "Search query parameter (q) is required"
        )
    if len(query) < 2:
        raise ApiError.bad_request(
            "Search query too short", "Search query must be at least 2 characters long"
        )
    return query


def parse_year(value: str) -> int:
    year = parse_int(value)
    if year is None:
        raise ApiError.bad_request("Invalid year", "Year must be a valid number")
    return year


def catalog_filters(
    language: str | None = None,
    genre: str | None = None,
    year: str | None = None,
) -> CatalogFilters:
    """Collect ``?language=&genre=&year=``; blank values mean "no filter"."""
    return CatalogFilters(
        language=language.strip() or None if language else None,
        genre=genre.strip() or None if genre else None,
        year=parse_year(year) if year and year.strip() else None,
    )


def bounded_count(value: str | None, *, name: str, default: int) -> int:
    """Parse a page size in ``1..MAX_PAGE_SIZE``; None gives *default*."""
    if value is None:
        return default
    count = parse_int(value)
    if count is None or not 1 <= count <= MAX_PAGE_SIZE:
        raise ApiError.bad_request(
            f"Invalid {name}",
            f"{name.capitalize()} must be a number between 1 and {MAX_PAGE_SIZE}",
        )
    return count


def offset_param(offset: str | None = None) -> int:
    if offset is None:
        return 0
    parsed = parse_int(offset)
    if parsed is None:
        raise ApiError.bad_request("Invalid offset", "Offset must be a non-negative number")
    return parsed


def service_param(service: str | None = None) -> str:
    """Validate ``?service=``; defaults to ``jamendo``."""
    if service is None:
        return "jamendo"
    if service not in SERVICE_IDS:
        raise ApiError.bad_request(
            "Invalid service", f"Service must be one of: {', '.join(sorted(SERVICE_IDS))}"
        )
    return service


Catalog = Annotated[CatalogStore, Depends(get_catalog)]
FreeMusic = Annotated[FreeMusicService, Depends(get_free_music_service)]
SongId = Annotated[int, Depends(valid_song_id)]
Language = Annotated[str, Depends(supported_language)]
SearchQuery = Annotated[str, Depends(search_query)]
Filters = Annotated[CatalogFilters, Depends(catalog_filters)]
Offset = Annotated[int, Depends(offset_param)]
Service = Annotated[str, Depends(service_param)]
