"""
Aggregation over the free-music providers.

``FreeMusicService`` dispatches a search to one provider by id and fans a
query out over several providers at once for ``multi_search``. Jamendo has
its own client (``services.jamendo``); Internet Archive, Freesound and
Spotify are small enough to live here.

Provider ids:
    jamendo          full tracks, CC licensed (needs JAMENDO_CLIENT_ID)
    internetarchive  public domain audio, no credentials
    freesound        sound clips (needs FREESOUND_API_KEY)
    spotify          30 second previews (needs SPOTIFY_CLIENT_ID/SECRET)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from infrastructure.circuit_breaker import CircuitOpenError
from services.errors import ProviderError, ProviderNotConfiguredError, UnsupportedServiceError
from services.http import ProviderClient
from services.jamendo import JamendoClient
from services.tracks import (
    ExternalTrack,
    from_freesound,
    from_internet_archive,
    from_spotify,
)

logger = logging.getLogger(__name__)

ARCHIVE_SEARCH_URL = "https://archive.org/advancedsearch.php"
FREESOUND_SEARCH_URL = "https://freesound.org/apiv2/search/text/"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_SEARCH_URL = "https://api.spotify.com/v1/search"

MULTI_SEARCH_SERVICES: tuple[str, ...] = ("jamendo", "internetarchive")

# Refresh the Spotify token this many seconds before it actually expires.
_TOKEN_EXPIRY_MARGIN_SECONDS = 60.0


@dataclass(frozen=True)
class ServiceInfo:
    id: str
    name: str
    description: str
    features: tuple[str, ...]


AVAILABLE_SERVICES: tuple[ServiceInfo, ...] = (
    ServiceInfo(
        id="jamendo",
        name="Jamendo",
        description="Free music with Creative Commons licenses",
        features=("Search", "Streaming", "Full tracks", "Metadata"),
    ),
    ServiceInfo(
        id="internetarchive",
        name="Internet Archive",
        description="Public domain music collection",
        features=("Search", "Streaming", "Full tracks", "Historical recordings"),
    ),
    ServiceInfo(
        id="freesound",
        name="Freesound",
        description="Sound effects and music clips",
        features=("Search", "Streaming", "Sound effects", "Music clips"),
    ),
    ServiceInfo(
        id="spotify",
        name="Spotify",
        description="30-second preview clips",
        features=("Search", "Previews only", "High quality metadata"),
    ),
)

SERVICE_IDS: frozenset[str] = frozenset(info.id for info in AVAILABLE_SERVICES)


@dataclass(frozen=True)
class ServiceResult:
    """Tracks from one provider in a multi-search."""

    service: str
    tracks: list[ExternalTrack]


@dataclass(frozen=True)
class ServiceFailure:
    """A provider that failed during a multi-search."""

    service: str
    error: str


@dataclass(frozen=True)
class MultiSearchResult:
    results: list[ServiceResult]
    errors: list[ServiceFailure]


class FreeMusicService:
    """
    Entry point for the ``/api/free-music`` routes.

    Args:
        jamendo: Jamendo client.
        clients: Provider clients keyed by service id, for the providers
            implemented in this module (``internetarchive``, ``freesound``,
            ``spotify``).
        freesound_api_key: Freesound token, or None.
        spotify_credentials: ``(client_id, client_secret)``, or None.
        clock: Seconds source used for Spotify token expiry.
    """

    def __init__(
        self,
        jamendo: JamendoClient,
        clients: Mapping[str, ProviderClient],
        *,
        freesound_api_key: str | None = None,
        spotify_credentials: tuple[str, str] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._jamendo = jamendo
        self._clients = dict(clients)
        self._freesound_key = freesound_api_key
        self._spotify_credentials = spotify_credentials
        self._clock = clock
        self._token_lock = threading.Lock()
        self._spotify_token: str | None = None
        self._spotify_token_expires_at = 0.0

    @property
    def jamendo(self) -> JamendoClient:
        return self._jamendo

    @staticmethod
    def available_services() -> list[ServiceInfo]:
        return list(AVAILABLE_SERVICES)

    def _client(self, service: str) -> ProviderClient:
        try:
            return self._clients[service]
        except KeyError:
            raise UnsupportedServiceError(service) from None

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def search_tracks(
        self, query: str, *, service: str = "jamendo", limit: int = 10, offset: int = 0
    ) -> list[ExternalTrack]:
        """
        Search one provider.

        Raises:
            UnsupportedServiceError: ``service`` is not a known provider id.
            ProviderNotConfiguredError: The provider's credentials are missing.
            ProviderError: The upstream call failed.
            CircuitOpenError: The provider's breaker is open.
        """
        if service == "jamendo":
            return self._jamendo.search_tracks(query, limit=limit, offset=offset)
        if service == "internetarchive":
            return self.search_internet_archive(query, limit=limit, offset=offset)
        if service == "freesound":
            return self.search_freesound(query, limit=limit, offset=offset)
        if service == "spotify":
            return self.search_spotify(query, limit=limit, offset=offset)
        raise UnsupportedServiceError(service)

    def popular_tracks(self, *, service: str = "jamendo", limit: int = 20) -> list[ExternalTrack]:
        if service != "jamendo":
            raise UnsupportedServiceError(service, "popular tracks")
        return self._jamendo.popular_tracks(limit=limit)

    def get_track(self, service: str, track_id: str) -> ExternalTrack | None:
        if service != "jamendo":
            raise UnsupportedServiceError(service, "track details")
        return self._jamendo.get_track(track_id)

    def multi_search(
        self,
        query: str,
        *,
        limit: int = 5,
        services: Sequence[str] = MULTI_SEARCH_SERVICES,
    ) -> MultiSearchResult:
        """
        Search several providers concurrently.

        One provider failing never fails the whole search: its error is
        collected in ``errors`` and the other providers' tracks are still
        returned. Results keep the order of ``services``.
        """
        if not services:
            return MultiSearchResult(results=[], errors=[])

        with ThreadPoolExecutor(max_workers=len(services)) as pool:
            futures = [
                (service, pool.submit(self.search_tracks, query, service=service, limit=limit))
                for service in services
            ]
            results: list[ServiceResult] = []
            errors: list[ServiceFailure] = []
            for service, future in futures:
                try:
                    tracks = future.result()
                except (ProviderError, CircuitOpenError, UnsupportedServiceError) as exc:
                    logger.warning("multi-search: %s failed: %s", service, exc)
                    errors.append(ServiceFailure(service=service, error=str(exc)))
                else:
                    results.append(ServiceResult(service=service, tracks=tracks))

        logger.info(
            "multi-search %r: %d ok, %d failed", query, len(results), len(errors)
        )
        return MultiSearchResult(results=results, errors=errors)

    # ------------------------------------------------------------------
    # Internet Archive
    # ------------------------------------------------------------------

    def search_internet_archive(
        self, query: str, *, limit: int = 10, offset: int = 0
    ) -> list[ExternalTrack]:
        params = {
            "q": f"{query} AND collection:opensource_audio",
            "fl": "identifier,title,creator,date,description,downloads,format",
            "rows": limit,
            "start": offset,
            "sort": "downloads desc",
            "output": "json",
        }
        payload = self._client("internetarchive").get_json(ARCHIVE_SEARCH_URL, params=params)
        docs = (payload.get("response") or {}).get("docs") if isinstance(payload, dict) else None
        if not isinstance(docs, list):
            raise ProviderError("internetarchive", "response has no docs")
        return [from_internet_archive(doc) for doc in docs if doc.get("identifier")]

    # ------------------------------------------------------------------
    # Freesound
    # ------------------------------------------------------------------

    def search_freesound(
        self, query: str, *, limit: int = 10, offset: int = 0
    ) -> list[ExternalTrack]:
        if not self._freesound_key:
            raise ProviderNotConfiguredError("freesound", "FREESOUND_API_KEY")
        params = {
            "query": query,
            "page_size": limit,
            "page": offset // limit + 1,
            "fields": "id,name,description,username,duration,download,previews,images",
            "token": self._freesound_key,
        }
        payload = self._client("freesound").get_json(FREESOUND_SEARCH_URL, params=params)
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise ProviderError("freesound", "response has no results")
        return [from_freesound(item) for item in results]

    # ------------------------------------------------------------------
    # Spotify
    # ------------------------------------------------------------------

    def _spotify_access_token(self) -> str:
        """Return a client-credentials token, fetching a new one when expired."""
        if not self._spotify_credentials:
            raise ProviderNotConfiguredError("spotify", "SPOTIFY_CLIENT_ID")

        with self._token_lock:
            if self._spotify_token and self._clock() < self._spotify_token_expires_at:
                return self._spotify_token

            payload = self._client("spotify").request_json(
                "POST",
                SPOTIFY_TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=self._spotify_credentials,
            )
            token = payload.get("access_token") if isinstance(payload, dict) else None
            if not token:
                raise ProviderError("spotify", "token response has no access_token")
            expires_in = float(payload.get("expires_in") or 3600)
            self._spotify_token = token
            self._spotify_token_expires_at = (
                self._clock() + max(expires_in - _TOKEN_EXPIRY_MARGIN_SECONDS, 0.0)
            )
            logger.info("spotify: obtained access token (expires in %ds)", int(expires_in))
            return token

    def search_spotify(
        self, query: str, *, limit: int = 10, offset: int = 0
    ) -> list[ExternalTrack]:
        token = self._spotify_access_token()
        params: dict[str, Any] = {"q": query, "type": "track", "limit": limit, "offset": offset}
        payload = self._client("spotify").get_json(
            SPOTIFY_SEARCH_URL,
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        items = ((payload.get("tracks") or {}).get("items")) if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ProviderError("spotify", "response has no tracks")
        return [from_spotify(item) for item in items]
