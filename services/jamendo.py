"""
Jamendo API v3 client.

Jamendo serves Creative Commons music with full-length streaming URLs.
Every endpoint wraps its results in::

    {"headers": {"status": "success" | "failed", "error_message": "..."},
     "results": [...]}

Requires ``JAMENDO_CLIENT_ID``.
"""

from __future__ import annotations

import logging
from typing import Any

from services.errors import ProviderError, ProviderNotConfiguredError
from services.http import ProviderClient
from services.tracks import ExternalTrack, from_jamendo

logger = logging.getLogger(__name__)

SERVICE = "jamendo"
BASE_URL = "https://api.jamendo.com/v3.0"
_INCLUDE = "musicinfo+stats+lyrics"


class JamendoClient:
    """
    Thin typed wrapper over the Jamendo ``/tracks`` endpoints.

    Args:
        client: Provider client carrying the HTTP session, retry and breaker.
        client_id: Jamendo application id. None makes every call raise
            ``ProviderNotConfiguredError``.
        base_url: API root (overridable for tests).
    """

    def __init__(
        self,
        client: ProviderClient,
        client_id: str | None,
        *,
        base_url: str = BASE_URL,
    ) -> None:
        self._client = client
        self._client_id = client_id
        self._base_url = base_url.rstrip("/")

    def _get(self, path: str, **params: Any) -> list[dict[str, Any]]:
        if not self._client_id:
            raise ProviderNotConfiguredError(SERVICE, "JAMENDO_CLIENT_ID")
        query = {"client_id": self._client_id, "format": "json", **params}
        payload = self._client.get_json(f"{self._base_url}{path}", params=query)
        if not isinstance(payload, dict):
            raise ProviderError(SERVICE, "unexpected response shape")
        headers = payload.get("headers") or {}
        if headers.get("status") != "success":
            message = headers.get("error_message") or "request failed"
            raise ProviderError(SERVICE, message)
        return payload.get("results") or []

    def search_tracks(
        self, query: str, *, limit: int = 10, offset: int = 0, lang: str = "en"
    ) -> list[ExternalTrack]:
        results = self._get(
            "/tracks",
            search=query,
            limit=limit,
            offset=offset,
            include=_INCLUDE,
            lang=lang,
        )
        return [from_jamendo(item) for item in results]

    def get_track(self, track_id: str) -> ExternalTrack | None:
        """Return one track, or None if Jamendo does not know the id."""
        results = self._get("/tracks", id=track_id, include=_INCLUDE)
        return from_jamendo(results[0]) if results else None

    def popular_tracks(
        self, *, limit: int = 20, offset: int = 0, lang: str = "en"
    ) -> list[ExternalTrack]:
        results = self._get(
            "/tracks",
            limit=limit,
            offset=offset,
            order="popularity_total",
            include=_INCLUDE,
            lang=lang,
        )
        return [from_jamendo(item) for item in results]

    def tracks_by_genre(
        self, genre: str, *, limit: int = 20, offset: int = 0, lang: str = "en"
    ) -> list[ExternalTrack]:
        results = self._get(
            "/tracks",
            tags=genre,
            limit=limit,
            offset=offset,
            include=_INCLUDE,
            lang=lang,
        )
        return [from_jamendo(item) for item in results]

    def genres(self) -> list[dict[str, Any]]:
        """Return Jamendo's tag list as-is."""
        return self._get("/tracks/tags")
