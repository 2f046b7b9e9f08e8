"""
REST endpoints over third-party free-music APIs.

Routes only validate input and shape output; provider calls, retries and
circuit breaking live in ``services.free_music``. Provider failures
propagate as typed exceptions and are mapped to 400/502/503 by
``api.errors``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.deps import FreeMusic, Offset, SearchQuery, Service, bounded_count, enforce_rate_limit
from api.errors import ApiError
from api.schemas.free_music import (
    GenreListResponse,
    MultiSearchOut,
    MultiSearchResponse,
    Pagination,
    ServiceListResponse,
    ServiceOut,
    TrackListResponse,
    TrackOut,
    TrackResponse,
)
from services.tracks import ExternalTrack

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/free-music",
    tags=["free-music"],
    dependencies=[Depends(enforce_rate_limit)],
)


def _tracks(
    tracks: list[ExternalTrack],
    *,
    limit: int | None = None,
    offset: int | None = None,
    service: str | None = None,
) -> TrackListResponse:
    pagination = None
    if limit is not None and offset is not None:
        pagination = Pagination(limit=limit, offset=offset, total=len(tracks))
    return TrackListResponse(
        data=[TrackOut.from_track(t) for t in tracks],
        pagination=pagination,
        service=service,
    )


@router.get("/search", response_model=TrackListResponse, response_model_exclude_none=True)
def search(
    q: SearchQuery,
    service: Service,
    offset: Offset,
    free_music: FreeMusic,
    limit: str | None = None,
) -> TrackListResponse:
    """Search one provider (``service``, default jamendo)."""
    n = bounded_count(limit, name="limit", default=10)
    tracks = free_music.search_tracks(q, service=service, limit=n, offset=offset)
    return _tracks(tracks, limit=n, offset=offset, service=service)


@router.get("/popular", response_model=TrackListResponse, response_model_exclude_none=True)
def popular(
    service: Service, free_music: FreeMusic, limit: str | None = None
) -> TrackListResponse:
    """Most played tracks. Only Jamendo exposes a popularity ranking."""
    n = bounded_count(limit, name="limit", default=20)
    return _tracks(free_music.popular_tracks(service=service, limit=n), service=service)


@router.get(
    "/genre/{genre_id}", response_model=TrackListResponse, response_model_exclude_none=True
)
def by_genre(
    genre_id: str, offset: Offset, free_music: FreeMusic, limit: str | None = None
) -> TrackListResponse:
    n = bounded_count(limit, name="limit", default=20)
    tracks = free_music.jamendo.tracks_by_genre(genre_id, limit=n, offset=offset)
    return _tracks(tracks, limit=n, offset=offset)


@router.get("/services", response_model=ServiceListResponse)
def services(free_music: FreeMusic) -> ServiceListResponse:
    return ServiceListResponse(
        data=[ServiceOut.from_info(info) for info in free_music.available_services()]
    )


@router.get("/track/{service}/{track_id}", response_model=TrackResponse)
def track(service: str, track_id: str, free_music: FreeMusic) -> TrackResponse:
    """Track details. Only Jamendo supports lookups by id."""
    found = free_music.get_track(service, track_id)
    if found is None:
        raise ApiError.not_found("Track not found", f"No {service} track with id {track_id}")
    return TrackResponse(data=TrackOut.from_track(found))


@router.get("/genres", response_model=GenreListResponse)
def genres(free_music: FreeMusic) -> GenreListResponse:
    return GenreListResponse(data=free_music.jamendo.genres())


@router.get("/multi-search", response_model=MultiSearchResponse)
def multi_search(
    q: SearchQuery, free_music: FreeMusic, limit: str | None = None
) -> MultiSearchResponse:
    """
    Search Jamendo and Internet Archive concurrently.

    A failing provider does not fail the request; its error is reported
    under ``data.errors`` next to the other providers' ``data.results``.
    """
    n = bounded_count(limit, name="limit", default=5)
    result = free_music.multi_search(q, limit=n)
    return MultiSearchResponse(data=MultiSearchOut.from_result(result))
