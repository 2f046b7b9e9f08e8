"""REST endpoints for browsing the song catalog."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.deps import (
    Catalog,
    Filters,
    Language,
    SongId,
    bounded_count,
    enforce_rate_limit,
    parse_year,
)
from api.errors import ApiError
from api.schemas.songs import (
    FiltersOut,
    SongListResponse,
    SongOut,
    SongResponse,
    SongWithVersionOut,
    SongWithVersionResponse,
)
from core.catalog import Song

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/songs",
    tags=["songs"],
    dependencies=[Depends(enforce_rate_limit)],
)

DEFAULT_RANDOM_COUNT = 5
DEFAULT_TRENDING_LIMIT = 10


def _list(songs: list[Song], **extra: object) -> SongListResponse:
    return SongListResponse(
        data=[SongOut.from_song(s) for s in songs], total=len(songs), **extra
    )


@router.get("", response_model=SongListResponse, response_model_exclude_none=True)
def list_songs(catalog: Catalog, filters: Filters) -> SongListResponse:
    """List every song, optionally filtered by language, genre and year."""
    songs = catalog.list_songs(filters)
    return _list(songs, filters=FiltersOut(**filters.as_dict()))


# NOTE: every literal segment (genre/, year/, random, trending) is declared
# BEFORE /{song_id} so FastAPI does not treat it as an id.


@router.get("/genre/{genre}", response_model=SongListResponse, response_model_exclude_none=True)
def songs_by_genre(genre: str, catalog: Catalog) -> SongListResponse:
    return _list(catalog.songs_by_genre(genre), genre=genre)


@router.get("/year/{year}", response_model=SongListResponse, response_model_exclude_none=True)
def songs_by_year(year: str, catalog: Catalog) -> SongListResponse:
    parsed = parse_year(year)
    return _list(catalog.songs_by_year(parsed), year=parsed)


@router.get("/random", response_model=SongListResponse, response_model_exclude_none=True)
@router.get("/random/{count}", response_model=SongListResponse, response_model_exclude_none=True)
def random_songs(catalog: Catalog, count: str | None = None) -> SongListResponse:
    """Return up to *count* distinct songs in random order (default 5)."""
    n = bounded_count(count, name="count", default=DEFAULT_RANDOM_COUNT)
    return _list(catalog.random_songs(n))


@router.get("/trending", response_model=SongListResponse, response_model_exclude_none=True)
@router.get("/trending/{limit}", response_model=SongListResponse, response_model_exclude_none=True)
def trending_songs(catalog: Catalog, limit: str | None = None) -> SongListResponse:
    """Return the first *limit* songs in catalog order (default 10)."""
    n = bounded_count(limit, name="limit", default=DEFAULT_TRENDING_LIMIT)
    return _list(catalog.trending_songs(n))


@router.get("/{song_id}", response_model=SongResponse)
def get_song(song_id: SongId, catalog: Catalog) -> SongResponse:
    song = catalog.get_by_id(song_id)
    if song is None:
        raise ApiError.not_found("Song not found")
    return SongResponse(data=SongOut.from_song(song))


@router.get("/{song_id}/language/{lang}", response_model=SongWithVersionResponse)
def get_song_language(
    song_id: SongId, lang: Language, catalog: Catalog
) -> SongWithVersionResponse:
    """Return a song together with its version in *lang* (case-insensitive)."""
    match = catalog.get_by_language(song_id, lang)
    if match is None:
        raise ApiError.not_found("Song or language version not found")
    return SongWithVersionResponse(data=SongWithVersionOut.from_match(match))
