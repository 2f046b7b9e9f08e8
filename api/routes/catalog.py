"""Catalog-wide endpoints: language listing and free-text search."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import Catalog, Filters, SearchQuery, enforce_rate_limit
from api.schemas.songs import FiltersOut, LanguageListResponse, SearchResponse, SongOut

router = APIRouter(prefix="/api", tags=["catalog"], dependencies=[Depends(enforce_rate_limit)])


@router.get("/languages", response_model=LanguageListResponse)
def list_languages(catalog: Catalog) -> LanguageListResponse:
    """Distinct languages across all songs, first spelling wins."""
    languages = catalog.list_languages()
    return LanguageListResponse(data=languages, total=len(languages))


@router.get("/search", response_model=SearchResponse, response_model_exclude_none=True)
def search_songs(q: SearchQuery, catalog: Catalog, filters: Filters) -> SearchResponse:
    """
    Case-insensitive search over title, artist, movie and genre.

    ``q`` must be at least two characters after trimming. The optional
    ``language``, ``genre`` and ``year`` filters narrow the matches.
    """
    songs = catalog.search(q, filters)
    return SearchResponse(
        data=[SongOut.from_song(s) for s in songs],
        total=len(songs),
        query=q,
        filters=FiltersOut(**filters.as_dict()),
    )
