"""
Pydantic schemas for the song catalog endpoints.

The ``from_*`` constructors convert ``core.catalog`` value objects; routes
return these models and FastAPI serializes them by alias (camelCase).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from api.schemas.common import CamelModel
from core.catalog import LanguageVersion, Song, SongVersionMatch


class LanguageVersionOut(CamelModel):
    """One language rendition of a song."""

    language: str
    url: str
    singer: str = ""
    lyricist: str = ""
    music_director: str = ""
    lyrics: str = ""

    @classmethod
    def from_version(cls, version: LanguageVersion) -> LanguageVersionOut:
        return cls(
            language=version.language,
            url=version.url,
            singer=version.singer,
            lyricist=version.lyricist,
            music_director=version.music_director,
            lyrics=version.lyrics,
        )


class SongOut(CamelModel):
    """A catalog song with all of its language versions."""

    id: int
    title: str
    artist: str
    movie: str
    genre: str
    duration: str = Field(..., description="Display duration, 'm:ss'.")
    release_year: int
    default_language: str
    poster: str
    versions: list[LanguageVersionOut]
    available_languages: list[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_song(cls, song: Song) -> SongOut:
        return cls(
            id=song.id,
            title=song.title,
            artist=song.artist,
            movie=song.movie,
            genre=song.genre,
            duration=song.duration,
            release_year=song.release_year,
            default_language=song.default_language,
            poster=song.poster,
            versions=[LanguageVersionOut.from_version(v) for v in song.versions],
            available_languages=song.available_languages,
            created_at=song.created_at,
            updated_at=song.updated_at,
        )


class SongWithVersionOut(SongOut):
    """A song plus the language version the client asked for."""

    current_version: LanguageVersionOut

    @classmethod
    def from_match(cls, match: SongVersionMatch) -> SongWithVersionOut:
        base = SongOut.from_song(match.song)
        return cls(
            **base.model_dump(),
            current_version=LanguageVersionOut.from_version(match.version),
        )


class FiltersOut(CamelModel):
    language: str | None = None
    genre: str | None = None
    year: int | None = None


class SongListResponse(CamelModel):
    """Response for ``GET /api/songs`` and the other list endpoints."""

    success: bool = True
    data: list[SongOut]
    total: int
    filters: FiltersOut | None = None
    genre: str | None = None
    year: int | None = None


class SongResponse(CamelModel):
    success: bool = True
    data: SongOut


class SongWithVersionResponse(CamelModel):
    success: bool = True
    data: SongWithVersionOut


class LanguageListResponse(CamelModel):
    success: bool = True
    data: list[str]
    total: int


class SearchResponse(CamelModel):
    """Response for ``GET /api/search``."""

    success: bool = True
    data: list[SongOut]
    total: int
    query: str
    filters: FiltersOut
