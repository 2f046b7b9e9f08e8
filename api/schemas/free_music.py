"""Pydantic schemas for the ``/api/free-music`` endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from api.schemas.common import CamelModel
from services.free_music import MultiSearchResult, ServiceInfo
from services.tracks import ExternalTrack


class TrackOut(CamelModel):
    """A track from an external provider."""

    id: str = Field(..., description="Source-prefixed id, e.g. 'jamendo_12345'.")
    title: str
    artist: str
    source: str
    audio_url: str | None = None
    album: str | None = None
    genre: str | None = None
    duration: str | None = None
    release_year: int | None = None
    poster: str | None = None
    description: str | None = None
    download_url: str | None = None
    lyrics: str | None = None
    license: str | None = None
    play_count: int | None = None
    like_count: int | None = None
    downloads: int | None = None
    external_url: str | None = None
    is_preview: bool = False
    preview_duration: str | None = None
    formats: list[str] = Field(default_factory=list)

    @classmethod
    def from_track(cls, track: ExternalTrack) -> TrackOut:
        return cls(
            id=track.id,
            title=track.title,
            artist=track.artist,
            source=track.source,
            audio_url=track.audio_url,
            album=track.album,
            genre=track.genre,
            duration=track.duration,
            release_year=track.release_year,
            poster=track.poster,
            description=track.description,
            download_url=track.download_url,
            lyrics=track.lyrics,
            license=track.license,
            play_count=track.play_count,
            like_count=track.like_count,
            downloads=track.downloads,
            external_url=track.external_url,
            is_preview=track.is_preview,
            preview_duration=track.preview_duration,
            formats=list(track.formats),
        )


class Pagination(CamelModel):
    limit: int
    offset: int
    total: int


class TrackListResponse(CamelModel):
    success: bool = True
    data: list[TrackOut]
    pagination: Pagination | None = None
    service: str | None = None


class TrackResponse(CamelModel):
    success: bool = True
    data: TrackOut | None


class ServiceOut(CamelModel):
    id: str
    name: str
    description: str
    features: list[str]

    @classmethod
    def from_info(cls, info: ServiceInfo) -> ServiceOut:
        return cls(
            id=info.id,
            name=info.name,
            description=info.description,
            features=list(info.features),
        )


class ServiceListResponse(CamelModel):
    success: bool = True
    data: list[ServiceOut]


class GenreListResponse(CamelModel):
    success: bool = True
    data: list[dict[str, Any]]


class ServiceTracksOut(CamelModel):
    service: str
    tracks: list[TrackOut]


class ServiceErrorOut(CamelModel):
    service: str
    error: str


class MultiSearchOut(CamelModel):
    results: list[ServiceTracksOut]
    errors: list[ServiceErrorOut]

    @classmethod
    def from_result(cls, result: MultiSearchResult) -> MultiSearchOut:
        return cls(
            results=[
                ServiceTracksOut(
                    service=r.service, tracks=[TrackOut.from_track(t) for t in r.tracks]
                )
                for r in result.results
            ],
            errors=[ServiceErrorOut(service=e.service, error=e.error) for e in result.errors],
        )


class MultiSearchResponse(CamelModel):
    success: bool = True
    data: MultiSearchOut
