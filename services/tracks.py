"""
Normalized track records from third-party music providers.

Each provider answers in its own JSON shape; the ``from_*`` functions
below translate one upstream item into an ``ExternalTrack`` so the
free-music routes can serialize every source the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.text import format_duration, year_from_date


@dataclass(frozen=True)
class ExternalTrack:
    """A playable track from an external catalog.

    ``id`` is prefixed with the source (``jamendo_``, ``ia_``, ``fs_``,
    ``spotify_``) so ids from different providers never collide.
    """

    id: str
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
    formats: tuple[str, ...] = ()


def _first(value: Any) -> Any:
    """Internet Archive returns scalars or lists for the same field."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def from_jamendo(item: dict[str, Any]) -> ExternalTrack:
    genres = ((item.get("musicinfo") or {}).get("tags") or {}).get("genres") or []
    stats = item.get("stats") or {}
    return ExternalTrack(
        id=f"jamendo_{item['id']}",
        title=item.get("name") or "Unknown Title",
        artist=item.get("artist_name") or "Unknown Artist",
        source="Jamendo",
        audio_url=item.get("audio"),
        album=item.get("album_name"),
        genre=genres[0] if genres else "Unknown",
        duration=format_duration(item.get("duration")),
        release_year=year_from_date(item.get("releasedate")),
        poster=item.get("album_image") or item.get("image"),
        download_url=item.get("audiodownload"),
        lyrics=item.get("lyrics") or "",
        license=item.get("license_ccurl"),
        play_count=stats.get("rate_listened_total") or 0,
        like_count=stats.get("rate_liked_total") or 0,
    )


def from_internet_archive(doc: dict[str, Any]) -> ExternalTrack:
    identifier = doc["identifier"]
    formats = doc.get("format") or []
    if isinstance(formats, str):
        formats = [formats]
    return ExternalTrack(
        id=f"ia_{identifier}",
        title=_first(doc.get("title")) or "Unknown Title",
        artist=_first(doc.get("creator")) or "Unknown Artist",
        source="Internet Archive",
        audio_url=f"https://archive.org/download/{identifier}/{identifier}.mp3",
        description=_first(doc.get("description")) or "",
        release_year=year_from_date(_first(doc.get("date"))),
        poster=f"https://archive.org/services/img/{identifier}",
        downloads=doc.get("downloads") or 0,
        license="Public Domain",
        formats=tuple(formats),
    )


def from_freesound(result: dict[str, Any]) -> ExternalTrack:
    previews = result.get("previews") or {}
    images = result.get("images") or {}
    return ExternalTrack(
        id=f"fs_{result['id']}",
        title=result.get("name") or "Unknown Title",
        artist=result.get("username") or "Unknown Artist",
        source="Freesound",
        audio_url=previews.get("preview-hq-mp3") or previews.get("preview-lq-mp3"),
        description=result.get("description") or "",
        duration=format_duration(result.get("duration")),
        download_url=result.get("download"),
        poster=images.get("waveform_m") or images.get("spectral_m"),
        license="Creative Commons",
    )


def from_spotify(track: dict[str, Any]) -> ExternalTrack:
    album = track.get("album") or {}
    images = album.get("images") or []
    duration_ms = track.get("duration_ms")
    return ExternalTrack(
        id=f"spotify_{track['id']}",
        title=track.get("name") or "Unknown Title",
        artist=", ".join(a.get("name", "") for a in track.get("artists") or []),
        source="Spotify",
        audio_url=track.get("preview_url"),
        album=album.get("name"),
        release_year=year_from_date(album.get("release_date")),
        duration=format_duration(duration_ms / 1000 if duration_ms is not None else None),
        poster=images[0].get("url") if images else None,
        external_url=(track.get("external_urls") or {}).get("spotify"),
        is_preview=True,
        preview_duration="0:30",
    )
