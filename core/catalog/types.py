"""Catalog value objects: pure, immutable song data.

These are the data contracts shared by the catalog store, the streaming
route and the API schemas. No I/O, no datetime.now().
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from core.text import contains_key, normalize_key


@dataclass(frozen=True)
class LanguageVersion:
    """One localized rendition of a song.

    Attributes:
        language: Display name of the language (e.g. ``"Hindi"``).
            Compared case-insensitively everywhere.
        url: URL or local file reference of the audio asset. Only the
            basename is used to locate the file on disk.
        singer: Performing singer(s).
        lyricist: Lyricist credit.
        music_director: Music director credit.
        lyrics: Short lyric excerpt.
    """

    language: str
    url: str
    singer: str = ""
    lyricist: str = ""
    music_director: str = ""
    lyrics: str = ""

    def __post_init__(self) -> None:
        if not self.language.strip():
            raise ValueError("language must not be empty")
        if not self.url.strip():
            raise ValueError("url must not be empty")

    @property
    def key(self) -> str:
        """Normalized language used for comparisons."""
        return normalize_key(self.language)


@dataclass(frozen=True)
class Song:
    """A catalog song and its language versions.

    ``versions`` preserves insertion order and holds at most one entry per
    language (case-insensitive); the catalog store enforces this.
    """

    id: int
    title: str
    artist: str
    movie: str
    genre: str
    duration: str
    release_year: int
    default_language: str
    poster: str
    created_at: datetime
    updated_at: datetime
    versions: tuple[LanguageVersion, ...] = ()

    def __post_init__(self) -> None:
        if self.id < 0:
            raise ValueError(f"id must be non-negative, got {self.id}")
        keys = [v.key for v in self.versions]
        if len(keys) != len(set(keys)):
            raise ValueError(f"song {self.id} has duplicate language versions")

    @property
    def available_languages(self) -> list[str]:
        return [v.language for v in self.versions]

    def get_version(self, language: str) -> LanguageVersion | None:
        """Return the version for *language*, or None."""
        key = normalize_key(language)
        return next((v for v in self.versions if v.key == key), None)

    def has_language(self, language: str) -> bool:
        return self.get_version(language) is not None


@dataclass(frozen=True)
class CatalogFilters:
    """Optional AND-combined filters for listing and search.

    Attributes:
        language: Song must have a version in this language.
        genre: Case-insensitive substring of the song's genre.
        year: Exact release year.
    """

    language: str | None = None
    genre: str | None = None
    year: int | None = None

    def matches(self, song: Song) -> bool:
        if self.language and not song.has_language(self.language):
            return False
        if self.genre and not contains_key(song.genre, self.genre):
            return False
        if self.year is not None and song.release_year != self.year:
            return False
        return True

    def as_dict(self) -> dict[str, str | int | None]:
        return {"language": self.language, "genre": self.genre, "year": self.year}


@dataclass(frozen=True)
class SongVersionMatch:
    """A song together with the language version a caller asked for."""

    song: Song
    version: LanguageVersion
