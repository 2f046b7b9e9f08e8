"""
In-memory catalog store.

Holds the ordered song collection built once at startup and answers the
read queries behind the ``/api/songs``, ``/api/search`` and
``/api/languages`` routes. The store is an explicitly constructed object
injected into handlers via ``api.deps.get_catalog``; tests build their own
from fixture songs.

Songs are frozen dataclasses, so callers can never mutate catalog state
through a query result. The version mutators replace the owning ``Song``
wholesale; they exist for maintenance code and tests and are not exposed
over HTTP.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, datetime

from core.catalog.errors import (
    DuplicateLanguageVersionError,
    LanguageVersionNotFoundError,
    SongNotFoundError,
)
from core.catalog.types import CatalogFilters, LanguageVersion, Song, SongVersionMatch
from core.text import contains_key, normalize_key, parse_int

logger = logging.getLogger(__name__)

_NO_FILTERS = CatalogFilters()


class CatalogStore:
    """
    Read-mostly store over an ordered collection of songs.

    Args:
        songs: Songs in catalog order. Ids must be unique.
        rng: Random source for ``random_songs`` (default: module-level
            ``random``). Inject a seeded ``random.Random`` for reproducible tests.

    Raises:
        ValueError: If two songs share an id.
    """

    def __init__(self, songs: Iterable[Song], *, rng: random.Random | None = None) -> None:
        self._songs: list[Song] = list(songs)
        self._index: dict[int, int] = {}
        for pos, song in enumerate(self._songs):
            if song.id in self._index:
                raise ValueError(f"duplicate song id {song.id}")
            self._index[song.id] = pos
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._songs)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_songs(self, filters: CatalogFilters | None = None) -> list[Song]:
        """Return songs matching every supplied filter, in catalog order."""
        filters = filters or _NO_FILTERS
        return [song for song in self._songs if filters.matches(song)]

    def get_by_id(self, song_id: int | str) -> Song | None:
        """Return the song with *song_id*, or None if absent or non-numeric."""
        parsed = parse_int(song_id)
        if parsed is None:
            return None
        pos = self._index.get(parsed)
        return self._songs[pos] if pos is not None else None

    def get_by_language(self, song_id: int | str, language: str) -> SongVersionMatch | None:
        """Return the song and its *language* version, or None if either is absent."""
        song = self.get_by_id(song_id)
        if song is None:
            return None
        version = song.get_version(language)
        if version is None:
            return None
        return SongVersionMatch(song=song, version=version)

    def search(self, query: str, filters: CatalogFilters | None = None) -> list[Song]:
        """
        Find songs whose title, artist, movie or genre contains *query*.

        Matching is case-insensitive substring (OR across fields); *filters*
        are then applied with AND semantics exactly as in ``list_songs``.
        """
        filters = filters or _NO_FILTERS
        return [
            song
            for song in self._songs
            if any(
                contains_key(field, query)
                for field in (song.title, song.artist, song.movie, song.genre)
            )
            and filters.matches(song)
        ]

    def songs_by_genre(self, genre: str) -> list[Song]:
        return self.list_songs(CatalogFilters(genre=genre))

    def songs_by_year(self, year: int) -> list[Song]:
        return self.list_songs(CatalogFilters(year=year))

    def random_songs(self, count: int) -> list[Song]:
        """Return up to *count* distinct songs in uniformly random order."""
        if count <= 0:
            return []
        return self._rng.sample(self._songs, min(count, len(self._songs)))

    def trending_songs(self, limit: int) -> list[Song]:
        """Return the first *limit* songs in catalog order.

        Static stand-in ranking: no popularity signal is tracked.
        """
        if limit <= 0:
            return []
        return self._songs[:limit]

    def list_languages(self) -> list[str]:
        """Return each distinct language once, first spelling wins."""
        seen: dict[str, str] = {}
        for song in self._songs:
            for version in song.versions:
                seen.setdefault(version.key, version.language)
        return list(seen.values())

    # ------------------------------------------------------------------
    # Version mutators (not reachable over HTTP)
    # ------------------------------------------------------------------

    def _require(self, song_id: int) -> tuple[int, Song]:
        pos = self._index.get(song_id)
        if pos is None:
            raise SongNotFoundError(song_id)
        return pos, self._songs[pos]

    def _store(
        self,
        pos: int,
        song: Song,
        versions: tuple[LanguageVersion, ...],
        now: datetime | None,
    ) -> Song:
        updated = replace(song, versions=versions, updated_at=now or datetime.now(UTC))
        self._songs[pos] = updated
        return updated

    def add_version(
        self, song_id: int, version: LanguageVersion, *, now: datetime | None = None
    ) -> Song:
        """
        Append a language version to a song.

        Raises:
            SongNotFoundError: No song with *song_id*.
            DuplicateLanguageVersionError: The song already has this language.
        """
        pos, song = self._require(song_id)
        if song.has_language(version.language):
            raise DuplicateLanguageVersionError(song_id, version.language)
        logger.info("Catalog: song %d gained %s version", song_id, version.language)
        return self._store(pos, song, (*song.versions, version), now)

    def update_version(
        self,
        song_id: int,
        language: str,
        *,
        now: datetime | None = None,
        **changes: str,
    ) -> Song:
        """
        Replace fields of an existing language version.

        Raises:
            SongNotFoundError: No song with *song_id*.
            LanguageVersionNotFoundError: The song has no such language.
            DuplicateLanguageVersionError: ``language`` was renamed onto
                another existing version.
        """
        pos, song = self._require(song_id)
        key = normalize_key(language)
        target = song.get_version(language)
        if target is None:
            raise LanguageVersionNotFoundError(song_id, language)
        updated = replace(target, **changes)
        if updated.key != key and song.has_language(updated.language):
            raise DuplicateLanguageVersionError(song_id, updated.language)
        versions = tuple(updated if v.key == key else v for v in song.versions)
        return self._store(pos, song, versions, now)

    def remove_version(self, song_id: int, language: str, *, now: datetime | None = None) -> Song:
        """
        Remove a language version from a song.

        Raises:
            SongNotFoundError: No song with *song_id*.
            LanguageVersionNotFoundError: The song has no such language.
        """
        pos, song = self._require(song_id)
        if not song.has_language(language):
            raise LanguageVersionNotFoundError(song_id, language)
        key = normalize_key(language)
        logger.info("Catalog: song %d dropped %s version", song_id, language)
        return self._store(pos, song, tuple(v for v in song.versions if v.key != key), now)
