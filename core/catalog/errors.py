"""Typed catalog failures.

Raised only by the mutating store operations; read queries report
"not found" by returning None.
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for catalog store failures."""


class SongNotFoundError(CatalogError, KeyError):
    def __init__(self, song_id: int) -> None:
        self.song_id = song_id
        super().__init__(f"Song {song_id} not found")

    def __str__(self) -> str:
        return self.args[0]


class LanguageVersionNotFoundError(CatalogError, KeyError):
    def __init__(self, song_id: int, language: str) -> None:
        self.song_id = song_id
        self.language = language
        super().__init__(f"Version for language {language} not found on song {song_id}")

    def __str__(self) -> str:
        return self.args[0]


class DuplicateLanguageVersionError(CatalogError, ValueError):
    def __init__(self, song_id: int, language: str) -> None:
        self.song_id = song_id
        self.language = language
        super().__init__(f"Version for language {language} already exists on song {song_id}")
