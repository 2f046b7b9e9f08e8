"""Song catalog: value objects, the in-memory store and the built-in seed data."""

from core.catalog.errors import (
    CatalogError,
    DuplicateLanguageVersionError,
    LanguageVersionNotFoundError,
    SongNotFoundError,
)
from core.catalog.seed import build_default_catalog
from core.catalog.store import CatalogStore
from core.catalog.types import CatalogFilters, LanguageVersion, Song, SongVersionMatch

__all__ = [
    "CatalogError",
    "CatalogFilters",
    "CatalogStore",
    "DuplicateLanguageVersionError",
    "LanguageVersion",
    "LanguageVersionNotFoundError",
    "Song",
    "SongNotFoundError",
    "SongVersionMatch",
    "build_default_catalog",
]
