"""
Shared fixtures for the test suite.

Centralizes reusable test infrastructure so individual test files
don't need to repeat override boilerplate.
"""

import random
from datetime import UTC, datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.deps import get_catalog, get_rate_limiter, get_settings
from api.main import app
from core.catalog import CatalogStore, LanguageVersion, Song, build_default_catalog
from core.config import Settings
from infrastructure.rate_limiter import RateLimiter

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FROZEN_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)

AUDIO_BYTES: bytes = bytes(range(256)) * 4
"""Deterministic 1024-byte payload written for every fixture audio file."""


# ---------------------------------------------------------------------------
# Song factory
# ---------------------------------------------------------------------------


def make_song(
    song_id: int = 1,
    *,
    languages: tuple[str, ...] = ("Telugu", "Hindi"),
    **overrides: object,
) -> Song:
    """Build a ``Song`` with one version per language.

    Version files are named ``song{id}_{language}.mp3`` (lowercase).
    """
    versions = tuple(
        LanguageVersion(language=lang, url=f"/audio/song{song_id}_{lang.lower()}.mp3")
        for lang in languages
    )
    fields: dict[str, object] = {
        "id": song_id,
        "title": f"Song {song_id}",
        "artist": "Test Artist",
        "movie": "Test Movie",
        "genre": "Folk",
        "duration": "3:30",
        "release_year": 2021,
        "default_language": languages[0] if languages else "Hindi",
        "poster": "/posters/test.jpg",
        "created_at": FROZEN_NOW,
        "updated_at": FROZEN_NOW,
        "versions": versions,
    }
    fields.update(overrides)
    return Song(**fields)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Catalog + audio fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def catalog() -> CatalogStore:
    """The built-in catalog (Naatu Naatu, Kesariya) with a seeded RNG."""
    return CatalogStore(
        build_default_catalog("http://testserver", FROZEN_NOW), rng=random.Random(7)
    )


@pytest.fixture()
def audio_dir(tmp_path: Path) -> Path:
    """Audio directory holding every built-in file except ``naatu_tamil.mp3``."""
    directory = tmp_path / "audio"
    directory.mkdir()
    for name in (
        "naatu_telugu.mp3",
        "naatu_hindi.mp3",
        "kesariya_hindi.mp3",
        "kesariya_telugu.mp3",
    ):
        (directory / name).write_bytes(AUDIO_BYTES)
    return directory


@pytest.fixture()
def test_settings(audio_dir: Path) -> Settings:
    return Settings(environment="test", audio_dir=audio_dir)


@pytest.fixture()
def rate_limiter() -> RateLimiter:
    return RateLimiter(max_requests=1000, window_seconds=60)


# ---------------------------------------------------------------------------
# FastAPI test client fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def api_client(catalog: CatalogStore, test_settings: Settings, rate_limiter: RateLimiter):
    """FastAPI ``TestClient`` with catalog, settings and rate limiter overridden."""
    app.dependency_overrides.clear()
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    yield TestClient(app)
    app.dependency_overrides.clear()
