"""Tests for services/free_music.py, services/jamendo.py and the /api/free-music routes.

Upstream HTTP is faked with ``httpx.MockTransport``; no network access.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from api.deps import get_free_music_service
from api.main import app
from infrastructure.circuit_breaker import CircuitBreaker, CircuitOpenError
from services.errors import ProviderError, ProviderNotConfiguredError, UnsupportedServiceError
from services.free_music import FreeMusicService
from services.http import ProviderClient
from services.jamendo import JamendoClient

Handler = Callable[[httpx.Request], httpx.Response]

# ---------------------------------------------------------------------------
# Upstream payloads
# ---------------------------------------------------------------------------

JAMENDO_TRACK = {
    "id": "1532771",
    "name": "Sunny Morning",
    "duration": 183,
    "artist_name": "Ketsa",
    "album_name": "Day",
    "releasedate": "2019-03-01",
    "album_image": "https://img.jamendo.test/a.jpg",
    "audio": "https://mp3.jamendo.test/1532771.mp3",
    "audiodownload": "https://dl.jamendo.test/1532771.mp3",
    "license_ccurl": "http://creativecommons.org/licenses/by/3.0/",
    "musicinfo": {"tags": {"genres": ["electronic", "chillout"]}},
    "stats": {"rate_listened_total": 1200, "rate_liked_total": 40},
}

ARCHIVE_DOC = {
    "identifier": "old_time_radio",
    "title": "Old Time Radio",
    "creator": ["Various"],
    "date": "1948-01-01T00:00:00Z",
    "downloads": 999,
    "format": ["VBR MP3", "Ogg Vorbis"],
}

FREESOUND_RESULT = {
    "id": 42,
    "name": "rain.wav",
    "username": "fieldrec",
    "duration": 65.4,
    "previews": {"preview-hq-mp3": "https://fs.test/42-hq.mp3"},
    "images": {"waveform_m": "https://fs.test/42.png"},
}

SPOTIFY_TRACK = {
    "id": "abc",
    "name": "Kesariya",
    "duration_ms": 268000,
    "preview_url": "https://p.scdn.test/abc",
    "artists": [{"name": "Arijit Singh"}, {"name": "Pritam"}],
    "album": {"name": "Brahmastra", "release_date": "2022-07-17", "images": [{"url": "https://i.test/1"}]},
    "external_urls": {"spotify": "https://open.spotify.test/track/abc"},
}


def _jamendo_ok(results: list[dict]) -> httpx.Response:
    return httpx.Response(200, json={"headers": {"status": "success"}, "results": results})


def default_handler(request: httpx.Request) -> httpx.Response:
    host, path = request.url.host, request.url.path
    if host == "api.jamendo.com":
        if path.endswith("/tracks/tags"):
            return _jamendo_ok([{"name": "rock"}, {"name": "jazz"}])
        if request.url.params.get("id") == "missing":
            return _jamendo_ok([])
        return _jamendo_ok([JAMENDO_TRACK])
    if host == "archive.org":
        return httpx.Response(200, json={"response": {"docs": [ARCHIVE_DOC]}})
    if host == "freesound.org":
        return httpx.Response(200, json={"results": [FREESOUND_RESULT]})
    if host == "accounts.spotify.com":
        return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
    if host == "api.spotify.com":
        return httpx.Response(200, json={"tracks": {"items": [SPOTIFY_TRACK]}})
    return httpx.Response(404)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_service(
    handler: Handler = default_handler,
    *,
    jamendo_id: str | None = "client-id",
    freesound_key: str | None = "fs-key",
    spotify: tuple[str, str] | None = ("sp-id", "sp-secret"),
    failure_threshold: int = 3,
) -> FreeMusicService:
    http = httpx.Client(transport=httpx.MockTransport(handler))

    def client(service: str) -> ProviderClient:
        breaker = CircuitBreaker(
            name=service, failure_threshold=failure_threshold, reset_timeout_seconds=60.0
        )
        return ProviderClient(service, http, breaker, max_attempts=2, retry_base_seconds=0.0)

    return FreeMusicService(
        JamendoClient(client("jamendo"), jamendo_id),
        {name: client(name) for name in ("internetarchive", "freesound", "spotify")},
        freesound_api_key=freesound_key,
        spotify_credentials=spotify,
    )


@pytest.fixture()
def free_music_client(api_client: TestClient):
    """API client whose free-music service talks to the mock transport."""
    service = _make_service()
    app.dependency_overrides[get_free_music_service] = lambda: service
    return api_client


# ---------------------------------------------------------------------------
# Track normalization
# ---------------------------------------------------------------------------


class TestTrackFormats:
    def test_jamendo(self) -> None:
        [track] = _make_service().search_tracks("sunny")
        assert track.id == "jamendo_1532771"
        assert track.source == "Jamendo"
        assert track.genre == "electronic"
        assert track.duration == "3:03"
        assert track.release_year == 2019
        assert track.play_count == 1200
        assert track.audio_url == "https://mp3.jamendo.test/1532771.mp3"

    def test_internet_archive(self) -> None:
        [track] = _make_service().search_tracks("radio", service="internetarchive")
        assert track.id == "ia_old_time_radio"
        assert track.artist == "Various"
        assert track.audio_url == "https://archive.org/download/old_time_radio/old_time_radio.mp3"
        assert track.poster == "https://archive.org/services/img/old_time_radio"
        assert track.release_year == 1948
        assert track.license == "Public Domain"
        assert track.formats == ("VBR MP3", "Ogg Vorbis")

    def test_freesound(self) -> None:
        [track] = _make_service().search_tracks("rain", service="freesound")
        assert track.id == "fs_42"
        assert track.duration == "1:05"
        assert track.audio_url == "https://fs.test/42-hq.mp3"
        assert track.poster == "https://fs.test/42.png"

    def test_spotify(self) -> None:
        [track] = _make_service().search_tracks("kesariya", service="spotify")
        assert track.id == "spotify_abc"
        assert track.artist == "Arijit Singh, Pritam"
        assert track.duration == "4:28"
        assert track.is_preview is True
        assert track.preview_duration == "0:30"


# ---------------------------------------------------------------------------
# Service behaviour
# ---------------------------------------------------------------------------


class TestRequests:
    def test_jamendo_query_parameters(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _jamendo_ok([])

        _make_service(handler).jamendo.popular_tracks(limit=7)
        params = seen[0].url.params
        assert params["client_id"] == "client-id"
        assert params["order"] == "popularity_total"
        assert params["limit"] == "7"
        assert params["include"] == "musicinfo+stats+lyrics"

    def test_freesound_page_from_offset(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"results": []})

        _make_service(handler).search_tracks("rain", service="freesound", limit=10, offset=20)
        assert seen[0].url.params["page"] == "3"
        assert seen[0].url.params["token"] == "fs-key"

    def test_spotify_token_is_reused_until_expiry(self) -> None:
        token_calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "accounts.spotify.com":
                token_calls.append(request)
                assert request.headers["authorization"].startswith("Basic ")
            return default_handler(request)

        service = _make_service(handler)
        service.search_tracks("a song", service="spotify")
        service.search_tracks("another", service="spotify")
        assert len(token_calls) == 1


class TestFailures:
    def test_unknown_service(self) -> None:
        with pytest.raises(UnsupportedServiceError, match="Unknown service: napster"):
            _make_service().search_tracks("x", service="napster")

    def test_popular_only_on_jamendo(self) -> None:
        with pytest.raises(UnsupportedServiceError, match="not supported for popular tracks"):
            _make_service().popular_tracks(service="freesound")

    def test_missing_credentials(self) -> None:
        service = _make_service(jamendo_id=None, freesound_key=None, spotify=None)
        with pytest.raises(ProviderNotConfiguredError, match="JAMENDO_CLIENT_ID"):
            service.search_tracks("x")
        with pytest.raises(ProviderNotConfiguredError, match="FREESOUND_API_KEY"):
            service.search_tracks("x", service="freesound")
        with pytest.raises(ProviderNotConfiguredError):
            service.search_tracks("x", service="spotify")

    def test_jamendo_failed_status_header(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"headers": {"status": "failed", "error_message": "bad client id"}}
            )

        with pytest.raises(ProviderError, match="bad client id"):
            _make_service(handler).search_tracks("x")

    def test_http_error_status(self) -> None:
        with pytest.raises(ProviderError) as excinfo:
            _make_service(lambda r: httpx.Response(503)).search_tracks(
                "x", service="internetarchive"
            )
        assert excinfo.value.status_code == 503

    def test_transport_error_is_retried_then_mapped(self) -> None:
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderError, match="unreachable"):
            _make_service(handler).search_tracks("x", service="internetarchive")
        assert len(attempts) == 2

    def test_invalid_json(self) -> None:
        with pytest.raises(ProviderError, match="invalid JSON"):
            _make_service(lambda r: httpx.Response(200, text="<html>")).search_tracks(
                "x", service="internetarchive"
            )

    def test_breaker_opens_after_repeated_failures(self) -> None:
        service = _make_service(lambda r: httpx.Response(500), failure_threshold=2)
        for _ in range(2):
            with pytest.raises(ProviderError):
                service.search_tracks("x", service="internetarchive")
        with pytest.raises(CircuitOpenError):
            service.search_tracks("x", service="internetarchive")


class TestMultiSearch:
    def test_collects_results_from_every_service(self) -> None:
        result = _make_service().multi_search("music")
        assert [r.service for r in result.results] == ["jamendo", "internetarchive"]
        assert result.errors == []

    def test_failing_service_is_reported_not_raised(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "archive.org":
                return httpx.Response(500)
            return default_handler(request)

        result = _make_service(handler).multi_search("music")
        assert [r.service for r in result.results] == ["jamendo"]
        assert [e.service for e in result.errors] == ["internetarchive"]
        assert "HTTP 500" in result.errors[0].error


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


class TestFreeMusicRoutes:
    def test_search(self, free_music_client: TestClient) -> None:
        resp = free_music_client.get("/api/free-music/search", params={"q": "sunny", "limit": "5"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["service"] == "jamendo"
        assert body["pagination"] == {"limit": 5, "offset": 0, "total": 1}
        assert body["data"][0]["audioUrl"] == "https://mp3.jamendo.test/1532771.mp3"

    @pytest.mark.parametrize(
        ("params", "error"),
        [
            ({"q": "x"}, "Search query too short"),
            ({"q": "rain", "service": "napster"}, "Invalid service"),
            ({"q": "rain", "limit": "0"}, "Invalid limit"),
            ({"q": "rain", "offset": "-1"}, "Invalid offset"),
        ],
    )
    def test_search_validation(
        self, free_music_client: TestClient, params: dict[str, str], error: str
    ) -> None:
        resp = free_music_client.get("/api/free-music/search", params=params)
        assert resp.status_code == 400
        assert resp.json()["error"] == error

    def test_popular_on_unsupported_service_is_400(self, free_music_client: TestClient) -> None:
        resp = free_music_client.get("/api/free-music/popular", params={"service": "freesound"})
        assert resp.status_code == 400

    def test_services(self, free_music_client: TestClient) -> None:
        body = free_music_client.get("/api/free-music/services").json()
        assert [s["id"] for s in body["data"]] == [
            "jamendo",
            "internetarchive",
            "freesound",
            "spotify",
        ]

    def test_track_details(self, free_music_client: TestClient) -> None:
        body = free_music_client.get("/api/free-music/track/jamendo/1532771").json()
        assert body["data"]["id"] == "jamendo_1532771"

    def test_track_not_found(self, free_music_client: TestClient) -> None:
        assert free_music_client.get("/api/free-music/track/jamendo/missing").status_code == 404

    def test_track_on_other_service_is_400(self, free_music_client: TestClient) -> None:
        resp = free_music_client.get("/api/free-music/track/freesound/42")
        assert resp.status_code == 400
        assert "not supported for track details" in resp.json()["message"]

    def test_genres(self, free_music_client: TestClient) -> None:
        body = free_music_client.get("/api/free-music/genres").json()
        assert body["data"] == [{"name": "rock"}, {"name": "jazz"}]

    def test_genre_tracks(self, free_music_client: TestClient) -> None:
        body = free_music_client.get("/api/free-music/genre/electronic").json()
        assert body["data"][0]["genre"] == "electronic"

    def test_multi_search(self, free_music_client: TestClient) -> None:
        body = free_music_client.get("/api/free-music/multi-search", params={"q": "music"}).json()
        assert [r["service"] for r in body["data"]["results"]] == ["jamendo", "internetarchive"]
        assert body["data"]["errors"] == []

    def test_upstream_failure_is_502(self, api_client: TestClient) -> None:
        service = _make_service(lambda r: httpx.Response(500))
        app.dependency_overrides[get_free_music_service] = lambda: service
        resp = api_client.get("/api/free-music/search", params={"q": "rain"})
        assert resp.status_code == 502
        assert resp.json()["error"] == "Upstream service error"

    def test_unconfigured_provider_is_503(self, api_client: TestClient) -> None:
        service = _make_service(jamendo_id=None)
        app.dependency_overrides[get_free_music_service] = lambda: service
        resp = api_client.get("/api/free-music/popular")
        assert resp.status_code == 503
        assert resp.json()["error"] == "Service not configured"
