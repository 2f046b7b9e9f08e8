"""
Application settings.

Immutable config object built once from the environment and injected
wherever it is needed. ``Settings.from_env`` takes any mapping, so core/
never reads ``os.environ`` itself; ``api.deps.get_settings`` loads the
``.env`` file and passes the real environment in.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_SUPPORTED_LANGUAGES: tuple[str, ...] = (
    "Hindi",
    "Telugu",
    "Tamil",
    "English",
    "Kannada",
    "Malayalam",
    "Bengali",
    "Gujarati",
    "Marathi",
    "Punjabi",
)

VALID_ENVIRONMENTS: frozenset[str] = frozenset({"development", "production", "test"})


def _csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration for the catalog API.

    Attributes:
        host: Interface uvicorn binds to.
        port: Listening port. Also used for the default ``public_base_url``.
        environment: One of development | production | test. Error
            messages of unexpected faults are only exposed in development.
        cors_origins: Browser origins allowed to call the API.
        audio_dir: Directory holding the catalog's audio files.
        public_base_url: Origin embedded in the catalog's audio URLs.
        rate_limit_max: Requests allowed per client per window.
        rate_limit_window_seconds: Fixed rate-limit window length.
        redis_url: Optional Redis for shared rate-limit counters.
        supported_languages: Languages accepted by the language routes.
        jamendo_client_id: Jamendo API client id.
        freesound_api_key: Freesound API token.
        spotify_client_id: Spotify client-credentials id.
        spotify_client_secret: Spotify client-credentials secret.
        http_timeout_seconds: Timeout for third-party API calls.
        stream_chunk_size: Bytes read per iteration when streaming audio.
    """

    host: str = "0.0.0.0"
    port: int = 3000
    environment: str = "development"
    cors_origins: tuple[str, ...] = (
        "http://localhost:5173",
        "http://localhost:3000",
    )
    audio_dir: Path = Path("audio")
    public_base_url: str = ""
    rate_limit_max: int = 100
    rate_limit_window_seconds: int = 15 * 60
    redis_url: str | None = None
    supported_languages: tuple[str, ...] = DEFAULT_SUPPORTED_LANGUAGES
    jamendo_client_id: str | None = None
    freesound_api_key: str | None = None
    spotify_client_id: str | None = None
    spotify_client_secret: str | None = None
    http_timeout_seconds: float = 10.0
    stream_chunk_size: int = 64 * 1024

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be in 1..65535, got {self.port}")
        if self.environment not in VALID_ENVIRONMENTS:
            raise ValueError(
                f"Unknown environment {self.environment!r}, "
                f"valid options: {sorted(VALID_ENVIRONMENTS)}"
            )
        if self.rate_limit_max <= 0:
            raise ValueError(f"rate_limit_max must be positive, got {self.rate_limit_max}")
        if self.rate_limit_window_seconds <= 0:
            raise ValueError(
                f"rate_limit_window_seconds must be positive, got {self.rate_limit_window_seconds}"
            )
        if self.http_timeout_seconds <= 0:
            raise ValueError(
                f"http_timeout_seconds must be positive, got {self.http_timeout_seconds}"
            )
        if self.stream_chunk_size <= 0:
            raise ValueError(f"stream_chunk_size must be positive, got {self.stream_chunk_size}")
        if not self.public_base_url:
            object.__setattr__(self, "public_base_url", f"http://localhost:{self.port}")

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "Settings":
        """
        Build settings from environment-style key/value pairs.

        Unset or blank keys keep their defaults.

        Raises:
            ValueError: If a numeric key does not parse or a value is invalid.
        """

        def get(key: str) -> str | None:
            value = env.get(key)
            return value.strip() if value and value.strip() else None

        kwargs: dict = {}
        if (host := get("HOST")) is not None:
            kwargs["host"] = host
        if (port := get("PORT")) is not None:
            kwargs["port"] = int(port)
        if (app_env := get("APP_ENV")) is not None:
            kwargs["environment"] = app_env.lower()
        if (origin := get("CORS_ORIGIN")) is not None:
            kwargs["cors_origins"] = tuple(dict.fromkeys((*_csv(origin), *cls.cors_origins)))
        if (audio_dir := get("AUDIO_DIR")) is not None:
            kwargs["audio_dir"] = Path(audio_dir).expanduser()
        if (base_url := get("PUBLIC_BASE_URL")) is not None:
            kwargs["public_base_url"] = base_url.rstrip("/")
        if (rl_max := get("RATE_LIMIT_MAX")) is not None:
            kwargs["rate_limit_max"] = int(rl_max)
        if (rl_window := get("RATE_LIMIT_WINDOW_SECONDS")) is not None:
            kwargs["rate_limit_window_seconds"] = int(rl_window)
        if (languages := get("SUPPORTED_LANGUAGES")) is not None:
            kwargs["supported_languages"] = _csv(languages)
        if (timeout := get("HTTP_TIMEOUT_SECONDS")) is not None:
            kwargs["http_timeout_seconds"] = float(timeout)
        if (chunk := get("STREAM_CHUNK_SIZE")) is not None:
            kwargs["stream_chunk_size"] = int(chunk)
        kwargs["redis_url"] = get("REDIS_URL")
        kwargs["jamendo_client_id"] = get("JAMENDO_CLIENT_ID")
        kwargs["freesound_api_key"] = get("FREESOUND_API_KEY")
        kwargs["spotify_client_id"] = get("SPOTIFY_CLIENT_ID")
        kwargs["spotify_client_secret"] = get("SPOTIFY_CLIENT_SECRET")
        return cls(**kwargs)
