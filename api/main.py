import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles

from api.deps import close_http_client, get_catalog, get_settings
from api.errors import register_exception_handlers
from api.routes.catalog import router as catalog_router
from api.routes.free_music import router as free_music_router
from api.routes.songs import router as songs_router
from api.routes.stream import router as stream_router
from infrastructure.metrics import get_metrics_response

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"
_STARTED_AT = time.monotonic()

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    catalog = get_catalog()
    logger.info(
        "Song catalog API %s (%s): %d songs, %d languages, audio dir %s",
        API_VERSION,
        settings.environment,
        len(catalog),
        len(catalog.list_languages()),
        settings.audio_dir.resolve(),
    )
    if not settings.audio_dir.is_dir():
        logger.warning("Audio directory %s does not exist; streams will 404", settings.audio_dir)
    yield
    close_http_client()


app = FastAPI(title="Multi-Language Song API", version=API_VERSION, lifespan=lifespan)

# CORS: the frontend reads range headers from stream responses, so expose them.
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range", "Content-Length", "Accept-Ranges"],
)

register_exception_handlers(app, expose_internal_errors=settings.is_development)

app.include_router(songs_router)
app.include_router(catalog_router)
app.include_router(stream_router)
app.include_router(free_music_router)

# Direct file access for the URLs embedded in catalog versions.
app.mount("/audio", StaticFiles(directory=settings.audio_dir, check_dir=False), name="audio")


@app.get("/")
def root() -> dict[str, Any]:
    """Describe the service and its main endpoints."""
    return {
        "message": "Multi-Language Song API",
        "version": API_VERSION,
        "environment": settings.environment,
        "endpoints": {
            "songs": "/api/songs",
            "songById": "/api/songs/:id",
            "languages": "/api/languages",
            "songByLanguage": "/api/songs/:id/language/:lang",
            "search": "/api/search",
            "health": "/api/health",
            "stream": "/api/stream/:songId/:language",
            "freeMusic": "/api/free-music/services",
        },
    }


@app.get("/api/health")
def health() -> dict[str, Any]:
    """Return a liveness check with process uptime in seconds."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "environment": settings.environment,
        "version": API_VERSION,
    }


@app.get("/metrics")
def metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    body, content_type = get_metrics_response()
    return Response(content=body, media_type=content_type)
