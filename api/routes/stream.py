"""
Audio streaming endpoint with HTTP range support.

``GET /api/stream/{song_id}/{language}`` serves the audio file of one
language version. Without a ``Range`` header the whole file is sent (200);
with ``Range: bytes=start-[end]`` only that window is sent (206). Ranges
the file cannot satisfy answer 416 with ``Content-Range: bytes */size``.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header

from api.deps import Catalog, SettingsDep, SongId, enforce_rate_limit
from api.errors import ApiError
from core.ranges import RangeNotSatisfiableError, resolve_range
from infrastructure.metrics import record_stream_request
from services.streamer import (
    AudioResourceError,
    AudioStreamResponse,
    open_audio,
    resolve_audio_path,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/stream", tags=["stream"], dependencies=[Depends(enforce_rate_limit)])

CACHE_CONTROL = "public, max-age=3600"


@router.get(
    "/{song_id}/{language}",
    responses={206: {"description": "Partial content"}, 416: {"description": "Bad range"}},
)
def stream_audio(
    song_id: SongId,
    language: str,
    catalog: Catalog,
    settings: SettingsDep,
    range_header: Annotated[str | None, Header(alias="range")] = None,
) -> AudioStreamResponse:
    """
    Stream the audio of *song_id* in *language*.

    The file is looked up on every request, so files added to or removed
    from the audio directory take effect without a restart.
    """
    song = catalog.get_by_id(song_id)
    if song is None:
        raise ApiError.not_found("Song not found")
    version = song.get_version(language)
    if version is None:
        raise ApiError.not_found("Language version not found")

    audio = open_audio(resolve_audio_path(settings.audio_dir, version.url))
    try:
        if audio.size == 0:
            raise AudioResourceError(f"Audio file {audio.path.name} is empty")
        plan = resolve_range(audio.size, range_header)
    except RangeNotSatisfiableError:
        audio.close()
        record_stream_request(416)
        logger.info("unsatisfiable range %r for %s", range_header, audio.path.name)
        raise
    except Exception:
        audio.close()
        raise

    record_stream_request(plan.status)
    logger.debug(
        "streaming %s bytes %d-%d/%d", audio.path.name, plan.start, plan.end, plan.total_size
    )
    return AudioStreamResponse(
        audio,
        plan,
        chunk_size=settings.stream_chunk_size,
        extra_headers={"Cache-Control": CACHE_CONTROL},
    )
