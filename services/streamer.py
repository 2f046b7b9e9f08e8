"""
Audio byte streaming.

Locates a language version's audio file inside the configured audio
directory, opens it, and transfers a resolved byte window to the client.

Lives in services/ because it performs file I/O (core/ must remain pure).
The byte window itself comes from ``core.ranges.resolve_range``.

Lifecycle of one stream::

    audio = open_audio(path)             # open + fstat in one step
    plan = resolve_range(audio.size, header)
    return AudioStreamResponse(audio, plan)   # closes ``audio`` on every exit path
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path, PurePosixPath
from typing import BinaryIO
from urllib.parse import unquote, urlparse

from starlette.requests import ClientDisconnect
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from core.ranges import ServingPlan
from infrastructure.metrics import record_stream_aborted, record_stream_bytes

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/mpeg"

MIME_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
}


class AudioResourceError(Exception):
    """The audio file exists but cannot be served consistently."""


class AudioFileNotFoundError(AudioResourceError, FileNotFoundError):
    """No audio file at the resolved location (or it vanished before open)."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"Audio file not found: {self.path.name}")


class TruncatedAudioError(AudioResourceError):
    """The file ended before the declared byte window was transferred."""

    def __init__(self, path: Path, expected: int, sent: int) -> None:
        self.path = path
        self.expected = expected
        self.sent = sent
        super().__init__(
            f"Audio file {path.name} truncated: sent {sent} of {expected} bytes"
        )


def mime_type_for(path: Path | str) -> str:
    """Return the audio MIME type for *path*'s extension (``audio/mpeg`` if unknown)."""
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def resolve_audio_path(audio_dir: Path, reference: str) -> Path:
    """
    Map a version's audio URL or file reference to a path in *audio_dir*.

    Only the final path segment is used, so references can never escape
    the audio directory.

    Example:
        >>> resolve_audio_path(Path("/srv/audio"), "http://host/audio/naatu_hindi.mp3")
        PosixPath('/srv/audio/naatu_hindi.mp3')

    Raises:
        AudioFileNotFoundError: If the reference has no usable file name.
    """
    raw_path = urlparse(reference).path if "://" in reference else reference
    name = PurePosixPath(unquote(raw_path).replace("\\", "/")).name
    if not name or name in (".", ".."):
        raise AudioFileNotFoundError(reference)
    return audio_dir / name


class AudioStream:
    """
    An open audio file with its size captured from the same handle.

    Args:
        path: Location of the file (for logging and MIME lookup).
        handle: Binary file object positioned anywhere.
        size: Size in bytes taken from ``fstat`` of *handle*.
    """

    def __init__(self, path: Path, handle: BinaryIO, size: int) -> None:
        self.path = path
        self.size = size
        self._handle: BinaryIO | None = handle

    @property
    def closed(self) -> bool:
        return self._handle is None

    @property
    def media_type(self) -> str:
        return mime_type_for(self.path)

    def close(self) -> None:
        """Release the file handle. Safe to call more than once."""
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()

    def __enter__(self) -> AudioStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def iter_range(self, start: int, length: int, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """
        Yield exactly *length* bytes beginning at offset *start*.

        Raises:
            ValueError: If the stream was already closed.
            TruncatedAudioError: If the file ends before *length* bytes were read.
        """
        if self._handle is None:
            raise ValueError("audio stream is closed")
        handle = self._handle
        handle.seek(start)
        remaining = length
        while remaining > 0:
            chunk = handle.read(min(chunk_size, remaining))
            if not chunk:
                raise TruncatedAudioError(self.path, expected=length, sent=length - remaining)
            remaining -= len(chunk)
            yield chunk


def open_audio(path: Path) -> AudioStream:
    """
    Open *path* for streaming and read its size from the open descriptor.

    Existence check, size lookup and open happen as one step: a file that
    disappears between the catalog lookup and this call surfaces as
    ``AudioFileNotFoundError``, never as a generic fault.

    Raises:
        AudioFileNotFoundError: Missing file, or *path* is a directory.
        AudioResourceError: The file exists but cannot be opened.
    """
    try:
        handle = open(path, "rb")  # noqa: SIM115  ownership passes to AudioStream
    except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
        raise AudioFileNotFoundError(path) from exc
    except OSError as exc:
        raise AudioResourceError(f"Cannot open audio file {path.name}: {exc}") from exc

    try:
        size = os.fstat(handle.fileno()).st_size
    except OSError as exc:
        handle.close()
        raise AudioResourceError(f"Cannot stat audio file {path.name}: {exc}") from exc
    return AudioStream(path, handle, size)


class AudioStreamResponse(StreamingResponse):
    """
    Streaming response that owns an ``AudioStream``.

    The file handle is closed in ``finally`` once the ASGI cycle ends,
    whether the transfer completed, the client went away mid-write, or
    the request task was cancelled. Client write failures are logged and
    swallowed; a truncated source file is logged and re-raised so the
    server aborts the connection instead of completing a short body.

    Args:
        audio: Open audio stream; ownership is transferred to the response.
        plan: Resolved byte window.
        chunk_size: Read size per iteration.
        extra_headers: Additional headers (e.g. cache control).
    """

    def __init__(
        self,
        audio: AudioStream,
        plan: ServingPlan,
        *,
        chunk_size: int = 64 * 1024,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        self.audio = audio
        self.plan = plan
        self.bytes_sent = 0
        headers = {**plan.headers(), **(extra_headers or {})}
        super().__init__(
            self._counted(audio.iter_range(plan.start, plan.length, chunk_size)),
            status_code=plan.status,
            headers=headers,
            media_type=audio.media_type,
        )

    def _counted(self, chunks: Iterator[bytes]) -> Iterator[bytes]:
        for chunk in chunks:
            self.bytes_sent += len(chunk)
            yield chunk

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except TruncatedAudioError as exc:
            logger.error("Stream aborted: %s", exc)
            record_stream_aborted("truncated")
            raise
        except (ClientDisconnect, OSError) as exc:
            # Client disconnected or the socket broke mid-write.
            logger.warning(
                "Stream of %s abandoned after %d bytes: %s",
                self.audio.path.name,
                self.bytes_sent,
                exc,
            )
            record_stream_aborted("client_write_error")
        finally:
            self.audio.close()
            record_stream_bytes(self.bytes_sent)
