"""
HTTP byte-range resolution.

Turns a resource size and an optional ``Range`` header into a serving
plan: the status code, the inclusive byte window and the response headers.
Pure function of its inputs, no I/O.

Supported form: a single ``bytes=<start>-[<end>]`` range. An ``end`` past
the last byte is clamped (RFC 7233 §2.1). Anything else that was sent but
cannot be honoured raises ``RangeNotSatisfiableError`` rather than falling
back to a full response, so the route can answer 416.

Usage::

    plan = resolve_range(1000, "bytes=200-499")
    plan.status, plan.start, plan.end, plan.length   # (206, 200, 499, 300)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_RANGE_RE = re.compile(
    r"^\s*bytes\s*=\s*([0-9]+)\s*-\s*([0-9]*)\s*$", re.IGNORECASE | re.ASCII
)


class RangeNotSatisfiableError(Exception):
    """The ``Range`` header is malformed or lies outside the resource.

    Args:
        total_size: Size of the resource, echoed as ``Content-Range: bytes */N``.
        range_header: The offending header value.
    """

    def __init__(self, total_size: int, range_header: str) -> None:
        self.total_size = total_size
        self.range_header = range_header
        super().__init__(f"Range {range_header!r} not satisfiable for {total_size} bytes")

    @property
    def content_range(self) -> str:
        return f"bytes */{self.total_size}"


@dataclass(frozen=True)
class ServingPlan:
    """Resolved byte window for one response.

    Attributes:
        status: 200 for a full response, 206 for partial content.
        start: First byte offset (inclusive).
        end: Last byte offset (inclusive).
        total_size: Size of the whole resource.
    """

    status: int
    start: int
    end: int
    total_size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def partial(self) -> bool:
        return self.status == 206

    def headers(self) -> dict[str, str]:
        """Headers describing the byte window (content type is added by the caller)."""
        headers = {
            "Accept-Ranges": "bytes",
            "Content-Length": str(self.length),
        }
        if self.partial:
            headers["Content-Range"] = f"bytes {self.start}-{self.end}/{self.total_size}"
        return headers


def resolve_range(total_size: int, range_header: str | None) -> ServingPlan:
    """
    Compute the serving plan for a resource of *total_size* bytes.

    Args:
        total_size: Resource size in bytes. Must be positive.
        range_header: Raw ``Range`` header value, or None when absent.

    Returns:
        A 200 plan covering the whole resource when no range was sent,
        otherwise a 206 plan for the requested window.

    Raises:
        ValueError: If *total_size* is not positive.
        RangeNotSatisfiableError: If the header is malformed, asks for
            several ranges, or starts beyond the resource or after its end.

    Example:
        >>> resolve_range(1000, "bytes=900-")
        ServingPlan(status=206, start=900, end=999, total_size=1000)
    """
    if total_size <= 0:
        raise ValueError(f"total_size must be positive, got {total_size}")

    if range_header is None:
        return ServingPlan(status=200, start=0, end=total_size - 1, total_size=total_size)

    match = _RANGE_RE.match(range_header)
    if not match:
        raise RangeNotSatisfiableError(total_size, range_header)

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else total_size - 1

    if start >= total_size or start > end:
        raise RangeNotSatisfiableError(total_size, range_header)

    return ServingPlan(
        status=206,
        start=start,
        end=min(end, total_size - 1),
        total_size=total_size,
    )
