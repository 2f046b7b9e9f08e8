"""
Pure text normalization and formatting utilities.

Every case-insensitive comparison in the catalog goes through
``normalize_key`` so that filters, lookups and the duplicate-language
invariant can never disagree about what "the same language" means.

All functions are pure: same input always produces same output, no external state.
"""

import re

_YEAR_RE = re.compile(r"^\s*([0-9]{4})")


def normalize_key(value: str) -> str:
    """
    Normalize a string for case-insensitive comparison.

    Strips surrounding whitespace and applies ``str.casefold``, which is
    stricter than ``lower()`` for non-ASCII scripts.

    Example:
        >>> normalize_key("  HiNdI ")
        'hindi'
    """
    return value.strip().casefold()


def contains_key(haystack: str, needle: str) -> bool:
    """Return True if *needle* occurs in *haystack*, ignoring case."""
    return normalize_key(needle) in normalize_key(haystack)


def format_duration(seconds: float | int | None) -> str:
    """
    Format a duration in seconds as ``m:ss``.

    Example:
        >>> format_duration(272)
        '4:32'
    """
    if seconds is None or seconds < 0:
        return "0:00"
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


def year_from_date(value: str | None) -> int | None:
    """
    Extract the leading four-digit year from a date-like string.

    Handles ``2021``, ``2021-05-04`` and ``2021-05-04T10:00:00Z``.
    """
    if not value:
        return None
    match = _YEAR_RE.match(str(value))
    return int(match.group(1)) if match else None


def parse_int(value: str | int | None) -> int | None:
    """
    Parse a decimal integer strictly.

    Unlike ``int()``, rejects signs, blanks and trailing garbage, and
    returns None instead of raising.

    Example:
        >>> parse_int("42"), parse_int("4x"), parse_int("-1")
        (42, None, None)
    """
    if isinstance(value, int):
        return value if value >= 0 else None
    if value is None:
        return None
    text = value.strip()
    if not text.isdigit() or not text.isascii():
        return None
    return int(text)
