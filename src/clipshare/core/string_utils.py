"""String manipulation utilities used for filenames and stored error text."""

from __future__ import annotations

import re

# Anything outside this set is replaced when building package filenames
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_TITLE_DROP_CHARS = re.compile(r"[^A-Za-z0-9\s_-]")
_WHITESPACE = re.compile(r"\s+")

MAX_ERROR_LENGTH = 2000
MAX_TITLE_LENGTH = 100


def sanitize_filename_component(value: str | None, fallback: str = "untitled") -> str:
    """Replace every non-filename-safe character with an underscore.

    Args:
        value: Raw text (resource title, content title, range label).
        fallback: Used when value is empty or None.

    Returns:
        String containing only letters, digits, ``_`` and ``-``.

    Example:
        >>> sanitize_filename_component("Goal! (2nd half)")
        'Goal___2nd_half_'
    """
    if not value:
        value = fallback
    return _UNSAFE_FILENAME_CHARS.sub("_", value)


def clean_video_title(title: str | None) -> str:
    """Turn a video-host title into a filename stem.

    Special characters are dropped (not replaced), whitespace runs become a
    single underscore, and the result is capped at 100 characters.
    """
    title = title or "Untitled Video"
    cleaned = _TITLE_DROP_CHARS.sub("", title)
    cleaned = _WHITESPACE.sub("_", cleaned)
    return cleaned[:MAX_TITLE_LENGTH]


def truncate_error(message: str, limit: int = MAX_ERROR_LENGTH) -> str:
    """Truncate an error message for storage, keeping the head."""
    if len(message) <= limit:
        return message
    return message[: limit - 15] + "... [truncated]"
