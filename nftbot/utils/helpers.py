"""Common utility functions."""

import re
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalize a datetime read back from the database to aware UTC.

    Some drivers (SQLite) hand back naive values; those are stored as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def split_into_thread(message: str, max_length: int = 280) -> list[str]:
    """
    Split a long message into tweet-sized parts on word boundaries.

    Parts are numbered ``1/N`` when more than one is produced.

    Args:
        message: Text to split.
        max_length: Maximum characters per part before numbering.

    Returns:
        List of tweet texts.
    """
    parts: list[str] = []
    current = ""

    for word in message.split(" "):
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_length:
            current = candidate
        else:
            if current:
                parts.append(current)
            current = word

    if current:
        parts.append(current)

    if len(parts) > 1:
        return [f"{i + 1}/{len(parts)} {part}" for i, part in enumerate(parts)]
    return parts


def clean_twitter_handle(url: str | None) -> str | None:
    """
    Turn a profile URL like ``https://x.com/someone?s=1`` into ``@someone``.

    Args:
        url: Twitter/X profile URL or bare handle.

    Returns:
        The lower-cased ``@handle`` or None when nothing usable remains.
    """
    if not url:
        return None
    handle = url.rstrip("/").split("/")[-1]
    handle = re.sub(r"\?.*", "", handle)
    handle = handle.lstrip("@").strip().lower()
    return f"@{handle}" if handle else None


def format_error(error: Exception) -> str:
    """
    Format an exception for display.

    Args:
        error: The exception to format.

    Returns:
        Human-readable error string.
    """
    error_type = type(error).__name__
    return f"{error_type}: {str(error)}"
