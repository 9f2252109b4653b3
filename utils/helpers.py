"""
Helper Utility Module

This module provides various helper functions used throughout the Tweet Comment Automator.
"""

import os
from typing import Optional, Dict, Any, Sequence
from datetime import datetime, timezone

from utils.exceptions import ValidationError


_MISSING = object()


def safe_get(data: Dict[str, Any], *keys, default: Any = None) -> Any:
    """
    Safely get a value from a nested dictionary.

    Args:
        data: The dictionary to search
        *keys: The keys to follow
        default: Default value if key doesn't exist

    Returns:
        The value at the specified keys or the default value
    """
    for key in keys:
        try:
            data = data[key]
        except (KeyError, TypeError, IndexError):
            return default
    return data


def first_present(data: Dict[str, Any], paths: Sequence[Sequence[str]], default: Any = None) -> Any:
    """
    Return the first truthy value found along an ordered list of key paths.

    Args:
        data: The dictionary to search
        paths: Key paths tried in order, e.g. [("author", "username"), ("username",)]
        default: Value returned when every path is missing or empty

    Returns:
        The first truthy value, or the default
    """
    for path in paths:
        value = safe_get(data, *path, default=_MISSING)
        if value is not _MISSING and value not in (None, "", 0):
            return value
    return default


def truncate_text(text: str, max_length: int = 100, add_ellipsis: bool = True) -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: The text to truncate
        max_length: Maximum length
        add_ellipsis: Whether to add an ellipsis if text is truncated

    Returns:
        str: Truncated text
    """
    if not text or len(text) <= max_length:
        return text

    truncated = text[:max_length].rstrip()
    if add_ellipsis:
        truncated += "..."

    return truncated


def normalize_count(value: Any, minimum: int, maximum: int, name: str) -> int:
    """
    Validate a per-item count coming from the caller.

    Values below the minimum are rejected; values above the maximum are
    clamped down to it.

    Raises:
        ValidationError: If the value is not an integer or is below the minimum.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if count != value and not isinstance(value, str):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if count < minimum:
        raise ValidationError(f"{name} must be at least {minimum}, got {count}")
    return min(count, maximum)


def clamp_count(value: Any, minimum: int, maximum: int, default: int) -> int:
    """
    Force a stored count into range, falling back to the default when unreadable.
    """
    try:
        count = int(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, min(maximum, count))


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Format a moment as ISO-8601 UTC with millisecond precision and a 'Z' suffix.
    """
    moment = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def date_stamp(moment: Optional[datetime] = None) -> str:
    """UTC calendar date (YYYY-MM-DD) used in export file names."""
    return iso_timestamp(moment).split('T')[0]


def ensure_dir_exists(directory: str) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        directory: The directory path to check/create
    """
    if not os.path.exists(directory):
        os.makedirs(directory)
