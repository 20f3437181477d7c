"""
Input validation utilities for the Warden bot.

This module sanitizes the free-text fields of a scam report, extracts links
from descriptions, and applies the cheap attachment checks (declared size and
extension) that run before anything is downloaded.
"""

import re
from typing import Any, Iterable, List, Optional, Pattern

from utils.exceptions import AttachmentError

MAX_TEXT_LENGTH = 2000

# Characters stripped from user supplied text before it is stored or echoed
_UNSAFE_CHARS: Pattern = re.compile(r"[<>\"']")

LINK_PATTERN: Pattern = re.compile(r"https?://[^\s]+")

_DISCORD_ID_PATTERN: Pattern = re.compile(r"^\d{15,21}$")


def sanitize_input(value: Any, max_length: int = MAX_TEXT_LENGTH) -> str:
    """
    Sanitize a free-text field.

    Angle brackets and quote characters are removed, surrounding whitespace is
    trimmed, and the result is truncated to ``max_length`` characters.

    Args:
        value: The value to sanitize. ``None`` becomes an empty string.
        max_length: Maximum length of the result

    Returns:
        The sanitized string
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)

    return _UNSAFE_CHARS.sub("", value).strip()[:max_length]


def sanitize_optional(value: Any, max_length: int = MAX_TEXT_LENGTH) -> Optional[str]:
    """Like ``sanitize_input`` but maps empty results to ``None``."""
    cleaned = sanitize_input(value, max_length)
    return cleaned or None


def extract_links(text: Optional[str]) -> List[str]:
    """Return every http(s) URL in ``text``, in order of appearance."""
    if not text:
        return []
    return LINK_PATTERN.findall(text)


def parse_discord_id(value: Optional[str]) -> Optional[int]:
    """Return ``value`` as a snowflake ID, or ``None`` if it does not look like one."""
    if not value:
        return None
    value = value.strip()
    if value.startswith("<@") and value.endswith(">"):
        value = value[2:-1].lstrip("!")
    if not _DISCORD_ID_PATTERN.match(value):
        return None
    return int(value)


def file_extension(filename: str) -> str:
    """Lower-cased text after the last dot, or an empty string."""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def validate_attachment(
    filename: str,
    size: int,
    max_file_size: int,
    allowed_file_types: Iterable[str],
) -> None:
    """
    Check an attachment's declared size and extension.

    Args:
        filename: The attachment's file name
        size: Declared size in bytes
        max_file_size: Maximum allowed size in bytes
        allowed_file_types: Allowed lower-case extensions

    Raises:
        AttachmentError: If the file is too large or its type is not allowed
    """
    if size > max_file_size:
        limit_mb = max_file_size / 1024 / 1024
        raise AttachmentError(
            filename,
            f"File size exceeds maximum allowed size of {limit_mb:g}MB",
        )

    allowed = list(allowed_file_types)
    extension = file_extension(filename)
    if extension not in allowed:
        shown = f".{extension}" if extension else "(none)"
        raise AttachmentError(
            filename,
            f"File type {shown} is not allowed. Allowed types: {', '.join(allowed)}",
        )
