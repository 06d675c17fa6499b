"""Validation utilities for tinylink."""

from typing import Tuple
from urllib.parse import urlsplit


MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = ("http", "https")


def is_valid_url(url: str) -> Tuple[bool, str]:
    """Check that ``url`` is an absolute http(s) URL worth redirecting to.

    Returns:
        Tuple of (is_valid, error_message); the message is empty when valid
    """
    if not isinstance(url, str) or not url:
        return False, "URL is required"
    if len(url) > MAX_URL_LENGTH:
        return False, f"URL is too long (max {MAX_URL_LENGTH} characters)"
    if any(c.isspace() for c in url):
        return False, "URL must not contain whitespace"

    try:
        parts = urlsplit(url)
        # .port raises ValueError when out of range
        parts.port
    except ValueError as e:
        return False, f"Invalid URL format: {e}"

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return False, "URL must use http or https protocol"
    if not parts.hostname:
        return False, "URL must have a valid domain"

    return True, ""
