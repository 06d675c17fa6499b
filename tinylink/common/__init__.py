"""Common utilities for tinylink."""

from .validators import is_valid_url
from .headers import extract_forwarded_headers, build_base_url, client_identity
from .url_builder import build_short_url, short_url_for_request
from .logging_config import setup_logging

__all__ = [
    "is_valid_url",
    "extract_forwarded_headers",
    "build_base_url",
    "client_identity",
    "build_short_url",
    "short_url_for_request",
    "setup_logging",
]
