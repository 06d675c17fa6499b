"""Short URL construction."""

from typing import Dict, Optional
from urllib.parse import quote

from .headers import build_base_url


# Route prefix of the redirect endpoint
REDIRECT_PREFIX = "shorten"


def build_short_url(
    short_code: str,
    base_url: str,
    path_prefix: str = REDIRECT_PREFIX,
) -> str:
    """Join base URL, redirect prefix and short code.

    >>> build_short_url("abc123", "https://sho.rt/")
    'https://sho.rt/shorten/abc123'
    """
    parts = [base_url.rstrip("/")]
    if path_prefix.strip("/"):
        parts.append(path_prefix.strip("/"))
    parts.append(quote(short_code, safe=""))
    return "/".join(parts)


def short_url_for_request(
    short_code: str,
    headers: Dict[str, str],
    fallback_base_url: str,
    request_scheme: Optional[str] = None,
    request_host: Optional[str] = None,
) -> str:
    """Absolute short URL as seen by the client that made the request.

    The base URL comes from proxy headers, then the request itself, then
    the configured ``BASE_URL``.
    """
    base_url = build_base_url(
        headers=headers,
        fallback_base_url=fallback_base_url,
        request_scheme=request_scheme,
        request_host=request_host,
    )
    return build_short_url(short_code, base_url)
