"""Exception hierarchy for tinylink."""


class TinyLinkError(Exception):
    """Base exception for all application-specific errors."""

    error_code = "app:tinylink_error"


class ConfigurationError(TinyLinkError):
    """Raised when the application is configured with invalid parameters."""

    error_code = "config:configuration_error"


class InvalidURLError(TinyLinkError, ValueError):
    """Raised when a submitted long URL is malformed."""

    error_code = "request:invalid_url"


class ShortLinkNotFoundError(TinyLinkError):
    """Raised when no live record exists for a short code."""

    error_code = "store:short_link_not_found"


class DuplicateCodeError(TinyLinkError):
    """Raised by a store when a short code is already taken."""

    error_code = "store:duplicate_code"


class GenerationExhaustedError(TinyLinkError):
    """Raised when no free short code was found within the retry budget."""

    error_code = "app:generation_exhausted"


class StoreUnavailableError(TinyLinkError):
    """Raised on connectivity failures with the durable store."""

    error_code = "infra:store_unavailable"


class CacheUnavailableError(TinyLinkError):
    """Raised on connectivity failures with the resolution cache."""

    error_code = "infra:cache_unavailable"
