"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ShortenRequest(BaseModel):
    """Request to shorten a URL, or to repoint an existing short code."""

    url: str = Field(..., description="The URL to shorten", min_length=1, max_length=2048)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"url": "https://example.com/very/long/path/to/resource"},
            ]
        }
    }


class ShortLinkResponse(BaseModel):
    """A short link record as exposed over HTTP (camelCase field names)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    url: str = Field(..., description="The original long URL")
    short_code: str = Field(..., description="The short code")
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    access_count: int = Field(..., description="Successful resolutions so far")

    @classmethod
    def from_link(cls, link, **extra) -> "ShortLinkResponse":
        return cls(
            id=link.id,
            url=link.long_url,
            short_code=link.short_code,
            created_at=link.created_at,
            updated_at=link.updated_at,
            expires_at=link.expires_at,
            access_count=link.access_count,
            **extra,
        )


class ShortenResponse(ShortLinkResponse):
    """Response after shortening a URL."""

    short_url: str = Field(..., description="The complete short URL")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    database: str = Field(..., description="Database status")
    cache: str = Field(..., description="Cache status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str = Field(..., description="Error message")


class RateLimitResponse(ErrorResponse):
    """Response when a client exceeds its request budget."""

    limit: int = Field(..., description="Requests accepted per window")
    time_window: int = Field(..., description="Window length in seconds")
    retry_after: Optional[int] = Field(None, description="Seconds until requests are accepted again")
