"""Data models for tinylink."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass
class ShortLink:
    """Represents a short link record in the durable store."""

    long_url: str
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    short_code: Optional[str] = None
    access_count: int = 0
    id: Optional[int] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the record is past its retention window."""
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "long_url": self.long_url,
            "short_code": self.short_code,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "access_count": self.access_count,
        }

    @classmethod
    def from_row(cls, row) -> "ShortLink":
        """Create from a database row or mapping."""
        return cls(
            id=row["id"],
            long_url=row["long_url"],
            short_code=row["short_code"],
            created_at=_as_utc(row["created_at"]),
            updated_at=_as_utc(row["updated_at"]),
            expires_at=_as_utc(row["expires_at"]),
            access_count=row["access_count"],
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
