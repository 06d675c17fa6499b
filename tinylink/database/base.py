"""Abstract base class for tinylink durable store implementations."""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import ShortLink


class ShortLinkStoreBase(ABC):
    """Abstract base class for short link storage operations.

    Implementations must be safe to call concurrently from many request
    tasks and must enforce uniqueness of ``short_code`` themselves.
    """

    @abstractmethod
    async def insert(self, link: ShortLink) -> ShortLink:
        """Insert a new short link record.

        Args:
            link: Record to insert. ``id`` is ignored and assigned by the store;
                ``short_code`` may be None for a two-phase create.

        Returns:
            The stored record with its ``id`` populated

        Raises:
            DuplicateCodeError: If ``short_code`` is already taken
            StoreUnavailableError: On connectivity failures
        """
        pass

    @abstractmethod
    async def find_by_code(self, short_code: str) -> ShortLink:
        """Get the record for a short code.

        Args:
            short_code: The short code to lookup

        Returns:
            The stored record

        Raises:
            ShortLinkNotFoundError: If no record has this code
            StoreUnavailableError: On connectivity failures
        """
        pass

    @abstractmethod
    async def save(self, link: ShortLink) -> ShortLink:
        """Upsert a record by primary key.

        ``access_count`` is never lowered by a save.

        Args:
            link: Record with ``id`` set

        Returns:
            The stored record

        Raises:
            DuplicateCodeError: If the new ``short_code`` is already taken
            StoreUnavailableError: On connectivity failures
        """
        pass

    @abstractmethod
    async def delete_by_code(self, short_code: str) -> None:
        """Delete the record for a short code.

        Raises:
            ShortLinkNotFoundError: If no record has this code
            StoreUnavailableError: On connectivity failures
        """
        pass

    @abstractmethod
    async def delete_expired_before(self, now: datetime) -> int:
        """Delete every record whose ``expires_at`` is at or before ``now``.

        Returns:
            Number of deleted records
        """
        pass

    @abstractmethod
    async def increment_access_count(self, short_code: str) -> bool:
        """Atomically add one to the access count of a short code.

        Returns:
            True if a record was updated, False if the code does not exist
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the store is healthy."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close store connections."""
        pass
