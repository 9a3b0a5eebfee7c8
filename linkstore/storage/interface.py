"""
Storage Capability Interfaces

Persistence is split into two capabilities so a backend only implements what
it actually supports:

- URLStore: lookup, insert and bulk insert of URL mappings (every backend)
- OwnershipStore: owner registration, owner-scoped listing and soft delete

Callers check supports_ownership() instead of receiving silent no-ops from a
backend that cannot track owners (the log file backend).
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from linkstore.storage.records import URLRecord


class URLStore(ABC):
    """
    Abstract base class for URL persistence.

    All methods are async because backends perform I/O (file or network).
    """

    name: str = "url-store"

    @abstractmethod
    async def init(self, connection_info: Any = None) -> None:
        """
        Prepare the backend (open pools, create tables, touch files).

        Args:
            connection_info: Backend-specific location (DSN, file path) or None
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""
        pass

    @abstractmethod
    async def get_by_short_key(self, short_key: str) -> Optional[URLRecord]:
        """
        Look up a record by short key.

        Deleted records are returned too; the caller decides how to report them.

        Returns:
            URLRecord or None if the key is unknown
        """
        pass

    @abstractmethod
    async def get_by_original_url(self, original_url: str) -> str:
        """
        Find the active short key of an original URL.

        Raises:
            OriginalURLNotFoundError: If no active mapping exists
            StorageError: If the lookup itself fails
        """
        pass

    @abstractmethod
    async def save(self, short_key: str, original_url: str, owner_id: str = "") -> None:
        """
        Insert a new mapping.

        Raises:
            ConflictError: If the short key is already taken, or the URL
                already has an active (non-deleted) mapping
            StorageError: On I/O or database failure
        """
        pass

    @abstractmethod
    async def save_batch(self, records: Sequence[URLRecord]) -> list[str]:
        """
        Idempotent bulk insert.

        Rows whose short key already exists (including re-sent identical
        (url, short_key) pairs) or whose URL already has an active mapping
        are skipped without error.

        Returns:
            Short keys of the rows actually inserted

        Raises:
            StorageError: On I/O or database failure
        """
        pass

    @abstractmethod
    async def load_all(self) -> list[URLRecord]:
        """Return every stored record in insertion order."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Return the number of stored records."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Liveness check."""
        pass


class OwnershipStore(ABC):
    """Abstract base class for owner tracking and owner-scoped soft delete."""

    @abstractmethod
    async def is_owner_registered(self, owner_id: str) -> bool:
        pass

    @abstractmethod
    async def register_owner(self, owner_id: str) -> None:
        """
        Register an owner identity.

        Raises:
            ConflictError: If the owner is already registered
        """
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[URLRecord]:
        """Return the owner's non-deleted records."""
        pass

    @abstractmethod
    async def soft_delete_batch(self, owner_id: str, short_keys: Sequence[str]) -> None:
        """
        Mark the listed keys deleted.

        Only keys owned by owner_id are affected; keys of other owners
        and unknown keys are ignored.
        """
        pass

    @abstractmethod
    async def count_owners(self) -> int:
        pass


def supports_ownership(store: Any) -> bool:
    """Return True if the backend implements OwnershipStore."""
    return isinstance(store, OwnershipStore)
