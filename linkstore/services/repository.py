"""
Repository Facades

Thin, caller-facing wrappers over a backend:
- URLRepository: URL lookup and persistence (every backend)
- OwnerRepository: owner registration, listing and soft delete (ownership backends)

OwnerRepository checks the capability once; calling it against a backend
without OwnershipStore raises CapabilityNotSupportedError instead of
pretending to succeed.
"""

import logging
from typing import Optional, Sequence

from linkstore.core.exceptions import CapabilityNotSupportedError, ConflictError, ShortKeyNotFoundError
from linkstore.core.validators import sanitize_short_key
from linkstore.storage.interface import OwnershipStore, URLStore, supports_ownership
from linkstore.storage.records import URLRecord

logger = logging.getLogger(__name__)


class URLRepository:
    """URL mapping access."""

    def __init__(self, store: URLStore):
        self.store = store

    async def get_url(self, short_key: str) -> URLRecord:
        """
        Resolve a short key.

        Deleted records are returned with is_deleted=True so callers can
        answer "gone" rather than "not found".

        Raises:
            ShortKeyNotFoundError: If the key is malformed or unknown
        """
        clean_key = sanitize_short_key(short_key)
        if clean_key is None:
            raise ShortKeyNotFoundError(short_key)

        record = await self.store.get_by_short_key(clean_key)
        if record is None:
            raise ShortKeyNotFoundError(short_key)
        return record

    async def get_short_key(self, original_url: str) -> str:
        return await self.store.get_by_original_url(original_url)

    async def save(self, short_key: str, original_url: str, owner_id: str = "") -> None:
        await self.store.save(short_key, original_url, owner_id)

    async def save_batch(self, records: Sequence[URLRecord]) -> list[str]:
        return await self.store.save_batch(records)

    async def load_all(self) -> list[URLRecord]:
        return await self.store.load_all()

    async def count(self) -> int:
        return await self.store.count()

    async def ping(self) -> bool:
        return await self.store.ping()


class OwnerRepository:
    """Owner-scoped access; requires an OwnershipStore backend."""

    def __init__(self, store: URLStore):
        self.store = store
        self._ownership: Optional[OwnershipStore] = store if supports_ownership(store) else None

    @property
    def supported(self) -> bool:
        return self._ownership is not None

    def _require(self, capability: str) -> OwnershipStore:
        if self._ownership is None:
            raise CapabilityNotSupportedError(self.store.name, capability)
        return self._ownership

    async def is_registered(self, owner_id: str) -> bool:
        return await self._require("owner registration").is_owner_registered(owner_id)

    async def register(self, owner_id: str) -> None:
        await self._require("owner registration").register_owner(owner_id)

    async def ensure_registered(self, owner_id: str) -> bool:
        """
        Register owner_id the first time it is seen.

        Returns:
            True if this call created the registration
        """
        store = self._require("owner registration")
        if await store.is_owner_registered(owner_id):
            return False

        try:
            await store.register_owner(owner_id)
        except ConflictError:
            # Registered concurrently
            return False

        logger.info(f"Registered owner {owner_id}")
        return True

    async def list_owner_urls(self, owner_id: str) -> list[URLRecord]:
        return await self._require("owner listing").list_by_owner(owner_id)

    async def delete_owner_urls(self, owner_id: str, short_keys: Sequence[str]) -> None:
        """Soft-delete keys synchronously, bypassing the deletion pipeline."""
        await self._require("soft delete").soft_delete_batch(owner_id, short_keys)

    async def count(self) -> int:
        return await self._require("owner counting").count_owners()
