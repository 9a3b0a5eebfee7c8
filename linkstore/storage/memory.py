"""
In-Memory Backend

Keeps every mapping in a dict held by the process.

Pros:
- Very fast (no I/O)
- No external dependencies
- Good for development and testing

Cons:
- Lost on restart
- Not shared between processes
- get_by_original_url is a linear scan

All mutations go through one asyncio.Lock, so concurrent save/delete tasks
cannot interleave a check-then-insert.
"""

import asyncio
import logging
from typing import Any, Optional, Sequence

from linkstore.core.exceptions import ConflictError, OriginalURLNotFoundError
from linkstore.storage.interface import OwnershipStore, URLStore
from linkstore.storage.records import OwnerRecord, URLRecord

logger = logging.getLogger(__name__)


class InMemoryBackend(URLStore, OwnershipStore):
    """Dict-backed store with owner tracking."""

    name = "memory"

    def __init__(self):
        self._records: dict[str, URLRecord] = {}
        self._owners: dict[str, OwnerRecord] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def init(self, connection_info: Any = None) -> None:
        logger.info("In-memory backend initialized")

    async def close(self) -> None:
        pass

    async def get_by_short_key(self, short_key: str) -> Optional[URLRecord]:
        return self._records.get(short_key)

    async def get_by_original_url(self, original_url: str) -> str:
        for record in list(self._records.values()):
            if record.original_url == original_url and not record.is_deleted:
                return record.short_key
        raise OriginalURLNotFoundError(original_url)

    async def save(self, short_key: str, original_url: str, owner_id: str = "") -> None:
        async with self._lock:
            if short_key in self._records:
                raise ConflictError(f"short key '{short_key}' already exists")
            if original_url in self._active_urls():
                raise ConflictError(f"'{original_url}' already has an active short key")
            self._insert(short_key, original_url, owner_id)

    async def save_batch(self, records: Sequence[URLRecord]) -> list[str]:
        inserted = []
        async with self._lock:
            active_urls = self._active_urls()
            for record in records:
                if record.short_key in self._records or record.original_url in active_urls:
                    continue
                self._insert(record.short_key, record.original_url, record.owner_id)
                active_urls.add(record.original_url)
                inserted.append(record.short_key)
        return inserted

    def _active_urls(self) -> set[str]:
        return {record.original_url for record in self._records.values() if not record.is_deleted}

    def _insert(self, short_key: str, original_url: str, owner_id: str) -> None:
        # Caller holds the lock
        self._records[short_key] = URLRecord(
            id=self._next_id,
            short_key=short_key,
            original_url=original_url,
            owner_id=owner_id,
        )
        self._next_id += 1

    async def load_all(self) -> list[URLRecord]:
        return list(self._records.values())

    async def count(self) -> int:
        return len(self._records)

    async def ping(self) -> bool:
        return True

    async def is_owner_registered(self, owner_id: str) -> bool:
        return owner_id in self._owners

    async def register_owner(self, owner_id: str) -> None:
        async with self._lock:
            if owner_id in self._owners:
                raise ConflictError(f"owner '{owner_id}' already registered")
            self._owners[owner_id] = OwnerRecord(owner_id=owner_id)

    async def list_by_owner(self, owner_id: str) -> list[URLRecord]:
        return [
            record for record in list(self._records.values())
            if record.owner_id == owner_id and not record.is_deleted
        ]

    async def soft_delete_batch(self, owner_id: str, short_keys: Sequence[str]) -> None:
        async with self._lock:
            for short_key in short_keys:
                record = self._records.get(short_key)
                if record is None or record.owner_id != owner_id:
                    continue
                self._records[short_key] = record.model_copy(update={"is_deleted": True})

    async def count_owners(self) -> int:
        return len(self._owners)
