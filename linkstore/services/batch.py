"""
Batch Ingestion

Shortens many URLs in one call. New rows are buffered and written in chunks
through save_batch so a large request does not become one statement per URL.

Chunks are committed independently: if chunk N fails, chunks before it stay
written and BatchIngestionError reports how many rows made it.

Design Decisions:
- Keys are unique within a pending chunk; a repeated draw is regenerated
  up to MAX_KEY_ATTEMPTS times
- save_batch reports the keys it inserted; a row it skipped is re-resolved
  by URL (ALREADY_EXISTS when another writer mapped it) or reported FAILED,
  never CREATED
"""

import logging
from typing import Optional, Sequence

from pydantic import BaseModel

from linkstore.core.exceptions import BatchIngestionError, LinkStoreError, OriginalURLNotFoundError, StorageError
from linkstore.services.assignment import AssignmentStatus, validate_original_url
from linkstore.services.key_generator import KeyGenerator
from linkstore.storage.interface import URLStore
from linkstore.storage.records import URLRecord

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
MAX_KEY_ATTEMPTS = 5


class BatchItem(BaseModel):
    """One URL of a batch request."""
    correlation_id: str
    original_url: str


class BatchResult(BaseModel):
    """Short key answer for one BatchItem (short_key is None when FAILED)."""
    correlation_id: str
    short_key: Optional[str] = None
    status: AssignmentStatus


class _PendingChunk:
    """Rows waiting for the next save_batch, with the result slots they fill."""

    def __init__(self):
        self.records: list[URLRecord] = []
        self.keys: set[str] = set()
        self.key_by_url: dict[str, str] = {}
        self.positions: dict[str, list[int]] = {}

    def __len__(self) -> int:
        return len(self.records)

    def add(self, record: URLRecord, position: int) -> None:
        self.records.append(record)
        self.keys.add(record.short_key)
        self.key_by_url[record.original_url] = record.short_key
        self.positions[record.original_url] = [position]


class BatchIngestor:
    """Chunked, dedup-aware bulk shortening."""

    def __init__(
        self,
        store: URLStore,
        key_generator: Optional[KeyGenerator] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.store = store
        self.key_generator = key_generator or KeyGenerator()
        self.chunk_size = chunk_size

    async def ingest(self, items: Sequence[BatchItem], owner_id: str = "") -> list[BatchResult]:
        """
        Shorten every item, reusing existing keys.

        Args:
            items: URLs with caller correlation ids
            owner_id: Owner recorded on new mappings

        Returns:
            One BatchResult per item, in input order

        Raises:
            InvalidURLError: If any item fails validation (nothing is written)
            BatchIngestionError: If a chunk flush fails
            StorageError: If a lookup fails (earlier chunks stay committed)
        """
        for item in items:
            validate_original_url(item.original_url)

        results: list[BatchResult] = []
        chunk = _PendingChunk()
        committed = 0

        for position, item in enumerate(items):
            url = item.original_url

            if url in chunk.key_by_url:
                chunk.positions[url].append(position)
                results.append(BatchResult(
                    correlation_id=item.correlation_id,
                    short_key=chunk.key_by_url[url],
                    status=AssignmentStatus.ALREADY_EXISTS,
                ))
                continue

            existing = await self._lookup(url, committed)
            if existing is not None:
                results.append(BatchResult(
                    correlation_id=item.correlation_id,
                    short_key=existing,
                    status=AssignmentStatus.ALREADY_EXISTS,
                ))
                continue

            short_key = self._fresh_key(chunk.keys)
            if short_key is None:
                logger.warning(f"No free key for {url} after {MAX_KEY_ATTEMPTS} draws")
                results.append(BatchResult(
                    correlation_id=item.correlation_id,
                    status=AssignmentStatus.FAILED,
                ))
                continue

            chunk.add(URLRecord(short_key=short_key, original_url=url, owner_id=owner_id), position)
            results.append(BatchResult(
                correlation_id=item.correlation_id,
                short_key=short_key,
                status=AssignmentStatus.CREATED,
            ))

            if len(chunk) >= self.chunk_size:
                committed = await self._flush(chunk, results, committed)
                chunk = _PendingChunk()

        if len(chunk):
            committed = await self._flush(chunk, results, committed)

        logger.info(f"Batch ingested: {len(items)} items, {committed} new rows")
        return results

    def _fresh_key(self, taken: set[str]) -> Optional[str]:
        for _ in range(MAX_KEY_ATTEMPTS):
            short_key = self.key_generator.generate()
            if short_key not in taken:
                return short_key
        return None

    async def _lookup(self, url: str, committed: int) -> Optional[str]:
        try:
            return await self.store.get_by_original_url(url)
        except OriginalURLNotFoundError:
            return None
        except LinkStoreError as e:
            logger.error(f"Batch lookup of {url} failed after {committed} rows", exc_info=True)
            raise StorageError(f"batch lookup failed: {e}", original_error=e)

    async def _flush(self, chunk: _PendingChunk, results: list[BatchResult], committed: int) -> int:
        try:
            inserted = set(await self.store.save_batch(chunk.records))
        except LinkStoreError as e:
            logger.error(
                f"Batch chunk of {len(chunk)} failed, {committed} rows already committed",
                exc_info=True
            )
            raise BatchIngestionError(
                f"chunk flush failed: {e}",
                committed=committed,
                original_error=e
            )
        committed += len(inserted)

        for record in chunk.records:
            if record.short_key in inserted:
                continue

            # Skipped by the backend: key taken by another URL, or URL mapped meanwhile
            existing = await self._lookup(record.original_url, committed)
            if existing is not None:
                status, short_key = AssignmentStatus.ALREADY_EXISTS, existing
            else:
                logger.warning(f"Key {record.short_key} for {record.original_url} was already taken")
                status, short_key = AssignmentStatus.FAILED, None

            for position in chunk.positions[record.original_url]:
                results[position] = BatchResult(
                    correlation_id=results[position].correlation_id,
                    short_key=short_key,
                    status=status,
                )

        return committed
