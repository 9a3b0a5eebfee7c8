"""
Link Store Manager

Composes a backend with the repositories, the key assigner, the batch
ingestor and the deletion worker, and manages the process-wide instance.

Design:
- Singleton pattern: one LinkStore per process via initialize_store()
- Initialized on application startup, shut down on exit
- The deletion worker only exists for backends with owner support;
  ownership operations on other backends raise CapabilityNotSupportedError
"""

import logging
from typing import Iterable, Optional, Sequence

from linkstore.core.exceptions import CapabilityNotSupportedError
from linkstore.core.logging_config import setup_logging
from linkstore.core.setting import Settings, settings as default_settings
from linkstore.services.assignment import Assignment, ShortKeyAssigner
from linkstore.services.batch import BatchIngestor, BatchItem, BatchResult
from linkstore.services.deletion import DeletionWorker
from linkstore.services.key_generator import KeyGenerator
from linkstore.services.repository import OwnerRepository, URLRepository
from linkstore.storage.factory import StorageBackend, StorageFactory, backend_from_settings
from linkstore.storage.interface import URLStore
from linkstore.storage.records import StoreStats, URLRecord

logger = logging.getLogger(__name__)


class LinkStore:
    """
    Storage engine entry point.

    Usage:
        store = LinkStore(InMemoryBackend())
        await store.start()
        assignment = await store.shorten("https://example.com", owner_id="u1")
        await store.close()
    """

    def __init__(
        self,
        backend: URLStore,
        config: Optional[Settings] = None,
        key_generator: Optional[KeyGenerator] = None,
        connection_info: Optional[str] = None
    ):
        """
        Args:
            backend: Uninitialized backend
            config: Settings for batching and deletion knobs (defaults to global settings)
            key_generator: Source of short keys (default: SHORT_KEY_LENGTH random keys)
            connection_info: Passed to backend.init()
        """
        self.config = config or default_settings
        self.backend = backend
        self.connection_info = connection_info
        self.key_generator = key_generator or KeyGenerator(self.config.SHORT_KEY_LENGTH)

        self.urls = URLRepository(backend)
        self.owners = OwnerRepository(backend)
        self.assigner = ShortKeyAssigner(backend, self.key_generator)
        self.ingestor = BatchIngestor(
            backend,
            self.key_generator,
            chunk_size=self.config.BATCH_CHUNK_SIZE
        )
        self.deletion_worker: Optional[DeletionWorker] = None
        if self.owners.supported:
            self.deletion_worker = DeletionWorker(
                backend,
                batch_size=self.config.DELETION_BATCH_SIZE,
                flush_interval=self.config.DELETION_FLUSH_INTERVAL,
                queue_size=self.config.DELETION_QUEUE_SIZE,
                max_retries=self.config.DELETION_MAX_RETRIES,
                retry_backoff=self.config.DELETION_RETRY_BACKOFF,
            )
        self._started = False

    @property
    def supports_ownership(self) -> bool:
        return self.owners.supported

    async def start(self) -> None:
        """Initialize the backend and start the deletion worker."""
        if self._started:
            return
        await self.backend.init(self.connection_info)
        if self.deletion_worker is not None:
            self.deletion_worker.start()
        self._started = True
        logger.info(f"Link store started on {self.backend.name} backend")

    async def close(self) -> None:
        """Flush pending deletions and release the backend."""
        if not self._started:
            return
        try:
            if self.deletion_worker is not None:
                await self.deletion_worker.stop()
        finally:
            await self.backend.close()
            self._started = False
            logger.info("Link store closed")

    async def shorten(self, url: str, owner_id: str = "") -> Assignment:
        """Return the short key for url, creating it if needed."""
        if owner_id and self.owners.supported:
            await self.owners.ensure_registered(owner_id)
        return await self.assigner.get_or_create_short_key(url, owner_id)

    async def shorten_batch(self, items: Sequence[BatchItem], owner_id: str = "") -> list[BatchResult]:
        if owner_id and self.owners.supported:
            await self.owners.ensure_registered(owner_id)
        return await self.ingestor.ingest(items, owner_id)

    async def get_url(self, short_key: str) -> URLRecord:
        return await self.urls.get_url(short_key)

    def full_url(self, short_key: str) -> str:
        """Public short URL of a key, under BASE_URL."""
        return f"{self.config.BASE_URL.rstrip('/')}/{short_key}"

    async def list_owner_urls(self, owner_id: str) -> list[URLRecord]:
        return await self.owners.list_owner_urls(owner_id)

    async def request_deletion(self, owner_id: str, short_keys: Iterable[str]) -> int:
        """
        Queue soft deletes for the owner's keys.

        Returns:
            Number of requests queued

        Raises:
            CapabilityNotSupportedError: If the backend has no owner support
            DeletionPipelineClosedError: If the store is closed
        """
        if self.deletion_worker is None:
            raise CapabilityNotSupportedError(self.backend.name, "soft delete")
        return await self.deletion_worker.enqueue_many(owner_id, short_keys)

    async def flush_deletions(self) -> None:
        """Wait until every queued deletion is applied or dead-lettered."""
        if self.deletion_worker is None:
            raise CapabilityNotSupportedError(self.backend.name, "soft delete")
        await self.deletion_worker.drain()

    async def stats(self) -> StoreStats:
        owners = await self.owners.count() if self.owners.supported else 0
        return StoreStats(urls=await self.urls.count(), owners=owners)

    async def ping(self) -> bool:
        return await self.urls.ping()


def create_store(
    backend: Optional[StorageBackend] = None,
    config: Optional[Settings] = None
) -> LinkStore:
    """
    Build an unstarted LinkStore from settings.

    Args:
        backend: Backend kind; picked from settings when omitted
        config: Settings (defaults to global settings)
    """
    config = config or default_settings
    backend = backend or backend_from_settings(config)
    return LinkStore(StorageFactory.create(backend, config), config=config)


# Global store instance (initialized on startup)
_store: Optional[LinkStore] = None


async def get_store() -> Optional[LinkStore]:
    """
    Get the global store instance.

    Returns:
        LinkStore if initialized, None otherwise
    """
    return _store


async def initialize_store(
    backend: Optional[StorageBackend] = None,
    config: Optional[Settings] = None
) -> LinkStore:
    """
    Create and start the global store.

    Raises:
        LinkStoreError: If the backend cannot be initialized
    """
    global _store

    if _store is not None:
        logger.warning("Link store already initialized")
        return _store

    config = config or default_settings
    setup_logging(config.LOG_LEVEL)

    store = create_store(backend, config)
    try:
        await store.start()
    except Exception as e:
        logger.error(f"Failed to initialize link store: {str(e)}", exc_info=True)
        raise

    _store = store
    return _store


async def shutdown_store() -> None:
    """Stop the global store and release its backend."""
    global _store

    if _store is None:
        return

    logger.info("Shutting down link store")
    try:
        await _store.close()
    finally:
        _store = None
