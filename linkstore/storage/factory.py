"""
Factory for creating storage backends.

Configuration comes from settings; the backend kind comes from the enum.
"""

import logging
from enum import Enum
from typing import Optional, Union

from linkstore.core.setting import Settings, settings as default_settings
from linkstore.storage.interface import URLStore
from linkstore.storage.logfile import LogFileBackend
from linkstore.storage.memory import InMemoryBackend
from linkstore.storage.relational import RelationalBackend

logger = logging.getLogger(__name__)


class StorageBackend(Enum):
    """Available storage backends"""
    MEMORY = "memory"
    LOG_FILE = "logfile"
    RELATIONAL = "relational"


def backend_from_settings(config: Optional[Settings] = None) -> StorageBackend:
    """
    Pick the backend kind from configuration.

    DATABASE_DSN wins over FILE_STORAGE_PATH; with neither set the
    in-memory backend is used.
    """
    config = config or default_settings
    if config.DATABASE_DSN:
        return StorageBackend.RELATIONAL
    if config.FILE_STORAGE_PATH:
        return StorageBackend.LOG_FILE
    return StorageBackend.MEMORY


class StorageFactory:
    """
    Simple factory for creating storage backends.

    Backends are not cached here: every call returns a fresh, uninitialized
    instance. The process-wide store lives in core.store_manager.
    """

    @classmethod
    def create(
        cls,
        backend: Union[StorageBackend, str],
        config: Optional[Settings] = None
    ) -> URLStore:
        """
        Create an uninitialized backend.

        Args:
            backend: Backend kind (enum member or its value)
            config: Settings to read connection info from (defaults to global settings)

        Returns:
            URLStore instance; call init() before use

        Raises:
            ValueError: If the backend kind is unknown
        """
        config = config or default_settings
        backend = StorageBackend(backend)

        if backend == StorageBackend.MEMORY:
            store = InMemoryBackend()
        elif backend == StorageBackend.LOG_FILE:
            store = LogFileBackend(path=config.FILE_STORAGE_PATH)
        elif backend == StorageBackend.RELATIONAL:
            store = RelationalBackend(dsn=config.DATABASE_DSN, echo=config.SQL_ECHO)
        else:
            raise ValueError(f"Unknown storage backend: {backend}")

        logger.info(f"Created {store.name} storage backend")
        return store
