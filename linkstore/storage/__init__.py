"""
Storage module for URL mappings.

This module implements the Strategy Pattern for pluggable persistence:
- InMemoryBackend: process-local dict (URLStore + OwnershipStore)
- LogFileBackend: append-only NDJSON file (URLStore only)
- RelationalBackend: SQLite/PostgreSQL through SQLModel (URLStore + OwnershipStore)
"""

from linkstore.storage.interface import OwnershipStore, URLStore, supports_ownership
from linkstore.storage.records import OwnerRecord, StoreStats, URLRecord
from linkstore.storage.memory import InMemoryBackend
from linkstore.storage.logfile import LogFileBackend
from linkstore.storage.relational import RelationalBackend
from linkstore.storage.factory import StorageBackend, StorageFactory, backend_from_settings

__all__ = [
    "URLStore",
    "OwnershipStore",
    "supports_ownership",
    "URLRecord",
    "OwnerRecord",
    "StoreStats",
    "InMemoryBackend",
    "LogFileBackend",
    "RelationalBackend",
    "StorageBackend",
    "StorageFactory",
    "backend_from_settings",
]
