"""
linkstore: storage and dedup engine of a link-shortening service.

Maps short keys to original URLs with at most one active key per URL,
over pluggable backends (memory, append-only log file, SQL), and applies
owner-scoped soft deletes through a batched background worker.
"""

from linkstore.core.store_manager import (
    LinkStore,
    create_store,
    get_store,
    initialize_store,
    shutdown_store,
)

__version__ = "0.1.0"

__all__ = [
    "LinkStore",
    "create_store",
    "get_store",
    "initialize_store",
    "shutdown_store",
]
