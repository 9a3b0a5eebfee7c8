"""
Custom Exceptions

This module defines the exception hierarchy raised by the storage engine.

Benefits:
- Backends translate driver errors into one vocabulary
- Callers can tell "not found" and "conflict" apart from real storage failures
"""

from typing import Optional


class LinkStoreError(Exception):
    """Base exception for the link storage engine."""
    pass


class InvalidURLError(LinkStoreError):
    """Raised when URL validation fails."""

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class ShortKeyNotFoundError(LinkStoreError):
    """Raised when a short key is not present in the store."""

    def __init__(self, short_key: str):
        self.short_key = short_key
        super().__init__(f"Short key '{short_key}' not found")


class OriginalURLNotFoundError(LinkStoreError):
    """Raised when no active short key maps to the original URL."""

    def __init__(self, original_url: str):
        self.original_url = original_url
        super().__init__(f"No short key for '{original_url}'")


class ConflictError(LinkStoreError):
    """Raised when a write violates a uniqueness constraint."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Conflict: {message}")


class StorageError(LinkStoreError):
    """Raised when a backend operation fails (I/O, SQL, connection loss)."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Storage error: {message}")


class BatchIngestionError(StorageError):
    """
    Raised when a chunk flush fails during batch ingestion.

    Chunks flushed before the failure stay committed; ``committed`` tells
    the caller how many rows made it.
    """

    def __init__(self, message: str, committed: int, original_error: Optional[Exception] = None):
        self.committed = committed
        super().__init__(message, original_error=original_error)


class CapabilityNotSupportedError(LinkStoreError):
    """Raised when a backend does not implement a requested capability."""

    def __init__(self, backend_name: str, capability: str):
        self.backend_name = backend_name
        self.capability = capability
        super().__init__(f"Backend '{backend_name}' does not support {capability}")


class DeletionPipelineClosedError(LinkStoreError):
    """Raised when deletion requests are enqueued after the worker was stopped."""

    def __init__(self):
        super().__init__("Deletion pipeline is closed")
