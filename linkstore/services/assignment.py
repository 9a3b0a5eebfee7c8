"""
Short Key Assignment

Implements "one short key per original URL": look up the URL first and
only mint a key when no active mapping exists.

Design Decisions:
- The outcome is a tagged Assignment result, not an exception: an existing
  mapping is a normal answer, not an error
- Storage failures (including a key collision on save) come back as FAILED
  with the error attached; there is no collision retry
- A save that loses a race for the same URL re-reads the winner's key and
  reports ALREADY_EXISTS
- URL validation failures are caller errors and raise InvalidURLError
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from linkstore.core.exceptions import ConflictError, InvalidURLError, LinkStoreError, OriginalURLNotFoundError
from linkstore.core.validators import is_valid_url
from linkstore.services.key_generator import KeyGenerator
from linkstore.storage.interface import URLStore

logger = logging.getLogger(__name__)


class AssignmentStatus(Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


@dataclass(frozen=True)
class Assignment:
    """Result of get_or_create_short_key."""
    status: AssignmentStatus
    short_key: Optional[str] = None
    error: Optional[Exception] = None

    @classmethod
    def created(cls, short_key: str) -> "Assignment":
        return cls(AssignmentStatus.CREATED, short_key=short_key)

    @classmethod
    def already_exists(cls, short_key: str) -> "Assignment":
        return cls(AssignmentStatus.ALREADY_EXISTS, short_key=short_key)

    @classmethod
    def failed(cls, error: Exception) -> "Assignment":
        return cls(AssignmentStatus.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.status != AssignmentStatus.FAILED


def validate_original_url(url: str) -> None:
    """Raise InvalidURLError unless url is an acceptable http(s) URL."""
    if not is_valid_url(url):
        raise InvalidURLError(
            url,
            reason="Invalid URL format. URL must use http:// or https:// and have a valid domain"
        )


class ShortKeyAssigner:
    """
    Maps original URLs to short keys with dedup.

    Separated from the store facade so it can be tested against any backend.
    """

    def __init__(self, store: URLStore, key_generator: Optional[KeyGenerator] = None):
        """
        Args:
            store: Backend used for lookup and insert
            key_generator: Source of new keys (default: 6-character random keys)
        """
        self.store = store
        self.key_generator = key_generator or KeyGenerator()

    async def get_or_create_short_key(self, url: str, owner_id: str = "") -> Assignment:
        """
        Return the existing short key for url, or create one.

        Args:
            url: Original URL
            owner_id: Owner recorded on a newly created mapping

        Returns:
            Assignment tagged CREATED, ALREADY_EXISTS or FAILED

        Raises:
            InvalidURLError: If url fails validation
        """
        validate_original_url(url)

        try:
            existing = await self.store.get_by_original_url(url)
            return Assignment.already_exists(existing)
        except OriginalURLNotFoundError:
            pass
        except LinkStoreError as e:
            logger.error(f"Lookup of {url} failed: {e}", exc_info=True)
            return Assignment.failed(e)

        short_key = self.key_generator.generate()
        try:
            await self.store.save(short_key, url, owner_id)
        except ConflictError as e:
            # Another writer may have mapped the URL since the lookup
            try:
                existing = await self.store.get_by_original_url(url)
                return Assignment.already_exists(existing)
            except LinkStoreError:
                logger.error(f"Saving {short_key} for {url} failed: {e}", exc_info=True)
                return Assignment.failed(e)
        except LinkStoreError as e:
            logger.error(f"Saving {short_key} for {url} failed: {e}", exc_info=True)
            return Assignment.failed(e)

        logger.debug(f"Assigned {short_key} to {url}")
        return Assignment.created(short_key)
