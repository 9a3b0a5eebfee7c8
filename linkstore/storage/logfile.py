"""
Log File Backend

Append-only, newline-delimited JSON file. Each line is one URLRecord snapshot
taken at write time; lines are never rewritten, compacted or indexed.

Characteristics:
- Every lookup is a sequential scan from the start of the file (O(n))
- The next id is the current line count + 1
- The file is opened and closed per operation (no persistent handle)
- A missing file reads as empty

Owner tracking and soft delete are not supported: this backend implements
URLStore only, and callers see the gap through supports_ownership().
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

from pydantic import ValidationError

from linkstore.core.exceptions import ConflictError, OriginalURLNotFoundError, StorageError
from linkstore.storage.interface import URLStore
from linkstore.storage.records import URLRecord

logger = logging.getLogger(__name__)


class LogFileBackend(URLStore):
    """NDJSON append-only store."""

    name = "logfile"

    def __init__(self, path: Optional[str] = None):
        self.path: Optional[Path] = Path(path) if path else None
        self._write_lock = asyncio.Lock()

    async def init(self, connection_info: Any = None) -> None:
        if connection_info:
            self.path = Path(connection_info)
        if self.path is None:
            raise StorageError("log file backend requires a file path")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot open {self.path}: {e}", original_error=e)

        logger.info(f"Log file backend initialized at {self.path}")

    async def close(self) -> None:
        pass

    def _iter_records(self) -> Iterator[URLRecord]:
        if self.path is None or not self.path.exists():
            return

        try:
            with self.path.open("r", encoding="utf-8") as handle:
                for line_number, line in enumerate(handle, start=1):
                    if not line.strip():
                        continue
                    try:
                        yield URLRecord.model_validate_json(line)
                    except ValidationError as e:
                        raise StorageError(
                            f"corrupt line {line_number} in {self.path}",
                            original_error=e
                        )
        except OSError as e:
            raise StorageError(f"cannot read {self.path}: {e}", original_error=e)

    def _line_count(self) -> int:
        if self.path is None or not self.path.exists():
            return 0

        try:
            with self.path.open("r", encoding="utf-8") as handle:
                return sum(1 for line in handle if line.strip())
        except OSError as e:
            raise StorageError(f"cannot read {self.path}: {e}", original_error=e)

    def _append(self, records: Sequence[URLRecord]) -> None:
        if not records:
            return

        payload = "".join(record.to_line() for record in records)
        try:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(payload)
        except OSError as e:
            logger.error(f"Error appending to {self.path}: {e}")
            raise StorageError(f"cannot write {self.path}: {e}", original_error=e)

    async def get_by_short_key(self, short_key: str) -> Optional[URLRecord]:
        for record in self._iter_records():
            if record.short_key == short_key:
                return record
        return None

    async def get_by_original_url(self, original_url: str) -> str:
        for record in self._iter_records():
            if record.original_url == original_url and not record.is_deleted:
                return record.short_key
        raise OriginalURLNotFoundError(original_url)

    async def save(self, short_key: str, original_url: str, owner_id: str = "") -> None:
        async with self._write_lock:
            line_count = 0
            for record in self._iter_records():
                line_count += 1
                if record.short_key == short_key:
                    raise ConflictError(f"short key '{short_key}' already exists")
                if record.original_url == original_url and not record.is_deleted:
                    raise ConflictError(f"'{original_url}' already has an active short key")

            record = URLRecord(
                id=line_count + 1,
                short_key=short_key,
                original_url=original_url,
                owner_id=owner_id,
            )
            self._append([record])

    async def save_batch(self, records: Sequence[URLRecord]) -> list[str]:
        async with self._write_lock:
            line_count = 0
            existing_keys = set()
            active_urls = set()
            for record in self._iter_records():
                line_count += 1
                existing_keys.add(record.short_key)
                if not record.is_deleted:
                    active_urls.add(record.original_url)
            next_id = line_count + 1

            rows = []
            for record in records:
                if record.short_key in existing_keys or record.original_url in active_urls:
                    continue
                existing_keys.add(record.short_key)
                active_urls.add(record.original_url)
                rows.append(record.model_copy(update={"id": next_id}))
                next_id += 1

            self._append(rows)
        return [row.short_key for row in rows]

    async def load_all(self) -> list[URLRecord]:
        return list(self._iter_records())

    async def count(self) -> int:
        return self._line_count()

    async def ping(self) -> bool:
        return True
