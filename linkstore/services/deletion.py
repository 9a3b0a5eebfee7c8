"""
Deletion Pipeline Worker

Soft deletes are requested by callers and applied later, in batches, by one
background task per store.

Architecture:
- Producers put DeletionRequest(short_key, owner_id) on an asyncio.Queue
- The worker accumulates requests and flushes them with soft_delete_batch
- A flush groups keys by owner (receipt order kept) and issues one call per owner
- Failed calls are retried with exponential backoff, then dead-lettered

State machine: IDLE -> ACCUMULATING -> FLUSHING -> IDLE, STOPPED after stop().

A batch is flushed when it reaches batch_size, when no request arrives for
flush_interval seconds, on flush()/drain(), and on stop().
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from linkstore.core.exceptions import DeletionPipelineClosedError
from linkstore.storage.interface import OwnershipStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletionRequest:
    """One key to soft-delete on behalf of its owner."""
    short_key: str
    owner_id: str


class WorkerState(Enum):
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"
    STOPPED = "stopped"


class _FlushMarker:
    """Queue control message: flush now, then resolve the future."""

    def __init__(self):
        self.done: asyncio.Future = asyncio.get_running_loop().create_future()


_STOP = object()


class DeletionWorker:
    """
    Batched soft-delete consumer.

    Features:
    - Owner carried per request, so concurrent owners never mix
    - Size and idle-time flush triggers
    - Retry with exponential backoff and a dead-letter list
    - processed_count / failed_count counters
    """

    def __init__(
        self,
        store: OwnershipStore,
        batch_size: int = 100,
        flush_interval: float = 1.0,
        queue_size: int = 0,
        max_retries: int = 3,
        retry_backoff: float = 0.5
    ):
        """
        Args:
            store: Backend that applies the soft deletes
            batch_size: Requests accumulated before a size-triggered flush
            flush_interval: Idle seconds before a partial batch is flushed
            queue_size: Queue capacity, 0 for unbounded
            max_retries: Retries per owner group before dead-lettering
            retry_backoff: Base delay; attempt n waits retry_backoff * 2**n
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.store = store
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._batch: list[DeletionRequest] = []
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._state = WorkerState.IDLE

        self.dead_letters: list[DeletionRequest] = []
        self.processed_count = 0
        self.failed_count = 0

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        """Requests queued or accumulated but not yet flushed."""
        return self._queue.qsize() + len(self._batch)

    def start(self) -> None:
        """Start the background task (idempotent)."""
        if self._closed:
            raise DeletionPipelineClosedError()
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="linkstore-deletion-worker")
        logger.info(
            f"Deletion worker started (batch_size={self.batch_size}, "
            f"flush_interval={self.flush_interval}s)"
        )

    async def enqueue(self, request: DeletionRequest) -> None:
        """
        Queue one deletion request.

        Blocks while a bounded queue is full.

        Raises:
            DeletionPipelineClosedError: If the worker was stopped
        """
        if self._closed:
            raise DeletionPipelineClosedError()
        await self._queue.put(request)

    async def enqueue_many(self, owner_id: str, short_keys: Iterable[str]) -> int:
        """Queue one request per key for owner_id. Returns the number queued."""
        queued = 0
        for short_key in short_keys:
            await self.enqueue(DeletionRequest(short_key=short_key, owner_id=owner_id))
            queued += 1
        return queued

    async def flush(self) -> None:
        """
        Apply every request queued so far.

        With the worker running, a marker is queued behind them and awaited;
        otherwise the queue is consumed inline.
        """
        if not self.running:
            await self._consume_inline()
            return

        marker = _FlushMarker()
        await self._queue.put(marker)
        await marker.done

    async def drain(self) -> None:
        """Flush until nothing is pending, including requests queued meanwhile."""
        await self.flush()
        while self.pending:
            await self.flush()

    async def stop(self) -> None:
        """
        Close the pipeline, flush the remainder and wait for the task.

        Requests enqueued after stop() raise DeletionPipelineClosedError.
        """
        if self._closed:
            return
        self._closed = True

        if self.running:
            await self._queue.put(_STOP)
            await self._task
        else:
            await self._consume_inline()

        self._task = None
        self._state = WorkerState.STOPPED
        logger.info(
            f"Deletion worker stopped: processed={self.processed_count}, "
            f"failed={self.failed_count}"
        )

    async def _run(self) -> None:
        while True:
            try:
                if self._batch:
                    item = await asyncio.wait_for(self._queue.get(), timeout=self.flush_interval)
                else:
                    item = await self._queue.get()
            except asyncio.TimeoutError:
                await self._flush_batch()
                continue
            except asyncio.CancelledError:
                logger.warning(f"Deletion worker cancelled with {self.pending} pending requests")
                raise

            try:
                if item is _STOP:
                    await self._flush_batch()
                    return
                if isinstance(item, _FlushMarker):
                    await self._flush_batch()
                    if not item.done.done():
                        item.done.set_result(None)
                    continue

                self._batch.append(item)
                self._state = WorkerState.ACCUMULATING
                if len(self._batch) >= self.batch_size:
                    await self._flush_batch()
            finally:
                self._queue.task_done()

    async def _consume_inline(self) -> None:
        while not self._queue.empty():
            item = self._queue.get_nowait()
            self._queue.task_done()
            if isinstance(item, DeletionRequest):
                self._batch.append(item)
                if len(self._batch) >= self.batch_size:
                    await self._flush_batch()
            elif isinstance(item, _FlushMarker) and not item.done.done():
                item.done.set_result(None)
        await self._flush_batch()

    async def _flush_batch(self) -> None:
        if not self._batch:
            self._state = WorkerState.IDLE
            return

        batch, self._batch = self._batch, []
        self._state = WorkerState.FLUSHING

        groups: dict[str, list[DeletionRequest]] = {}
        for request in batch:
            groups.setdefault(request.owner_id, []).append(request)

        for owner_id, requests in groups.items():
            await self._apply(owner_id, requests)

        self._state = WorkerState.IDLE

    async def _apply(self, owner_id: str, requests: list[DeletionRequest]) -> None:
        short_keys = [request.short_key for request in requests]

        for attempt in range(self.max_retries + 1):
            try:
                await self.store.soft_delete_batch(owner_id, short_keys)
                self.processed_count += len(requests)
                logger.debug(f"Soft-deleted {len(short_keys)} keys for owner {owner_id}")
                return
            except Exception as e:
                if attempt >= self.max_retries:
                    self.dead_letters.extend(requests)
                    self.failed_count += len(requests)
                    logger.error(
                        f"Dropping {len(short_keys)} deletions for owner {owner_id} "
                        f"after {attempt + 1} attempts: {e}",
                        exc_info=True
                    )
                    return

                delay = self.retry_backoff * (2 ** attempt)
                logger.warning(
                    f"Soft delete for owner {owner_id} failed (attempt {attempt + 1}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                await asyncio.sleep(delay)
