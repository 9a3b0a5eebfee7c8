"""Tests for chunked batch ingestion."""

import pytest

from linkstore.core.exceptions import BatchIngestionError, InvalidURLError, StorageError
from linkstore.services.assignment import AssignmentStatus
from linkstore.services.batch import BatchIngestor, BatchItem
from linkstore.storage.memory import InMemoryBackend


class FlakyBatchBackend(InMemoryBackend):
    """Fails the save_batch call with the given 1-based index."""

    def __init__(self, fail_on_call: int):
        super().__init__()
        self.fail_on_call = fail_on_call
        self.batch_calls = 0

    async def save_batch(self, records):
        self.batch_calls += 1
        if self.batch_calls == self.fail_on_call:
            raise StorageError("disk full")
        return await super().save_batch(records)


class RacingBatchBackend(InMemoryBackend):
    """Maps the given URL under another key just before each save_batch."""

    def __init__(self, url: str, key: str):
        super().__init__()
        self.url = url
        self.key = key

    async def save_batch(self, records):
        if self.url not in self._active_urls():
            await self.save(self.key, self.url)
        return await super().save_batch(records)


def make_items(count: int, prefix: str = "site") -> list[BatchItem]:
    return [
        BatchItem(correlation_id=str(index), original_url=f"http://{prefix}{index}.example.com")
        for index in range(count)
    ]


class TestBatchIngestor:
    """Test ingest() results and dedup."""

    @pytest.mark.asyncio
    async def test_results_follow_input_order(self, url_store):
        ingestor = BatchIngestor(url_store)
        items = make_items(5)

        results = await ingestor.ingest(items, owner_id="u1")

        assert [result.correlation_id for result in results] == ["0", "1", "2", "3", "4"]
        assert all(result.status == AssignmentStatus.CREATED for result in results)
        assert await url_store.count() == 5
        for item, result in zip(items, results):
            assert await url_store.get_by_original_url(item.original_url) == result.short_key

    @pytest.mark.asyncio
    async def test_existing_urls_reuse_keys(self, memory_backend):
        await memory_backend.save("abc123", "http://site0.example.com")
        ingestor = BatchIngestor(memory_backend)

        results = await ingestor.ingest(make_items(2))

        assert results[0].short_key == "abc123"
        assert results[0].status == AssignmentStatus.ALREADY_EXISTS
        assert results[1].status == AssignmentStatus.CREATED
        assert await memory_backend.count() == 2

    @pytest.mark.asyncio
    async def test_repeated_url_in_one_batch(self, memory_backend):
        """A URL listed twice in the same request maps to one key."""
        ingestor = BatchIngestor(memory_backend)
        items = [
            BatchItem(correlation_id="a", original_url="http://example.com"),
            BatchItem(correlation_id="b", original_url="http://example.com"),
        ]

        results = await ingestor.ingest(items)

        assert results[0].short_key == results[1].short_key
        assert results[1].status == AssignmentStatus.ALREADY_EXISTS
        assert await memory_backend.count() == 1

    @pytest.mark.asyncio
    async def test_flushes_in_chunks(self):
        backend = FlakyBatchBackend(fail_on_call=0)
        ingestor = BatchIngestor(backend, chunk_size=3)

        await ingestor.ingest(make_items(7))

        assert backend.batch_calls == 3
        assert await backend.count() == 7

    @pytest.mark.asyncio
    async def test_chunk_failure_reports_committed_rows(self):
        """Chunks before the failing one stay written."""
        backend = FlakyBatchBackend(fail_on_call=2)
        ingestor = BatchIngestor(backend, chunk_size=3)

        with pytest.raises(BatchIngestionError) as exc_info:
            await ingestor.ingest(make_items(7))

        assert exc_info.value.committed == 3
        assert await backend.count() == 3

    @pytest.mark.asyncio
    async def test_invalid_item_writes_nothing(self, memory_backend):
        ingestor = BatchIngestor(memory_backend)
        items = make_items(2) + [BatchItem(correlation_id="bad", original_url="not-a-url")]

        with pytest.raises(InvalidURLError):
            await ingestor.ingest(items)

        assert await memory_backend.count() == 0

    @pytest.mark.asyncio
    async def test_empty_batch(self, memory_backend):
        assert await BatchIngestor(memory_backend).ingest([]) == []

    def test_rejects_non_positive_chunk_size(self, memory_backend):
        with pytest.raises(ValueError):
            BatchIngestor(memory_backend, chunk_size=0)


class TestBatchKeyClashes:
    """Rows the backend refuses are never reported as CREATED."""

    @pytest.mark.asyncio
    async def test_repeated_key_in_chunk_is_regenerated(self, url_store, fixed_keys):
        generator = fixed_keys(["abc123", "abc123", "def456"])
        ingestor = BatchIngestor(url_store, generator)

        results = await ingestor.ingest([
            BatchItem(correlation_id="a", original_url="http://a.example.com"),
            BatchItem(correlation_id="b", original_url="http://b.example.com"),
        ])

        assert [(r.short_key, r.status) for r in results] == [
            ("abc123", AssignmentStatus.CREATED),
            ("def456", AssignmentStatus.CREATED),
        ]
        assert generator.calls == 3
        assert await url_store.get_by_original_url("http://b.example.com") == "def456"

    @pytest.mark.asyncio
    async def test_exhausted_key_draws_fail(self, url_store, fixed_keys):
        """A generator stuck on one key maps the first URL and fails the second."""
        ingestor = BatchIngestor(url_store, fixed_keys(["abc123"]))

        results = await ingestor.ingest([
            BatchItem(correlation_id="a", original_url="http://a.example.com"),
            BatchItem(correlation_id="b", original_url="http://b.example.com"),
        ])

        assert [(r.short_key, r.status) for r in results] == [
            ("abc123", AssignmentStatus.CREATED),
            (None, AssignmentStatus.FAILED),
        ]
        record = await url_store.get_by_short_key("abc123")
        assert record.original_url == "http://a.example.com"
        assert await url_store.count() == 1

    @pytest.mark.asyncio
    async def test_key_taken_by_stored_row_fails(self, url_store, fixed_keys):
        await url_store.save("abc123", "http://other.example.com")
        ingestor = BatchIngestor(url_store, fixed_keys(["abc123"]))

        results = await ingestor.ingest([
            BatchItem(correlation_id="a", original_url="http://a.example.com"),
        ])

        assert results[0].status == AssignmentStatus.FAILED
        assert results[0].short_key is None
        record = await url_store.get_by_short_key("abc123")
        assert record.original_url == "http://other.example.com"
        assert await url_store.count() == 1

    @pytest.mark.asyncio
    async def test_url_mapped_during_flush_reports_existing_key(self, fixed_keys):
        """Every item for a URL mapped by another writer gets that writer's key."""
        backend = RacingBatchBackend("http://a.example.com", "zzz999")
        ingestor = BatchIngestor(backend, fixed_keys(["abc123", "def456"]))

        results = await ingestor.ingest([
            BatchItem(correlation_id="1", original_url="http://a.example.com"),
            BatchItem(correlation_id="2", original_url="http://b.example.com"),
            BatchItem(correlation_id="3", original_url="http://a.example.com"),
        ])

        assert [(r.correlation_id, r.short_key, r.status) for r in results] == [
            ("1", "zzz999", AssignmentStatus.ALREADY_EXISTS),
            ("2", "def456", AssignmentStatus.CREATED),
            ("3", "zzz999", AssignmentStatus.ALREADY_EXISTS),
        ]
        assert await backend.get_by_short_key("abc123") is None
        assert await backend.count() == 2
