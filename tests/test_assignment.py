"""Tests for idempotent short key assignment."""

import asyncio

import pytest

from linkstore.core.exceptions import InvalidURLError, OriginalURLNotFoundError, StorageError
from linkstore.services.assignment import Assignment, AssignmentStatus, ShortKeyAssigner
from linkstore.storage.memory import InMemoryBackend


class FailingLookupBackend(InMemoryBackend):
    async def get_by_original_url(self, original_url: str) -> str:
        raise StorageError("database unavailable")


class StaleLookupBackend(InMemoryBackend):
    """Misses the first lookup, as if another writer mapped the URL right after it."""

    def __init__(self):
        super().__init__()
        self.lookups = 0

    async def get_by_original_url(self, original_url: str) -> str:
        self.lookups += 1
        if self.lookups == 1:
            raise OriginalURLNotFoundError(original_url)
        return await super().get_by_original_url(original_url)


class TestAssignmentResult:
    """Test the tagged result type."""

    def test_constructors(self):
        assert Assignment.created("abc123").status == AssignmentStatus.CREATED
        assert Assignment.already_exists("abc123").short_key == "abc123"
        failed = Assignment.failed(StorageError("boom"))
        assert failed.status == AssignmentStatus.FAILED
        assert failed.short_key is None
        assert not failed.ok


class TestShortKeyAssigner:
    """Test get_or_create_short_key against real backends."""

    @pytest.mark.asyncio
    async def test_same_url_twice_returns_same_key(self, url_store, fixed_keys):
        """The first call creates abc123, the second reports it as existing."""
        assigner = ShortKeyAssigner(url_store, fixed_keys(["abc123", "zzz999"]))

        first = await assigner.get_or_create_short_key("http://example.com", "u1")
        second = await assigner.get_or_create_short_key("http://example.com", "u1")

        assert first == Assignment.created("abc123")
        assert second == Assignment.already_exists("abc123")
        assert await url_store.count() == 1

    @pytest.mark.asyncio
    async def test_different_urls_get_different_keys(self, memory_backend):
        assigner = ShortKeyAssigner(memory_backend)

        first = await assigner.get_or_create_short_key("http://a.example.com")
        second = await assigner.get_or_create_short_key("http://b.example.com")

        assert first.status == second.status == AssignmentStatus.CREATED
        assert first.short_key != second.short_key

    @pytest.mark.asyncio
    async def test_owner_is_recorded(self, memory_backend, fixed_keys):
        assigner = ShortKeyAssigner(memory_backend, fixed_keys(["abc123"]))

        await assigner.get_or_create_short_key("http://example.com", "u1")

        record = await memory_backend.get_by_short_key("abc123")
        assert record.owner_id == "u1"

    @pytest.mark.asyncio
    async def test_key_collision_fails_without_retry(self, memory_backend, fixed_keys):
        """A generated key that is already taken surfaces as FAILED."""
        generator = fixed_keys(["abc123"])
        assigner = ShortKeyAssigner(memory_backend, generator)
        await assigner.get_or_create_short_key("http://a.example.com")

        result = await assigner.get_or_create_short_key("http://b.example.com")

        assert result.status == AssignmentStatus.FAILED
        assert result.error is not None
        assert generator.calls == 2

    @pytest.mark.asyncio
    async def test_lookup_failure_is_failed_result(self):
        assigner = ShortKeyAssigner(FailingLookupBackend())

        result = await assigner.get_or_create_short_key("http://example.com")

        assert result.status == AssignmentStatus.FAILED
        assert isinstance(result.error, StorageError)

    @pytest.mark.asyncio
    async def test_invalid_url_raises(self, memory_backend):
        assigner = ShortKeyAssigner(memory_backend)

        with pytest.raises(InvalidURLError):
            await assigner.get_or_create_short_key("javascript:alert(1)")

        assert await memory_backend.count() == 0

    @pytest.mark.asyncio
    async def test_deleted_url_gets_new_key(self, memory_backend, fixed_keys):
        """Once the active mapping is soft-deleted, the URL can be shortened again."""
        assigner = ShortKeyAssigner(memory_backend, fixed_keys(["abc123", "def456"]))
        await assigner.get_or_create_short_key("http://example.com", "u1")
        await memory_backend.soft_delete_batch("u1", ["abc123"])

        result = await assigner.get_or_create_short_key("http://example.com", "u1")

        assert result == Assignment.created("def456")

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_key(self, url_store):
        """Simultaneous requests for one URL leave a single active mapping."""
        assigner = ShortKeyAssigner(url_store)

        results = await asyncio.gather(*(
            assigner.get_or_create_short_key("http://example.com", "u1") for _ in range(5)
        ))

        assert all(result.ok for result in results)
        assert [result.status for result in results].count(AssignmentStatus.CREATED) == 1
        assert len({result.short_key for result in results}) == 1
        active = [record for record in await url_store.load_all() if not record.is_deleted]
        assert len(active) == 1

    @pytest.mark.asyncio
    async def test_lost_race_reports_existing_key(self, fixed_keys):
        """A save rejected because the URL was mapped meanwhile returns the winner's key."""
        backend = StaleLookupBackend()
        await backend.save("abc123", "http://example.com")
        assigner = ShortKeyAssigner(backend, fixed_keys(["def456"]))

        result = await assigner.get_or_create_short_key("http://example.com")

        assert result == Assignment.already_exists("abc123")
        assert await backend.count() == 1
