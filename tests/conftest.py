"""
Test configuration and fixtures for the link storage engine.

Every backend fixture yields an initialized backend on fresh storage
(a temporary file or a temporary SQLite database per test).
"""

from typing import Iterable

import pytest
import pytest_asyncio

from linkstore.core.setting import Settings
from linkstore.services.key_generator import KeyGenerator
from linkstore.storage.logfile import LogFileBackend
from linkstore.storage.memory import InMemoryBackend
from linkstore.storage.relational import RelationalBackend


class FixedKeyGenerator(KeyGenerator):
    """Hands out predetermined keys in order."""

    def __init__(self, keys: Iterable[str]):
        super().__init__(length=6)
        self._keys = list(keys)
        self.calls = 0

    def generate(self) -> str:
        key = self._keys[self.calls % len(self._keys)]
        self.calls += 1
        return key


@pytest.fixture
def fixed_keys():
    """Factory for FixedKeyGenerator instances."""
    return FixedKeyGenerator


@pytest.fixture
def test_settings(tmp_path):
    """Settings with fast deletion flushes and no retry delay."""
    return Settings(
        DATABASE_DSN="",
        FILE_STORAGE_PATH="",
        DELETION_BATCH_SIZE=10,
        DELETION_FLUSH_INTERVAL=0.05,
        DELETION_MAX_RETRIES=2,
        DELETION_RETRY_BACKOFF=0.0,
        BATCH_CHUNK_SIZE=1000,
    )


@pytest_asyncio.fixture
async def memory_backend():
    backend = InMemoryBackend()
    await backend.init()
    yield backend
    await backend.close()


@pytest_asyncio.fixture
async def logfile_backend(tmp_path):
    backend = LogFileBackend(str(tmp_path / "urls.log"))
    await backend.init()
    yield backend
    await backend.close()


@pytest_asyncio.fixture
async def relational_backend(tmp_path):
    backend = RelationalBackend(dsn=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await backend.init()
    yield backend
    await backend.close()


@pytest_asyncio.fixture(params=["memory", "logfile", "relational"])
async def url_store(request, tmp_path):
    """Each backend in turn, for URLStore contract tests."""
    if request.param == "memory":
        backend = InMemoryBackend()
    elif request.param == "logfile":
        backend = LogFileBackend(str(tmp_path / "urls.log"))
    else:
        backend = RelationalBackend(dsn=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await backend.init()
    yield backend
    await backend.close()


@pytest_asyncio.fixture(params=["memory", "relational"])
async def ownership_store(request, tmp_path):
    """Backends implementing OwnershipStore."""
    if request.param == "memory":
        backend = InMemoryBackend()
    else:
        backend = RelationalBackend(dsn=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await backend.init()
    yield backend
    await backend.close()
