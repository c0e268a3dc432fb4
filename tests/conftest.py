"""Shared test fixtures for pytest."""

from contextlib import contextmanager
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import RedisError

from emotehub.config import Settings
from emotehub.exceptions import StorageUnavailableError
from emotehub.middleware import limiter
from emotehub.services.storage import StoredBlob

CONTAINER_URL = "https://account.blob.core.windows.net/emotes"


class FakeCacheStore:
    """In-memory stand-in for RedisCacheStore."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.fail_reads = False
        self.fail_writes = False
        self.hits = 0
        self.misses = 0

    async def get(self, key):
        if self.fail_reads:
            raise RedisError("connection refused")
        value = self.data.get(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    async def set(self, key, value, ttl):
        if self.fail_writes:
            raise RedisError("read only replica")
        self.data[key] = value
        self.ttls[key] = ttl

    async def keys_matching(self, prefix):
        if self.fail_reads:
            raise RedisError("connection refused")
        return [key.encode() for key in self.data if key.startswith(prefix)]

    async def delete(self, keys):
        removed = 0
        for key in keys:
            key = key.decode() if isinstance(key, bytes) else key
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def ping(self):
        if self.fail_reads:
            raise RedisError("connection refused")
        return True

    async def info(self):
        if self.fail_reads:
            raise RedisError("connection refused")
        return {"used_memory_human": "1.5M", "keyspace_hits": self.hits, "keyspace_misses": self.misses}

    async def dbsize(self):
        return len(self.data)


class FakeBlobStorage:
    """In-memory stand-in for BlobStorage."""

    def __init__(self, available=True):
        self._available = available
        self.blobs = {}
        self.upload_calls = 0

    @property
    def available(self):
        return self._available

    def _check(self):
        if not self._available:
            raise StorageUnavailableError("Azure Storage is not properly configured or unavailable")

    def url_for(self, blob_name):
        self._check()
        return f"{CONTAINER_URL}/{blob_name}"

    async def exists(self, blob_name):
        self._check()
        return blob_name in self.blobs

    async def upload(self, blob_name, data, content_type=None, metadata=None):
        self._check()
        self.upload_calls += 1
        self.blobs.setdefault(
            blob_name,
            (data, content_type, {k: str(v) for k, v in (metadata or {}).items() if v is not None}),
        )
        return self.url_for(blob_name)

    async def list_blobs(self, prefix):
        self._check()
        return [
            StoredBlob(name=name, url=self.url_for(name), content_type=content_type, metadata=metadata)
            for name, (_, content_type, metadata) in sorted(self.blobs.items())
            if name.startswith(prefix)
        ]

    def add(self, blob_name, content_type="image/webp", metadata=None):
        self.blobs[blob_name] = (b"", content_type, metadata or {})


@contextmanager
def override_deps(app, overrides):
    """Set FastAPI dependency overrides and clear them on exit."""

    def _make_override(val):
        return lambda: val

    for dep_fn, provider in overrides.items():
        app.dependency_overrides[dep_fn] = _make_override(provider)
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def disable_rate_limits():
    limiter.reset()
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def test_settings():
    return Settings(
        REDIS_URL="",
        AZURE_CONNECTION_STRING="",
        CACHE_TTL=3600,
        TRENDING_CACHE_TTL=900,
        MAX_PAGE_SIZE=100,
        TRENDING_FETCH_CAP=300,
    )


@pytest.fixture
def cache_store():
    return FakeCacheStore()


@pytest.fixture
def blob_storage():
    return FakeBlobStorage()


@pytest.fixture
def mock_catalog():
    catalog = AsyncMock()
    catalog.search = AsyncMock(return_value=[])
    catalog.fetch_trending = AsyncMock(return_value=[])
    return catalog


@pytest.fixture
def mock_archiver():
    archiver = AsyncMock()
    archiver.archive_batch = AsyncMock(return_value=[])
    return archiver
