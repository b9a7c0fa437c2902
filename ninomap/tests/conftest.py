import pytest

from ninomap.core.errors import CacheUnavailableError
from ninomap.storage.kv import MappingCache, MappingStore
from ninomap.storage.sqlite_store import SqliteMappingStore


class ManualClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCache(MappingCache):
    """Deterministic cache: no clock, entries live until ``expire_all``."""

    def __init__(self, *, fail_get: bool = False, fail_set: bool = False) -> None:
        self.entries: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail_get = fail_get
        self.fail_set = fail_set

    def get(self, key: str) -> str | None:
        if self.fail_get:
            raise CacheUnavailableError("cache down")
        return self.entries.get(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if self.fail_set:
            raise CacheUnavailableError("cache down")
        self.entries[key] = value
        self.ttls[key] = ttl_seconds

    def expire_all(self) -> None:
        self.entries.clear()


class SpyStore(MappingStore):
    def __init__(self, inner: MappingStore) -> None:
        self.inner = inner
        self.insert_calls = 0
        self.find_calls = 0

    def insert(self, record):
        self.insert_calls += 1
        return self.inner.insert(record)

    def find_by_key(self, nino):
        self.find_calls += 1
        return self.inner.find_by_key(nino)

    def count(self) -> int:
        return self.inner.count()


@pytest.fixture
def sqlite_store(tmp_path):
    return SqliteMappingStore(db_path=str(tmp_path / "store.db"))


@pytest.fixture
def spy_store(sqlite_store):
    return SpyStore(sqlite_store)


@pytest.fixture
def fake_cache():
    return FakeCache()


@pytest.fixture
def clock():
    return ManualClock()
