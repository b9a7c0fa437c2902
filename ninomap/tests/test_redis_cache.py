import pytest
import redis

from ninomap.core.errors import CacheUnavailableError
from ninomap.storage.redis_cache import RedisTTLCache


class StubRedis:
    def __init__(self, *, fail: bool = False) -> None:
        self.data: dict[str, bytes] = {}
        self.expiry: dict[str, int] = {}
        self.fail = fail
        self.closed = False

    def get(self, name):
        if self.fail:
            raise redis.ConnectionError("connection refused")
        return self.data.get(name)

    def set(self, name, value, ex=None):
        if self.fail:
            raise redis.TimeoutError("timed out")
        self.data[name] = value.encode("utf-8") if isinstance(value, str) else value
        self.expiry[name] = ex
        return True

    def close(self):
        self.closed = True


def test_set_applies_prefix_and_ttl():
    client = StubRedis()
    cache = RedisTTLCache(key_prefix="maps", client=client)
    cache.set("guid:abc", '{"NINO":"AB123456C"}', ttl_seconds=120)

    assert client.expiry["maps:guid:abc"] == 120
    assert cache.get("guid:abc") == '{"NINO":"AB123456C"}'
    assert cache.get("guid:missing") is None


def test_blank_prefix_falls_back_to_default():
    client = StubRedis()
    cache = RedisTTLCache(key_prefix="  ", client=client)
    cache.set("nino:AB123456C", "x", ttl_seconds=5)

    assert "ninomap:nino:AB123456C" in client.data


def test_transport_errors_become_cache_unavailable():
    cache = RedisTTLCache(client=StubRedis(fail=True))

    with pytest.raises(CacheUnavailableError):
        cache.get("nino:AB123456C")
    with pytest.raises(CacheUnavailableError):
        cache.set("nino:AB123456C", "x", ttl_seconds=5)


def test_close_releases_client():
    client = StubRedis()
    RedisTTLCache(client=client).close()
    assert client.closed is True
