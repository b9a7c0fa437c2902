"""Redis-backed TTL cache."""

from __future__ import annotations

from typing import Any

from ninomap.core.errors import CacheUnavailableError
from ninomap.storage.kv import MappingCache

try:
    import redis
except Exception:  # pragma: no cover - optional dependency
    redis = None


def _to_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class RedisTTLCache(MappingCache):
    def __init__(
        self,
        *,
        redis_url: str = "",
        key_prefix: str = "ninomap",
        timeout_seconds: float = 0.5,
        client: Any = None,
    ) -> None:
        if redis is None:  # pragma: no cover - depends on optional package
            raise RuntimeError("redis package is not installed, cannot use RedisTTLCache")
        if client is None:
            client = redis.Redis.from_url(
                redis_url,
                decode_responses=False,
                socket_timeout=timeout_seconds,
                socket_connect_timeout=timeout_seconds,
            )
        self.client = client
        self.key_prefix = key_prefix.strip() or "ninomap"

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    def get(self, key: str) -> str | None:
        try:
            payload = self.client.get(self._key(key))
        except redis.RedisError as exc:
            raise CacheUnavailableError(f"redis get failed key={key}: {exc}") from exc
        if payload is None:
            return None
        return _to_str(payload)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self.client.set(self._key(key), value, ex=max(1, int(ttl_seconds)))
        except redis.RedisError as exc:
            raise CacheUnavailableError(f"redis set failed key={key}: {exc}") from exc

    def close(self) -> None:
        try:
            self.client.close()
        except redis.RedisError:
            pass
