"""Storage backend selection helpers."""

from __future__ import annotations

from ninomap.config.settings import settings
from ninomap.storage.kv import MappingCache, MappingStore
from ninomap.storage.memory_cache import MemoryTTLCache
from ninomap.storage.postgres_store import PostgresMappingStore
from ninomap.storage.redis_cache import RedisTTLCache
from ninomap.storage.sqlite_store import SqliteMappingStore


def create_store() -> MappingStore:
    backend = settings.store_backend.strip().lower()
    if backend in {"postgres", "postgresql"}:
        return PostgresMappingStore(
            dsn=settings.postgres_dsn,
            schema=settings.postgres_schema,
            timeout_seconds=settings.store_timeout_seconds,
        )
    return SqliteMappingStore(db_path=settings.sqlite_db_path, timeout_seconds=settings.store_timeout_seconds)


def create_cache() -> MappingCache:
    backend = settings.cache_backend.strip().lower()
    if backend == "redis":
        return RedisTTLCache(
            redis_url=settings.redis_url,
            key_prefix=settings.redis_key_prefix,
            timeout_seconds=settings.cache_timeout_seconds,
        )
    return MemoryTTLCache(max_entries=settings.cache_max_entries)
