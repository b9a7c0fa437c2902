"""Mapping orchestration over the durable store and the TTL cache.

Reads are cache-aside: the cache answers when it can, the store answers
otherwise and the cache is refilled. Creates are idempotent per GUID: a cached
GUID short-circuits the store, and the store's unique constraints are the
backstop whenever the cache has expired, is down, or two replays race.

The cache never decides correctness. Any cache error degrades to the store
path; any store error propagates to the caller untouched.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from pydantic import ValidationError

from ninomap.core.errors import CacheUnavailableError, DuplicateKeyError
from ninomap.core.models import (
    CreateResult,
    CreateStatus,
    MappingIn,
    MappingRecord,
    ReadResult,
    ReadStatus,
)
from ninomap.observability.logging import log_event
from ninomap.observability.metrics import emit_counter
from ninomap.storage.kv import MappingCache, MappingStore
from ninomap.util.logger import get_logger

logger = get_logger("service")


def guid_key(guid: str) -> str:
    return f"guid:{guid}"


def nino_key(nino: str) -> str:
    return f"nino:{nino}"


class MappingService:
    def __init__(
        self,
        store: MappingStore,
        cache: MappingCache,
        *,
        cache_ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.cache = cache
        self.cache_ttl_seconds = max(1, int(cache_ttl_seconds))
        self._clock = clock

    def _cache_lookup(self, key: str) -> MappingRecord | None:
        try:
            payload = self.cache.get(key)
        except CacheUnavailableError as exc:
            logger.warning("cache get failed, falling back to store key=%s error=%s", key, exc)
            emit_counter("cache_error", labels={"op": "get"})
            return None
        if payload is None:
            emit_counter("cache_miss", labels={"key": key.split(":", 1)[0]})
            return None
        try:
            record = MappingRecord.model_validate_json(payload)
        except ValidationError:
            logger.warning("cache entry undecodable, ignoring key=%s", key)
            return None
        emit_counter("cache_hit", labels={"key": key.split(":", 1)[0]})
        return record

    def _cache_store(self, record: MappingRecord, *keys: str) -> None:
        payload = record.model_dump_json(by_alias=True)
        for key in keys:
            try:
                self.cache.set(key, payload, self.cache_ttl_seconds)
            except CacheUnavailableError as exc:
                logger.warning("cache set failed key=%s error=%s", key, exc)
                emit_counter("cache_error", labels={"op": "set"})

    def create(self, mapping: MappingIn) -> CreateResult:
        cached = self._cache_lookup(guid_key(mapping.guid))
        if cached is not None:
            if cached.nino != mapping.nino:
                log_event("mapping_guid_reused", guid=mapping.guid, nino=mapping.nino)
                return CreateResult(status=CreateStatus.CONFLICT)
            log_event("mapping_replayed", guid=mapping.guid, source="cache")
            return CreateResult(status=CreateStatus.REPLAYED_IDEMPOTENT, record=cached)

        record = MappingRecord(nino=mapping.nino, guid=mapping.guid, created_at=int(self._clock()))
        try:
            stored = self.store.insert(record)
        except DuplicateKeyError as exc:
            return self._reconcile_duplicate(mapping, exc)

        self._cache_store(stored, guid_key(stored.guid), nino_key(stored.nino))
        log_event("mapping_created", guid=stored.guid, nino=stored.nino)
        return CreateResult(status=CreateStatus.CREATED, record=stored)

    def _reconcile_duplicate(self, mapping: MappingIn, exc: DuplicateKeyError) -> CreateResult:
        # Same GUID and NINO already stored: the idempotency window lapsed, the request did not change.
        existing = self.store.find_by_key(mapping.nino)
        if existing is not None and existing.guid == mapping.guid:
            self._cache_store(existing, guid_key(existing.guid), nino_key(existing.nino))
            log_event("mapping_replayed", guid=mapping.guid, source="store")
            return CreateResult(status=CreateStatus.REPLAYED_IDEMPOTENT, record=existing)
        log_event("mapping_conflict", guid=mapping.guid, nino=mapping.nino, field=exc.field)
        return CreateResult(status=CreateStatus.CONFLICT)

    def read(self, nino: str) -> ReadResult:
        nino = nino.strip()
        cached = self._cache_lookup(nino_key(nino))
        if cached is not None:
            return ReadResult(status=ReadStatus.FOUND, record=cached)

        record = self.store.find_by_key(nino)
        if record is None:
            return ReadResult(status=ReadStatus.NOT_FOUND)
        self._cache_store(record, nino_key(nino))
        return ReadResult(status=ReadStatus.FOUND, record=record)

    def create_mapping(self, nino: str, guid: str) -> CreateResult:
        """Validate raw identifiers and create; raises pydantic ValidationError on bad shape."""
        return self.create(MappingIn(nino=nino, guid=guid))

    def get_mapping(self, nino: str) -> ReadResult:
        return self.read(nino)

    def close(self) -> None:
        self.cache.close()
        self.store.close()
