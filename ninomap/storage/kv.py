"""Abstractions for the durable mapping store and the ephemeral TTL cache."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ninomap.core.models import MappingRecord


class MappingStore(ABC):
    @abstractmethod
    def insert(self, record: MappingRecord) -> MappingRecord:
        """Persist a new record; raise DuplicateKeyError if NINO or GUID is taken."""
        pass

    @abstractmethod
    def find_by_key(self, nino: str) -> MappingRecord | None:
        pass

    def close(self) -> None:
        pass


class MappingCache(ABC):
    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key, overwriting, evicted once ttl_seconds elapse."""
        pass

    def close(self) -> None:
        pass
