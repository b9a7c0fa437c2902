import pytest

from ninomap import storage
from ninomap.config.settings import Settings
from ninomap.storage.memory_cache import MemoryTTLCache
from ninomap.storage.postgres_store import PostgresMappingStore
from ninomap.storage.redis_cache import RedisTTLCache
from ninomap.storage.sqlite_store import SqliteMappingStore


def test_env_overrides_defaults(monkeypatch):
    monkeypatch.setenv("NINOMAP_CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("NINOMAP_STORE_BACKEND", "postgres")
    monkeypatch.setenv("NINOMAP_REDIS_URL", "redis://cache.internal:6379/2")

    loaded = Settings()
    assert loaded.cache_ttl_seconds == 60
    assert loaded.store_backend == "postgres"
    assert loaded.redis_url == "redis://cache.internal:6379/2"
    assert loaded.cache_backend == "memory"


def test_ttl_must_be_positive(monkeypatch):
    monkeypatch.setenv("NINOMAP_CACHE_TTL_SECONDS", "0")
    with pytest.raises(ValueError):
        Settings()


def test_default_backends(monkeypatch, tmp_path):
    monkeypatch.setattr(storage.settings, "store_backend", "sqlite")
    monkeypatch.setattr(storage.settings, "sqlite_db_path", str(tmp_path / "factory.db"))
    monkeypatch.setattr(storage.settings, "cache_backend", "memory")
    monkeypatch.setattr(storage.settings, "cache_max_entries", 3)

    assert isinstance(storage.create_store(), SqliteMappingStore)
    cache = storage.create_cache()
    assert isinstance(cache, MemoryTTLCache)
    assert cache.max_entries == 3


def test_redis_cache_backend_selected(monkeypatch):
    monkeypatch.setattr(storage.settings, "cache_backend", "Redis")
    monkeypatch.setattr(storage.settings, "redis_key_prefix", "maps")

    cache = storage.create_cache()
    assert isinstance(cache, RedisTTLCache)
    assert cache.key_prefix == "maps"


def test_postgres_store_rejects_unsafe_schema():
    with pytest.raises(RuntimeError):
        PostgresMappingStore(dsn="postgresql://u:p@127.0.0.1:5432/db", schema="public; drop")


def test_postgres_store_rejects_empty_dsn():
    with pytest.raises(RuntimeError):
        PostgresMappingStore(dsn="  ")


def test_dotenv_file_is_read_from_working_directory(monkeypatch, tmp_path):
    monkeypatch.delenv("NINOMAP_CACHE_TTL_SECONDS", raising=False)
    monkeypatch.delenv("NINOMAP_CACHE_BACKEND", raising=False)
    (tmp_path / ".env").write_text(
        "NINOMAP_CACHE_TTL_SECONDS=90\nNINOMAP_CACHE_BACKEND=redis\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    loaded = Settings()
    assert loaded.cache_ttl_seconds == 90
    assert loaded.cache_backend == "redis"


def test_process_env_wins_over_dotenv(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text("NINOMAP_CACHE_TTL_SECONDS=90\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NINOMAP_CACHE_TTL_SECONDS", "30")

    assert Settings().cache_ttl_seconds == 30
