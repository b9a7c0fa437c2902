"""SQLite-backed durable mapping store."""

from __future__ import annotations

import sqlite3
import time
from contextlib import closing
from pathlib import Path
from typing import Callable, TypeVar

from ninomap.core.errors import DuplicateKeyError, StoreTimeoutError, StoreUnavailableError
from ninomap.core.models import MappingRecord
from ninomap.storage.kv import MappingStore
from ninomap.util.logger import logger


T = TypeVar("T")


def _duplicate_field(exc: sqlite3.IntegrityError) -> str:
    # "UNIQUE constraint failed: mappings.guid"
    message = str(exc).lower()
    return "guid" if message.endswith(".guid") else "nino"


class SqliteMappingStore(MappingStore):
    def __init__(self, db_path: str = "logs/ninomap.db", timeout_seconds: float = 5.0) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout_seconds = float(timeout_seconds)
        self._init_db()

    def _connect(self, timeout_seconds: float | None = None) -> sqlite3.Connection:
        timeout = self.timeout_seconds if timeout_seconds is None else max(0.001, timeout_seconds)
        conn = sqlite3.connect(self.db_path, timeout=timeout)
        conn.execute(f"PRAGMA busy_timeout={max(1, int(timeout * 1000))}")
        return conn

    def _init_db(self) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS mappings (
                      nino TEXT NOT NULL PRIMARY KEY,
                      guid TEXT NOT NULL UNIQUE,
                      created_at INTEGER NOT NULL
                    )
                    """
                )
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"sqlite init failed path={self.db_path}: {exc}") from exc
        logger.info("sqlite store initialized path=%s", self.db_path)

    def _with_retry(self, fn: Callable[[float], T], retries: int = 5) -> T:
        """Run ``fn(remaining_seconds)``; all attempts share one ``timeout_seconds`` deadline."""
        deadline = time.monotonic() + self.timeout_seconds
        for attempt in range(retries):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                return fn(remaining)
            except sqlite3.OperationalError as exc:
                if "locked" not in str(exc).lower():
                    raise StoreUnavailableError(f"sqlite error: {exc}") from exc
                if attempt == retries - 1:
                    raise StoreTimeoutError(f"sqlite busy after {retries} attempts: {exc}") from exc
                pause = 0.01 * (attempt + 1)
                if deadline - time.monotonic() <= pause:
                    break
                time.sleep(pause)
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as exc:
                raise StoreUnavailableError(f"sqlite error: {exc}") from exc
        raise StoreTimeoutError(f"sqlite busy for longer than {self.timeout_seconds}s path={self.db_path}")

    def insert(self, record: MappingRecord) -> MappingRecord:
        def _write(remaining: float) -> None:
            with closing(self._connect(remaining)) as conn, conn:
                conn.execute(
                    "INSERT INTO mappings (nino, guid, created_at) VALUES (?, ?, ?)",
                    (record.nino, record.guid, record.created_at),
                )

        try:
            self._with_retry(_write)
        except sqlite3.IntegrityError as exc:
            field = _duplicate_field(exc)
            raise DuplicateKeyError(field, record.guid if field == "guid" else record.nino) from exc
        return record

    def find_by_key(self, nino: str) -> MappingRecord | None:
        def _read(remaining: float) -> tuple | None:
            with closing(self._connect(remaining)) as conn:
                return conn.execute(
                    "SELECT nino, guid, created_at FROM mappings WHERE nino = ?",
                    (nino,),
                ).fetchone()

        row = self._with_retry(_read)
        if not row:
            return None
        return MappingRecord(nino=row[0], guid=row[1], created_at=int(row[2]))

    def count(self) -> int:
        def _count(remaining: float) -> int:
            with closing(self._connect(remaining)) as conn:
                return int(conn.execute("SELECT COUNT(*) FROM mappings").fetchone()[0])

        return self._with_retry(_count)
