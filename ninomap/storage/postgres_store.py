"""PostgreSQL-backed durable mapping store."""

from __future__ import annotations

import math
import re
from contextlib import contextmanager

from ninomap.core.errors import DuplicateKeyError, StoreTimeoutError, StoreUnavailableError
from ninomap.core.models import MappingRecord
from ninomap.storage.kv import MappingStore
from ninomap.util.logger import logger

try:
    import psycopg
except Exception:  # pragma: no cover - optional dependency
    psycopg = None


GUID_CONSTRAINT = "ninomap_mappings_guid_key"


class PostgresMappingStore(MappingStore):
    def __init__(self, *, dsn: str, schema: str = "public", timeout_seconds: float = 5.0) -> None:
        if psycopg is None:  # pragma: no cover - optional dependency
            raise RuntimeError("psycopg package is not installed, cannot use PostgresMappingStore")
        if not dsn.strip():
            raise RuntimeError("postgres dsn is empty")
        if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", schema):
            raise RuntimeError("postgres schema contains invalid characters")

        self.dsn = dsn
        self.schema = schema
        self.table = f"{schema}.mappings"
        self.timeout_seconds = float(timeout_seconds)
        self._init_db()

    def _connect(self):
        return psycopg.connect(
            self.dsn,
            connect_timeout=max(1, math.ceil(self.timeout_seconds)),
            options=f"-c statement_timeout={int(self.timeout_seconds * 1000)}",
        )

    @contextmanager
    def _translate_errors(self, action: str, record: MappingRecord | None = None):
        try:
            yield
        except psycopg.errors.UniqueViolation as exc:
            if record is None:
                raise StoreUnavailableError(f"postgres {action} failed: {exc}") from exc
            # server diagnostics name the constraint; the message carries it too
            constraint = str(getattr(exc.diag, "constraint_name", None) or exc)
            if GUID_CONSTRAINT in constraint:
                raise DuplicateKeyError("guid", record.guid) from exc
            raise DuplicateKeyError("nino", record.nino) from exc
        except psycopg.errors.QueryCanceled as exc:
            raise StoreTimeoutError(f"postgres {action} timed out: {exc}") from exc
        except psycopg.Error as exc:
            raise StoreUnavailableError(f"postgres {action} failed: {exc}") from exc

    def _init_db(self) -> None:
        with self._translate_errors("init"), self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(f"CREATE SCHEMA IF NOT EXISTS {self.schema}")
                cur.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.table} (
                      nino TEXT NOT NULL,
                      guid TEXT NOT NULL,
                      created_at BIGINT NOT NULL,
                      CONSTRAINT ninomap_mappings_nino_key PRIMARY KEY (nino),
                      CONSTRAINT {GUID_CONSTRAINT} UNIQUE (guid)
                    )
                    """
                )
            conn.commit()
        logger.info("postgres store initialized schema=%s", self.schema)

    def insert(self, record: MappingRecord) -> MappingRecord:
        with self._translate_errors("insert", record), self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"INSERT INTO {self.table} (nino, guid, created_at) VALUES (%s, %s, %s)",
                    (record.nino, record.guid, record.created_at),
                )
            conn.commit()
        return record

    def find_by_key(self, nino: str) -> MappingRecord | None:
        with self._translate_errors("select"), self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT nino, guid, created_at FROM {self.table} WHERE nino = %s",
                    (nino,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return MappingRecord(nino=str(row[0]), guid=str(row[1]), created_at=int(row[2]))
