"""
PostgreSQL secret backend (asyncpg).

Each transaction runs at READ COMMITTED isolation and takes a transaction-level
advisory lock on ``hashtext(key_name)`` before touching any row. Every later
statement gets a fresh snapshot taken after the lock is granted, so
check-and-insert and clear-then-set sequences on one ``key_name`` never
interleave. The partial unique index created by :meth:`create_schema`
rejects a second active default at the storage layer.

Security Note:
    Never log ciphertext values. Only log key names and record ids.
"""
from __future__ import annotations

import uuid
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

import orjson
import asyncpg

from ...exceptions import ConfigurationError, TransactionConflict
from ..config import IDENTIFIER_PATTERN
from ..models import SecretRecord
from .base import SecretBackend, SecretTransaction

logger = logging.getLogger("navigator.secrets")

_CONFLICT_ERRORS = (
    asyncpg.exceptions.SerializationError,
    asyncpg.exceptions.DeadlockDetectedError,
    asyncpg.exceptions.UniqueViolationError,
)

_COLUMNS = (
    "id, key_name, cipher_text, service_name, key_label, key_type, "
    "description, docs_url, is_active, is_default, created_by, "
    "created_at, updated_at, last_used_at, extra"
)

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id UUID PRIMARY KEY,
    key_name VARCHAR(255) NOT NULL,
    cipher_text TEXT NOT NULL,
    service_name VARCHAR(255),
    key_label VARCHAR(255),
    key_type VARCHAR(100),
    description TEXT,
    docs_url TEXT,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    is_default BOOLEAN NOT NULL DEFAULT FALSE,
    created_by INTEGER,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    last_used_at TIMESTAMPTZ,
    extra JSONB NOT NULL DEFAULT '{{}}'::jsonb
)
"""

_CREATE_KEY_NAME_INDEX = """
CREATE INDEX IF NOT EXISTS {index}_key_name_idx
ON {table} (key_name, created_at)
"""

_CREATE_DEFAULT_INDEX = """
CREATE UNIQUE INDEX IF NOT EXISTS {index}_one_default_idx
ON {table} (key_name) WHERE is_default AND is_active
"""

# snapshots must be taken after the advisory lock is granted
ISOLATION_LEVEL = "read_committed"

_LOCK_KEY_NAME = "SELECT pg_advisory_xact_lock(hashtext($1))"

_SELECT_BY_ID = "SELECT {columns} FROM {table} WHERE id = $1"

_SELECT_BY_KEY_NAME = """
SELECT {columns} FROM {table}
WHERE key_name = $1
ORDER BY created_at, id
"""

_INSERT_SECRET = """
INSERT INTO {table} ({columns})
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
"""

_UPDATE_SECRET = """
UPDATE {table}
SET cipher_text = $2, service_name = $3, key_label = $4, key_type = $5,
    description = $6, docs_url = $7, is_active = $8, is_default = $9,
    updated_at = $10, extra = $11
WHERE id = $1
"""

_TOUCH_SECRET = "UPDATE {table} SET last_used_at = $2 WHERE id = $1"


def _to_record(row: Any) -> SecretRecord:
    data = dict(row)
    extra = data.get("extra")
    if isinstance(extra, (str, bytes)):
        data["extra"] = orjson.loads(extra)
    elif extra is None:
        data["extra"] = {}
    return SecretRecord(**data)


def _dump_extra(record: SecretRecord) -> str:
    return orjson.dumps(record.extra).decode("utf-8")


class PostgresTransaction(SecretTransaction):
    """Transaction bound to one asyncpg connection."""

    def __init__(self, conn: Any, sql: dict[str, str], key_name: str):
        super().__init__(key_name)
        self._conn = conn
        self._sql = sql

    async def get(self, record_id: uuid.UUID) -> Optional[SecretRecord]:
        row = await self._conn.fetchrow(self._sql["select_by_id"], record_id)
        return _to_record(row) if row is not None else None

    async def records_for(self, key_name: str) -> list[SecretRecord]:
        if key_name != self.key_name:
            raise ValueError(
                f"Transaction on {self.key_name!r} cannot access {key_name!r}"
            )
        rows = await self._conn.fetch(self._sql["select_by_key_name"], key_name)
        return [_to_record(row) for row in rows]

    async def insert(self, record: SecretRecord) -> SecretRecord:
        await self._conn.execute(
            self._sql["insert"],
            record.id, record.key_name, record.cipher_text,
            record.service_name, record.key_label, record.key_type,
            record.description, record.docs_url,
            record.is_active, record.is_default, record.created_by,
            record.created_at, record.updated_at, record.last_used_at,
            _dump_extra(record),
        )
        return record

    async def update(self, record: SecretRecord) -> SecretRecord:
        status = await self._conn.execute(
            self._sql["update"],
            record.id, record.cipher_text,
            record.service_name, record.key_label, record.key_type,
            record.description, record.docs_url,
            record.is_active, record.is_default,
            record.updated_at, _dump_extra(record),
        )
        if status == "UPDATE 0":
            raise ValueError(f"Record {record.id} does not exist")
        return record


class PostgresBackend(SecretBackend):
    """Secret storage on PostgreSQL through an asyncpg connection pool."""

    def __init__(self, pool: Any, table: str = "api_secrets"):
        if not IDENTIFIER_PATTERN.fullmatch(table):
            raise ConfigurationError(f"Invalid table name: {table!r}")
        self._pool = pool
        self._table = table
        self._sql = {
            "select_by_id": _SELECT_BY_ID.format(columns=_COLUMNS, table=table),
            "select_by_key_name": _SELECT_BY_KEY_NAME.format(
                columns=_COLUMNS, table=table
            ),
            "insert": _INSERT_SECRET.format(columns=_COLUMNS, table=table),
            "update": _UPDATE_SECRET.format(table=table),
            "touch": _TOUCH_SECRET.format(table=table),
        }

    @property
    def table(self) -> str:
        return self._table

    def schema_statements(self) -> list[str]:
        """DDL creating the secrets table and its indexes."""
        index = self._table.split(".")[-1]
        return [
            _CREATE_TABLE.format(table=self._table),
            _CREATE_KEY_NAME_INDEX.format(index=index, table=self._table),
            _CREATE_DEFAULT_INDEX.format(index=index, table=self._table),
        ]

    async def create_schema(self) -> None:
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                for statement in self.schema_statements():
                    await conn.execute(statement)
        logger.info("Secrets table %s is ready", self._table)

    async def initialize(self) -> None:
        await self.create_schema()

    async def close(self) -> None:
        await self._pool.close()

    @asynccontextmanager
    async def transaction(self, key_name: str) -> AsyncIterator[PostgresTransaction]:
        async with self._pool.acquire() as conn:
            try:
                async with conn.transaction(isolation=ISOLATION_LEVEL):
                    await conn.execute(_LOCK_KEY_NAME, key_name)
                    yield PostgresTransaction(conn, self._sql, key_name)
            except _CONFLICT_ERRORS as err:
                raise TransactionConflict(
                    f"Concurrent update on {key_name}: {err}"
                ) from err

    async def get(self, record_id: uuid.UUID) -> Optional[SecretRecord]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(self._sql["select_by_id"], record_id)
        return _to_record(row) if row is not None else None

    async def list_by_key_name(self, key_name: str) -> list[SecretRecord]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(self._sql["select_by_key_name"], key_name)
        return [_to_record(row) for row in rows]

    async def touch(self, record_id: uuid.UUID, when: datetime) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(self._sql["touch"], record_id, when)
