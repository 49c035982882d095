"""
In-process secret backend.

Records live in a dict guarded by one ``asyncio.Lock`` per ``key_name``;
locks are weakly held, so key names no longer in use do not pile up.
Writes are staged on the transaction and applied on commit, so a failed
transaction leaves no trace. Commit refuses to apply writes that would leave
two active defaults for a ``key_name``, mirroring the partial unique index of
the PostgreSQL backend.
"""
from __future__ import annotations

import asyncio
import uuid
import weakref
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from ...exceptions import TransactionConflict
from ..models import SecretRecord
from .base import SecretBackend, SecretTransaction


def _ordered(records: Iterable[SecretRecord]) -> list[SecretRecord]:
    return sorted(records, key=lambda r: (r.created_at, r.id))


class MemoryTransaction(SecretTransaction):
    """Transaction staging writes against a :class:`MemoryBackend`."""

    def __init__(self, backend: "MemoryBackend", key_name: str):
        super().__init__(key_name)
        self._backend = backend
        self._staged: dict[uuid.UUID, SecretRecord] = {}

    def _in_scope(self, key_name: str) -> None:
        if key_name != self.key_name:
            raise ValueError(
                f"Transaction on {self.key_name!r} cannot access {key_name!r}"
            )

    async def get(self, record_id: uuid.UUID) -> Optional[SecretRecord]:
        if record_id in self._staged:
            return self._staged[record_id]
        return self._backend._records.get(record_id)

    async def records_for(self, key_name: str) -> list[SecretRecord]:
        self._in_scope(key_name)
        merged = {
            r.id: r
            for r in self._backend._records.values()
            if r.key_name == key_name
        }
        merged.update(self._staged)
        return _ordered(merged.values())

    async def insert(self, record: SecretRecord) -> SecretRecord:
        self._in_scope(record.key_name)
        if record.id in self._staged or record.id in self._backend._records:
            raise ValueError(f"Record {record.id} already exists")
        self._staged[record.id] = record
        return record

    async def update(self, record: SecretRecord) -> SecretRecord:
        self._in_scope(record.key_name)
        if await self.get(record.id) is None:
            raise ValueError(f"Record {record.id} does not exist")
        self._staged[record.id] = record
        return record

    def commit(self) -> None:
        records = self._backend._records
        pending = {r.id: r for r in records.values() if r.key_name == self.key_name}
        for record_id, record in self._staged.items():
            current = records.get(record_id)
            if current is not None and current.last_used_at is not None:
                # usage tracking happens outside transactions
                record = record.model_copy(
                    update={"last_used_at": current.last_used_at}
                )
            pending[record_id] = record
        defaults = [r for r in pending.values() if r.is_active and r.is_default]
        if len(defaults) > 1:
            raise TransactionConflict(
                f"More than one default record for {self.key_name}"
            )
        records.update(pending)


class MemoryBackend(SecretBackend):
    """Dict-backed storage for tests and single-process deployments."""

    def __init__(self) -> None:
        self._records: dict[uuid.UUID, SecretRecord] = {}
        # entries vanish once no transaction holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, key_name: str) -> asyncio.Lock:
        lock = self._locks.get(key_name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key_name] = lock
        return lock

    @asynccontextmanager
    async def transaction(self, key_name: str) -> AsyncIterator[MemoryTransaction]:
        async with self._lock_for(key_name):
            tx = MemoryTransaction(self, key_name)
            yield tx
            tx.commit()

    async def get(self, record_id: uuid.UUID) -> Optional[SecretRecord]:
        return self._records.get(record_id)

    async def list_by_key_name(self, key_name: str) -> list[SecretRecord]:
        return _ordered(r for r in self._records.values() if r.key_name == key_name)

    async def touch(self, record_id: uuid.UUID, when: datetime) -> None:
        record = self._records.get(record_id)
        if record is not None:
            self._records[record_id] = record.model_copy(
                update={"last_used_at": when}
            )
