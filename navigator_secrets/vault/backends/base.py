"""
Secret Backend Interface

Abstract base classes for the persistence of SecretRecords. A backend
provides transactions scoped to one ``key_name``: every read and write made
through a :class:`SecretTransaction` is applied atomically, and no other
transaction on the same ``key_name`` can interleave with it.
"""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Optional

from ..models import SecretRecord


class SecretTransaction(ABC):
    """Unit of work over the records of a single ``key_name``."""

    def __init__(self, key_name: str):
        self.key_name = key_name

    @abstractmethod
    async def get(self, record_id: uuid.UUID) -> Optional[SecretRecord]:
        """Get a record by id, as seen from inside the transaction."""

    @abstractmethod
    async def records_for(self, key_name: str) -> list[SecretRecord]:
        """All records for ``key_name``, ordered by creation time."""

    @abstractmethod
    async def insert(self, record: SecretRecord) -> SecretRecord:
        """Insert a new record."""

    @abstractmethod
    async def update(self, record: SecretRecord) -> SecretRecord:
        """Replace the stored mutable fields of an existing record."""


class SecretBackend(ABC):
    """
    Abstract base class for secret storage backends.
    """

    async def initialize(self) -> None:
        """Prepare the backend for use."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    def transaction(
        self, key_name: str
    ) -> AbstractAsyncContextManager[SecretTransaction]:
        """Open a serialized transaction over the records of ``key_name``.

        Leaving the context normally commits; an exception rolls back.
        A backend that detects a concurrent conflict raises
        ``TransactionConflict`` and the caller may retry.
        """

    @abstractmethod
    async def get(self, record_id: uuid.UUID) -> Optional[SecretRecord]:
        """Get a committed record by id."""

    @abstractmethod
    async def list_by_key_name(self, key_name: str) -> list[SecretRecord]:
        """Committed records for ``key_name``, ordered by creation time."""

    @abstractmethod
    async def touch(self, record_id: uuid.UUID, when: datetime) -> None:
        """Record that a credential was used at ``when``."""
