"""Persistence backends for the Secret Vault."""

from .base import SecretBackend, SecretTransaction
from .memory import MemoryBackend
from .postgres import PostgresBackend

__all__ = [
    "SecretBackend",
    "SecretTransaction",
    "MemoryBackend",
    "PostgresBackend",
]
