"""Secret Vault — Encrypted storage of third-party API credentials.

Security Note (Threat Model):
    Credentials are encrypted at rest with AES-256-GCM under one long-lived
    master key held in process memory. Decrypted values exist in memory
    only while a caller uses them. Anyone holding the master key and the
    database can recover every credential; protecting the key is the
    deployment's responsibility.
"""

from .config import (
    MasterKey,
    VaultConfig,
    load_master_key,
    get_master_key,
    generate_master_key,
)
from .crypto import encrypt, decrypt, mask_secret
from .models import SecretMetadata, SecretRecord, SecretInfo
from .secret_vault import SecretVault
from .backends import SecretBackend, MemoryBackend, PostgresBackend

__all__ = [
    "MasterKey",
    "VaultConfig",
    "load_master_key",
    "get_master_key",
    "generate_master_key",
    "encrypt",
    "decrypt",
    "mask_secret",
    "SecretMetadata",
    "SecretRecord",
    "SecretInfo",
    "SecretVault",
    "SecretBackend",
    "MemoryBackend",
    "PostgresBackend",
]
