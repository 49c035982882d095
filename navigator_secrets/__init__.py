"""Navigator Secrets.

Encrypted storage for third-party API credentials.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    ConfigurationError,
    CipherError,
    MalformedCiphertextError,
    IntegrityError,
    SecretLifecycleError,
    NotFoundError,
    InactiveSecretError,
    InvalidSecretError,
    TransactionConflict,
)
from .vault import SecretVault, VaultConfig, MasterKey, load_master_key

__all__ = [
    "__version__",
    "VaultError",
    "ConfigurationError",
    "CipherError",
    "MalformedCiphertextError",
    "IntegrityError",
    "SecretLifecycleError",
    "NotFoundError",
    "InactiveSecretError",
    "InvalidSecretError",
    "TransactionConflict",
    "SecretVault",
    "VaultConfig",
    "MasterKey",
    "load_master_key",
]
