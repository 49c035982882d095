"""Custom exceptions for the secrets vault."""
from typing import Optional


class VaultError(Exception):
    """Base exception for vault operations.

    ``recoverable`` tells callers whether retrying with different input can
    succeed (``True``), whether it never can (``False``), or that it is
    unknown (``None``).
    """

    recoverable: Optional[bool] = None

    def __init__(self, message: str, *, recoverable: Optional[bool] = None):
        super().__init__(message)
        if recoverable is not None:
            self.recoverable = recoverable


class ConfigurationError(VaultError):
    """Master key or vault settings are missing or malformed.

    Fatal at startup: a vault must not be built from an invalid configuration.
    """

    recoverable = False


class CipherError(VaultError):
    """Base exception for the AEAD cipher."""

    recoverable = False


class MalformedCiphertextError(CipherError):
    """Stored value does not match the ``iv:tag:ciphertext`` encoding."""


class IntegrityError(CipherError):
    """Authentication tag verification failed.

    Wrong key, corrupted record or tampering. Never retried.
    """


class SecretLifecycleError(VaultError):
    """Base exception for record lifecycle errors."""

    recoverable = True


class NotFoundError(SecretLifecycleError):
    """No record matches the given identifier."""


class InactiveSecretError(SecretLifecycleError):
    """The record exists but has been deactivated."""


class InvalidSecretError(VaultError):
    """Key name, plaintext or metadata failed validation."""

    recoverable = True


class TransactionConflict(VaultError):
    """The persistence layer aborted a transaction due to a concurrent writer."""

    recoverable = True
