"""
SecretVault — Encrypted storage for third-party API credentials.

Provides the public API for the Secret Vault system:
- ``register(key_name, plaintext, metadata)`` — encrypt and store or rotate
- ``reveal(record_id)`` — decrypt one active record
- ``deactivate(record_id)`` — soft-delete a record
- ``set_default(record_id)`` — make a record the default for its key name
- ``list_by_key_name(key_name)`` — ciphertext-free metadata, oldest first
- ``resolve(key_name)`` — plaintext of the credential a provider should use,
  optionally falling back to the environment variable of the same name

Security Note:
    Never log plaintext or ciphertext values. Only log key names, record ids
    and operations. Integrity failures are logged on the security logger.
"""
import os
import uuid
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional, TypeVar, Union

from pydantic import ValidationError

from ..exceptions import (
    IntegrityError,
    InactiveSecretError,
    InvalidSecretError,
    MalformedCiphertextError,
    NotFoundError,
    TransactionConflict,
)
from .backends.base import SecretBackend, SecretTransaction
from .config import MasterKey, VaultConfig
from .crypto import decrypt, encrypt, mask_secret
from .definitions import validate_format, with_defaults
from .models import SecretInfo, SecretMetadata, SecretRecord, check_key_name, utcnow

logger = logging.getLogger("navigator.secrets")
security_logger = logging.getLogger("navigator.secrets.security")

T = TypeVar("T")

RecordId = Union[uuid.UUID, str]


def _as_uuid(record_id: RecordId) -> uuid.UUID:
    if isinstance(record_id, uuid.UUID):
        return record_id
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        raise NotFoundError(f"Secret {record_id} not found") from None


class SecretVault:
    """Vault of encrypted API credentials.

    The master key is injected at construction, either directly or through
    a :class:`VaultConfig`. All mutations of the records sharing a
    ``key_name`` run inside one backend transaction, so at most one active
    record per ``key_name`` is ever the default.
    """

    def __init__(
        self,
        backend: SecretBackend,
        master_key: Optional[MasterKey] = None,
        config: Optional[VaultConfig] = None,
    ):
        if config is None:
            if master_key is None:
                raise TypeError("SecretVault needs a master_key or a config")
            config = VaultConfig(master_key=master_key)
        elif master_key is not None and master_key != config.master_key:
            raise ValueError("master_key does not match config.master_key")
        self._backend = backend
        self._config = config
        self._key = config.master_key

    @classmethod
    def from_env(cls, backend: SecretBackend) -> "SecretVault":
        """Build a vault from the environment (see :class:`VaultConfig`)."""
        return cls(backend, config=VaultConfig.from_env())

    @property
    def backend(self) -> SecretBackend:
        return self._backend

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _atomic(
        self,
        key_name: str,
        operation: Callable[[SecretTransaction], Awaitable[T]],
    ) -> T:
        """Run ``operation`` in a transaction, retrying on conflicts."""
        attempts = self._config.retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                async with self._backend.transaction(key_name) as tx:
                    return await operation(tx)
            except TransactionConflict as err:
                if attempt >= attempts:
                    logger.error(
                        "Giving up on key=%s after %d conflicting attempts",
                        key_name, attempt,
                    )
                    raise
                logger.warning(
                    "Transaction conflict on key=%s (attempt %d/%d): %s",
                    key_name, attempt, attempts, err,
                )
        raise AssertionError("unreachable")

    async def _load(self, record_id: RecordId) -> SecretRecord:
        record = await self._backend.get(_as_uuid(record_id))
        if record is None:
            raise NotFoundError(f"Secret {record_id} not found")
        return record

    def _decrypt(self, record: SecretRecord) -> str:
        try:
            return decrypt(record.cipher_text, self._key)
        except IntegrityError:
            security_logger.error(
                "Integrity check failed for secret id=%s key=%s",
                record.id, record.key_name,
            )
            raise
        except MalformedCiphertextError:
            security_logger.error(
                "Malformed ciphertext for secret id=%s key=%s; "
                "record needs investigation",
                record.id, record.key_name,
            )
            raise

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def register(
        self,
        key_name: str,
        plaintext: str,
        metadata: Optional[Union[SecretMetadata, dict[str, Any]]] = None,
    ) -> SecretInfo:
        """Encrypt and store a credential, or rotate the active one.

        If an active record exists for ``key_name`` its ciphertext is
        replaced in place and its default flag kept. Otherwise a new record
        is inserted, which becomes the default only when it is the first
        record ever stored for ``key_name``.

        Args:
            key_name: Logical credential name, e.g. ``GEMINI_API_KEY``.
            plaintext: Credential value.
            metadata: Descriptive fields (service name, label, ...).

        Returns:
            Metadata of the inserted or rotated record.

        Raises:
            InvalidSecretError: If the key name, value or metadata are invalid.
        """
        try:
            check_key_name(key_name)
        except ValueError as err:
            raise InvalidSecretError(str(err)) from err
        if not plaintext:
            raise InvalidSecretError("Secret value cannot be empty")
        if self._config.validate_formats:
            validate_format(key_name, plaintext)
        if metadata is None:
            metadata = SecretMetadata()
        elif isinstance(metadata, dict):
            try:
                metadata = SecretMetadata(**metadata)
            except ValidationError as err:
                raise InvalidSecretError(f"Invalid metadata: {err}") from err

        cipher_text = encrypt(plaintext, self._key)

        async def _register(tx: SecretTransaction) -> tuple[SecretRecord, bool]:
            records = await tx.records_for(key_name)
            active = [r for r in records if r.is_active]
            if active:
                target = next(
                    (r for r in active if r.is_default), active[-1]
                )
                changes = metadata.provided()
                if metadata.extra:
                    changes["extra"] = {**target.extra, **metadata.extra}
                rotated = target.changed(
                    cipher_text=cipher_text, is_active=True, **changes
                )
                return await tx.update(rotated), True
            record = SecretRecord.new(
                key_name,
                cipher_text,
                with_defaults(key_name, metadata),
                is_default=not records,
            )
            return await tx.insert(record), False

        record, rotated = await self._atomic(key_name, _register)
        if rotated:
            logger.info("Vault rotate: key=%s id=%s", key_name, record.id)
        else:
            logger.info(
                "Vault register: key=%s id=%s default=%s",
                key_name, record.id, record.is_default,
            )
        return record.info()

    async def reveal(self, record_id: RecordId) -> str:
        """Decrypt and return the credential stored in an active record.

        Raises:
            NotFoundError: If no record has this id.
            InactiveSecretError: If the record was deactivated.
            IntegrityError: If the ciphertext fails authentication.
            MalformedCiphertextError: If the stored value is corrupt.
        """
        record = await self._load(record_id)
        if not record.is_active:
            raise InactiveSecretError(f"Secret {record.id} is inactive")
        value = self._decrypt(record)
        logger.debug("Vault reveal: key=%s id=%s", record.key_name, record.id)
        return value

    async def deactivate(self, record_id: RecordId) -> SecretInfo:
        """Soft-delete a record.

        A deactivated default loses its flag; no other record is promoted.
        Deactivating an inactive record is a no-op.
        """
        current = await self._load(record_id)

        async def _deactivate(tx: SecretTransaction) -> SecretRecord:
            record = await tx.get(current.id)
            if record is None:
                raise NotFoundError(f"Secret {current.id} not found")
            if not record.is_active:
                return record
            return await tx.update(
                record.changed(is_active=False, is_default=False)
            )

        record = await self._atomic(current.key_name, _deactivate)
        logger.info("Vault deactivate: key=%s id=%s", record.key_name, record.id)
        return record.info()

    async def set_default(self, record_id: RecordId) -> SecretInfo:
        """Make an active record the default for its key name.

        Clearing the previous default and flagging the new one happen in a
        single transaction.

        Raises:
            NotFoundError: If no record has this id.
            InactiveSecretError: If the record was deactivated.
        """
        current = await self._load(record_id)

        async def _set_default(tx: SecretTransaction) -> SecretRecord:
            record = await tx.get(current.id)
            if record is None:
                raise NotFoundError(f"Secret {current.id} not found")
            if not record.is_active:
                raise InactiveSecretError(f"Secret {record.id} is inactive")
            for other in await tx.records_for(record.key_name):
                if other.id != record.id and other.is_default:
                    await tx.update(other.changed(is_default=False))
            if record.is_default:
                return record
            return await tx.update(record.changed(is_default=True))

        record = await self._atomic(current.key_name, _set_default)
        logger.info("Vault set default: key=%s id=%s", record.key_name, record.id)
        return record.info()

    async def list_by_key_name(self, key_name: str) -> list[SecretInfo]:
        """All records for ``key_name``, oldest first, without ciphertext."""
        records = await self._backend.list_by_key_name(key_name)
        return [record.info() for record in records]

    async def get(self, record_id: RecordId) -> SecretInfo:
        """Metadata of one record."""
        return (await self._load(record_id)).info()

    async def masked(self, record_id: RecordId) -> str:
        """Masked credential value for display, e.g. ``sk-t••••••••-123``."""
        return mask_secret(await self.reveal(record_id))

    async def resolve(self, key_name: str, *, env_fallback: bool = False) -> str:
        """Plaintext of the credential a provider integration should use.

        The active default wins; without one, the most recently created
        active record is used. Usage time is recorded on the record.

        Args:
            key_name: Logical credential name.
            env_fallback: When no active record exists, read the environment
                variable named ``key_name`` as a last resort.

        Raises:
            NotFoundError: If no active record exists for ``key_name`` (and
                the fallback is off or the variable is unset).
        """
        records = await self._backend.list_by_key_name(key_name)
        active = [r for r in records if r.is_active]
        if not active:
            if env_fallback:
                value = os.environ.get(key_name)
                if value:
                    logger.warning(
                        "Vault resolve: no active secret for key=%s, "
                        "using environment variable",
                        key_name,
                    )
                    return value
            raise NotFoundError(f"No active secret configured for {key_name}")
        record = next((r for r in active if r.is_default), active[-1])
        value = self._decrypt(record)
        await self._backend.touch(record.id, utcnow())
        logger.debug("Vault resolve: key=%s id=%s", key_name, record.id)
        return value
