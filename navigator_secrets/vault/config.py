"""
Vault Configuration — Master key loading and validated settings.

Reads the master key from the environment in the format:
    ENCRYPTION_KEY = <64 hex characters, 32 raw bytes>

Optional settings:
    VAULT_SECRETS_TABLE = <table name, default "api_secrets">
    VAULT_RETRY_ATTEMPTS = <integer, default 3>

Security Note:
    Never log key material. Only log the variable name.
"""
import os
import re
import secrets
import logging
from functools import lru_cache
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_core import core_schema

from ..exceptions import ConfigurationError

logger = logging.getLogger("navigator.secrets")

KEY_LENGTH = 32  # AES-256
MASTER_KEY_ENV = "ENCRYPTION_KEY"

_HEX_KEY_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")
IDENTIFIER_PATTERN = re.compile(
    r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$"
)


class MasterKey(bytes):
    """Immutable 32-byte AES-256 master key.

    ``repr()`` and ``str()`` never reveal the key bytes.
    """

    def __new__(cls, value: bytes) -> "MasterKey":
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise ConfigurationError(
                f"Master key must be bytes, got {type(value).__name__}"
            )
        if len(value) != KEY_LENGTH:
            raise ConfigurationError(
                f"Master key must be exactly {KEY_LENGTH} bytes, "
                f"got {len(value)}"
            )
        return super().__new__(cls, bytes(value))

    @classmethod
    def from_hex(cls, value: str) -> "MasterKey":
        """Decode a 64-character hexadecimal string into a master key."""
        try:
            raw = bytes.fromhex(value)
        except ValueError as err:
            raise ConfigurationError(
                "Master key must contain only hex characters (0-9, a-f, A-F)"
            ) from err
        return cls(raw)

    def __repr__(self) -> str:
        return "MasterKey(<redacted>)"

    __str__ = __repr__

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: Any
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(cls._coerce)

    @classmethod
    def _coerce(cls, value: Any) -> "MasterKey":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return load_master_key(value)
        return cls(value)


def load_master_key(
    value: Optional[str] = None,
    env_var: str = MASTER_KEY_ENV,
) -> MasterKey:
    """Validate and decode the master key.

    Args:
        value: Hex-encoded key. Read from ``env_var`` when not given.
        env_var: Environment variable holding the key.

    Returns:
        Validated 32-byte MasterKey.

    Raises:
        ConfigurationError: If the key is absent, not 64 hex characters,
            or does not decode to exactly 32 bytes.
    """
    if value is None:
        value = os.environ.get(env_var)
    if not value or not value.strip():
        raise ConfigurationError(
            f"{env_var} environment variable is not set. "
            "Generate one with navigator_secrets.vault.generate_master_key()"
        )
    value = value.strip()
    if len(value) != 2 * KEY_LENGTH:
        raise ConfigurationError(
            f"{env_var} must be exactly {2 * KEY_LENGTH} hex characters "
            f"(got {len(value)})"
        )
    if not _HEX_KEY_PATTERN.match(value):
        raise ConfigurationError(
            f"{env_var} must contain only hex characters (0-9, a-f, A-F)"
        )
    key = MasterKey.from_hex(value)
    logger.debug("Loaded vault master key from %s", env_var)
    return key


@lru_cache(maxsize=None)
def get_master_key() -> MasterKey:
    """Return the process-wide master key, loading it on first use."""
    return load_master_key()


def generate_master_key() -> str:
    """Generate a random 32-byte master key and return it as hex.

    This is a utility for operators to generate new keys.
    """
    return secrets.token_hex(KEY_LENGTH)


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    master_key: MasterKey
    table: str = Field(default="api_secrets")
    retry_attempts: int = Field(default=3, ge=1, le=10)
    validate_formats: bool = Field(default=True)

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    @field_validator("table")
    @classmethod
    def validate_table(cls, v: str) -> str:
        """Table must be a plain or schema-qualified SQL identifier."""
        if not IDENTIFIER_PATTERN.fullmatch(v):
            raise ValueError(f"Invalid table name: {v!r}")
        return v

    def __repr__(self) -> str:
        return (
            f"VaultConfig(table={self.table!r}, "
            f"retry_attempts={self.retry_attempts})"
        )

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Raises:
            ConfigurationError: On a missing key or invalid setting.
        """
        master_key = get_master_key()
        settings: dict[str, Any] = {"master_key": master_key}
        table = os.environ.get("VAULT_SECRETS_TABLE")
        if table:
            settings["table"] = table
        attempts = os.environ.get("VAULT_RETRY_ATTEMPTS")
        if attempts:
            settings["retry_attempts"] = attempts
        try:
            return cls(**settings)
        except ValidationError as err:
            raise ConfigurationError(f"Invalid vault settings: {err}") from err
