"""
Secret Records — data model for stored credentials.

A SecretRecord never carries plaintext; ``cipher_text`` holds the encoded
AES-GCM value and is hidden from ``repr()``. Callers outside the vault
receive :class:`SecretInfo`, which drops the ciphertext entirely.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

MAX_KEY_NAME_LENGTH = 255


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_key_name(key_name: str) -> str:
    """Validate a logical credential name such as ``GEMINI_API_KEY``.

    Raises:
        ValueError: If the name is empty, too long or contains whitespace.
    """
    if not key_name:
        raise ValueError("key_name cannot be empty")
    if len(key_name) > MAX_KEY_NAME_LENGTH:
        raise ValueError(
            f"key_name cannot exceed {MAX_KEY_NAME_LENGTH} characters"
        )
    if any(ch.isspace() for ch in key_name):
        raise ValueError("key_name cannot contain whitespace")
    return key_name


class SecretMetadata(BaseModel):
    """Descriptive metadata supplied when registering a credential."""

    service_name: Optional[str] = None
    key_label: Optional[str] = None
    key_type: Optional[str] = None
    description: Optional[str] = None
    docs_url: Optional[str] = None
    created_by: Optional[int] = None
    extra: dict[str, Any] = Field(default_factory=dict)

    def provided(self) -> dict[str, Any]:
        """Return only the fields explicitly given a non-empty value."""
        return {
            name: value
            for name, value in self.model_dump(exclude={"created_by"}).items()
            if value not in (None, "", {})
        }


class SecretInfo(BaseModel):
    """Ciphertext-free view of a stored credential."""

    id: uuid.UUID
    key_name: str
    service_name: Optional[str] = None
    key_label: Optional[str] = None
    key_type: Optional[str] = None
    description: Optional[str] = None
    docs_url: Optional[str] = None
    is_active: bool = True
    is_default: bool = False
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    last_used_at: Optional[datetime] = None
    extra: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class SecretRecord(SecretInfo):
    """One stored credential as persisted by a backend."""

    cipher_text: str = Field(repr=False)

    @field_validator("key_name")
    @classmethod
    def validate_key_name(cls, v: str) -> str:
        return check_key_name(v)

    @classmethod
    def new(
        cls,
        key_name: str,
        cipher_text: str,
        metadata: SecretMetadata,
        *,
        is_default: bool = False,
    ) -> "SecretRecord":
        """Build a fresh, active record with a new identifier."""
        now = utcnow()
        return cls(
            id=uuid.uuid4(),
            key_name=key_name,
            cipher_text=cipher_text,
            service_name=metadata.service_name,
            key_label=metadata.key_label,
            key_type=metadata.key_type,
            description=metadata.description,
            docs_url=metadata.docs_url,
            created_by=metadata.created_by,
            extra=dict(metadata.extra),
            is_active=True,
            is_default=is_default,
            created_at=now,
            updated_at=now,
        )

    def changed(self, **changes: Any) -> "SecretRecord":
        """Return a copy with ``changes`` applied and ``updated_at`` refreshed."""
        immutable = {"id", "key_name", "created_at"} & changes.keys()
        if immutable:
            raise ValueError(f"Cannot change {sorted(immutable)} of a record")
        changes.setdefault("updated_at", utcnow())
        return self.model_copy(update=changes)

    def info(self) -> SecretInfo:
        return SecretInfo(**self.model_dump(exclude={"cipher_text"}))
