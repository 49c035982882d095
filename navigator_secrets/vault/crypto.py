"""
Vault Crypto Core — AES-256-GCM encryption of credential strings.

Storage format (lowercase hex, colon separated):
    <iv 16B>:<auth tag 16B>:<ciphertext>

Security Note:
    Never log plaintext or ciphertext values.
    IVs are random 128-bit, generated per call; never reuse an IV with
    the same key.
"""
import os
import re
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import (
    ConfigurationError,
    IntegrityError,
    MalformedCiphertextError,
)
from .config import KEY_LENGTH

logger = logging.getLogger("navigator.secrets")

IV_SIZE = 16  # 128-bit IV
TAG_SIZE = 16  # GCM authentication tag
SEPARATOR = ":"
FIELD_COUNT = 3

_HEX_PATTERN = re.compile(r"(?:[0-9a-fA-F]{2})*")

MASK = "••••••••"


def _cipher(key: bytes) -> AESGCM:
    if len(key) != KEY_LENGTH:
        raise ConfigurationError(
            f"Key must be {KEY_LENGTH} bytes for AES-256, got {len(key)}"
        )
    return AESGCM(bytes(key))


def _unhex(field: str, name: str) -> bytes:
    if not _HEX_PATTERN.fullmatch(field):
        raise MalformedCiphertextError(f"Invalid hex in {name} field")
    return bytes.fromhex(field)


def encrypt(plaintext: str, key: bytes) -> str:
    """Encrypt a credential string under the master key.

    Args:
        plaintext: Credential to encrypt.
        key: 32-byte master key.

    Returns:
        Encoded ciphertext ``<ivHex>:<tagHex>:<cipherTextHex>``.
    """
    cipher = _cipher(key)
    iv = os.urandom(IV_SIZE)
    sealed = cipher.encrypt(iv, plaintext.encode("utf-8"), None)
    # cryptography appends the tag to the ciphertext
    ct, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return SEPARATOR.join((iv.hex(), tag.hex(), ct.hex()))


def decrypt(encoded: str, key: bytes) -> str:
    """Decrypt an encoded credential.

    Args:
        encoded: Value produced by :func:`encrypt`.
        key: 32-byte master key.

    Returns:
        The original plaintext.

    Raises:
        MalformedCiphertextError: If the value is not three hex fields with
            a 16-byte IV and a 16-byte tag.
        IntegrityError: If the authentication tag does not verify.
    """
    if not isinstance(encoded, str):
        raise MalformedCiphertextError(
            f"Encoded ciphertext must be str, got {type(encoded).__name__}"
        )
    parts = encoded.split(SEPARATOR)
    if len(parts) != FIELD_COUNT:
        raise MalformedCiphertextError(
            f"Expected {FIELD_COUNT} fields, got {len(parts)}"
        )
    iv_hex, tag_hex, ct_hex = parts
    iv = _unhex(iv_hex, "iv")
    tag = _unhex(tag_hex, "auth tag")
    ct = _unhex(ct_hex, "ciphertext")
    if len(iv) != IV_SIZE:
        raise MalformedCiphertextError(
            f"IV must be {IV_SIZE} bytes, got {len(iv)}"
        )
    if len(tag) != TAG_SIZE:
        raise MalformedCiphertextError(
            f"Auth tag must be {TAG_SIZE} bytes, got {len(tag)}"
        )
    cipher = _cipher(key)
    try:
        data = cipher.decrypt(iv, ct + tag, None)
    except InvalidTag as exc:
        raise IntegrityError(
            "Authentication failed - data may be corrupted or tampered with"
        ) from exc
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedCiphertextError("Decrypted value is not UTF-8") from exc


def mask_secret(secret: str) -> str:
    """Mask a secret for display, keeping the first and last 4 characters."""
    if not secret or len(secret) < 12:
        return MASK
    return f"{secret[:4]}{MASK}{secret[-4:]}"
