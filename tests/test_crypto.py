"""
Tests for the AES-256-GCM cipher module.

Tests cover:
- Round-trip and non-determinism
- Storage format (three lowercase hex fields, 16-byte IV and tag)
- Tamper detection on the ciphertext and tag fields
- Malformed input handling
- Secret masking
"""
import re

import pytest

from navigator_secrets.exceptions import (
    ConfigurationError,
    IntegrityError,
    MalformedCiphertextError,
)
from navigator_secrets.vault.crypto import decrypt, encrypt, mask_secret

PLAINTEXTS = ["sk-test-123", "", "a" * 1000, "ключ-🔑-clé", "with:colons:inside"]


def _flip(value: str, index: int) -> str:
    """Replace the hex digit at ``index`` with a different digit."""
    replacement = "0" if value[index].lower() != "0" else "1"
    return value[:index] + replacement + value[index + 1:]


class TestRoundTrip:
    """Tests for encrypt/decrypt round-trips."""

    @pytest.mark.parametrize("plaintext", PLAINTEXTS)
    def test_round_trip(self, zero_key, plaintext):
        """decrypt(encrypt(P, K), K) == P."""
        assert decrypt(encrypt(plaintext, zero_key), zero_key) == plaintext

    def test_round_trip_with_random_key(self, other_key):
        encoded = encrypt("sk-test-456", other_key)
        assert decrypt(encoded, other_key) == "sk-test-456"

    def test_encryption_is_not_deterministic(self, zero_key):
        """Same plaintext and key give unrelated encodings."""
        first = encrypt("sk-test-123", zero_key)
        second = encrypt("sk-test-123", zero_key)
        assert first != second
        assert first.split(":")[0] != second.split(":")[0]

    def test_wrong_key_fails_integrity(self, zero_key, other_key):
        encoded = encrypt("sk-test-123", zero_key)
        with pytest.raises(IntegrityError):
            decrypt(encoded, other_key)

    def test_uppercase_hex_is_accepted(self, zero_key):
        encoded = encrypt("sk-test-123", zero_key)
        assert decrypt(encoded.upper(), zero_key) == "sk-test-123"


class TestStorageFormat:
    """Tests for the ``iv:tag:ciphertext`` encoding."""

    def test_three_lowercase_hex_fields(self, zero_key):
        encoded = encrypt("sk-test-123", zero_key)
        assert re.fullmatch(r"[0-9a-f]{32}:[0-9a-f]{32}:[0-9a-f]*", encoded)

    def test_ciphertext_length_matches_plaintext(self, zero_key):
        _, _, ct_hex = encrypt("sk-test-123", zero_key).split(":")
        assert len(ct_hex) == 2 * len("sk-test-123")

    def test_plaintext_not_in_output(self, zero_key):
        encoded = encrypt("sk-test-123", zero_key)
        assert "sk-test-123" not in encoded
        assert "sk-test-123".encode().hex() not in encoded


class TestTamperDetection:
    """Flipping any hex digit of the tag or ciphertext is detected."""

    def test_flip_every_ciphertext_digit(self, zero_key):
        iv_hex, tag_hex, ct_hex = encrypt("sk-test-123", zero_key).split(":")
        for index in range(len(ct_hex)):
            tampered = ":".join((iv_hex, tag_hex, _flip(ct_hex, index)))
            with pytest.raises(IntegrityError):
                decrypt(tampered, zero_key)

    def test_flip_every_tag_digit(self, zero_key):
        iv_hex, tag_hex, ct_hex = encrypt("sk-test-123", zero_key).split(":")
        for index in range(len(tag_hex)):
            tampered = ":".join((iv_hex, _flip(tag_hex, index), ct_hex))
            with pytest.raises(IntegrityError):
                decrypt(tampered, zero_key)

    def test_flip_iv_digit(self, zero_key):
        iv_hex, tag_hex, ct_hex = encrypt("sk-test-123", zero_key).split(":")
        tampered = ":".join((_flip(iv_hex, 0), tag_hex, ct_hex))
        with pytest.raises(IntegrityError):
            decrypt(tampered, zero_key)

    def test_truncated_ciphertext(self, zero_key):
        iv_hex, tag_hex, ct_hex = encrypt("sk-test-123", zero_key).split(":")
        with pytest.raises(IntegrityError):
            decrypt(":".join((iv_hex, tag_hex, ct_hex[:-2])), zero_key)


class TestMalformedInput:
    """Tests for values that do not match the storage format."""

    @pytest.mark.parametrize("value", [
        "",
        "abcd",
        "00" * 16 + ":" + "00" * 16,
        "00" * 16 + ":" + "00" * 16 + ":00:00",
        "v1:" + "00" * 16 + ":" + "00" * 16 + ":00",
    ])
    def test_wrong_field_count(self, zero_key, value):
        with pytest.raises(MalformedCiphertextError):
            decrypt(value, zero_key)

    @pytest.mark.parametrize("value", [
        "zz" * 16 + ":" + "00" * 16 + ":00",
        "00" * 16 + ":" + "0g" * 16 + ":00",
        "00" * 16 + ":" + "00" * 16 + ":0",
        "00" * 16 + ":" + "00" * 16 + ": 0",
        "00" * 16 + ":" + "00" * 16 + ":00\n",
        "00 " * 16 + ":" + "00" * 16 + ":00",
        "00" * 8 + "\n" + "00" * 8 + ":" + "00" * 16 + ":00",
    ])
    def test_invalid_hex(self, zero_key, value):
        with pytest.raises(MalformedCiphertextError):
            decrypt(value, zero_key)

    def test_surrounding_whitespace_is_rejected(self, zero_key):
        encoded = encrypt("sk-test-123", zero_key)
        for value in (encoded + "\n", " " + encoded, encoded + "\r\n"):
            with pytest.raises(MalformedCiphertextError):
                decrypt(value, zero_key)

    def test_short_iv(self, zero_key):
        _, tag_hex, ct_hex = encrypt("sk-test-123", zero_key).split(":")
        with pytest.raises(MalformedCiphertextError):
            decrypt(":".join(("00" * 12, tag_hex, ct_hex)), zero_key)

    def test_short_tag(self, zero_key):
        iv_hex, tag_hex, ct_hex = encrypt("sk-test-123", zero_key).split(":")
        with pytest.raises(MalformedCiphertextError):
            decrypt(":".join((iv_hex, tag_hex[:24], ct_hex)), zero_key)

    def test_non_string_input(self, zero_key):
        with pytest.raises(MalformedCiphertextError):
            decrypt(None, zero_key)

    def test_malformed_is_not_integrity_error(self):
        assert not issubclass(MalformedCiphertextError, IntegrityError)


class TestKeyChecks:

    def test_short_key_rejected(self):
        with pytest.raises(ConfigurationError):
            encrypt("sk-test-123", b"\x00" * 16)


class TestMaskSecret:
    """Tests for display masking."""

    def test_long_secret_keeps_edges(self):
        assert mask_secret("sk-test-1234567890") == "sk-t••••••••7890"

    @pytest.mark.parametrize("value", ["", "short", "x" * 11])
    def test_short_secret_fully_masked(self, value):
        assert mask_secret(value) == "••••••••"
