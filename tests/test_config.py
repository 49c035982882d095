"""
Tests for master key loading and vault configuration.
"""
import pytest
from pydantic import ValidationError

from navigator_secrets.exceptions import ConfigurationError
from navigator_secrets.vault.config import (
    MASTER_KEY_ENV,
    MasterKey,
    VaultConfig,
    generate_master_key,
    get_master_key,
    load_master_key,
)

VALID_HEX = "0123456789abcdef" * 4


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without vault settings and with an empty key cache."""
    for name in (MASTER_KEY_ENV, "VAULT_SECRETS_TABLE", "VAULT_RETRY_ATTEMPTS"):
        monkeypatch.delenv(name, raising=False)
    get_master_key.cache_clear()
    yield
    get_master_key.cache_clear()


class TestMasterKey:
    """Tests for the MasterKey value type."""

    def test_from_hex(self):
        key = MasterKey.from_hex(VALID_HEX)
        assert len(key) == 32
        assert bytes(key) == bytes.fromhex(VALID_HEX)

    def test_wrong_length_rejected(self):
        with pytest.raises(ConfigurationError):
            MasterKey(b"\x00" * 31)

    def test_non_bytes_rejected(self):
        with pytest.raises(ConfigurationError):
            MasterKey(12345)

    def test_repr_is_redacted(self):
        key = MasterKey.from_hex(VALID_HEX)
        assert VALID_HEX not in repr(key)
        assert VALID_HEX not in str(key)
        assert "redacted" in repr(key)

    def test_is_immutable_bytes(self):
        key = MasterKey(bytes(32))
        assert isinstance(key, bytes)
        with pytest.raises(TypeError):
            key[0] = 1


class TestLoadMasterKey:
    """Tests for the key loader."""

    def test_load_from_value(self):
        assert load_master_key(VALID_HEX) == bytes.fromhex(VALID_HEX)

    def test_load_from_env(self, monkeypatch):
        monkeypatch.setenv(MASTER_KEY_ENV, VALID_HEX)
        assert load_master_key() == bytes.fromhex(VALID_HEX)

    def test_uppercase_accepted(self):
        assert load_master_key(VALID_HEX.upper()) == bytes.fromhex(VALID_HEX)

    def test_missing_env(self):
        with pytest.raises(ConfigurationError, match=MASTER_KEY_ENV):
            load_master_key()

    def test_empty_value(self):
        with pytest.raises(ConfigurationError):
            load_master_key("")

    @pytest.mark.parametrize("value", ["00" * 31, "00" * 33, "0" * 63])
    def test_wrong_length(self, value):
        with pytest.raises(ConfigurationError, match="64 hex characters"):
            load_master_key(value)

    def test_non_hex(self):
        with pytest.raises(ConfigurationError, match="hex characters"):
            load_master_key("zz" * 32)

    def test_error_does_not_leak_value(self):
        bad = "ab" * 31 + "zz"
        with pytest.raises(ConfigurationError) as exc_info:
            load_master_key(bad)
        assert bad not in str(exc_info.value)

    def test_get_master_key_loads_once(self, monkeypatch):
        monkeypatch.setenv(MASTER_KEY_ENV, VALID_HEX)
        first = get_master_key()
        monkeypatch.setenv(MASTER_KEY_ENV, "ff" * 32)
        assert get_master_key() is first

    def test_generate_master_key(self):
        generated = generate_master_key()
        assert len(load_master_key(generated)) == 32
        assert generated != generate_master_key()


class TestVaultConfig:
    """Tests for VaultConfig."""

    def test_defaults(self):
        config = VaultConfig(master_key=bytes(32))
        assert isinstance(config.master_key, MasterKey)
        assert config.table == "api_secrets"
        assert config.retry_attempts == 3
        assert config.validate_formats is True

    def test_hex_master_key(self):
        config = VaultConfig(master_key=VALID_HEX)
        assert config.master_key == bytes.fromhex(VALID_HEX)

    def test_bad_master_key(self):
        with pytest.raises(ConfigurationError):
            VaultConfig(master_key=b"short")

    def test_schema_qualified_table(self):
        config = VaultConfig(master_key=bytes(32), table="vault.api_secrets")
        assert config.table == "vault.api_secrets"

    @pytest.mark.parametrize("table", [
        "api_secrets; DROP TABLE users",
        "api_secrets\n",
        "vault.api_secrets.extra",
    ])
    def test_invalid_table(self, table):
        with pytest.raises(ValidationError):
            VaultConfig(master_key=bytes(32), table=table)

    def test_repr_hides_key(self):
        config = VaultConfig(master_key=VALID_HEX)
        assert VALID_HEX not in repr(config)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv(MASTER_KEY_ENV, VALID_HEX)
        monkeypatch.setenv("VAULT_SECRETS_TABLE", "secrets")
        monkeypatch.setenv("VAULT_RETRY_ATTEMPTS", "5")
        config = VaultConfig.from_env()
        assert config.master_key == bytes.fromhex(VALID_HEX)
        assert config.table == "secrets"
        assert config.retry_attempts == 5

    def test_from_env_without_key(self):
        with pytest.raises(ConfigurationError):
            VaultConfig.from_env()

    def test_from_env_invalid_setting(self, monkeypatch):
        monkeypatch.setenv(MASTER_KEY_ENV, VALID_HEX)
        monkeypatch.setenv("VAULT_RETRY_ATTEMPTS", "0")
        with pytest.raises(ConfigurationError, match="Invalid vault settings"):
            VaultConfig.from_env()
