import pytest

from navigator_secrets.vault import MasterKey, MemoryBackend, SecretVault


@pytest.fixture
def zero_key():
    """The all-zero 32-byte master key."""
    return MasterKey(bytes(32))


@pytest.fixture
def other_key():
    return MasterKey(bytes(range(32)))


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def vault(backend, zero_key):
    return SecretVault(backend, master_key=zero_key)
