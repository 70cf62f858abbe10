"""Shared fixtures: deterministic keys, a key ring, a cipher and a store."""
import pytest

from navigator_secrets.storage import InMemorySecretStore
from navigator_secrets.vault import EnvelopeCipher, KeyRing

KEY_V1 = bytes(range(32))
KEY_V2 = bytes(range(32, 64))
KEY_128 = bytes(range(16))
KEY_192 = bytes(range(24))


@pytest.fixture
def keyring():
    """Key ring with a single 256-bit key, v1 active."""
    return KeyRing({"v1": KEY_V1}, "v1")


@pytest.fixture
def rotated_keyring():
    """Key ring holding v1 and v2, with v2 active."""
    return KeyRing({"v1": KEY_V1, "v2": KEY_V2}, "v2")


@pytest.fixture
def cipher(keyring):
    return EnvelopeCipher(keyring)


@pytest.fixture
def store(cipher):
    return InMemorySecretStore(cipher)
