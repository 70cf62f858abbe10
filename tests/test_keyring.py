"""
Tests for KeyRing construction and configuration loading.

Tests cover:
- Key ring validation (active key, key sizes, empty rings)
- Disabled encryption
- EncryptionConfig from explicit values and from environment
- CacheConfig bounds
- Key generation helper
"""
import base64

import pytest
from pydantic import ValidationError

from navigator_secrets.exceptions import ConfigurationError
from navigator_secrets.vault import CacheConfig, EncryptionConfig, KeyRing, generate_key

from .conftest import KEY_128, KEY_192, KEY_V1, KEY_V2


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


# --- Test KeyRing Validation ---

class TestKeyRingValidation:
    """Tests for KeyRing invariants."""

    def test_valid_key_ring(self):
        """A valid ring exposes its keys and active key."""
        ring = KeyRing({"v1": KEY_V1, "v2": KEY_V2}, "v2")
        assert ring.enabled is True
        assert ring.active_key_id == "v2"
        assert ring.key_ids == ["v1", "v2"]
        assert ring.active_key() == ("v2", KEY_V2)
        assert "v1" in ring
        assert len(ring) == 2

    def test_accepts_all_aes_key_sizes(self):
        """Keys of 128, 192 and 256 bits are all accepted."""
        ring = KeyRing({"a": KEY_128, "b": KEY_192, "c": KEY_V1}, "a")
        assert ring.get("b") == KEY_192

    def test_enabled_without_keys_fails(self):
        """Enabled ring with an active id but no keys is a configuration error."""
        with pytest.raises(ConfigurationError):
            KeyRing({}, "k1")

    def test_missing_active_key_id_fails(self):
        """An enabled ring needs an active key id."""
        with pytest.raises(ConfigurationError, match="active key id must be set"):
            KeyRing({"v1": KEY_V1}, None)

    def test_blank_active_key_id_fails(self):
        """A whitespace-only active key id is rejected."""
        with pytest.raises(ConfigurationError):
            KeyRing({"v1": KEY_V1}, "   ")

    def test_active_key_not_in_keys_fails(self):
        """An active key id missing from the keys is rejected."""
        with pytest.raises(ConfigurationError, match="not found"):
            KeyRing({"v1": KEY_V1}, "v9")

    @pytest.mark.parametrize("size", [0, 8, 15, 31, 33, 64])
    def test_invalid_key_size_fails(self, size):
        """Keys of unsupported sizes are rejected."""
        with pytest.raises(ConfigurationError, match="128, 192, or 256 bits"):
            KeyRing({"v1": b"\x00" * size}, "v1")

    def test_keys_are_read_only(self, keyring):
        """The key map cannot be modified."""
        with pytest.raises(TypeError):
            keyring._keys["v2"] = KEY_V2

    def test_with_active_builds_new_ring(self, rotated_keyring):
        """with_active returns a new ring and leaves the original alone."""
        ring = rotated_keyring.with_active("v1")
        assert ring.active_key_id == "v1"
        assert rotated_keyring.active_key_id == "v2"

    def test_repr_hides_key_material(self, keyring):
        """The repr never shows key bytes."""
        assert KEY_V1.hex() not in repr(keyring)
        assert "v1" in repr(keyring)


# --- Test Disabled Encryption ---

class TestDisabledKeyRing:
    """Tests for a key ring built with encryption disabled."""

    def test_disabled_ring_skips_validation(self):
        """A disabled ring needs no keys."""
        ring = KeyRing({}, None, enabled=False)
        assert ring.enabled is False
        assert len(ring) == 0

    def test_disabled_ring_has_no_active_key(self):
        """A disabled ring exposes no keys and no active key."""
        ring = KeyRing({"v1": KEY_V1}, "v1", enabled=False)
        assert ring.active_key_id is None
        assert ring.get("v1") is None
        with pytest.raises(ConfigurationError):
            ring.active_key()


# --- Test EncryptionConfig ---

class TestEncryptionConfig:
    """Tests for building key rings from settings."""

    def test_keyring_from_config(self):
        """Base64 settings build a usable key ring."""
        config = EncryptionConfig(active_key_id="v1", keys={"v1": b64(KEY_V1)})
        ring = config.keyring()
        assert ring.active_key() == ("v1", KEY_V1)

    def test_empty_keys_raise_configuration_error(self):
        """Enabled settings without keys fail validation."""
        config = EncryptionConfig(enabled=True, active_key_id="k1", keys={})
        with pytest.raises(ConfigurationError):
            KeyRing.from_config(config)

    def test_invalid_base64_rejected(self):
        """A key secret that is not Base64 is rejected."""
        config = EncryptionConfig(active_key_id="v1", keys={"v1": "not*base64!"})
        with pytest.raises(ConfigurationError, match="not valid Base64"):
            config.keyring()

    def test_empty_secret_rejected(self):
        """An empty key secret is rejected."""
        config = EncryptionConfig(active_key_id="v1", keys={"v1": ""})
        with pytest.raises(ConfigurationError, match="empty secret"):
            config.keyring()

    def test_wrong_size_secret_rejected(self):
        """A key secret of the wrong size is rejected."""
        config = EncryptionConfig(active_key_id="v1", keys={"v1": b64(b"short")})
        with pytest.raises(ConfigurationError, match="40 bits"):
            config.keyring()

    def test_disabled_config_builds_disabled_ring(self):
        """Disabled settings build a disabled key ring."""
        config = EncryptionConfig(enabled=False)
        assert config.keyring().enabled is False

    def test_from_env(self, monkeypatch):
        """Settings are read from environment variables."""
        monkeypatch.setenv("SECRETS_KEY_v1", b64(KEY_V1))
        monkeypatch.setenv("SECRETS_KEY_v2", b64(KEY_V2))
        monkeypatch.setenv("SECRETS_ACTIVE_KEY_ID", "v2")
        monkeypatch.delenv("SECRETS_ENCRYPTION_ENABLED", raising=False)
        config = EncryptionConfig.from_env()
        assert config.enabled is True
        assert config.active_key_id == "v2"
        assert config.keys["v1"] == b64(KEY_V1)
        assert config.keyring().active_key() == ("v2", KEY_V2)

    def test_from_env_disabled(self, monkeypatch):
        """SECRETS_ENCRYPTION_ENABLED=false disables encryption."""
        monkeypatch.setenv("SECRETS_ENCRYPTION_ENABLED", "false")
        assert EncryptionConfig.from_env().enabled is False


# --- Test CacheConfig ---

class TestCacheConfig:
    """Tests for cache settings."""

    def test_defaults(self):
        """Cache settings default to a 60 second TTL and 100 entries."""
        config = CacheConfig()
        assert config.ttl == 60.0
        assert config.max_size == 100

    def test_from_env(self, monkeypatch):
        """Settings are read from environment variables."""
        monkeypatch.setenv("SECRETS_CACHE_TTL", "5")
        monkeypatch.setenv("SECRETS_CACHE_MAX_SIZE", "7")
        config = CacheConfig.from_env()
        assert config.ttl == 5.0
        assert config.max_size == 7

    def test_rejects_invalid_bounds(self):
        """Out-of-range cache settings fail validation."""
        with pytest.raises(ValidationError):
            CacheConfig(ttl=-1)
        with pytest.raises(ValidationError):
            CacheConfig(max_size=0)


# --- Test Key Generation ---

class TestGenerateKey:
    """Tests for the operator key generation helper."""

    @pytest.mark.parametrize("bits", [128, 192, 256])
    def test_generated_key_is_accepted(self, bits):
        """Generated keys decode to the requested size."""
        secret = generate_key(bits)
        assert len(base64.b64decode(secret)) == bits // 8
        config = EncryptionConfig(active_key_id="k", keys={"k": secret})
        assert config.keyring().active_key_id == "k"

    def test_generated_keys_differ(self):
        """Each generated key is random."""
        assert generate_key() != generate_key()

    def test_unsupported_size(self):
        """generate_key rejects unsupported sizes."""
        with pytest.raises(ValueError):
            generate_key(512)
