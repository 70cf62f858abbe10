"""
Vault Configuration — Key material loading and validated settings.

Reads encryption keys from environment variables in the format:
    SECRETS_KEY_<KEY_ID> = <base64-encoded 16, 24 or 32-byte key>
    SECRETS_ACTIVE_KEY_ID = <key id>
    SECRETS_ENCRYPTION_ENABLED = true | false

Cache settings:
    SECRETS_CACHE_TTL = <seconds, default 60>
    SECRETS_CACHE_MAX_SIZE = <entries, default 100>

Security Note:
    Never log key material. Only log key ids.
"""
import os
import re
import base64
import binascii
import secrets
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..exceptions import ConfigurationError
from .keyring import KeyRing, VALID_KEY_SIZES

logger = logging.getLogger("navigator.secrets")

_KEY_ENV_PATTERN = re.compile(r"^SECRETS_KEY_(\w+)$")

_TRUE_VALUES = ("true", "1", "yes", "on")

MASK_TOKEN = "***"


def load_encryption_keys() -> dict[str, str]:
    """Load base64 key secrets from SECRETS_KEY_<ID> environment variables.

    Values are returned still encoded; ``KeyRing.from_config`` validates
    them.

    Returns:
        Mapping of key id to base64-encoded key.
    """
    keys: dict[str, str] = {}
    for name, value in os.environ.items():
        match = _KEY_ENV_PATTERN.match(name)
        if match:
            keys[match.group(1)] = value
    logger.debug("Found %d encryption key(s): %s", len(keys), sorted(keys))
    return keys


def get_active_key_id() -> Optional[str]:
    """Read the active key id from SECRETS_ACTIVE_KEY_ID, if set."""
    return os.environ.get("SECRETS_ACTIVE_KEY_ID")


def decode_key(key_id: str, secret: str) -> bytes:
    """Decode a base64 key secret and check its size.

    Raises:
        ConfigurationError: If the secret is empty, not valid base64, or
            not 128, 192 or 256 bits long.
    """
    if not secret or not secret.strip():
        raise ConfigurationError(f"Encryption key {key_id!r} has an empty secret")
    try:
        key = base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ConfigurationError(
            f"Encryption key {key_id!r} is not valid Base64"
        ) from err
    if len(key) not in VALID_KEY_SIZES:
        raise ConfigurationError(
            f"Encryption key {key_id!r} must be 128, 192, or 256 bits "
            f"but was {len(key) * 8} bits"
        )
    return key


def generate_key(bits: int = 256) -> str:
    """Generate a random AES key and return it as a base64 string.

    This is a utility for operators to generate new keys.

    Args:
        bits: Key size, one of 128, 192 or 256.

    Returns:
        Base64-encoded key string.
    """
    if bits not in (128, 192, 256):
        raise ValueError(f"Unsupported key size: {bits}")
    return base64.b64encode(secrets.token_bytes(bits // 8)).decode("ascii")


class EncryptionConfig(BaseModel):
    """Validated encryption settings."""

    enabled: bool = True
    active_key_id: Optional[str] = None
    keys: dict[str, str] = Field(default_factory=dict)

    def keyring(self) -> KeyRing:
        """Build the key ring described by these settings.

        Raises:
            ConfigurationError: If the settings describe an invalid key ring.
        """
        return KeyRing.from_config(self)

    @classmethod
    def from_env(cls) -> "EncryptionConfig":
        """Create EncryptionConfig by loading values from environment.

        Returns:
            Populated EncryptionConfig instance.
        """
        enabled = os.environ.get("SECRETS_ENCRYPTION_ENABLED", "true")
        return cls(
            enabled=enabled.strip().lower() in _TRUE_VALUES,
            active_key_id=get_active_key_id(),
            keys=load_encryption_keys(),
        )


class CacheConfig(BaseModel):
    """Validated secret cache settings."""

    ttl: float = Field(default=60.0, ge=0)
    max_size: int = Field(default=100, ge=1)

    @field_validator("ttl")
    @classmethod
    def validate_ttl(cls, v: float) -> float:
        """Reject non-finite expiry windows."""
        if v != v or v == float("inf"):
            raise ValueError("Cache ttl must be a finite number of seconds")
        return v

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Create CacheConfig from SECRETS_CACHE_TTL / SECRETS_CACHE_MAX_SIZE."""
        return cls(
            ttl=os.environ.get("SECRETS_CACHE_TTL", 60.0),
            max_size=os.environ.get("SECRETS_CACHE_MAX_SIZE", 100),
        )
