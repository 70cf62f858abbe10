"""
Key Ring — Immutable set of symmetric keys plus the active key id.

The key ring is built once from validated configuration and shared
read-only by every encryption and decryption call. A configuration reload
builds a new key ring; keys are never mutated in place.

Security Note:
    Never log key material. Only log key ids and counts.
"""
import logging
from types import MappingProxyType
from typing import Mapping, Optional, TYPE_CHECKING

from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from .config import EncryptionConfig

logger = logging.getLogger("navigator.secrets")

VALID_KEY_SIZES = (16, 24, 32)  # AES-128 / AES-192 / AES-256


class KeyRing:
    """Configured encryption keys, indexed by key id.

    Args:
        keys: Mapping of key id to raw key bytes (16, 24 or 32 bytes).
        active_key_id: Key id used for new encryptions.
        enabled: When False, the ring holds no usable key and every
            encryption is refused.

    Raises:
        ConfigurationError: If the keys or the active key id are invalid.
    """

    __slots__ = ("_keys", "_active_key_id", "_enabled")

    def __init__(
        self,
        keys: Mapping[str, bytes],
        active_key_id: Optional[str] = None,
        enabled: bool = True,
    ):
        keys = dict(keys or {})
        if enabled:
            _validate_keys(keys, active_key_id)
        self._keys = MappingProxyType(
            {key_id: bytes(key) for key_id, key in keys.items()} if enabled else {}
        )
        self._active_key_id = active_key_id if enabled else None
        self._enabled = enabled

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def active_key_id(self) -> Optional[str]:
        return self._active_key_id

    @property
    def key_ids(self) -> list[str]:
        return sorted(self._keys)

    def active_key(self) -> tuple[str, bytes]:
        """Return the ``(key_id, key_bytes)`` pair used for new encryptions.

        Raises:
            ConfigurationError: If encryption is disabled.
        """
        if not self._enabled or self._active_key_id is None:
            raise ConfigurationError("Encryption is disabled for this key ring")
        return self._active_key_id, self._keys[self._active_key_id]

    def get(self, key_id: str) -> Optional[bytes]:
        """Return raw key bytes for ``key_id``, or None if not configured."""
        return self._keys.get(key_id)

    def __contains__(self, key_id: object) -> bool:
        return key_id in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return (
            f"<KeyRing enabled={self._enabled} active={self._active_key_id!r} "
            f"keys={self.key_ids}>"
        )

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    def with_active(self, key_id: str) -> "KeyRing":
        """Return a new key ring identical to this one with another active key."""
        return KeyRing(dict(self._keys), key_id, enabled=self._enabled)

    @classmethod
    def from_config(cls, config: "EncryptionConfig") -> "KeyRing":
        """Build a key ring from validated settings.

        Key secrets in the config are base64 strings.

        Raises:
            ConfigurationError: If a key is empty, not valid base64, or has
                an unsupported size, or the active key id is missing.
        """
        from .config import decode_key

        if not config.enabled:
            logger.info("Secret encryption is disabled")
            return cls({}, None, enabled=False)
        keys = {
            key_id: decode_key(key_id, secret)
            for key_id, secret in config.keys.items()
        }
        ring = cls(keys, config.active_key_id)
        logger.info(
            "Key ring loaded: %d key(s) %s, active=%s",
            len(ring), ring.key_ids, ring.active_key_id,
        )
        return ring


def _validate_keys(keys: dict[str, bytes], active_key_id: Optional[str]) -> None:
    if not active_key_id or not active_key_id.strip():
        raise ConfigurationError(
            "active key id must be set when encryption is enabled"
        )
    if not keys:
        raise ConfigurationError(
            "At least one encryption key must be configured when encryption is enabled"
        )
    if active_key_id not in keys:
        raise ConfigurationError(
            f"active key id {active_key_id!r} not found in configured keys "
            f"(available: {sorted(keys)})"
        )
    for key_id, key in keys.items():
        if not isinstance(key, (bytes, bytearray)):
            raise ConfigurationError(
                f"Encryption key {key_id!r} must be raw bytes"
            )
        if len(key) not in VALID_KEY_SIZES:
            raise ConfigurationError(
                f"Encryption key {key_id!r} must be 128, 192, or 256 bits "
                f"but was {len(key) * 8} bits"
            )
