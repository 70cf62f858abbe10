"""Secret Vault — Key ring, envelope encryption and key rotation.

Security Note (Threat Model):
    Secrets are decrypted in process memory while they are in use and while
    they sit in the read-through cache. A memory dump of the application
    process could expose them. This is an accepted limitation; mitigation
    requires HSM/secure enclave integration which is out of scope.
"""

from .keyring import KeyRing
from .crypto import (
    EncryptedEnvelope,
    EnvelopeCipher,
    encrypt_value,
    decrypt_value,
)
from .key_rotation import rotate_keys
from .config import EncryptionConfig, CacheConfig, generate_key

__all__ = [
    "KeyRing",
    "EncryptedEnvelope",
    "EnvelopeCipher",
    "encrypt_value",
    "decrypt_value",
    "rotate_keys",
    "EncryptionConfig",
    "CacheConfig",
    "generate_key",
]
