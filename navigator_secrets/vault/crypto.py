"""
Vault Crypto Core — Envelope encryption/decryption and serialization.

Every secret value is sealed with AES-GCM under the key ring's active key:
    nonce      random 96-bit, fresh per call
    aad        the key id (UTF-8), so an envelope cannot be replayed under
               another key id
    ciphertext encrypted payload + 128-bit GCM tag

The resulting envelope is self-describing:
    {"version": 1, "keyId": "...", "algorithm": "AES256GCM",
     "nonce": "<base64>", "ciphertext": "<base64>"}

Decryption resolves ``keyId`` in the *current* key ring, so envelopes sealed
under a retired key keep working while that key stays configured.

Security Note:
    Never log plaintext or ciphertext values.
    Any change to nonce length, tag length or AAD composition requires a
    new envelope version.
"""
import os
import base64
import binascii
import logging
from typing import Any, Union

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import DecryptionFailure, EncryptionFailure, UnknownKey
from .keyring import KeyRing

logger = logging.getLogger("navigator.secrets")

ENVELOPE_VERSION = 1
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # 128-bit GCM tag

# key length (bytes) -> algorithm tag
ALGORITHMS = {
    16: "AES128GCM",
    24: "AES192GCM",
    32: "AES256GCM",
}


class EncryptedEnvelope(BaseModel):
    """Immutable encrypted payload plus the metadata needed to open it."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: int = ENVELOPE_VERSION
    key_id: str = Field(..., alias="keyId", min_length=1)
    algorithm: str
    nonce: bytes
    ciphertext: bytes

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form, with binary fields base64-encoded."""
        return {
            "version": self.version,
            "keyId": self.key_id,
            "algorithm": self.algorithm,
            "nonce": base64.b64encode(self.nonce).decode("ascii"),
            "ciphertext": base64.b64encode(self.ciphertext).decode("ascii"),
        }

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EncryptedEnvelope":
        """Parse the wire form.

        Raises:
            DecryptionFailure: If a field is missing or not decodable.
        """
        try:
            return cls(
                version=data["version"],
                key_id=data["keyId"],
                algorithm=data["algorithm"],
                nonce=base64.b64decode(data["nonce"], validate=True),
                ciphertext=base64.b64decode(data["ciphertext"], validate=True),
            )
        except (KeyError, TypeError, ValueError, binascii.Error) as err:
            raise DecryptionFailure(f"Malformed encrypted envelope: {err}") from err

    @classmethod
    def from_json(cls, raw: Union[str, bytes, dict]) -> "EncryptedEnvelope":
        """Parse a stored envelope (JSON text, JSON bytes or an already decoded dict)."""
        if isinstance(raw, dict):
            return cls.from_dict(raw)
        try:
            data = orjson.loads(raw)
        except (TypeError, orjson.JSONDecodeError) as err:
            raise DecryptionFailure("Encrypted envelope is not valid JSON") from err
        if not isinstance(data, dict):
            raise DecryptionFailure("Encrypted envelope must be a JSON object")
        return cls.from_dict(data)


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

def encrypt_value(plaintext: str, keyring: KeyRing) -> EncryptedEnvelope:
    """Encrypt a secret value under the key ring's active key.

    Args:
        plaintext: Secret value to encrypt.
        keyring: Key ring supplying the active key.

    Returns:
        A new envelope with a fresh nonce.

    Raises:
        EncryptionFailure: If encryption is disabled or the cipher fails.
    """
    if not keyring.enabled:
        raise EncryptionFailure(
            "Encryption is disabled; refusing to store a secret in plaintext"
        )
    key_id, key = keyring.active_key()
    nonce = os.urandom(NONCE_SIZE)
    try:
        ciphertext = AESGCM(key).encrypt(
            nonce, plaintext.encode("utf-8"), key_id.encode("utf-8"),
        )
    except Exception as err:
        raise EncryptionFailure(
            f"Failed to encrypt value with key {key_id!r}"
        ) from err
    return EncryptedEnvelope(
        version=ENVELOPE_VERSION,
        key_id=key_id,
        algorithm=ALGORITHMS[len(key)],
        nonce=nonce,
        ciphertext=ciphertext,
    )


# ---------------------------------------------------------------------------
# Decryption
# ---------------------------------------------------------------------------

def decrypt_value(envelope: EncryptedEnvelope, keyring: KeyRing) -> str:
    """Open an envelope with the matching key from the key ring.

    Args:
        envelope: Envelope produced by ``encrypt_value``.
        keyring: Current key ring; the envelope's key id is looked up here.

    Returns:
        Decrypted secret value.

    Raises:
        UnknownKey: If the envelope's key id is not in the key ring.
        DecryptionFailure: If the envelope is tampered, malformed, or uses
            an unsupported version or algorithm.
    """
    if envelope.version != ENVELOPE_VERSION:
        raise DecryptionFailure(
            f"Unsupported envelope version: {envelope.version}"
        )
    if envelope.algorithm not in ALGORITHMS.values():
        raise DecryptionFailure(
            f"Unsupported envelope algorithm: {envelope.algorithm!r}"
        )
    key = keyring.get(envelope.key_id)
    if key is None:
        raise UnknownKey(envelope.key_id)
    if ALGORITHMS[len(key)] != envelope.algorithm:
        raise DecryptionFailure(
            f"Envelope algorithm {envelope.algorithm!r} does not match "
            f"key {envelope.key_id!r}"
        )
    if len(envelope.nonce) != NONCE_SIZE or len(envelope.ciphertext) < TAG_SIZE:
        raise DecryptionFailure("Envelope nonce or ciphertext has an invalid length")
    try:
        plaintext = AESGCM(key).decrypt(
            envelope.nonce, envelope.ciphertext, envelope.key_id.encode("utf-8"),
        )
    except InvalidTag as err:
        raise DecryptionFailure(
            f"Envelope failed authentication under key {envelope.key_id!r}"
        ) from err
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as err:
        raise DecryptionFailure("Decrypted value is not valid UTF-8") from err


class EnvelopeCipher:
    """Encrypts and decrypts against a live key ring.

    The key ring reference is replaced wholesale by ``reload``; calls in
    flight keep the ring they started with.
    """

    def __init__(self, keyring: KeyRing):
        self._keyring = keyring

    @property
    def keyring(self) -> KeyRing:
        return self._keyring

    @property
    def active_key_id(self):
        return self._keyring.active_key_id

    def reload(self, keyring: KeyRing) -> None:
        """Swap in a freshly built key ring."""
        self._keyring = keyring
        logger.info(
            "Key ring reloaded: keys=%s active=%s",
            keyring.key_ids, keyring.active_key_id,
        )

    def encrypt(self, plaintext: str) -> EncryptedEnvelope:
        return encrypt_value(plaintext, self._keyring)

    def decrypt(self, envelope: EncryptedEnvelope) -> str:
        return decrypt_value(envelope, self._keyring)

    def needs_rotation(self, envelope: EncryptedEnvelope) -> bool:
        """True when ``envelope`` was sealed under a key other than the active one."""
        return envelope.key_id != self._keyring.active_key_id
