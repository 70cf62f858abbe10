"""
Secret Store — Persistence contract for encrypted secret records.

Records are keyed by ``(name, scope)``; a global secret and a workflow
secret may share a name. The base class owns the encryption side
(``put``/``get``/``get_all``), backends only move envelopes in and out of
physical storage.

Backends must:
    - persist ``(name, scope)`` uniquely (upsert on conflict),
    - return envelopes verbatim,
    - list names in lexicographic order,
    - report I/O failures as ``StoreUnavailable``.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..scope import GLOBAL, Scope
from ..vault.crypto import EncryptedEnvelope, EnvelopeCipher

logger = logging.getLogger("navigator.secrets")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SecretRecord(BaseModel):
    """Stored form of a secret; the value only exists inside ``envelope``."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1)
    scope: Scope = GLOBAL
    envelope: EncryptedEnvelope
    created_by: str = ""
    description: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    modified_at: datetime = Field(default_factory=utcnow)


class SecretStore(ABC):
    """Abstract secret store.

    Args:
        cipher: Envelope cipher holding the live key ring.
    """

    def __init__(self, cipher: EnvelopeCipher):
        self._cipher = cipher

    @property
    def cipher(self) -> EnvelopeCipher:
        return self._cipher

    # ------------------------------------------------------------------
    # Encrypting operations
    # ------------------------------------------------------------------

    async def put(
        self,
        name: str,
        value: str,
        created_by: str = "",
        description: str = "",
        scope: Scope = GLOBAL,
    ) -> None:
        """Encrypt ``value`` and create or overwrite ``(name, scope)``.

        Raises:
            EncryptionFailure: If the value cannot be encrypted.
            StoreUnavailable: If the backend write fails.
        """
        _validate_name(name)
        envelope = self._cipher.encrypt(value)
        await self.save_envelope(name, scope, envelope, created_by, description)
        logger.debug("Secret stored: name=%s scope=%s key=%s", name, scope, envelope.key_id)

    async def get(self, name: str, scope: Scope = GLOBAL) -> Optional[str]:
        """Return the decrypted value of ``(name, scope)``, or None if absent.

        Raises:
            UnknownKey: If the record's key is no longer configured.
            DecryptionFailure: If the stored envelope is corrupt.
            StoreUnavailable: If the backend read fails.
        """
        record = await self.fetch(name, scope)
        if record is None:
            return None
        return self._cipher.decrypt(record.envelope)

    async def get_all(self, scope: Scope = GLOBAL) -> dict[str, str]:
        """Decrypt every secret in ``scope``.

        Fails as a whole if any single envelope cannot be decrypted, so a
        caller never receives a silently incomplete set.
        """
        records = await self.fetch_all(scope)
        secrets: dict[str, str] = {}
        for record in records:
            secrets[record.name] = self._cipher.decrypt(record.envelope)
        return secrets

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    async def save_envelope(
        self,
        name: str,
        scope: Scope,
        envelope: EncryptedEnvelope,
        created_by: str,
        description: str,
    ) -> None:
        """Upsert the record for ``(name, scope)``."""

    @abstractmethod
    async def fetch(self, name: str, scope: Scope = GLOBAL) -> Optional[SecretRecord]:
        """Return the stored record for ``(name, scope)``, or None."""

    @abstractmethod
    async def fetch_all(self, scope: Scope = GLOBAL) -> list[SecretRecord]:
        """Return every record in ``scope``."""

    @abstractmethod
    async def delete(self, name: str, scope: Scope = GLOBAL) -> None:
        """Remove ``(name, scope)``; missing records are ignored."""

    @abstractmethod
    async def list_names(self, scope: Scope = GLOBAL) -> list[str]:
        """Return secret names in ``scope``, sorted lexicographically."""

    @abstractmethod
    async def exists(self, name: str, scope: Scope = GLOBAL) -> bool:
        """Return True if ``(name, scope)`` is stored."""

    @abstractmethod
    def records(self, batch_size: int = 100) -> AsyncIterator[SecretRecord]:
        """Iterate over every record in every scope."""

    @abstractmethod
    async def update_envelope(
        self, name: str, scope: Scope, envelope: EncryptedEnvelope
    ) -> bool:
        """Replace the envelope of an existing record, keeping its metadata.

        Returns:
            True if a record was updated.
        """


def _validate_name(name: str) -> None:
    if not isinstance(name, str) or not name:
        raise ValueError("Secret name cannot be empty")
    if len(name) > 255:
        raise ValueError("Secret name cannot exceed 255 characters")
