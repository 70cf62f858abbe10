"""In-process secret store.

Keeps each record's envelope as the exact JSON bytes a persistent backend
would hold, so reads go through the same parse path as a database row.
Useful for tests, single-process deployments and as the reference backend.
"""
from collections.abc import AsyncIterator
from typing import Optional

from ..scope import GLOBAL, Scope
from ..vault.crypto import EncryptedEnvelope, EnvelopeCipher
from .abstract import SecretRecord, SecretStore, utcnow


class InMemorySecretStore(SecretStore):
    """Secret store backed by a dict keyed by ``(scope, name)``."""

    def __init__(self, cipher: EnvelopeCipher):
        super().__init__(cipher)
        # (scope, name) -> (record metadata, envelope json)
        self._rows: dict[tuple[Scope, str], tuple[SecretRecord, bytes]] = {}

    def _row_to_record(self, row: tuple[SecretRecord, bytes]) -> SecretRecord:
        record, raw = row
        return record.model_copy(update={"envelope": EncryptedEnvelope.from_json(raw)})

    async def save_envelope(
        self,
        name: str,
        scope: Scope,
        envelope: EncryptedEnvelope,
        created_by: str,
        description: str,
    ) -> None:
        now = utcnow()
        previous = self._rows.get((scope, name))
        record = SecretRecord(
            name=name,
            scope=scope,
            envelope=envelope,
            created_by=created_by,
            description=description,
            created_at=previous[0].created_at if previous else now,
            modified_at=now,
        )
        self._rows[(scope, name)] = (record, envelope.to_json())

    async def fetch(self, name: str, scope: Scope = GLOBAL) -> Optional[SecretRecord]:
        row = self._rows.get((scope, name))
        if row is None:
            return None
        return self._row_to_record(row)

    async def fetch_all(self, scope: Scope = GLOBAL) -> list[SecretRecord]:
        return [
            self._row_to_record(row)
            for (row_scope, _), row in sorted(
                self._rows.items(), key=lambda item: item[0][1]
            )
            if row_scope == scope
        ]

    async def delete(self, name: str, scope: Scope = GLOBAL) -> None:
        self._rows.pop((scope, name), None)

    async def list_names(self, scope: Scope = GLOBAL) -> list[str]:
        return sorted(name for row_scope, name in self._rows if row_scope == scope)

    async def exists(self, name: str, scope: Scope = GLOBAL) -> bool:
        return (scope, name) in self._rows

    async def records(self, batch_size: int = 100) -> AsyncIterator[SecretRecord]:
        # snapshot, so callers may update envelopes while iterating
        for row in list(self._rows.values()):
            yield self._row_to_record(row)

    async def update_envelope(
        self, name: str, scope: Scope, envelope: EncryptedEnvelope
    ) -> bool:
        row = self._rows.get((scope, name))
        if row is None:
            return False
        record = row[0].model_copy(
            update={"envelope": envelope, "modified_at": utcnow()}
        )
        self._rows[(scope, name)] = (record, envelope.to_json())
        return True

    def __len__(self) -> int:
        return len(self._rows)
