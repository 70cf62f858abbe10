"""
PostgreSQL Secret Store — Encrypted secret records in a relational table.

Expected table (migrations are managed outside this package)::

    CREATE TABLE secret (
        id            SERIAL PRIMARY KEY,
        secret_name   VARCHAR(255) NOT NULL,
        secret_value  JSONB NOT NULL,
        created_by    VARCHAR(255),
        description   TEXT,
        workflow_name VARCHAR(255),
        created_on    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        modified_on   TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    CREATE UNIQUE INDEX secret_name_scope_idx
        ON secret (secret_name, COALESCE(workflow_name, ''));

``workflow_name IS NULL`` marks a global secret. ``secret_value`` holds the
envelope JSON, never the plaintext.

Security Note:
    Never log plaintext or ciphertext values. Only log names and scopes.
"""
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional

from ..exceptions import SecretsError, StoreUnavailable
from ..scope import GLOBAL, Scope
from ..vault.crypto import EncryptedEnvelope, EnvelopeCipher
from .abstract import SecretRecord, SecretStore

logger = logging.getLogger("navigator.secrets")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

# $5 is NULL for global secrets
_UPSERT_SECRET = """
INSERT INTO secret (secret_name, secret_value, created_by, description, workflow_name)
VALUES ($1, $2::jsonb, $3, $4, $5)
ON CONFLICT (secret_name, COALESCE(workflow_name, ''))
DO UPDATE SET secret_value = EXCLUDED.secret_value,
             modified_on = NOW(),
             created_by = EXCLUDED.created_by,
             description = EXCLUDED.description
"""

_COLUMNS = (
    "secret_name, secret_value, created_by, description, workflow_name, "
    "created_on, modified_on"
)

_SELECT_GLOBAL_SECRET = f"""
SELECT {_COLUMNS} FROM secret
WHERE secret_name = $1 AND workflow_name IS NULL
"""

_SELECT_WORKFLOW_SECRET = f"""
SELECT {_COLUMNS} FROM secret
WHERE secret_name = $1 AND workflow_name = $2
"""

_SELECT_ALL_GLOBAL = f"""
SELECT {_COLUMNS} FROM secret
WHERE workflow_name IS NULL
ORDER BY secret_name
"""

_SELECT_ALL_WORKFLOW = f"""
SELECT {_COLUMNS} FROM secret
WHERE workflow_name = $1
ORDER BY secret_name
"""

_DELETE_GLOBAL_SECRET = """
DELETE FROM secret WHERE secret_name = $1 AND workflow_name IS NULL
"""

_DELETE_WORKFLOW_SECRET = """
DELETE FROM secret WHERE secret_name = $1 AND workflow_name = $2
"""

_LIST_GLOBAL_NAMES = """
SELECT secret_name FROM secret WHERE workflow_name IS NULL ORDER BY secret_name
"""

_LIST_WORKFLOW_NAMES = """
SELECT secret_name FROM secret WHERE workflow_name = $1 ORDER BY secret_name
"""

_GLOBAL_EXISTS = """
SELECT EXISTS(SELECT 1 FROM secret WHERE secret_name = $1 AND workflow_name IS NULL)
"""

_WORKFLOW_EXISTS = """
SELECT EXISTS(SELECT 1 FROM secret WHERE secret_name = $1 AND workflow_name = $2)
"""

_SELECT_BATCH = f"""
SELECT id, {_COLUMNS} FROM secret
WHERE id > $1
ORDER BY id
LIMIT $2
"""

_UPDATE_GLOBAL_ENVELOPE = """
UPDATE secret SET secret_value = $1::jsonb, modified_on = NOW()
WHERE secret_name = $2 AND workflow_name IS NULL
"""

_UPDATE_WORKFLOW_ENVELOPE = """
UPDATE secret SET secret_value = $1::jsonb, modified_on = NOW()
WHERE secret_name = $2 AND workflow_name = $3
"""


def _affected(status: Any) -> int:
    """Row count from an asyncpg command status such as ``'UPDATE 1'``."""
    try:
        return int(str(status).rsplit(" ", 1)[-1])
    except ValueError:
        return 0


class PostgresSecretStore(SecretStore):
    """Secret store over an asyncpg-compatible connection pool.

    Args:
        cipher: Envelope cipher holding the live key ring.
        db_pool: Pool exposing ``acquire()`` as an async context manager
            whose connections provide ``fetch``/``fetchrow``/``fetchval``/
            ``execute`` with ``$n`` placeholders.
    """

    def __init__(self, cipher: EnvelopeCipher, db_pool: Any):
        super().__init__(cipher)
        self._db = db_pool

    @asynccontextmanager
    async def _connection(self, operation: str):
        """Acquire a connection, reporting driver errors as StoreUnavailable."""
        try:
            async with self._db.acquire() as conn:
                yield conn
        except SecretsError:
            raise
        except Exception as err:
            logger.error("Secret store %s failed: %s", operation, err)
            raise StoreUnavailable(operation, str(err)) from err

    @staticmethod
    def _row_to_record(row: Any) -> SecretRecord:
        workflow_name = row["workflow_name"]
        return SecretRecord(
            name=row["secret_name"],
            scope=Scope.of(workflow_name),
            envelope=EncryptedEnvelope.from_json(row["secret_value"]),
            created_by=row["created_by"] or "",
            description=row["description"] or "",
            created_at=row["created_on"],
            modified_at=row["modified_on"],
        )

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    async def save_envelope(
        self,
        name: str,
        scope: Scope,
        envelope: EncryptedEnvelope,
        created_by: str,
        description: str,
    ) -> None:
        async with self._connection("put") as conn:
            await conn.execute(
                _UPSERT_SECRET,
                name,
                envelope.to_json().decode("utf-8"),
                created_by,
                description,
                scope.workflow_name,
            )

    async def fetch(self, name: str, scope: Scope = GLOBAL) -> Optional[SecretRecord]:
        async with self._connection("get") as conn:
            if scope.is_global:
                row = await conn.fetchrow(_SELECT_GLOBAL_SECRET, name)
            else:
                row = await conn.fetchrow(
                    _SELECT_WORKFLOW_SECRET, name, scope.workflow_name,
                )
        if row is None:
            return None
        return self._row_to_record(row)

    async def fetch_all(self, scope: Scope = GLOBAL) -> list[SecretRecord]:
        async with self._connection("get_all") as conn:
            if scope.is_global:
                rows = await conn.fetch(_SELECT_ALL_GLOBAL)
            else:
                rows = await conn.fetch(_SELECT_ALL_WORKFLOW, scope.workflow_name)
        return [self._row_to_record(row) for row in rows]

    async def delete(self, name: str, scope: Scope = GLOBAL) -> None:
        async with self._connection("delete") as conn:
            if scope.is_global:
                await conn.execute(_DELETE_GLOBAL_SECRET, name)
            else:
                await conn.execute(
                    _DELETE_WORKFLOW_SECRET, name, scope.workflow_name,
                )

    async def list_names(self, scope: Scope = GLOBAL) -> list[str]:
        async with self._connection("list_names") as conn:
            if scope.is_global:
                rows = await conn.fetch(_LIST_GLOBAL_NAMES)
            else:
                rows = await conn.fetch(_LIST_WORKFLOW_NAMES, scope.workflow_name)
        return [row["secret_name"] for row in rows]

    async def exists(self, name: str, scope: Scope = GLOBAL) -> bool:
        async with self._connection("exists") as conn:
            if scope.is_global:
                found = await conn.fetchval(_GLOBAL_EXISTS, name)
            else:
                found = await conn.fetchval(
                    _WORKFLOW_EXISTS, name, scope.workflow_name,
                )
        return bool(found)

    async def records(self, batch_size: int = 100) -> AsyncIterator[SecretRecord]:
        # keyset pagination on id: rows rewritten mid-scan are never skipped
        last_id = 0
        while True:
            async with self._connection("records") as conn:
                rows = await conn.fetch(_SELECT_BATCH, last_id, batch_size)
            if not rows:
                break
            for row in rows:
                yield self._row_to_record(row)
            last_id = rows[-1]["id"]

    async def update_envelope(
        self, name: str, scope: Scope, envelope: EncryptedEnvelope
    ) -> bool:
        payload = envelope.to_json().decode("utf-8")
        async with self._connection("update_envelope") as conn:
            if scope.is_global:
                status = await conn.execute(_UPDATE_GLOBAL_ENVELOPE, payload, name)
            else:
                status = await conn.execute(
                    _UPDATE_WORKFLOW_ENVELOPE, payload, name, scope.workflow_name,
                )
        return _affected(status) > 0
