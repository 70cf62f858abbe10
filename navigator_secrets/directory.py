"""
Secret Directory — Service façade over the secret store and its cache.

Write paths go to the store and then invalidate the whole cache, so the next
read of any scope reflects the write. Bulk reads used for masking and
variable resolution go through the cache; they degrade to an empty set
(logged) instead of failing the task that asked for them.

Security Note:
    Never log plaintext values. Only log names, scopes and error summaries.
"""
import logging
from typing import Optional

from .cache import SecretCache
from .scope import GLOBAL, Scope
from .storage.abstract import SecretStore
from .vault.config import CacheConfig

logger = logging.getLogger("navigator.secrets")


class SecretDirectory:
    """Secrets service combining store writes with cached bulk reads.

    Args:
        store: Backing secret store.
        cache_ttl: Seconds a cached scope stays valid.
        cache_max_size: Maximum number of cached scopes.
        cache: Prebuilt cache to use instead; its loader must read from
            ``store``.
    """

    def __init__(
        self,
        store: SecretStore,
        cache_ttl: float = 60.0,
        cache_max_size: int = 100,
        cache: Optional[SecretCache] = None,
    ):
        self._store = store
        self._cache = cache or SecretCache(
            store.get_all, ttl=cache_ttl, max_size=cache_max_size,
        )

    @classmethod
    def from_config(
        cls, store: SecretStore, config: Optional[CacheConfig] = None
    ) -> "SecretDirectory":
        config = config or CacheConfig.from_env()
        return cls(store, cache_ttl=config.ttl, cache_max_size=config.max_size)

    @property
    def store(self) -> SecretStore:
        return self._store

    @property
    def cache(self) -> SecretCache:
        return self._cache

    # ------------------------------------------------------------------
    # Write paths
    # ------------------------------------------------------------------

    async def put_secret(
        self,
        name: str,
        value: str,
        created_by: str = "",
        description: str = "",
        workflow_name: Optional[str] = None,
    ) -> None:
        """Create or update a secret, global unless ``workflow_name`` is given.

        Raises:
            EncryptionFailure: If the value cannot be encrypted.
            StoreUnavailable: If the store write fails.
        """
        scope = Scope.of(workflow_name)
        try:
            await self._store.put(name, value, created_by, description, scope)
        finally:
            self._cache.invalidate_all()
        logger.debug("Secret put: name=%s scope=%s by=%s", name, scope, created_by)

    async def delete_secret(self, name: str, workflow_name: Optional[str] = None) -> None:
        """Delete a secret; deleting a missing secret is a no-op.

        Raises:
            StoreUnavailable: If the store write fails.
        """
        scope = Scope.of(workflow_name)
        try:
            await self._store.delete(name, scope)
        finally:
            self._cache.invalidate_all()
        logger.debug("Secret delete: name=%s scope=%s", name, scope)

    def invalidate_all(self) -> None:
        self._cache.invalidate_all()

    # ------------------------------------------------------------------
    # Direct reads
    # ------------------------------------------------------------------

    async def get_secret(self, name: str, workflow_name: Optional[str] = None) -> Optional[str]:
        return await self._store.get(name, Scope.of(workflow_name))

    async def list_secret_names(self, workflow_name: Optional[str] = None) -> list[str]:
        return await self._store.list_names(Scope.of(workflow_name))

    async def secret_exists(self, name: str, workflow_name: Optional[str] = None) -> bool:
        return await self._store.exists(name, Scope.of(workflow_name))

    # ------------------------------------------------------------------
    # Cached bulk reads
    # ------------------------------------------------------------------

    async def global_secrets(self) -> dict[str, str]:
        """Return all global secrets, or ``{}`` if they cannot be loaded."""
        try:
            return await self._cache.get(GLOBAL)
        except Exception as err:
            logger.error("Failed to load global secrets: %s", err)
            return {}

    async def secrets_for_scope(self, workflow_name: Optional[str] = None) -> dict[str, str]:
        """Return global secrets overlaid with the workflow's own secrets.

        Workflow-scoped values win on name collision. Each scope is cached
        under its own key. A missing or empty ``workflow_name`` reads the
        global scope only. If either load fails the result is ``{}``.
        """
        try:
            merged = await self._cache.get(GLOBAL)
            if workflow_name:
                merged.update(await self._cache.get(Scope.of(workflow_name)))
        except Exception as err:
            logger.error(
                "Failed to load secrets for workflow %s: %s", workflow_name, err,
            )
            return {}
        return merged
