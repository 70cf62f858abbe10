"""Navigator Secrets.

Encrypted, workflow-scoped secret storage with a read-through cache and
output masking.
"""
from .version import __version__
from .exceptions import (
    SecretsError,
    ConfigurationError,
    UnknownKey,
    EncryptionFailure,
    DecryptionFailure,
    StoreUnavailable,
    MaskingError,
)
from .scope import Scope, GlobalScope, WorkflowScope, GLOBAL
from .vault import (
    KeyRing,
    EncryptedEnvelope,
    EnvelopeCipher,
    EncryptionConfig,
    CacheConfig,
    rotate_keys,
)
from .storage import SecretRecord, SecretStore, InMemorySecretStore, PostgresSecretStore
from .cache import SecretCache
from .directory import SecretDirectory
from .masking import OutputMasker

__all__ = [
    "__version__",
    "SecretsError",
    "ConfigurationError",
    "UnknownKey",
    "EncryptionFailure",
    "DecryptionFailure",
    "StoreUnavailable",
    "MaskingError",
    "Scope",
    "GlobalScope",
    "WorkflowScope",
    "GLOBAL",
    "KeyRing",
    "EncryptedEnvelope",
    "EnvelopeCipher",
    "EncryptionConfig",
    "CacheConfig",
    "rotate_keys",
    "SecretRecord",
    "SecretStore",
    "InMemorySecretStore",
    "PostgresSecretStore",
    "SecretCache",
    "SecretDirectory",
    "OutputMasker",
]
