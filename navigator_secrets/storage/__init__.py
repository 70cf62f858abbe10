"""Secret stores: the persistence contract and reference backends."""

from .abstract import SecretRecord, SecretStore
from .memory import InMemorySecretStore
from .postgres import PostgresSecretStore

__all__ = [
    "SecretRecord",
    "SecretStore",
    "InMemorySecretStore",
    "PostgresSecretStore",
]
