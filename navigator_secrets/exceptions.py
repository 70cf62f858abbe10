"""
Secrets Exceptions — Error taxonomy for the secrets subsystem.

Exception Hierarchy:
    SecretsError (base)
    ├── ConfigurationError (invalid key ring or settings, fatal at startup)
    ├── UnknownKey (envelope references a key id not in the key ring)
    ├── EncryptionFailure (cipher failure while encrypting)
    ├── DecryptionFailure (integrity or format failure while decrypting)
    ├── StoreUnavailable (backing store I/O failure)
    └── MaskingError (output scrubbing could not complete)

"Not found" is never an exception: lookups return ``None`` or ``False``.

Security Note:
    Messages carry names, scopes and key ids only. Never put plaintext,
    ciphertext or key material into an exception message.
"""


class SecretsError(Exception):
    """Base exception for all secrets-related errors."""


class ConfigurationError(SecretsError):
    """Raised when key material or settings fail validation."""


class UnknownKey(SecretsError):
    """Raised when an envelope names a key id absent from the key ring.

    Attributes:
        key_id: The key id the envelope was encrypted under.
    """

    def __init__(self, key_id: str) -> None:
        self.key_id = key_id
        super().__init__(f"Unknown encryption key id: {key_id!r}")


class EncryptionFailure(SecretsError):
    """Raised when a value cannot be encrypted."""


class DecryptionFailure(SecretsError):
    """Raised when an envelope fails authentication or is malformed."""


class StoreUnavailable(SecretsError):
    """Raised when the backing secret store cannot complete an operation.

    Attributes:
        operation: Name of the store operation that failed.
    """

    def __init__(self, operation: str, details: str) -> None:
        self.operation = operation
        self.details = details
        super().__init__(f"Secret store {operation} failed: {details}")


class MaskingError(SecretsError):
    """Raised when output data cannot be fully masked."""
