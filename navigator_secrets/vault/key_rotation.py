"""
Vault Key Rotation — Re-encryption of stored secrets under the active key.

After a new key becomes active, envelopes sealed under older keys keep
decrypting as long as those keys stay in the key ring. Running
``rotate_keys`` re-seals them under the active key so the old keys can be
retired. The operation is idempotent: envelopes already under the active
key are skipped.

Secret values do not change, so cached plaintext stays valid and no cache
invalidation is needed.

Security Note:
    Plaintext exists in memory only during re-encryption of each record.
    Never log plaintext or ciphertext values.
"""
import logging

from ..storage.abstract import SecretStore

logger = logging.getLogger("navigator.secrets")


async def rotate_keys(store: SecretStore, batch_size: int = 100) -> dict:
    """Re-encrypt every record not sealed under the store's active key.

    Args:
        store: Secret store whose cipher holds the target key ring.
        batch_size: Number of rows the backend reads per batch.

    Returns:
        Stats dict with keys: total, rotated, errors, skipped.

    Raises:
        ConfigurationError: If encryption is disabled for the key ring.
    """
    cipher = store.cipher
    active_key_id, _ = cipher.keyring.active_key()
    stats = {"total": 0, "rotated": 0, "errors": 0, "skipped": 0}

    logger.info(
        "Starting key rotation to %s (batch_size=%d)", active_key_id, batch_size,
    )

    async for record in store.records(batch_size):
        stats["total"] += 1
        if not cipher.needs_rotation(record.envelope):
            stats["skipped"] += 1
            continue
        try:
            plaintext = cipher.decrypt(record.envelope)
            envelope = cipher.encrypt(plaintext)
            if await store.update_envelope(record.name, record.scope, envelope):
                stats["rotated"] += 1
            else:
                # deleted while the rotation was running
                stats["skipped"] += 1
        except Exception as err:
            logger.error(
                "Error rotating secret name=%s scope=%s key=%s: %s",
                record.name, record.scope, record.envelope.key_id, err,
            )
            stats["errors"] += 1

    logger.info("Key rotation complete: %s", stats)
    return stats
