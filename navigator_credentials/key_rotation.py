"""
Key Rotation — Re-encryption of stored payloads when rotating encryption keys.

Takes a mapping of record identifiers to payloads encrypted under the old key
and returns the same identifiers with payloads encrypted under the new key.
Persisting the result is the caller's job; records that fail to decrypt are
counted and left out, so the caller can keep their old value.

Security Note:
    Plaintext exists in memory only during re-encryption of each record.
    Only record identifiers are logged, never plaintext or ciphertext values.
"""
import logging
from typing import Any
from collections.abc import Mapping

from .compare import constant_time_equals
from .config import KEY_LENGTH
from .crypto import SymmetricCipherService
from .exceptions import CredentialError, InvalidArgument

logger = logging.getLogger("navigator.credentials")


def rotate_payloads(
    payloads: Mapping[Any, bytes],
    old_key: bytes,
    new_key: bytes,
    cipher: SymmetricCipherService,
) -> tuple[dict, dict]:
    """Re-encrypt every payload from old_key to new_key.

    Args:
        payloads: Mapping of record identifier to payload under old_key.
        old_key: Key the payloads are currently encrypted with.
        new_key: Key to encrypt them with.
        cipher: Cipher service matching the payloads' backend.

    Returns:
        Tuple of (rotated mapping, stats dict with keys: total, rotated, errors).

    Raises:
        InvalidArgument: If new_key has the wrong size or equals old_key.
    """
    if not isinstance(new_key, (bytes, bytearray)) or len(new_key) != KEY_LENGTH:
        raise InvalidArgument(f"New key must be exactly {KEY_LENGTH} bytes")
    if constant_time_equals(bytes(old_key), bytes(new_key)):
        raise InvalidArgument("New key must differ from the old key")

    stats = {"total": 0, "rotated": 0, "errors": 0}
    rotated: dict = {}

    logger.info(
        "Starting key rotation of %d payload(s) (backend=%s)",
        len(payloads), cipher.backend,
    )

    for record_id, payload in payloads.items():
        stats["total"] += 1
        try:
            rotated[record_id] = cipher.reencrypt(payload, old_key, new_key)
            stats["rotated"] += 1
        except CredentialError:
            logger.error("Error rotating payload id=%s", record_id)
            stats["errors"] += 1

    logger.info(
        "Key rotation complete: %s", stats,
    )
    return rotated, stats
