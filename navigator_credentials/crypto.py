"""
Credentials Crypto Core — Field encryption/decryption and value serialization.

Every call draws a fresh random IV/nonce which is prepended to the output:
- aesgcm:      [nonce 12B][ciphertext + GCM tag 16B]
- chacha20:    [nonce 12B][ciphertext + Poly1305 tag 16B]
- aescbc-hmac: [IV 16B][AES-256-CBC ciphertext, PKCS7][HMAC-SHA256 tag 32B]

The CBC backend derives separate encryption and MAC subkeys with
HKDF(key, "credentials-cbc-enc" / "credentials-cbc-mac") and verifies the
tag before touching the padding.

Security Note:
    Never log plaintext, ciphertext or key material, including on error paths.
    Every decryption failure is reported as the same generic DecryptionError.
"""
import os
import base64
import binascii
import logging
from typing import Any

import orjson
from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .config import KEY_LENGTH, SecurityConfig
from .exceptions import DecryptionError, InvalidArgument

logger = logging.getLogger("navigator.credentials")

NONCE_SIZE = 12  # 96-bit nonce for AEAD backends
AEAD_TAG_SIZE = 16
CBC_IV_SIZE = 16  # AES block size
CBC_TAG_SIZE = 32  # HMAC-SHA256

_BYTES_WRAPPER_KEY = "__credentials_bytes_b64__"

_AEAD_BACKENDS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_subkey(key: bytes, context: str) -> bytes:
    """Derive a 32-byte subkey using HKDF-SHA256.

    Args:
        key: Input key material.
        context: Context string for domain separation.

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # deterministic: the same key always yields the same subkeys
        info=context.encode("utf-8"),
    )
    return hkdf.derive(key)


# ---------------------------------------------------------------------------
# Value serialization
# ---------------------------------------------------------------------------

def serialize_value(value: Any) -> bytes:
    """Serialize a Python value to bytes for encryption.

    Supports: str, int, float, dict, list, bytes, bool, None.
    bytes values are wrapped as {"__credentials_bytes_b64__": "<base64>"}
    for a safe JSON round-trip.

    Args:
        value: Python value to serialize.

    Returns:
        orjson-encoded bytes.
    """
    if isinstance(value, bytes):
        wrapped = {_BYTES_WRAPPER_KEY: base64.b64encode(value).decode("ascii")}
        return orjson.dumps(wrapped)
    return orjson.dumps(value)


def deserialize_value(data: bytes) -> Any:
    """Deserialize bytes back to a Python value.

    Args:
        data: orjson-encoded bytes from serialize_value.

    Returns:
        Original Python value.
    """
    parsed = orjson.loads(data)
    if isinstance(parsed, dict) and _BYTES_WRAPPER_KEY in parsed and len(parsed) == 1:
        return base64.b64decode(parsed[_BYTES_WRAPPER_KEY])
    return parsed


# ---------------------------------------------------------------------------
# Cipher service
# ---------------------------------------------------------------------------

class SymmetricCipherService:
    """Encrypts and decrypts opaque payloads with a caller-supplied key.

    Stateless apart from the backend choice; safe to share across threads.
    """

    def __init__(self, backend: str = "aesgcm"):
        backend = backend.lower()
        if backend not in _AEAD_BACKENDS and backend != "aescbc-hmac":
            raise InvalidArgument(f"Unsupported cipher backend: {backend}")
        self.backend = backend

    def __repr__(self) -> str:
        return f"<SymmetricCipherService [{self.backend}]>"

    @classmethod
    def from_config(cls, config: SecurityConfig) -> "SymmetricCipherService":
        return cls(backend=config.cipher_backend)

    @property
    def iv_size(self) -> int:
        return CBC_IV_SIZE if self.backend == "aescbc-hmac" else NONCE_SIZE

    @property
    def min_payload_size(self) -> int:
        """Length of the shortest payload this backend can produce."""
        if self.backend == "aescbc-hmac":
            # one padded block at least
            return CBC_IV_SIZE + CBC_IV_SIZE + CBC_TAG_SIZE
        return NONCE_SIZE + AEAD_TAG_SIZE

    # ------------------------------------------------------------------
    # Bytes API
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: bytes, key: bytes) -> bytes:
        """Encrypt plaintext under key with a fresh random IV.

        Args:
            plaintext: Data to encrypt.
            key: 32-byte key material.

        Returns:
            Payload bytes, IV prefix followed by ciphertext.

        Raises:
            InvalidArgument: If plaintext is empty or key has the wrong size.
        """
        if not plaintext or not isinstance(plaintext, (bytes, bytearray)):
            raise InvalidArgument("Plaintext cannot be null or empty")
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise InvalidArgument(f"Key must be exactly {KEY_LENGTH} bytes")
        if self.backend == "aescbc-hmac":
            return self._encrypt_cbc(bytes(plaintext), bytes(key))
        cipher = _AEAD_BACKENDS[self.backend](bytes(key))
        nonce = os.urandom(NONCE_SIZE)
        return nonce + cipher.encrypt(nonce, bytes(plaintext), None)

    def decrypt(self, payload: bytes, key: bytes) -> bytes:
        """Decrypt a payload produced by ``encrypt``.

        Args:
            payload: IV prefix followed by ciphertext.
            key: 32-byte key material.

        Returns:
            Decrypted plaintext bytes.

        Raises:
            DecryptionError: If the payload is too short, the key size is
                wrong, or the integrity check fails.
        """
        if not isinstance(payload, (bytes, bytearray)) or len(payload) < self.min_payload_size:
            raise DecryptionError()
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_LENGTH:
            raise DecryptionError()
        payload = bytes(payload)
        if self.backend == "aescbc-hmac":
            return self._decrypt_cbc(payload, bytes(key))
        cipher = _AEAD_BACKENDS[self.backend](bytes(key))
        nonce = payload[:NONCE_SIZE]
        ct = payload[NONCE_SIZE:]
        try:
            return cipher.decrypt(nonce, ct, None)
        except InvalidTag:
            logger.warning("Decryption failed (backend=%s)", self.backend)
            raise DecryptionError() from None

    def reencrypt(self, payload: bytes, old_key: bytes, new_key: bytes) -> bytes:
        """Decrypt with old_key and encrypt again under new_key."""
        return self.encrypt(self.decrypt(payload, old_key), new_key)

    # ------------------------------------------------------------------
    # Transport helpers
    # ------------------------------------------------------------------

    def encrypt_text(self, plaintext: str, key: bytes) -> str:
        """Encrypt a string and return the payload as base64 text."""
        if not plaintext or not isinstance(plaintext, str):
            raise InvalidArgument("Plaintext cannot be null or empty")
        payload = self.encrypt(plaintext.encode("utf-8"), key)
        return base64.b64encode(payload).decode("ascii")

    def decrypt_text(self, encoded: str, key: bytes) -> str:
        """Decrypt base64 text produced by ``encrypt_text``."""
        if not encoded or not isinstance(encoded, str):
            raise DecryptionError()
        try:
            payload = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise DecryptionError() from None
        plaintext = self.decrypt(payload, key)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionError() from None

    def encrypt_value(self, value: Any, key: bytes) -> bytes:
        """Serialize a Python value with orjson and encrypt it."""
        return self.encrypt(serialize_value(value), key)

    def decrypt_value(self, payload: bytes, key: bytes) -> Any:
        """Decrypt a payload from ``encrypt_value`` back to a Python value."""
        data = self.decrypt(payload, key)
        try:
            return deserialize_value(data)
        except (orjson.JSONDecodeError, binascii.Error, ValueError):
            raise DecryptionError() from None

    # ------------------------------------------------------------------
    # CBC + HMAC backend
    # ------------------------------------------------------------------

    @staticmethod
    def _cbc_keys(key: bytes) -> tuple[bytes, bytes]:
        return (
            derive_subkey(key, "credentials-cbc-enc"),
            derive_subkey(key, "credentials-cbc-mac"),
        )

    @staticmethod
    def _mac(mac_key: bytes, data: bytes) -> hmac.HMAC:
        h = hmac.HMAC(mac_key, hashes.SHA256())
        h.update(data)
        return h

    def _encrypt_cbc(self, plaintext: bytes, key: bytes) -> bytes:
        enc_key, mac_key = self._cbc_keys(key)
        iv = os.urandom(CBC_IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(enc_key), modes.CBC(iv)).encryptor()
        ct = encryptor.update(padded) + encryptor.finalize()
        tag = self._mac(mac_key, iv + ct).finalize()
        return iv + ct + tag

    def _decrypt_cbc(self, payload: bytes, key: bytes) -> bytes:
        enc_key, mac_key = self._cbc_keys(key)
        iv = payload[:CBC_IV_SIZE]
        ct = payload[CBC_IV_SIZE:-CBC_TAG_SIZE]
        tag = payload[-CBC_TAG_SIZE:]
        if len(ct) % CBC_IV_SIZE:
            raise DecryptionError()
        try:
            self._mac(mac_key, iv + ct).verify(tag)
            decryptor = Cipher(algorithms.AES(enc_key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ct) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except (InvalidSignature, ValueError):
            logger.warning("Decryption failed (backend=%s)", self.backend)
            raise DecryptionError() from None

