"""
Credentials Configuration — Key material loading and validated settings.

Reads settings from environment variables:
    SECURITY_ENCRYPTION_KEY = <base64-encoded 32-byte key>
    or
    SECURITY_KEY_PASSPHRASE = <human-entered secret>
    SECURITY_KEY_SALT = <salt string>
    SECURITY_KEY_ITERATIONS = <integer, default 100000>

    SECURITY_TOKEN_TTL = <seconds, default 3600>
    SECURITY_PASSWORD_ITERATIONS = <integer, default 100000>
    SECURITY_CIPHER_BACKEND = aesgcm | chacha20 | aescbc-hmac
    SECURITY_CLEANUP_INTERVAL = <seconds, default 60>

Security Note:
    Never log key material. Only log variable names and key fingerprints.
"""
import os
import base64
import binascii
import hashlib
import logging
import threading
from typing import Optional
from collections.abc import Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import ConfigurationError

logger = logging.getLogger("navigator.credentials")

KEY_LENGTH = 32  # AES-256
DEFAULT_KEY_ITERATIONS = 100_000
DEFAULT_PASSWORD_ITERATIONS = 100_000
MAX_PASSWORD_ITERATIONS = 10_000_000
DEFAULT_TOKEN_TTL = 3600
DEFAULT_CLEANUP_INTERVAL = 60

CIPHER_BACKENDS = ("aesgcm", "chacha20", "aescbc-hmac")

ENV_ENCRYPTION_KEY = "SECURITY_ENCRYPTION_KEY"
ENV_KEY_PASSPHRASE = "SECURITY_KEY_PASSPHRASE"
ENV_KEY_SALT = "SECURITY_KEY_SALT"
ENV_KEY_ITERATIONS = "SECURITY_KEY_ITERATIONS"
ENV_TOKEN_TTL = "SECURITY_TOKEN_TTL"
ENV_PASSWORD_ITERATIONS = "SECURITY_PASSWORD_ITERATIONS"
ENV_CIPHER_BACKEND = "SECURITY_CIPHER_BACKEND"
ENV_CLEANUP_INTERVAL = "SECURITY_CLEANUP_INTERVAL"


def derive_key_from_passphrase(
    passphrase: str,
    salt: str,
    iterations: int = DEFAULT_KEY_ITERATIONS,
) -> bytes:
    """Derive a 32-byte encryption key from a passphrase using PBKDF2-HMAC-SHA256.

    Args:
        passphrase: Human-entered secret of arbitrary length.
        salt: Configured salt string.
        iterations: PBKDF2 iteration count.

    Returns:
        32-byte derived key.

    Raises:
        ConfigurationError: If passphrase or salt is empty.
    """
    if not passphrase:
        raise ConfigurationError(f"{ENV_KEY_PASSPHRASE} is empty")
    if not salt:
        raise ConfigurationError(
            f"{ENV_KEY_SALT} must be set when {ENV_KEY_PASSPHRASE} is used"
        )
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt.encode("utf-8"),
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def load_encryption_key(raw: Optional[str]) -> bytes:
    """Decode a base64 encryption key from configuration.

    Args:
        raw: Base64 string as read from SECURITY_ENCRYPTION_KEY.

    Returns:
        Raw 32-byte key.

    Raises:
        ConfigurationError: If the value is absent, empty, not base64,
            or does not decode to exactly 32 bytes.
    """
    if raw is None or not raw.strip():
        raise ConfigurationError(f"{ENV_ENCRYPTION_KEY} is not set")
    try:
        key_bytes = base64.b64decode(raw.strip(), validate=True)
    except (binascii.Error, ValueError):
        raise ConfigurationError(
            f"{ENV_ENCRYPTION_KEY} is not valid base64"
        ) from None
    if len(key_bytes) != KEY_LENGTH:
        raise ConfigurationError(
            f"{ENV_ENCRYPTION_KEY} must decode to exactly {KEY_LENGTH} bytes, "
            f"got {len(key_bytes)}"
        )
    return key_bytes


def key_fingerprint(key: bytes) -> str:
    """Return a short, non-reversible identifier for a key, safe to log."""
    return hashlib.sha256(key).hexdigest()[:8]


class SecurityConfig(BaseModel):
    """Validated credentials configuration."""

    encryption_key: Optional[str] = Field(default=None, repr=False)
    key_passphrase: Optional[str] = Field(default=None, repr=False)
    key_salt: Optional[str] = Field(default=None, repr=False)
    key_iterations: int = Field(default=DEFAULT_KEY_ITERATIONS, ge=10_000)
    token_ttl: int = Field(default=DEFAULT_TOKEN_TTL, ge=1)
    password_iterations: int = Field(
        default=DEFAULT_PASSWORD_ITERATIONS, ge=10_000, le=MAX_PASSWORD_ITERATIONS,
    )
    cipher_backend: str = Field(default="aesgcm")
    cleanup_interval: float = Field(default=DEFAULT_CLEANUP_INTERVAL, gt=0)

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in CIPHER_BACKENDS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @model_validator(mode="after")
    def validate_key_source(self) -> "SecurityConfig":
        """Ensure exactly one usable key source is configured."""
        if self.encryption_key and self.key_passphrase:
            raise ValueError(
                f"Set either {ENV_ENCRYPTION_KEY} or {ENV_KEY_PASSPHRASE}, not both"
            )
        if not self.encryption_key and not self.key_passphrase:
            raise ValueError(
                f"No encryption key configured. Set {ENV_ENCRYPTION_KEY}="
                "<base64-encoded-32-byte-key> or "
                f"{ENV_KEY_PASSPHRASE} and {ENV_KEY_SALT}"
            )
        if self.key_passphrase and not self.key_salt:
            raise ValueError(
                f"{ENV_KEY_SALT} must be set when {ENV_KEY_PASSPHRASE} is used"
            )
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SecurityConfig":
        """Create SecurityConfig by loading values from environment.

        The encryption key is resolved once here so a malformed key fails
        at startup instead of on the first request.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            Populated SecurityConfig instance.

        Raises:
            ConfigurationError: If any setting is missing or invalid.
        """
        env = os.environ if environ is None else environ
        values = {
            "encryption_key": env.get(ENV_ENCRYPTION_KEY) or None,
            "key_passphrase": env.get(ENV_KEY_PASSPHRASE) or None,
            "key_salt": env.get(ENV_KEY_SALT) or None,
        }
        optional = {
            "key_iterations": ENV_KEY_ITERATIONS,
            "token_ttl": ENV_TOKEN_TTL,
            "password_iterations": ENV_PASSWORD_ITERATIONS,
            "cipher_backend": ENV_CIPHER_BACKEND,
            "cleanup_interval": ENV_CLEANUP_INTERVAL,
        }
        for field, name in optional.items():
            raw = env.get(name)
            if raw:
                values[field] = raw
        try:
            config = cls(**values)
        except ValidationError as err:
            # only field names and messages, input values are left out
            problems = "; ".join(
                f"{'.'.join(str(p) for p in e['loc']) or 'config'}: {e['msg']}"
                for e in err.errors(include_input=False, include_url=False)
            )
            raise ConfigurationError(
                f"Invalid security configuration: {problems}"
            ) from None
        config.resolve_key()
        return config

    def resolve_key(self) -> bytes:
        """Return the 32-byte encryption key described by this config.

        Raises:
            ConfigurationError: If the key cannot be resolved.
        """
        if self.encryption_key:
            return load_encryption_key(self.encryption_key)
        return derive_key_from_passphrase(
            self.key_passphrase or "",
            self.key_salt or "",
            self.key_iterations,
        )


class KeyMaterialProvider:
    """Resolves the symmetric encryption key from configuration.

    The key is resolved on first use and memoized for the process lifetime.
    It is never logged, serialized or included in ``repr()``.
    """

    def __init__(
        self,
        config: Optional[SecurityConfig] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._config = config
        self._environ = environ
        self._key: Optional[bytes] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        state = "resolved" if self._key is not None else "unresolved"
        return f"<KeyMaterialProvider [{state}]>"

    @property
    def config(self) -> SecurityConfig:
        if self._config is None:
            self._config = SecurityConfig.from_env(self._environ)
        return self._config

    def get_encryption_key(self) -> bytes:
        """Return the 32-byte encryption key.

        Raises:
            ConfigurationError: If the configured secret is absent, empty,
                or does not resolve to exactly 32 bytes.
        """
        if self._key is None:
            with self._lock:
                if self._key is None:
                    key = self.config.resolve_key()
                    if len(key) != KEY_LENGTH:
                        raise ConfigurationError(
                            f"Encryption key must be {KEY_LENGTH} bytes"
                        )
                    self._key = key
                    logger.info(
                        "Encryption key resolved (fingerprint=%s)",
                        key_fingerprint(key),
                    )
        return self._key

    @property
    def key_id(self) -> str:
        """Non-secret fingerprint of the active key, safe for logs."""
        return key_fingerprint(self.get_encryption_key())
