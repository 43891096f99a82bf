"""
Password Credentials — Salted, iterated password hashing and verification.

Hashes are PBKDF2-HMAC-SHA256 with a fresh 32-byte salt per call, encoded as:
    pbkdf2_sha256$<iterations>$<salt b64>$<hash b64>

The iteration count travels with the hash, so raising the default never
breaks verification of hashes stored earlier.

Security Note:
    Never log the candidate password or the stored hash.
    Verification failures are expected outcomes and return False.
"""
import os
import base64
import binascii
import logging
from typing import Optional
from dataclasses import dataclass, field

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .compare import constant_time_equals
from .config import (
    DEFAULT_PASSWORD_ITERATIONS,
    MAX_PASSWORD_ITERATIONS,
    SecurityConfig,
)
from .exceptions import InvalidArgument

logger = logging.getLogger("navigator.credentials")

ALGORITHM = "pbkdf2_sha256"
SALT_SIZE = 32
HASH_SIZE = 32  # SHA-256 output size
MIN_ITERATIONS = 1_000
MAX_ITERATIONS = MAX_PASSWORD_ITERATIONS  # bounds the cost of verifying a stored value
MIN_SALT_SIZE = 16

_SEPARATOR = "$"
_PASSWORD_MIN_LENGTH = 8
_PASSWORD_MAX_LENGTH = 128


@dataclass(frozen=True)
class PasswordHash:
    """Decoded form of a stored password hash."""

    salt: bytes = field(repr=False)
    derived_hash: bytes = field(repr=False)
    iterations: int
    algorithm: str = ALGORITHM

    def encode(self) -> str:
        """Serialize to the single-string storage format."""
        return _SEPARATOR.join((
            self.algorithm,
            str(self.iterations),
            base64.b64encode(self.salt).decode("ascii"),
            base64.b64encode(self.derived_hash).decode("ascii"),
        ))

    @classmethod
    def decode(cls, encoded: str) -> "PasswordHash":
        """Parse the storage format.

        Raises:
            ValueError: If the value is not a well-formed password hash.
        """
        parts = encoded.split(_SEPARATOR)
        if len(parts) != 4:
            raise ValueError("Malformed password hash")
        algorithm, iterations, salt, derived = parts
        if algorithm != ALGORITHM:
            raise ValueError("Unsupported password hash algorithm")
        if not iterations.isdigit():
            raise ValueError("Malformed iteration count")
        try:
            salt_bytes = base64.b64decode(salt, validate=True)
            hash_bytes = base64.b64decode(derived, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Malformed password hash encoding") from None
        if len(salt_bytes) < MIN_SALT_SIZE or len(hash_bytes) != HASH_SIZE:
            raise ValueError("Malformed password hash length")
        count = int(iterations)
        if count < MIN_ITERATIONS:
            raise ValueError("Iteration count below minimum")
        if count > MAX_ITERATIONS:
            raise ValueError("Iteration count above maximum")
        return cls(salt=salt_bytes, derived_hash=hash_bytes, iterations=count)


def _derive(plaintext: str, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=HASH_SIZE,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(plaintext.encode("utf-8", "surrogatepass"))


class PasswordCredentialService:
    """Hashes and verifies passwords.

    Holds no mutable state, a single instance can be shared by any number
    of threads.
    """

    def __init__(
        self,
        iterations: int = DEFAULT_PASSWORD_ITERATIONS,
        salt_size: int = SALT_SIZE,
    ):
        if not MIN_ITERATIONS <= iterations <= MAX_ITERATIONS:
            raise InvalidArgument(
                f"iterations must be between {MIN_ITERATIONS} and {MAX_ITERATIONS}"
            )
        if salt_size < MIN_SALT_SIZE:
            raise InvalidArgument(
                f"salt_size must be at least {MIN_SALT_SIZE} bytes"
            )
        self.iterations = iterations
        self.salt_size = salt_size

    @classmethod
    def from_config(cls, config: SecurityConfig) -> "PasswordCredentialService":
        return cls(iterations=config.password_iterations)

    def hash_password(self, plaintext: str) -> str:
        """Derive a salted hash from a plaintext password.

        Two calls with the same plaintext return different values, since
        each call draws a fresh salt.

        Args:
            plaintext: Password to hash.

        Returns:
            Encoded password hash.

        Raises:
            InvalidArgument: If plaintext is None or empty.
        """
        if not plaintext or not isinstance(plaintext, str):
            raise InvalidArgument("Password cannot be null or empty")
        salt = os.urandom(self.salt_size)
        derived = _derive(plaintext, salt, self.iterations)
        return PasswordHash(
            salt=salt, derived_hash=derived, iterations=self.iterations,
        ).encode()

    def verify_password(self, plaintext: str, stored: str) -> bool:
        """Check a candidate password against a stored hash.

        Never raises for a malformed stored value; returns False instead.
        The derived hashes are compared in constant time.

        Args:
            plaintext: Candidate password.
            stored: Encoded hash produced by ``hash_password``.

        Returns:
            True if the password matches.
        """
        if not plaintext or not stored:
            return False
        try:
            parsed = PasswordHash.decode(stored)
            candidate = _derive(plaintext, parsed.salt, parsed.iterations)
            return constant_time_equals(candidate, parsed.derived_hash)
        except Exception:
            logger.warning("Password verification failed")
            return False

    def needs_rehash(self, stored: str) -> bool:
        """Return True if ``stored`` should be replaced on next login.

        That is the case when it cannot be parsed or was produced with
        fewer iterations than this service currently uses.
        """
        try:
            parsed = PasswordHash.decode(stored)
        except (ValueError, AttributeError):
            return True
        return parsed.iterations < self.iterations


def is_password_strong(password: Optional[str]) -> bool:
    """Check a password against the default strength policy.

    Policy: 8 to 128 characters with at least one uppercase letter,
    one lowercase letter, one digit and one non-alphanumeric character.
    This is a caller-side check; ``hash_password`` does not apply it.
    """
    if not password:
        return False
    if not _PASSWORD_MIN_LENGTH <= len(password) <= _PASSWORD_MAX_LENGTH:
        return False
    upper = lower = digit = special = False
    for char in password:
        if char.isupper():
            upper = True
        elif char.islower():
            lower = True
        elif char.isdigit():
            digit = True
        elif not char.isalnum():
            special = True
        if upper and lower and digit and special:
            return True
    return False
