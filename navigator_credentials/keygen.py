"""
Key and secret generators for operators.

Use these to produce configuration values instead of hardcoding secrets.
"""
import base64
import secrets
import string

from .config import KEY_LENGTH
from .exceptions import InvalidArgument

_SPECIAL_CHARS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
_MIN_PASSWORD_LENGTH = 12


def generate_master_key() -> str:
    """Generate a random 32-byte encryption key and return as base64 string.

    The output is a valid value for SECURITY_ENCRYPTION_KEY.

    Returns:
        Base64-encoded 32-byte key string.
    """
    return base64.b64encode(secrets.token_bytes(KEY_LENGTH)).decode("ascii")


def generate_api_key(prefix: str = "ak", length: int = 32) -> str:
    """Generate an API key in the format ``<prefix>_<random>``.

    Args:
        prefix: Optional prefix, omitted when empty.
        length: Number of random bytes (minimum 16).

    Returns:
        URL-safe API key string without padding.
    """
    if length < 16:
        raise InvalidArgument("API key length must be at least 16 bytes")
    key = secrets.token_urlsafe(length).rstrip("=")
    return f"{prefix}_{key}" if prefix else key


def generate_secure_password(length: int = 16, special: bool = True) -> str:
    """Generate a random password containing every required character class.

    Args:
        length: Password length (minimum 12).
        special: Whether to include special characters.

    Returns:
        Generated password.
    """
    if length < _MIN_PASSWORD_LENGTH:
        raise InvalidArgument(
            f"Password length must be at least {_MIN_PASSWORD_LENGTH} characters"
        )
    classes = [string.ascii_lowercase, string.ascii_uppercase, string.digits]
    if special:
        classes.append(_SPECIAL_CHARS)
    alphabet = "".join(classes)
    # one of each class, the rest from the full alphabet
    chars = [secrets.choice(c) for c in classes]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
