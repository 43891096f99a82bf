"""Navigator Credentials — Password hashing, field encryption and user tokens.

Security Note (Threat Model):
    Key material and active tokens live in process memory. A memory dump of
    the application process could expose them. This is an accepted
    limitation, mitigation requires HSM/secure enclave integration which is
    out of scope.
"""

from .version import __version__
from .exceptions import (
    CredentialError,
    InvalidArgument,
    ConfigurationError,
    DecryptionError,
)
from .config import SecurityConfig, KeyMaterialProvider
from .keygen import generate_master_key, generate_api_key, generate_secure_password
from .passwords import PasswordCredentialService, PasswordHash, is_password_strong
from .crypto import SymmetricCipherService
from .key_rotation import rotate_payloads
from .tokens import TokenLifecycleManager, TokenStore, TokenRecord, TokenJanitor

__all__ = [
    "__version__",
    "CredentialError",
    "InvalidArgument",
    "ConfigurationError",
    "DecryptionError",
    "SecurityConfig",
    "KeyMaterialProvider",
    "generate_master_key",
    "generate_api_key",
    "generate_secure_password",
    "PasswordCredentialService",
    "PasswordHash",
    "is_password_strong",
    "SymmetricCipherService",
    "rotate_payloads",
    "TokenLifecycleManager",
    "TokenStore",
    "TokenRecord",
    "TokenJanitor",
]
