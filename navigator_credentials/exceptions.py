"""
Credential errors.

Messages never carry secret material: no plaintext, passwords, keys,
ciphertext or token values. Only operation names and config variable names.
"""


class CredentialError(Exception):
    """Base class for every error raised by navigator_credentials."""


class InvalidArgument(CredentialError, ValueError):
    """Caller supplied an empty, null or malformed argument."""


class ConfigurationError(CredentialError, RuntimeError):
    """Secret material is missing or malformed.

    Raised at startup, the process should not serve traffic with it.
    """


class DecryptionError(CredentialError):
    """Payload could not be decrypted.

    The message never says whether the IV, key, tag or padding was at
    fault.
    """

    def __init__(self, message: str = "Decryption failed"):
        super().__init__(message)
