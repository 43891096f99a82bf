import base64

import pytest

from navigator_credentials.passwords import PasswordCredentialService


@pytest.fixture
def key():
    """A fixed 32-byte key."""
    return bytes(range(32))


@pytest.fixture
def other_key():
    """A second, different 32-byte key."""
    return bytes(range(32, 64))


@pytest.fixture
def key_b64(key):
    return base64.b64encode(key).decode("ascii")


@pytest.fixture
def passwords():
    """Password service with a low iteration count to keep tests fast."""
    return PasswordCredentialService(iterations=1_000)
