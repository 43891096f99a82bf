"""
Tests for password hashing and verification.

Tests cover:
- Hash/verify round trip and mismatches
- Fresh salt on every call
- Malformed stored values never raise
- Rehash detection and the strength policy
"""
import base64
import logging

import pytest

from navigator_credentials.exceptions import InvalidArgument
from navigator_credentials.passwords import (
    HASH_SIZE,
    MAX_ITERATIONS,
    SALT_SIZE,
    PasswordCredentialService,
    PasswordHash,
    is_password_strong,
)


class TestHashPassword:
    """Tests for hash_password."""

    def test_hash_has_expected_layout(self, passwords):
        """Test encoded hash carries algorithm, iterations, salt and hash."""
        encoded = passwords.hash_password("s3cret!")
        algorithm, iterations, salt, derived = encoded.split("$")
        assert algorithm == "pbkdf2_sha256"
        assert int(iterations) == 1_000
        assert len(base64.b64decode(salt)) == SALT_SIZE
        assert len(base64.b64decode(derived)) == HASH_SIZE

    def test_same_password_hashes_differently(self, passwords):
        """Test two hashes of one password differ (fresh salt)."""
        first = passwords.hash_password("correct horse")
        second = passwords.hash_password("correct horse")
        assert first != second
        assert passwords.verify_password("correct horse", first)
        assert passwords.verify_password("correct horse", second)

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_password_rejected(self, passwords, value):
        """Test empty or None plaintext raises InvalidArgument."""
        with pytest.raises(InvalidArgument):
            passwords.hash_password(value)

    def test_invalid_argument_is_value_error(self, passwords):
        """Test InvalidArgument can be caught as ValueError."""
        with pytest.raises(ValueError):
            passwords.hash_password("")

    def test_low_iteration_count_rejected(self):
        """Test service refuses an iteration count below the minimum."""
        with pytest.raises(InvalidArgument):
            PasswordCredentialService(iterations=10)

    def test_high_iteration_count_rejected(self):
        """Test service refuses an iteration count above the maximum."""
        with pytest.raises(InvalidArgument):
            PasswordCredentialService(iterations=MAX_ITERATIONS + 1)

    def test_short_salt_rejected(self):
        """Test service refuses salts shorter than 16 bytes."""
        with pytest.raises(InvalidArgument):
            PasswordCredentialService(iterations=1_000, salt_size=8)

    def test_weak_password_still_hashed(self, passwords):
        """Test hashing does not enforce the strength policy."""
        encoded = passwords.hash_password("a")
        assert passwords.verify_password("a", encoded)


class TestVerifyPassword:
    """Tests for verify_password."""

    def test_correct_password(self, passwords):
        encoded = passwords.hash_password("P@ssw0rd")
        assert passwords.verify_password("P@ssw0rd", encoded) is True

    def test_wrong_password(self, passwords):
        encoded = passwords.hash_password("P@ssw0rd")
        assert passwords.verify_password("P@ssw0rd!", encoded) is False

    def test_unicode_password(self, passwords):
        encoded = passwords.hash_password("contraseña-ñandú")
        assert passwords.verify_password("contraseña-ñandú", encoded)
        assert not passwords.verify_password("contrasena-nandu", encoded)

    def test_stored_iterations_are_honoured(self, passwords):
        """Test a hash made with other iterations still verifies."""
        stronger = PasswordCredentialService(iterations=2_000)
        encoded = stronger.hash_password("migrate-me")
        assert passwords.verify_password("migrate-me", encoded)

    @pytest.mark.parametrize("stored", [
        "",
        "garbage",
        "pbkdf2_sha256$1000$onlythree",
        "md5$1000$AAAA$BBBB",
        "pbkdf2_sha256$abc$AAAA$BBBB",
        "pbkdf2_sha256$1000$!!notbase64!!$BBBB",
        "pbkdf2_sha256$1000$" + base64.b64encode(b"x" * 32).decode() + "$" +
        base64.b64encode(b"short").decode(),
        "pbkdf2_sha256$10$" + base64.b64encode(b"x" * 32).decode() + "$" +
        base64.b64encode(b"y" * 32).decode(),
    ])
    def test_malformed_stored_value_returns_false(self, passwords, stored):
        """Test malformed stored values yield False instead of raising."""
        assert passwords.verify_password("anything", stored) is False

    def test_excessive_iterations_rejected(self, passwords):
        """Test a stored value demanding huge work is refused without deriving."""
        stored = (
            f"pbkdf2_sha256${10**10}$"
            + base64.b64encode(b"x" * 32).decode() + "$"
            + base64.b64encode(b"y" * 32).decode()
        )
        with pytest.raises(ValueError):
            PasswordHash.decode(stored)
        assert passwords.verify_password("anything", stored) is False
        assert passwords.needs_rehash(stored) is True

    def test_surrogate_password(self, passwords):
        encoded = passwords.hash_password("pw-\udcff")
        assert passwords.verify_password("pw-\udcff", encoded)
        assert not passwords.verify_password("pw-\udcfe", encoded)

    def test_empty_candidate_returns_false(self, passwords):
        encoded = passwords.hash_password("x")
        assert passwords.verify_password("", encoded) is False
        assert passwords.verify_password(None, encoded) is False

    def test_failure_log_has_no_secrets(self, passwords, caplog):
        """Test the failure log does not contain password or hash."""
        caplog.set_level(logging.DEBUG, logger="navigator.credentials")
        passwords.verify_password("hunter2", "pbkdf2_sha256$1000$bad$value")
        text = caplog.text
        assert "verification failed" in text
        assert "hunter2" not in text
        assert "bad$value" not in text


class TestPasswordHash:
    """Tests for the PasswordHash value object."""

    def test_decode_encode(self, passwords):
        encoded = passwords.hash_password("secret")
        parsed = PasswordHash.decode(encoded)
        assert parsed.iterations == 1_000
        assert parsed.encode() == encoded

    def test_repr_hides_bytes(self, passwords):
        parsed = PasswordHash.decode(passwords.hash_password("secret"))
        text = repr(parsed)
        assert "salt" not in text
        assert "derived_hash" not in text


class TestNeedsRehash:
    """Tests for needs_rehash."""

    def test_current_hash(self, passwords):
        assert passwords.needs_rehash(passwords.hash_password("x")) is False

    def test_weaker_hash(self, passwords):
        stronger = PasswordCredentialService(iterations=5_000)
        assert stronger.needs_rehash(passwords.hash_password("x")) is True

    def test_malformed_hash(self, passwords):
        assert passwords.needs_rehash("not-a-hash") is True
        assert passwords.needs_rehash(None) is True


class TestPasswordStrength:
    """Tests for is_password_strong."""

    @pytest.mark.parametrize("password", [
        "Abcdef1!",
        "Tr0ub4dor&3",
        "Ñandú-2024",
    ])
    def test_strong(self, password):
        assert is_password_strong(password) is True

    @pytest.mark.parametrize("password", [
        None,
        "",
        "Ab1!",
        "abcdefg1!",
        "ABCDEFG1!",
        "Abcdefgh!",
        "Abcdefgh1",
        "Aa1!" + "x" * 130,
    ])
    def test_weak(self, password):
        assert is_password_strong(password) is False
