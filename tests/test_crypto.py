"""
Tests for symmetric encryption.

Tests cover:
- Round trip on every backend
- Fresh IV per call
- Truncated, tampered and wrong-key payloads
- Text and structured value helpers
- Key rotation
"""
import base64
import logging

import pytest

from navigator_credentials.crypto import (
    SymmetricCipherService,
    derive_subkey,
    deserialize_value,
    serialize_value,
)
from navigator_credentials.exceptions import DecryptionError, InvalidArgument
from navigator_credentials.key_rotation import rotate_payloads

BACKENDS = ["aesgcm", "chacha20", "aescbc-hmac"]


@pytest.fixture(params=BACKENDS)
def cipher(request):
    return SymmetricCipherService(backend=request.param)


class TestEncryptDecrypt:
    """Round trip and IV freshness."""

    @pytest.mark.parametrize("message", [
        b"x",
        b"sensitive field value",
        b"\x00" * 16,
        bytes(range(256)) * 4,
    ])
    def test_roundtrip(self, cipher, key, message):
        payload = cipher.encrypt(message, key)
        assert cipher.decrypt(payload, key) == message

    def test_fresh_iv_per_call(self, cipher, key):
        """Test identical inputs produce different payloads."""
        first = cipher.encrypt(b"same", key)
        second = cipher.encrypt(b"same", key)
        assert first != second
        assert first[:cipher.iv_size] != second[:cipher.iv_size]

    def test_payload_starts_with_iv(self, cipher, key):
        payload = cipher.encrypt(b"abc", key)
        assert len(payload) >= cipher.min_payload_size
        assert cipher.iv_size in (12, 16)

    def test_plaintext_not_in_payload(self, cipher, key):
        payload = cipher.encrypt(b"credit-card-4111", key)
        assert b"credit-card-4111" not in payload

    @pytest.mark.parametrize("value", [b"", None, "text"])
    def test_empty_plaintext_rejected(self, cipher, key, value):
        with pytest.raises(InvalidArgument):
            cipher.encrypt(value, key)

    @pytest.mark.parametrize("bad_key", [b"", b"short", bytes(16), bytes(33)])
    def test_bad_key_size_on_encrypt(self, cipher, bad_key):
        with pytest.raises(InvalidArgument):
            cipher.encrypt(b"data", bad_key)

    def test_unknown_backend(self):
        with pytest.raises(InvalidArgument):
            SymmetricCipherService(backend="rot13")


class TestDecryptionFailures:
    """Decryption must fail loudly and generically."""

    def test_wrong_key(self, cipher, key, other_key):
        payload = cipher.encrypt(b"secret", key)
        with pytest.raises(DecryptionError):
            cipher.decrypt(payload, other_key)

    @pytest.mark.parametrize("length", [0, 1, 11, 12, 15, 16])
    def test_shorter_than_iv(self, cipher, key, length):
        with pytest.raises(DecryptionError):
            cipher.decrypt(b"\x01" * length, key)

    def test_truncated(self, cipher, key):
        payload = cipher.encrypt(b"secret value", key)
        with pytest.raises(DecryptionError):
            cipher.decrypt(payload[:-1], key)

    def test_tampered_ciphertext(self, cipher, key):
        payload = bytearray(cipher.encrypt(b"secret value", key))
        payload[cipher.iv_size] ^= 0x01
        with pytest.raises(DecryptionError):
            cipher.decrypt(bytes(payload), key)

    def test_tampered_iv(self, cipher, key):
        payload = bytearray(cipher.encrypt(b"secret value", key))
        payload[0] ^= 0x80
        with pytest.raises(DecryptionError):
            cipher.decrypt(bytes(payload), key)

    def test_wrong_key_size(self, cipher, key):
        payload = cipher.encrypt(b"secret", key)
        with pytest.raises(DecryptionError):
            cipher.decrypt(payload, key[:16])

    def test_backend_mismatch(self, key):
        payload = SymmetricCipherService("aesgcm").encrypt(b"secret", key)
        with pytest.raises(DecryptionError):
            SymmetricCipherService("chacha20").decrypt(payload, key)

    def test_generic_message_and_no_cause(self, cipher, key, other_key):
        """Test the error reveals nothing about the failing layer."""
        payload = cipher.encrypt(b"secret", key)
        with pytest.raises(DecryptionError) as excinfo:
            cipher.decrypt(payload, other_key)
        assert str(excinfo.value) == "Decryption failed"
        assert excinfo.value.__cause__ is None
        assert excinfo.value.__suppress_context__ is True

    def test_failure_log_has_no_data(self, cipher, key, other_key, caplog):
        caplog.set_level(logging.DEBUG, logger="navigator.credentials")
        payload = cipher.encrypt(b"top-secret", key)
        with pytest.raises(DecryptionError):
            cipher.decrypt(payload, other_key)
        assert "top-secret" not in caplog.text
        assert payload.hex() not in caplog.text


class TestTextHelpers:
    """Tests for the base64 string API."""

    def test_text_roundtrip(self, cipher, key):
        encoded = cipher.encrypt_text("555-12-3456", key)
        assert isinstance(encoded, str)
        base64.b64decode(encoded, validate=True)
        assert cipher.decrypt_text(encoded, key) == "555-12-3456"

    def test_invalid_base64(self, cipher, key):
        with pytest.raises(DecryptionError):
            cipher.decrypt_text("not base64 at all!", key)

    def test_empty_text(self, cipher, key):
        with pytest.raises(InvalidArgument):
            cipher.encrypt_text("", key)
        with pytest.raises(DecryptionError):
            cipher.decrypt_text("", key)


class TestValueHelpers:
    """Tests for orjson-backed structured values."""

    @pytest.mark.parametrize("value", [
        "text",
        42,
        3.5,
        True,
        None,
        [1, "two", 3.0],
        {"user": "alice", "roles": ["admin"], "nested": {"a": 1}},
        b"\x00\x01binary",
    ])
    def test_value_roundtrip(self, cipher, key, value):
        payload = cipher.encrypt_value(value, key)
        assert cipher.decrypt_value(payload, key) == value

    def test_serialize_bytes_wrapper(self):
        assert deserialize_value(serialize_value(b"raw")) == b"raw"

    def test_plain_dict_not_unwrapped(self):
        data = {"a": 1, "b": 2}
        assert deserialize_value(serialize_value(data)) == data


class TestDeriveSubkey:
    def test_deterministic_and_separated(self, key):
        assert derive_subkey(key, "a") == derive_subkey(key, "a")
        assert derive_subkey(key, "a") != derive_subkey(key, "b")
        assert len(derive_subkey(key, "a")) == 32


class TestKeyRotation:
    """Tests for rotate_payloads."""

    def test_rotates_all(self, cipher, key, other_key):
        payloads = {
            1: cipher.encrypt(b"one", key),
            2: cipher.encrypt(b"two", key),
        }
        rotated, stats = rotate_payloads(payloads, key, other_key, cipher)
        assert stats == {"total": 2, "rotated": 2, "errors": 0}
        assert cipher.decrypt(rotated[1], other_key) == b"one"
        assert cipher.decrypt(rotated[2], other_key) == b"two"
        with pytest.raises(DecryptionError):
            cipher.decrypt(rotated[1], key)

    def test_bad_payload_counted(self, cipher, key, other_key):
        payloads = {
            "good": cipher.encrypt(b"ok", key),
            "bad": cipher.encrypt(b"ko", other_key),
        }
        rotated, stats = rotate_payloads(payloads, key, other_key, cipher)
        assert stats == {"total": 2, "rotated": 1, "errors": 1}
        assert "bad" not in rotated
        assert cipher.decrypt(rotated["good"], other_key) == b"ok"

    @pytest.mark.parametrize("bad_key", [b"", bytes(16), bytes(33)])
    def test_wrong_size_new_key_rejected(self, cipher, key, bad_key):
        payloads = {1: cipher.encrypt(b"one", key)}
        with pytest.raises(InvalidArgument):
            rotate_payloads(payloads, key, bad_key, cipher)

    def test_same_key_rejected(self, cipher, key):
        with pytest.raises(InvalidArgument):
            rotate_payloads({}, key, key, cipher)
