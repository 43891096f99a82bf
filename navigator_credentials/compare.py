"""
Constant-time comparison helpers.

Thin wrappers over ``cryptography``'s ``bytes_eq``. Running time depends on
the length of the inputs, never on the position of the first mismatch.
"""
import hashlib

from cryptography.hazmat.primitives import constant_time


def constant_time_equals(a: bytes, b: bytes) -> bool:
    """Compare two byte strings in constant time.

    Unequal lengths return False without comparing; callers pass values
    of a fixed, public size (derived hashes, digests).
    """
    if len(a) != len(b):
        return False
    return constant_time.bytes_eq(a, b)


def constant_time_equals_str(candidate: str, expected: str) -> bool:
    """Compare two strings of possibly different length in constant time.

    Both sides are reduced to SHA-256 digests first, so the comparison
    always runs over 32 bytes and leaks neither the candidate's length
    nor where it diverges from the expected value.
    """
    a = hashlib.sha256(candidate.encode("utf-8", "surrogatepass")).digest()
    b = hashlib.sha256(expected.encode("utf-8", "surrogatepass")).digest()
    return constant_time.bytes_eq(a, b)
