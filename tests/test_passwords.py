"""Unit tests for auth/passwords.py -- hashing, verification, strength policy.

Covers:
- hash_password() produces a salted bcrypt hash that verify_password() accepts
- verify_password() rejects any other plaintext
- verify_password() raises CredentialFormatError on a corrupt stored hash
- check_strength() enforces the minimum length and bcrypt's 72-byte ceiling
"""

from __future__ import annotations

import pytest

from auth.errors import CredentialFormatError, WeakPasswordError
from auth.passwords import check_strength, hash_password, verify_password

ROUNDS = 4


class TestHashAndVerify:
    def test_hash_then_verify_matches(self) -> None:
        hashed = hash_password("f0cKt3Rf$", rounds=ROUNDS)
        assert verify_password("f0cKt3Rf$", hashed) is True

    def test_hash_is_never_the_plaintext(self) -> None:
        hashed = hash_password("f0cKt3Rf$", rounds=ROUNDS)
        assert "f0cKt3Rf$" not in hashed
        assert hashed.startswith("$2b$04$")

    def test_hashes_are_salted(self) -> None:
        """Two hashes of the same plaintext differ but both verify."""
        first = hash_password("f0cKt3Rf$", rounds=ROUNDS)
        second = hash_password("f0cKt3Rf$", rounds=ROUNDS)
        assert first != second
        assert verify_password("f0cKt3Rf$", first)
        assert verify_password("f0cKt3Rf$", second)

    @pytest.mark.parametrize("other", ["f0CKt3Rf$", "f0cKt3Rf", "", "f0cKt3Rf$ ", "x" * 100])
    def test_different_plaintext_never_matches(self, other: str) -> None:
        hashed = hash_password("f0cKt3Rf$", rounds=ROUNDS)
        assert verify_password(other, hashed) is False


class TestCorruptHash:
    def test_plaintext_stored_as_hash_is_format_error(self) -> None:
        """A plaintext password in the hash column is corrupt data, not a mismatch."""
        with pytest.raises(CredentialFormatError, match="too short"):
            verify_password("f0cKt3Rf$", "f0cKt3Rf$")

    def test_empty_hash_is_format_error(self) -> None:
        with pytest.raises(CredentialFormatError):
            verify_password("f0cKt3Rf$", "")

    def test_wrong_prefix_is_format_error(self) -> None:
        with pytest.raises(CredentialFormatError, match="not in bcrypt format"):
            verify_password("f0cKt3Rf$", "x" * 60)


class TestCheckStrength:
    def test_eight_characters_is_enough(self) -> None:
        check_strength("12345678")

    @pytest.mark.parametrize("password", ["", "a", "1234567"])
    def test_short_password_is_rejected(self, password: str) -> None:
        with pytest.raises(WeakPasswordError) as excinfo:
            check_strength(password)
        assert str(excinfo.value) == "the password requires, at least, a length of 8 characters"

    def test_password_over_72_bytes_is_rejected(self) -> None:
        # 25 three-byte characters: 25 characters, 75 bytes.
        with pytest.raises(WeakPasswordError, match="72 bytes"):
            check_strength("€" * 25)
