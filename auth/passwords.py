"""
auth/passwords.py -- Password hashing, verification and strength policy.

Passwords: bcrypt used directly (no passlib wrapper). The cost factor is a
parameter so the process can configure it (BCRYPT_ROUNDS) and tests can run
with the minimum cost.

verify_password() distinguishes "wrong password" (returns False) from
"corrupt stored hash" (raises CredentialFormatError). Callers map the two to
different outcomes, so a malformed hash must never read as a mismatch.

bcrypt only looks at the first 72 bytes of its input, and bcrypt 5 refuses
longer inputs outright. check_strength() rejects such passwords up front so
nothing longer is ever hashed.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

from auth.errors import CredentialFormatError, WeakPasswordError

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72

DEFAULT_ROUNDS = 12

# $2b$12$ + 22 chars of salt + 31 chars of checksum
_BCRYPT_HASH_LENGTH = 60
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Raises CredentialFormatError if hashed is not a bcrypt hash at all.
    """
    if len(hashed) < _BCRYPT_HASH_LENGTH:
        raise CredentialFormatError("the stored hash is too short to be a bcrypt hash")
    if not hashed.startswith(_BCRYPT_PREFIXES):
        raise CredentialFormatError("the stored hash is not in bcrypt format")

    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        # Never accepted by check_strength(), so no stored hash can match it.
        return False

    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError as exc:
        raise CredentialFormatError(f"the stored hash is malformed: {exc}") from exc


def check_strength(plain: str) -> None:
    """Raise WeakPasswordError if the password does not satisfy the policy."""
    if len(plain) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(f"the password requires, at least, a length of {MIN_PASSWORD_LENGTH} characters")
    if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise WeakPasswordError(f"the password can't be longer than {MAX_PASSWORD_BYTES} bytes")
