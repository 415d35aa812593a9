"""
auth/errors.py -- Exception taxonomy for the auth core.

Two layers:
  Internal errors (AuthError subclasses) are raised by the credential
  verifier, the account directory, the token service and the bootstrap
  sequencer. They describe precisely what went wrong.

  ServiceError is the only exception the orchestrator (auth/service.py) lets
  out. It carries one of the caller-visible ErrorCode categories and a
  human-readable message. The HTTP layer renders it; nothing else does.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from enum import Enum


class AuthError(Exception):
    code = "auth_error"


class CredentialFormatError(AuthError):
    """The stored password hash is not a structurally valid bcrypt hash."""

    code = "credential_format"


class WeakPasswordError(AuthError):
    code = "weak_password"


class NotFoundError(AuthError):
    code = "not_found"

    def __init__(self, username: str) -> None:
        super().__init__(f'user "{username}" not found')
        self.username = username


class AlreadyExistsError(AuthError):
    code = "already_exists"

    def __init__(self, username: str) -> None:
        super().__init__(f'user "{username}" already exists')
        self.username = username


class StoreError(AuthError):
    """A record store operation failed. The message is the store's own text."""

    code = "store_error"


class InvalidTokenError(AuthError):
    code = "invalid_token"


class BootstrapError(AuthError):
    """The administrative account could not be guaranteed. Fatal at startup."""

    code = "bootstrap_error"


# ---------------------------------------------------------------------------
# Caller-visible taxonomy
# ---------------------------------------------------------------------------


class ErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"
    INVALID_ARGUMENT = "invalid_argument"
    ALREADY_EXISTS = "already_exists"
    UNKNOWN = "unknown"


class ServiceError(Exception):
    """A failed caller-facing operation, already mapped to its category."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"ServiceError({self.code.value!r}, {self.message!r})"
