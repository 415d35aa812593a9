"""
auth/service.py -- The caller-facing auth operations.

AuthService composes the account directory, the credential verifier and the
token service into the five operations every inbound call goes through:

  login(username, password)      -- public; issues a session token
  renew_token(context)           -- requires the caller's token under "tkn"
  add_user(username, password)   -- creates a local account
  delete_user(username)          -- soft-deletes an account
  list_users()                   -- active accounts, no password hashes

Error mapping:
  This is the single place where internal errors (auth/errors.py) become
  caller-visible ServiceError categories. Every operation catches the
  precise internal kinds it can see and re-raises them as ServiceError with a
  message naming the operation and, where there is one, the username. Raw
  store text only ever appears as the suffix of an UNKNOWN message.

Concurrency:
  AuthService holds no per-call state. One instance serves every concurrent
  call; the directory and the store carry the only shared-resource rules.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from auth import passwords
from auth.directory import AccountDirectory
from auth.errors import (
    AlreadyExistsError,
    CredentialFormatError,
    ErrorCode,
    InvalidTokenError,
    NotFoundError,
    ServiceError,
    StoreError,
    WeakPasswordError,
)
from auth.models import AuthType, IssuedToken, UserSummary
from auth.tokens import TokenService

logger = logging.getLogger("drlm.auth")

# Name of the call metadata entry carrying the bearer token.
TOKEN_KEY = "tkn"


class AuthService:
    def __init__(
        self,
        *,
        directory: AccountDirectory,
        tokens: TokenService,
        bcrypt_rounds: int = passwords.DEFAULT_ROUNDS,
    ) -> None:
        self._directory = directory
        self._tokens = tokens
        self._bcrypt_rounds = bcrypt_rounds

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> IssuedToken:
        """Check username/password and start a new session.

        NOT_FOUND if the user has no active record, UNAUTHENTICATED on a
        wrong password, UNKNOWN if the stored hash is corrupt or the store
        fails.
        """
        try:
            user = self._directory.find_by_username(username)
        except NotFoundError as exc:
            logger.warning("Login rejected: unknown user %r", username)
            raise ServiceError(ErrorCode.NOT_FOUND, f"error logging in: {exc}") from exc
        except StoreError as exc:
            raise ServiceError(ErrorCode.UNKNOWN, f"error logging in: {exc}") from exc

        if user.auth_type != AuthType.local or not user.password_hash:
            raise ServiceError(
                ErrorCode.UNKNOWN,
                f"error logging in: unsupported authentication type {user.auth_type.value!r}",
            )

        try:
            matched = passwords.verify_password(password, user.password_hash)
        except CredentialFormatError as exc:
            logger.error("Stored password hash for %r is corrupt", username)
            raise ServiceError(ErrorCode.UNKNOWN, f"error logging in: password error: {exc}") from exc

        if not matched:
            logger.warning("Login rejected: incorrect password for %r", username)
            raise ServiceError(ErrorCode.UNAUTHENTICATED, "error logging in: incorrect password")

        issued = self._tokens.issue(user.username)
        logger.info("User %r logged in (token expires %s)", user.username, issued.expires_at.isoformat())
        return issued

    def renew_token(self, context: Mapping[str, str]) -> IssuedToken:
        """Replace the caller's token with a fresh one for the same session.

        context is the call metadata. A missing token is UNAUTHENTICATED; a
        token that fails to verify, or whose subject no longer has an active
        account, is an UNKNOWN renewal failure.
        """
        token = context.get(TOKEN_KEY)
        if not token:
            raise ServiceError(ErrorCode.UNAUTHENTICATED, "not authenticated")

        try:
            issued = self._tokens.renew(token)
            self._directory.find_by_username(issued.claims.subject)
        except (InvalidTokenError, NotFoundError) as exc:
            logger.warning("Token renewal rejected: %s", exc)
            raise ServiceError(
                ErrorCode.UNKNOWN,
                "error renewing the token: the token is invalid or can't be renewed",
            ) from exc
        except StoreError as exc:
            raise ServiceError(ErrorCode.UNKNOWN, f"error renewing the token: {exc}") from exc

        logger.info("Renewed token for %r (session started %s)", issued.claims.subject, issued.claims.first_issued)
        return issued

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def add_user(self, username: str, password: str) -> None:
        """Create a local account after checking the password policy."""
        if not username:
            raise ServiceError(ErrorCode.INVALID_ARGUMENT, "error adding the user: the username can't be empty")
        try:
            passwords.check_strength(password)
        except WeakPasswordError as exc:
            raise ServiceError(ErrorCode.INVALID_ARGUMENT, str(exc)) from exc

        password_hash = passwords.hash_password(password, rounds=self._bcrypt_rounds)
        try:
            self._directory.create(username, password_hash, AuthType.local)
        except AlreadyExistsError as exc:
            raise ServiceError(ErrorCode.ALREADY_EXISTS, f"error adding the user: {exc}") from exc
        except StoreError as exc:
            raise ServiceError(ErrorCode.UNKNOWN, f"error adding the user to the DB: {exc}") from exc

        logger.info("Added user %r", username)

    def delete_user(self, username: str) -> None:
        try:
            self._directory.soft_delete(username)
        except NotFoundError as exc:
            raise ServiceError(ErrorCode.NOT_FOUND, f'error deleting the user "{username}": not found') from exc
        except StoreError as exc:
            raise ServiceError(ErrorCode.UNKNOWN, f'error deleting the user "{username}": {exc}') from exc

        logger.info("Deleted user %r", username)

    def list_users(self) -> list[UserSummary]:
        try:
            return self._directory.list_active()
        except StoreError as exc:
            raise ServiceError(ErrorCode.UNKNOWN, f"error getting the list of users: {exc}") from exc
