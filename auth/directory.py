"""
auth/directory.py -- Account directory: create, find, soft-delete and list users.

The directory owns the account semantics:
  - a username is unique among ACTIVE records only;
  - every read excludes soft-deleted records;
  - records are never hard-deleted, only marked with deleted_at.

It talks to storage exclusively through the UserRecordStore protocol, so the
policy does not depend on any particular query builder. UserStore in
auth/store.py is the SQLAlchemy implementation.

Concurrency:
  create() checks for an active record and then inserts. The check is only a
  fast path; the store's partial unique index is what makes the pair atomic.
  An IntegrityError from the insert therefore means a concurrent create won,
  and is reported as AlreadyExistsError like the pre-check.

  soft_delete() sends an UPDATE conditioned on deleted_at still being NULL.
  Zero affected rows means a concurrent delete got there first; the record is
  not touched twice and NotFoundError is raised.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import AlreadyExistsError, NotFoundError, StoreError
from auth.models import AuthType, User, UserFilter, UserSummary

logger = logging.getLogger("drlm.auth.directory")


class UserRecordStore(Protocol):
    """The storage capability the directory needs.

    Implementations raise sqlalchemy.exc.SQLAlchemyError subclasses on
    failure, and IntegrityError specifically when an insert collides with an
    active record's username.
    """

    def insert(self, user: User) -> User: ...

    def find_one(self, where: UserFilter) -> User | None: ...

    def update(self, user_id: int, where: UserFilter, **values) -> int: ...

    def find_all(self, where: UserFilter) -> list[User]: ...


class AccountDirectory:
    def __init__(self, store: UserRecordStore) -> None:
        self._store = store

    def create(self, username: str, password_hash: str | None, auth_type: AuthType = AuthType.local) -> User:
        """Create an active user record.

        Raises AlreadyExistsError if an active record with username exists,
        StoreError on any other store failure.
        """
        try:
            if self._store.find_one(UserFilter(username=username, active=True)) is not None:
                raise AlreadyExistsError(username)
            user = self._store.insert(User(username=username, password_hash=password_hash, auth_type=auth_type))
        except IntegrityError as exc:
            raise AlreadyExistsError(username) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

        logger.debug("Created user %r (id=%s)", username, user.id)
        return user

    def find_by_username(self, username: str) -> User:
        """Return the active record for username.

        Raises NotFoundError if there is none, StoreError on store failure.
        """
        try:
            user = self._store.find_one(UserFilter(username=username, active=True))
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        if user is None:
            raise NotFoundError(username)
        return user

    def soft_delete(self, username: str) -> None:
        """Mark the active record for username as deleted."""
        user = self.find_by_username(username)
        try:
            updated = self._store.update(
                user.id,
                UserFilter(active=True),
                deleted_at=datetime.now(timezone.utc),
            )
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        if updated == 0:
            raise NotFoundError(username)

        logger.debug("Soft-deleted user %r (id=%s)", username, user.id)

    def list_active(self) -> list[UserSummary]:
        """Return every active user in insertion order, without password hashes."""
        try:
            users = self._store.find_all(UserFilter(active=True))
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return [
            UserSummary(
                username=u.username,
                auth_type=u.auth_type,
                created_at=u.created_at,
                updated_at=u.updated_at,
            )
            for u in users
        ]
