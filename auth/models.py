"""
auth/models.py -- Domain dataclasses for accounts and session tokens.

Pattern: Data class (pure data container, zero logic). Dataclasses own the
domain shape; the store, directory and token service do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AuthType(str, Enum):
    """How a user's credentials are checked.

    Only local (bcrypt password) accounts are verified by this service. A
    record with an unrecognised scheme is stored as unknown and can never
    log in here.
    """

    unknown = "unknown"
    local = "local"


@dataclass
class User:
    """A persisted account.

    username is unique among active records only: once a record is soft
    deleted (deleted_at set) the same username may be registered again.
    The store assigns id, created_at and updated_at on insert; id order is
    insertion order.
    """

    username: str
    auth_type: AuthType = AuthType.local
    password_hash: str | None = None  # None for non-local auth types
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None  # soft-delete marker

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None


@dataclass(frozen=True)
class UserSummary:
    """Caller-visible projection of a User. Never carries the password hash."""

    username: str
    auth_type: AuthType
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class UserFilter:
    """Predicate handed to the record store.

    username=None matches any username. active=True matches only records
    without a soft-delete marker, active=False only soft-deleted ones, and
    active=None matches both.
    """

    username: str | None = None
    active: bool | None = None


@dataclass(frozen=True)
class SessionClaims:
    """The payload of a signed session token.

    first_issued anchors the session: it is the time of the login that
    started it and is copied unchanged into every renewed token.
    """

    subject: str
    first_issued: datetime
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class IssuedToken:
    """An encoded token together with the claims it carries."""

    token: str
    claims: SessionClaims

    @property
    def expires_at(self) -> datetime:
        return self.claims.expires_at
