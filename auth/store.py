"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. It implements the
UserRecordStore capability the account directory depends on (insert,
find-one, update, find-all, each taking a UserFilter predicate) and nothing
more: uniqueness and soft-delete visibility are decided by the directory.

The one rule the schema does enforce is the partial unique index on
username WHERE deleted_at IS NULL. It makes the directory's existence check
and insert atomic under concurrency: of two racing inserts for the same
active username, the second fails with sqlalchemy.exc.IntegrityError.

Errors: every record method lets SQLAlchemy exceptions propagate unchanged. The
directory wraps them.

Timestamps are stored as ISO 8601 strings (UTC) and mapped back to aware
datetimes, so they round-trip identically on SQLite and PostgreSQL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.models import AuthType, User, UserFilter

_DEFAULT_DB_URL = "sqlite:///drlm_auth.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False),
    Column("password_hash", Text),  # NULL for non-local auth types
    Column("auth_type", String(16), nullable=False, server_default=AuthType.local.value),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("deleted_at", String(32)),  # soft-delete marker
)

Index(
    "uq_users_active_username",
    _users.c.username,
    unique=True,
    sqlite_where=_users.c.deleted_at.is_(None),
    postgresql_where=_users.c.deleted_at.is_(None),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_column(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _where(where: UserFilter) -> list:
    clauses = []
    if where.username is not None:
        clauses.append(_users.c.username == where.username)
    if where.active is True:
        clauses.append(_users.c.deleted_at.is_(None))
    elif where.active is False:
        clauses.append(_users.c.deleted_at.is_not(None))
    return clauses


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user = store.insert(User(username="admin", password_hash=hash_password("secret123")))
        same = store.find_one(UserFilter(username="admin", active=True))
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def insert(self, user: User) -> User:
        """Insert a new record and return it with id and timestamps assigned.

        created_at and updated_at are both set to the current UTC time;
        deleted_at always starts NULL.

        Raises sqlalchemy.exc.IntegrityError if an active record with the same
        username already exists.
        """
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    username=user.username,
                    password_hash=user.password_hash,
                    auth_type=_to_column(user.auth_type),
                    created_at=now,
                    updated_at=now,
                    deleted_at=None,
                )
            )
            conn.commit()
            user_id = result.inserted_primary_key[0]
        return User(
            id=user_id,
            username=user.username,
            password_hash=user.password_hash,
            auth_type=user.auth_type,
            created_at=_parse_ts(now),
            updated_at=_parse_ts(now),
        )

    def find_one(self, where: UserFilter) -> User | None:
        """Return the first record (lowest id) matching the filter, or None."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(*_where(where)).order_by(_users.c.id).limit(1)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_all(self, where: UserFilter) -> list[User]:
        """Return every record matching the filter in insertion (id) order."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().where(*_where(where)).order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update(self, user_id: int, where: UserFilter, **values) -> int:
        """Update one record, conditioned on it still matching the filter.

        The filter is part of the UPDATE's WHERE clause, so the check and the
        write happen in one statement. Returns the number of rows updated
        (0 if the record no longer matches).
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update()
                .where(_users.c.id == user_id, *_where(where))
                .values(**{k: _to_column(v) for k, v in values.items()})
            )
            conn.commit()
        return result.rowcount

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    try:
        auth_type = AuthType(row.auth_type)
    except ValueError:
        auth_type = AuthType.unknown
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        auth_type=auth_type,
        created_at=_parse_ts(row.created_at),
        updated_at=_parse_ts(row.updated_at),
        deleted_at=_parse_ts(row.deleted_at),
    )
