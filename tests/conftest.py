"""
tests/conftest.py -- Shared test fixtures for drlm-auth.

This module provides:
  - store / directory / tokens / service: the auth core over an in-memory
    SQLite store, with the minimum bcrypt cost and a fixed signing secret
  - api_client: TestClient over the real FastAPI app, with a fresh store

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs the sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. Each fixture instance gets its own DB name so tests do
not share state.

DEBUG and LOGIN_RATE_LIMIT must be set before any api/ or core/ import so
get_settings() does not demand a SECRET_KEY and the login limit is not hit
by the test run itself.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from datetime import timedelta

# CRITICAL: Set these before any core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from auth.directory import AccountDirectory
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService

TEST_SECRET = "test-secret-key-0123456789abcdef-0123456789"
TEST_LIFESPAN = timedelta(hours=1)
TEST_ROUNDS = 4


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def directory(store: UserStore) -> AccountDirectory:
    return AccountDirectory(store)


@pytest.fixture
def token_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret=TEST_SECRET, lifespan=TEST_LIFESPAN)


@pytest.fixture
def service(directory: AccountDirectory, tokens: TokenService) -> AuthService:
    return AuthService(directory=directory, tokens=tokens, bcrypt_rounds=TEST_ROUNDS)


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, AuthService], None, None]:
    """Yield (client, service) over an empty store.

    The service is returned so tests can seed accounts without going
    through HTTP.
    """
    name = f"test_auth_{uuid.uuid4().hex}"
    user_store = UserStore(db_url=f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true")
    service = AuthService(
        directory=AccountDirectory(user_store),
        tokens=TokenService(secret=TEST_SECRET, lifespan=TEST_LIFESPAN),
        bcrypt_rounds=TEST_ROUNDS,
    )
    app = create_app(service, user_store)

    # Lifespan shutdown closes the store.
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, service
