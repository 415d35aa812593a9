"""
tests/test_api_routes.py -- Integration tests for the /api/v1/users routes.

These tests exercise the full stack: FastAPI routing -> dependency injection
-> AuthService -> UserStore -> response model serialization, including the
ServiceError -> HTTP status mapping in api/main.py.

Coverage:
  - Login: 200 with token, 404 unknown or empty user, 401 wrong password, no-store header
  - Renew: 200 with the same session, 401 without the tkn header, 500 on a bad token
  - Add user: 201, 400 on weak or over-long password and empty username, 409 on duplicate
  - Delete user: 204, then 404 and login refused
  - List users: active users only, never a password hash

Fixtures used (from conftest.py):
  - api_client: (client, service) -- TestClient over an empty store, plus the
    AuthService behind it for seeding accounts.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from jose import jwt

from auth.service import AuthService

PASSWORD = "f0cKt3Rf$"


def _login(client: TestClient, username: str = "nefix", password: str = PASSWORD):
    return client.post("/api/v1/users/login", json={"username": username, "password": password})


class TestLoginRoute:
    def test_login_returns_token(self, api_client: tuple[TestClient, AuthService], token_secret: str) -> None:
        client, service = api_client
        service.add_user("nefix", PASSWORD)

        resp = _login(client)

        assert resp.status_code == 200
        data = resp.json()
        assert jwt.decode(data["tkn"], token_secret, algorithms=["HS512"])["sub"] == "nefix"
        assert data["tkn_expiration"]
        assert resp.headers["cache-control"] == "no-store"

    def test_login_unknown_user(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = _login(client)
        assert resp.status_code == 404
        error = resp.json()["error"]
        assert error["code"] == "not_found"
        assert error["message"] == 'error logging in: user "nefix" not found'

    def test_login_wrong_password(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, service = api_client
        service.add_user("nefix", PASSWORD)
        resp = _login(client, password="f0CKt3Rf$")
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "error logging in: incorrect password"

    def test_login_empty_username(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = _login(client, username="")
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == 'error logging in: user "" not found'

    def test_login_missing_field(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = client.post("/api/v1/users/login", json={"username": "nefix"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


class TestRenewRoute:
    def test_renew_keeps_session(self, api_client: tuple[TestClient, AuthService], token_secret: str) -> None:
        client, service = api_client
        service.add_user("nefix", PASSWORD)
        token = _login(client).json()["tkn"]

        resp = client.post("/api/v1/users/token/renew", headers={"tkn": token})

        assert resp.status_code == 200
        renewed = jwt.decode(resp.json()["tkn"], token_secret, algorithms=["HS512"])
        original = jwt.decode(token, token_secret, algorithms=["HS512"])
        assert renewed["sub"] == "nefix"
        assert renewed["first_issued"] == original["first_issued"]
        assert resp.headers["cache-control"] == "no-store"

    def test_renew_without_token(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = client.post("/api/v1/users/token/renew")
        assert resp.status_code == 401
        assert resp.json()["error"] == {
            "code": "unauthenticated",
            "message": "not authenticated",
            "detail": None,
        }

    def test_renew_invalid_token(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = client.post("/api/v1/users/token/renew", headers={"tkn": "invalid tkn"})
        assert resp.status_code == 500
        assert resp.json()["error"]["message"] == (
            "error renewing the token: the token is invalid or can't be renewed"
        )


class TestAccountRoutes:
    def test_add_user(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = client.post("/api/v1/users", json={"username": "nefix", "password": PASSWORD})
        assert resp.status_code == 201
        assert _login(client).status_code == 200

    def test_add_user_weak_password(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, service = api_client
        resp = client.post("/api/v1/users", json={"username": "nefix", "password": ""})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "invalid_argument"
        assert error["message"] == "the password requires, at least, a length of 8 characters"
        assert service.list_users() == []

    def test_add_user_duplicate(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, service = api_client
        service.add_user("nefix", PASSWORD)
        resp = client.post("/api/v1/users", json={"username": "nefix", "password": PASSWORD})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "already_exists"

    def test_add_user_empty_username(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, service = api_client
        resp = client.post("/api/v1/users", json={"username": "", "password": PASSWORD})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_argument"
        assert service.list_users() == []

    def test_add_user_long_password_reaches_policy(self, api_client: tuple[TestClient, AuthService]) -> None:
        """An over-long password is the core's invalid_argument, not a transport 422."""
        client, service = api_client
        resp = client.post("/api/v1/users", json={"username": "nefix", "password": "a" * 300})
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "invalid_argument"
        assert "72 bytes" in error["message"]
        assert service.list_users() == []

    def test_delete_user(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, service = api_client
        service.add_user("nefix", PASSWORD)

        resp = client.delete("/api/v1/users/nefix")
        assert resp.status_code == 204

        again = client.delete("/api/v1/users/nefix")
        assert again.status_code == 404
        assert again.json()["error"]["message"] == 'error deleting the user "nefix": not found'
        assert _login(client).status_code == 404

    def test_list_users(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, service = api_client
        for name in ("nefix", "admin", "notnefix"):
            service.add_user(name, PASSWORD)
        service.delete_user("admin")

        resp = client.get("/api/v1/users")

        assert resp.status_code == 200
        users = resp.json()["users"]
        assert [u["username"] for u in users] == ["nefix", "notnefix"]
        for user in users:
            assert set(user) == {"username", "auth_type", "created_at", "updated_at"}
            assert user["auth_type"] == "local"

    def test_list_users_empty(self, api_client: tuple[TestClient, AuthService]) -> None:
        client, _service = api_client
        resp = client.get("/api/v1/users")
        assert resp.status_code == 200
        assert resp.json() == {"users": []}
