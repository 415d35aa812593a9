"""
api/routes/v1/users.py -- Session and account management REST endpoints.

Routes:
  POST   /api/v1/users/login         -- password login; returns a session token
  POST   /api/v1/users/token/renew   -- renews the token sent in the "tkn" header
  POST   /api/v1/users               -- create a local account
  DELETE /api/v1/users/{username}    -- soft-delete an account
  GET    /api/v1/users               -- list active accounts

Every handler is a thin adapter: it calls one AuthService operation and maps
the result to a response model. Failures come back as ServiceError and are
rendered by the handler registered in api/main.py, so no route builds error
responses itself.

Handlers are plain def, not async def: bcrypt and the store are blocking, so
FastAPI runs them in its thread pool.

Security:
  POST /users/login is rate-limited per client address (LOGIN_RATE_LIMIT).
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import Credentials, TokenResponse, UserItem, UserListResponse
from auth.dependencies import call_metadata, get_auth_service
from auth.service import AuthService
from core.config import get_settings

# Auth policy:
# - POST   /api/v1/users/login:        public
# - POST   /api/v1/users/token/renew:  requires the "tkn" header (checked by AuthService)
# - POST   /api/v1/users:              public -- the trust boundary is in front of this service
# - DELETE /api/v1/users/{username}:   public -- same
# - GET    /api/v1/users:              public -- same
router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


def _token_response(body: TokenResponse) -> JSONResponse:
    resp = JSONResponse(status_code=200, content=body.model_dump(mode="json"))
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@limiter.limit(_login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/users/login", response_model=TokenResponse)
def login(
    request: Request,
    body: Credentials,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Authenticate with username and password; return a signed session token."""
    issued = service.login(body.username, body.password)
    return _token_response(TokenResponse.from_issued(issued))


@router.post("/users/token/renew", response_model=TokenResponse)
def renew_token(
    metadata: dict[str, str] = Depends(call_metadata),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Exchange the caller's token for a new one in the same session.

    Tokens past their own expiry are accepted as long as their signature
    verifies; the session's first_issued time carries over unchanged.
    """
    issued = service.renew_token(metadata)
    return _token_response(TokenResponse.from_issued(issued))


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@router.post("/users", status_code=201)
def add_user(body: Credentials, service: AuthService = Depends(get_auth_service)) -> Response:
    """Create a local account."""
    service.add_user(body.username, body.password)
    return Response(status_code=201)


@router.delete("/users/{username}", status_code=204)
def delete_user(username: str, service: AuthService = Depends(get_auth_service)) -> Response:
    """Soft-delete an account. The username can be registered again afterwards."""
    service.delete_user(username)
    return Response(status_code=204)


@router.get("/users", response_model=UserListResponse)
def list_users(service: AuthService = Depends(get_auth_service)) -> UserListResponse:
    """List active accounts in creation order. Password hashes are never included."""
    return UserListResponse(users=[UserItem.from_summary(u) for u in service.list_users()])
