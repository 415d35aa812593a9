"""
auth/dependencies.py -- FastAPI Depends() helpers that feed the auth core.

get_auth_service() hands route handlers the process-wide AuthService stored
on app.state by the lifespan.

call_metadata() builds the call context the orchestrator reads the bearer
token from. The token travels as a single named header, "tkn". This helper
only copies it; deciding whether a missing or bad token is acceptable is the
orchestrator's job, so it never raises.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.service import TOKEN_KEY, AuthService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def call_metadata(request: Request) -> dict[str, str]:
    """Return the call context for the current request.

    Contains TOKEN_KEY only when the header was sent with a non-empty value.
    """
    metadata: dict[str, str] = {}
    token = request.headers.get(TOKEN_KEY, "").strip()
    if token:
        metadata[TOKEN_KEY] = token
    return metadata
