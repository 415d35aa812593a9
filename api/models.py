"""
API request and response models for the drlm-auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import IssuedToken, UserSummary

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class AuthTypeEnum(str, Enum):
    unknown = "unknown"
    local = "local"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class Credentials(BaseModel):
    """Request body for POST /users/login and POST /users.

    Length rules are enforced by the auth core, not here, so a bad username
    or password gets the service's own error category rather than a 422.
    """

    username: str
    password: str


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    """Signed session token and its expiry."""

    tkn: str
    tkn_expiration: datetime

    @classmethod
    def from_issued(cls, issued: IssuedToken) -> "TokenResponse":
        return cls(tkn=issued.token, tkn_expiration=issued.expires_at)


class UserItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    auth_type: AuthTypeEnum
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_summary(cls, user: UserSummary) -> "UserItem":
        return cls(
            username=user.username,
            auth_type=AuthTypeEnum(user.auth_type.value),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserListResponse(BaseModel):
    users: list[UserItem]


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
