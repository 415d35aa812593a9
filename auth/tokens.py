"""
auth/tokens.py -- Session token issuance, parsing and renewal.

Security design decisions:
  JWT: python-jose with HS512. Tokens are signed with the process secret and
       carry the subject (sub), the time the session started (first_issued),
       and the current window (iat, exp). A token whose signature does not
       verify against the secret is never trusted, whatever its claims say.

  Expiry: parse() deliberately skips the exp check. Renewal must work on a
       token that already reached its nominal expiry, so the standard check
       is bypassed on that path. Tokens are stateless: there is no server-side
       revocation list, a session ends when nobody renews it.

  Sessions: renew() copies first_issued from the old token unchanged and
       opens a fresh iat/exp window whose expiry is always strictly later
       than the old one. No cap on total session length measured
       from first_issued is applied.

The secret and lifespan are injected at construction; this module never reads
configuration. TokenService holds no mutable state, so a single instance is
safe to share across concurrent calls.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import InvalidTokenError
from auth.models import IssuedToken, SessionClaims

_ALGORITHM = "HS512"

_REQUIRED_CLAIMS = ("sub", "first_issued", "iat", "exp")

# Granularity of the iat/exp claims.
_RESOLUTION = timedelta(seconds=1)


def _timestamp(value: datetime) -> int:
    return int(value.timestamp())


def _from_timestamp(value) -> datetime:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTokenError(f"invalid timestamp claim: {value!r}")
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise InvalidTokenError(f"timestamp claim out of range: {value!r}") from exc


class TokenService:
    """Signs, parses and renews session tokens.

    Usage:
        tokens = TokenService(secret=settings.secret_key, lifespan=timedelta(hours=1))
        issued = tokens.issue("admin")
        renewed = tokens.renew(issued.token)
    """

    def __init__(self, secret: str, lifespan: timedelta) -> None:
        if not secret:
            raise ValueError("the token secret can't be empty")
        if lifespan <= timedelta(0):
            raise ValueError("the token lifespan must be positive")
        self._secret = secret
        self._lifespan = lifespan

    @property
    def lifespan(self) -> timedelta:
        return self._lifespan

    def issue(self, username: str) -> IssuedToken:
        """Start a new session for username."""
        now = datetime.now(timezone.utc).replace(microsecond=0)
        return self._sign(username, first_issued=now, issued_at=now)

    def parse(self, token: str) -> SessionClaims:
        """Verify the signature and decode the claims. Expiry is NOT checked.

        Raises InvalidTokenError if the signature does not verify, the
        encoding is malformed, or any of sub/first_issued/iat/exp is missing.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        missing = [c for c in _REQUIRED_CLAIMS if payload.get(c) in (None, "")]
        if missing:
            raise InvalidTokenError(f"missing claims: {', '.join(missing)}")
        if not isinstance(payload["sub"], str):
            raise InvalidTokenError("invalid subject claim")

        return SessionClaims(
            subject=payload["sub"],
            first_issued=_from_timestamp(payload["first_issued"]),
            issued_at=_from_timestamp(payload["iat"]),
            expires_at=_from_timestamp(payload["exp"]),
        )

    def renew(self, token: str) -> IssuedToken:
        """Issue a successor token for the same session.

        Works on tokens past their own expiry as long as the signature is
        valid and the claims are complete. Raises InvalidTokenError otherwise.
        """
        claims = self.parse(token)
        now = datetime.now(timezone.utc).replace(microsecond=0)
        # Claims are whole seconds: step past the old window so the new
        # expiry is strictly later, even within the same second.
        try:
            issued_at = max(
                now,
                claims.issued_at + _RESOLUTION,
                claims.expires_at - self._lifespan + _RESOLUTION,
            )
            return self._sign(claims.subject, first_issued=claims.first_issued, issued_at=issued_at)
        except OverflowError as exc:
            raise InvalidTokenError("the token window can't be extended") from exc

    def _sign(self, subject: str, *, first_issued: datetime, issued_at: datetime) -> IssuedToken:
        claims = SessionClaims(
            subject=subject,
            first_issued=first_issued,
            issued_at=issued_at,
            expires_at=issued_at + self._lifespan,
        )
        payload = {
            "sub": claims.subject,
            "first_issued": _timestamp(claims.first_issued),
            "iat": _timestamp(claims.issued_at),
            "exp": _timestamp(claims.expires_at),
        }
        return IssuedToken(token=jwt.encode(payload, self._secret, algorithm=_ALGORITHM), claims=claims)
