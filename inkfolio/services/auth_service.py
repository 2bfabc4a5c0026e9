"""Credential hashing (bcrypt) and access-token issuance (JWT)."""

import os
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from inkfolio.services import AuthenticationError

# ---------------------------------------------------------------------------
# JWT configuration
# ---------------------------------------------------------------------------

_ALGORITHM = "HS256"
_ACCESS_TOKEN_EXPIRE = timedelta(minutes=30)

_ENV_JWT_SECRET = "INKFOLIO_JWT_SECRET"


def _get_secret() -> str:
    """Read JWT secret from environment. Raises if not set."""
    secret = os.environ.get(_ENV_JWT_SECRET)
    if not secret:
        raise RuntimeError(f"{_ENV_JWT_SECRET} environment variable is required")
    return secret


class AccessToken:
    """Access token returned by login."""

    __slots__ = ("access_token", "token_type")

    def __init__(self, access_token: str) -> None:
        self.access_token = access_token
        self.token_type = "bearer"


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class CredentialService:
    """Hash and verify plaintext passwords with bcrypt."""

    def __init__(self) -> None:
        # Pre-computed hash for timing-safe login (user-not-found path)
        self._dummy_hash = self.hash("dummy")

    @staticmethod
    def hash(plaintext: str) -> str:
        return bcrypt.hashpw(plaintext.encode(), bcrypt.gensalt()).decode()

    @staticmethod
    def verify(plaintext: str, stored: str) -> bool:
        try:
            return bcrypt.checkpw(plaintext.encode(), stored.encode())
        except ValueError:
            # Stored value is not a bcrypt hash.
            return False

    def burn(self, plaintext: str) -> None:
        """Spend the same time as a real check when there is nothing to check."""
        self.verify(plaintext, self._dummy_hash)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TokenService:
    """Stateless HS256 access tokens carrying the user id as ``sub``."""

    def __init__(self, expire: timedelta = _ACCESS_TOKEN_EXPIRE) -> None:
        self._expire = expire

    def issue(self, user_id: uuid.UUID) -> AccessToken:
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": str(user_id),
                "type": "access",
                "exp": now + self._expire,
            },
            _get_secret(),
            algorithm=_ALGORITHM,
        )
        return AccessToken(token)

    def decode(self, token: str) -> uuid.UUID:
        """Return the user id a valid access token was issued for.

        Raises :class:`AuthenticationError` on invalid or expired tokens.
        """
        try:
            payload = jwt.decode(token, _get_secret(), algorithms=[_ALGORITHM])
        except JWTError:
            raise AuthenticationError("invalid access token")

        if payload.get("type") != "access":
            raise AuthenticationError("invalid token type")

        try:
            return uuid.UUID(payload["sub"])
        except (KeyError, ValueError):
            raise AuthenticationError("invalid token payload")
