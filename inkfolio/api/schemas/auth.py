"""Auth request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    # Optional at the schema level so blank/missing fields surface as the
    # service's ValidationError (400) rather than a generic 422.
    username: str | None = None
    email: str | None = None
    password: str | None = None
    image: str | None = None


class LoginRequest(BaseModel):
    username: str
    password: str


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
