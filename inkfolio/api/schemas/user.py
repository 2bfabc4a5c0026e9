"""User request/response schemas. The password hash is never serialized."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    image: str | None
    portfolio: list[str]
    favorites: list[str]
    created_at: datetime


class AddFavoriteRequest(BaseModel):
    tattoo_id: uuid.UUID
