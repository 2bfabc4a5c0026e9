"""Tattoo request/response schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator


def _non_blank(v: object) -> object:
    if v is None:
        raise ValueError("design must not be null")
    if isinstance(v, str):
        v = v.strip()
        if not v:
            raise ValueError("design must not be blank")
    return v


class CreateTattooRequest(BaseModel):
    design: str
    description: str | None = None
    style: str | None = None
    image: str | None = None
    # Accepted for compatibility, ignored: the owner is always the path user.
    owner: uuid.UUID | None = None

    @field_validator("design", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: object) -> object:
        return _non_blank(v)


class UpdateTattooRequest(BaseModel):
    # Omit to keep the current design; null or blank is rejected.
    design: str | None = None
    description: str | None = None
    style: str | None = None
    image: str | None = None
    # Caller's claim of ownership; checked against the stored owner, never applied.
    owner: uuid.UUID | None = None

    @field_validator("design", mode="before")
    @classmethod
    def _design_not_cleared(cls, v: object) -> object:
        return _non_blank(v)


class TattooResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    design: str
    description: str | None
    style: str | None
    image: str | None
    favorites_count: int
    created_at: datetime
    updated_at: datetime
