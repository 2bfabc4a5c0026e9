"""Tattoos router — read-only catalogue. Writes go through /users/{id}/tattoos."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inkfolio.api.deps import get_current_user, get_session, get_tattoo_service
from inkfolio.api.schemas.common import PageMeta, PaginatedResponse
from inkfolio.api.schemas.tattoo import TattooResponse
from inkfolio.models.user import User
from inkfolio.services.tattoo_service import TattooService

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[TattooResponse])
async def list_tattoos(
    cursor: str | None = Query(None),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    _user: User = Depends(get_current_user),
    svc: TattooService = Depends(get_tattoo_service),
) -> PaginatedResponse[TattooResponse]:
    result = await svc.list(session, cursor=cursor, page_size=page_size)
    return PaginatedResponse(
        data=[TattooResponse.model_validate(t) for t in result["data"]],
        meta=PageMeta(
            next_cursor=result["next_cursor"],
            has_more=result["has_more"],
            total=result["total"],
        ),
    )


@router.get("/{tattoo_id}", response_model=TattooResponse)
async def get_tattoo(
    tattoo_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    _user: User = Depends(get_current_user),
    svc: TattooService = Depends(get_tattoo_service),
) -> TattooResponse:
    return TattooResponse.model_validate(await svc.get(session, tattoo_id))
