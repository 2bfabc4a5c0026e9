"""Users router — profiles, favorites, and the user's own tattoos."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inkfolio.api.deps import (
    get_current_user,
    get_session,
    get_tattoo_service,
    get_user_service,
)
from inkfolio.api.schemas.common import PageMeta, PaginatedResponse
from inkfolio.api.schemas.tattoo import (
    CreateTattooRequest,
    TattooResponse,
    UpdateTattooRequest,
)
from inkfolio.api.schemas.user import AddFavoriteRequest, UserResponse
from inkfolio.models.user import User
from inkfolio.services import OwnershipMismatchError
from inkfolio.services.tattoo_service import TattooService
from inkfolio.services.user_service import UserService

router = APIRouter()


def _require_self(current_user: User, user_id: uuid.UUID) -> None:
    if current_user.id != user_id:
        raise OwnershipMismatchError("cannot act on behalf of another user")


@router.get("/", response_model=PaginatedResponse[UserResponse])
async def list_users(
    cursor: str | None = Query(None),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    _user: User = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
) -> PaginatedResponse[UserResponse]:
    result = await svc.list(session, cursor=cursor, page_size=page_size)
    return PaginatedResponse(
        data=[UserResponse.model_validate(u) for u in result["data"]],
        meta=PageMeta(
            next_cursor=result["next_cursor"],
            has_more=result["has_more"],
            total=result["total"],
        ),
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    _user: User = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.model_validate(await svc.get(session, user_id))


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
) -> None:
    _require_self(current_user, user_id)
    await svc.delete(session, user_id)


# ── Favorites ────────────────────────────────────────────────────────


@router.post("/{user_id}/favorites", response_model=UserResponse)
async def add_favorite(
    user_id: uuid.UUID,
    body: AddFavoriteRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
) -> UserResponse:
    _require_self(current_user, user_id)
    user = await svc.add_favorite(session, user_id, body.tattoo_id)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}/favorites/{tattoo_id}", response_model=UserResponse)
async def remove_favorite(
    user_id: uuid.UUID,
    tattoo_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    svc: UserService = Depends(get_user_service),
) -> UserResponse:
    _require_self(current_user, user_id)
    user = await svc.remove_favorite(session, user_id, tattoo_id)
    return UserResponse.model_validate(user)


# ── Portfolio ────────────────────────────────────────────────────────


@router.get("/{user_id}/tattoos", response_model=PaginatedResponse[TattooResponse])
async def list_user_tattoos(
    user_id: uuid.UUID,
    cursor: str | None = Query(None),
    page_size: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    _user: User = Depends(get_current_user),
    svc: TattooService = Depends(get_tattoo_service),
) -> PaginatedResponse[TattooResponse]:
    result = await svc.list_by_owner(session, user_id, cursor=cursor, page_size=page_size)
    return PaginatedResponse(
        data=[TattooResponse.model_validate(t) for t in result["data"]],
        meta=PageMeta(
            next_cursor=result["next_cursor"],
            has_more=result["has_more"],
            total=result["total"],
        ),
    )


@router.post("/{user_id}/tattoos", response_model=UserResponse, status_code=201)
async def create_tattoo(
    user_id: uuid.UUID,
    body: CreateTattooRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    svc: TattooService = Depends(get_tattoo_service),
) -> UserResponse:
    _require_self(current_user, user_id)
    user = await svc.create(session, user_id, body.model_dump(exclude_unset=True))
    return UserResponse.model_validate(user)


@router.patch("/{user_id}/tattoos/{tattoo_id}", response_model=UserResponse)
async def update_tattoo(
    user_id: uuid.UUID,
    tattoo_id: uuid.UUID,
    body: UpdateTattooRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    svc: TattooService = Depends(get_tattoo_service),
) -> UserResponse:
    _require_self(current_user, user_id)
    user = await svc.update(session, user_id, tattoo_id, body.model_dump(exclude_unset=True))
    return UserResponse.model_validate(user)


@router.delete("/{user_id}/tattoos/{tattoo_id}", response_model=UserResponse)
async def delete_tattoo(
    user_id: uuid.UUID,
    tattoo_id: uuid.UUID,
    owner: uuid.UUID | None = Query(None),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
    svc: TattooService = Depends(get_tattoo_service),
) -> UserResponse:
    _require_self(current_user, user_id)
    user = await svc.delete(session, user_id, tattoo_id, claimed_owner=owner)
    return UserResponse.model_validate(user)
