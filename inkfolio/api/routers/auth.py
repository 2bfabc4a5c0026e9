"""Auth router — register, login, me."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inkfolio.api.deps import get_current_user, get_session, get_user_service
from inkfolio.api.schemas.auth import AccessTokenResponse, LoginRequest, RegisterRequest
from inkfolio.api.schemas.user import UserResponse
from inkfolio.models.user import User
from inkfolio.services.user_service import UserService

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    body: RegisterRequest,
    session: AsyncSession = Depends(get_session),
    svc: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await svc.register(
        session,
        username=body.username,
        email=body.email,
        password=body.password,
        image=body.image,
    )
    return UserResponse.model_validate(user)


@router.post("/login", response_model=AccessTokenResponse)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
    svc: UserService = Depends(get_user_service),
) -> AccessTokenResponse:
    token = await svc.login(session, body.username, body.password)
    return AccessTokenResponse(access_token=token.access_token, token_type=token.token_type)


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    return UserResponse.model_validate(current_user)
