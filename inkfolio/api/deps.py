"""Dependency injection — session, auth, and service singletons.

This module is the process entry point's composition root: it builds the
one store per collection and hands the same instances to every service.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from inkfolio.core.database import Base
from inkfolio.dao.tattoo_dao import TattooDAO
from inkfolio.dao.user_dao import UserDAO
from inkfolio.models.tattoo import Tattoo
from inkfolio.models.user import User
from inkfolio.services import AuthenticationError
from inkfolio.services.auth_service import CredentialService, TokenService
from inkfolio.services.reconcile_service import ReconcileService
from inkfolio.services.store import EntityStore
from inkfolio.services.tattoo_service import TattooService
from inkfolio.services.user_service import UserService

_DEFAULT_DATABASE_URL = "postgresql+asyncpg://localhost/inkfolio"

# ---------------------------------------------------------------------------
# Store singletons
# ---------------------------------------------------------------------------
_user_store: EntityStore[User] = EntityStore(UserDAO(), "user")
_tattoo_store: EntityStore[Tattoo] = EntityStore(TattooDAO(), "tattoo")

# ---------------------------------------------------------------------------
# Service singletons
# ---------------------------------------------------------------------------
_credential_service = CredentialService()
_token_service = TokenService()
_user_service = UserService(_user_store, _tattoo_store, _credential_service, _token_service)
_tattoo_service = TattooService(_user_store, _tattoo_store)
_reconcile_service = ReconcileService(_user_store, _tattoo_store)

# ---------------------------------------------------------------------------
# Engine / session factory (initialised by app lifespan)
# ---------------------------------------------------------------------------
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_session_factory(database_url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Create the async engine and session factory. Called once at startup."""
    global _engine, _session_factory  # noqa: PLW0603
    url = database_url or os.environ.get("INKFOLIO_DATABASE_URL", _DEFAULT_DATABASE_URL)
    if url.startswith("sqlite"):
        _engine = create_async_engine(url)
    else:
        _engine = create_async_engine(
            url,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
            pool_recycle=1800,
        )
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _session_factory


async def create_tables() -> None:
    """Create missing tables (``INKFOLIO_CREATE_TABLES=1`` at startup)."""
    if _engine is None:
        raise RuntimeError("call init_session_factory() first")
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose the async engine, closing all pooled connections."""
    global _engine  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def set_session_factory(factory: async_sessionmaker[AsyncSession]) -> None:
    """Override session factory (for testing)."""
    global _session_factory  # noqa: PLW0603
    _session_factory = factory


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("call init_session_factory() before handling requests")
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a per-request session with automatic commit/rollback."""
    async with get_session_factory()() as session:
        async with session.begin():
            yield session


# ---------------------------------------------------------------------------
# Service getters (for Depends())
# ---------------------------------------------------------------------------


def get_user_service() -> UserService:
    return _user_service


def get_tattoo_service() -> TattooService:
    return _tattoo_service


def get_reconcile_service() -> ReconcileService:
    return _reconcile_service


# ---------------------------------------------------------------------------
# Auth dependency
# ---------------------------------------------------------------------------

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    session: AsyncSession = Depends(get_session),
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    users: UserService = Depends(get_user_service),
) -> User:
    """Extract and validate Bearer token, return the authenticated User."""
    if credentials is None:
        raise AuthenticationError("missing authorization header")
    return await users.current_user(session, credentials.credentials)
