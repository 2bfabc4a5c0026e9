"""UserService — registration, login, favorites and account deletion."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from inkfolio.core import id_lists
from inkfolio.dao.base import Page
from inkfolio.models.tattoo import Tattoo
from inkfolio.models.user import User
from inkfolio.services import (
    AuthenticationError,
    ConflictError,
    ConstraintViolationError,
    NotFoundError,
    PartialConsistencyError,
    PersistenceError,
    ValidationError,
)
from inkfolio.services.auth_service import AccessToken, CredentialService, TokenService
from inkfolio.services.store import EntityStore

log = structlog.get_logger(__name__)


def _required(**fields: str | None) -> dict[str, str]:
    missing = [name for name, value in fields.items() if value is None or not value.strip()]
    if missing:
        raise ValidationError(f"missing required field(s): {', '.join(missing)}")
    return {name: value.strip() for name, value in fields.items()}  # type: ignore[union-attr]


class UserService:
    """Owns a user's favorites list and the account lifecycle.

    Portfolio changes driven by tattoo create/update/delete live in
    :class:`inkfolio.services.tattoo_service.TattooService`.
    """

    def __init__(
        self,
        users: EntityStore[User],
        tattoos: EntityStore[Tattoo],
        credentials: CredentialService,
        tokens: TokenService,
    ) -> None:
        self._users = users
        self._tattoos = tattoos
        self._credentials = credentials
        self._tokens = tokens

    # -- Reads -------------------------------------------------------------

    async def get(self, session: AsyncSession, user_id: uuid.UUID) -> User:
        """Raises :class:`NotFoundError` if the user does not exist."""
        return await self._users.get(session, user_id)

    async def list(
        self,
        session: AsyncSession,
        cursor: str | None = None,
        page_size: int = 20,
    ) -> dict:
        """Return paginated user list with total count."""
        page: Page[User] = await self._users.page(session, cursor, page_size)
        total = await self._users.count(session)
        return {
            "data": page.data,
            "next_cursor": page.next_cursor,
            "has_more": page.has_more,
            "total": total,
        }

    # -- Account -----------------------------------------------------------

    async def register(
        self,
        session: AsyncSession,
        *,
        username: str | None,
        email: str | None,
        password: str | None,
        image: str | None = None,
    ) -> User:
        """Create a user with empty portfolio and favorites.

        Raises :class:`ValidationError` on blank fields and
        :class:`ConflictError` if the username is taken.
        """
        fields = _required(username=username, email=email, password=password)

        if await self._users.find_by(session, username=fields["username"]) is not None:
            raise ConflictError(f"username '{fields['username']}' already exists")

        try:
            user = await self._users.create(
                session,
                username=fields["username"],
                email=fields["email"],
                password_hash=self._credentials.hash(password),  # type: ignore[arg-type]
                image=image,
                portfolio=[],
                favorites=[],
            )
        except ConstraintViolationError as exc:
            # Lost a race with a concurrent registration of the same name.
            raise ConflictError(f"username '{fields['username']}' already exists") from exc
        log.info("user.registered", user_id=str(user.id), username=user.username)
        return user

    async def login(self, session: AsyncSession, username: str, password: str) -> AccessToken:
        """Verify credentials and issue an access token.

        Raises :class:`NotFoundError` for an unknown username and
        :class:`AuthenticationError` for a wrong password. Both paths pay
        for one bcrypt check.
        """
        user = await self._users.find_by(session, username=username)
        if user is None:
            self._credentials.burn(password)
            raise NotFoundError("user not found")
        if not self._credentials.verify(password, user.password_hash):
            raise AuthenticationError("invalid credentials")

        log.info("user.login", user_id=str(user.id))
        return self._tokens.issue(user.id)

    async def current_user(self, session: AsyncSession, token: str) -> User:
        """Decode an access token and return the corresponding user.

        Raises :class:`AuthenticationError` on invalid token or unknown user.
        """
        user_id = self._tokens.decode(token)
        user = await self._users.find_by(session, id=user_id)
        if user is None:
            raise AuthenticationError("user not found")
        return user

    async def delete(self, session: AsyncSession, user_id: uuid.UUID) -> None:
        """Delete the account. Owned tattoos are kept and become orphans."""
        user = await self._users.get(session, user_id)
        await self._users.delete(session, user.id)
        if user.portfolio:
            log.warning(
                "user.deleted_with_orphans",
                user_id=str(user_id),
                orphaned_tattoos=len(user.portfolio),
            )
        else:
            log.info("user.deleted", user_id=str(user_id))

    # -- Favorites ---------------------------------------------------------

    async def add_favorite(
        self, session: AsyncSession, user_id: uuid.UUID, tattoo_id: uuid.UUID
    ) -> User:
        """Add *tattoo_id* to the user's favorites (idempotent).

        Raises :class:`NotFoundError` if the user or the tattoo is missing.
        """
        user = await self._users.get(session, user_id)
        tattoo = await self._tattoos.get(session, tattoo_id)

        if id_lists.contains(user.favorites, tattoo.id):
            return user

        user = await self._users.update(
            session, user.id, favorites=id_lists.append_unique(user.favorites, tattoo.id)
        )
        await self._bump_favorites_count(session, tattoo, +1)
        log.info("favorite.added", user_id=str(user.id), tattoo_id=str(tattoo.id))
        return user

    async def remove_favorite(
        self, session: AsyncSession, user_id: uuid.UUID, tattoo_id: uuid.UUID
    ) -> User:
        """Remove every occurrence of *tattoo_id*. Absent ids are a no-op."""
        user = await self._users.get(session, user_id)

        if not id_lists.contains(user.favorites, tattoo_id):
            return user

        user = await self._users.update(
            session, user.id, favorites=id_lists.without(user.favorites, tattoo_id)
        )
        tattoo = await self._tattoos.find_by(session, id=tattoo_id)
        if tattoo is not None:
            await self._bump_favorites_count(session, tattoo, -1)
        log.info("favorite.removed", user_id=str(user.id), tattoo_id=str(tattoo_id))
        return user

    async def _bump_favorites_count(
        self, session: AsyncSession, tattoo: Tattoo, delta: int
    ) -> None:
        new_count = max(0, (tattoo.favorites_count or 0) + delta)
        try:
            await self._tattoos.update(session, tattoo.id, favorites_count=new_count)
        except PersistenceError as exc:
            log.error(
                "consistency.partial_failure",
                op="favorite",
                tattoo_id=str(tattoo.id),
                completed="user.favorites",
                failed="tattoo.favorites_count",
            )
            raise PartialConsistencyError(
                f"favorites updated but favorites_count of tattoo {tattoo.id} was not",
                completed="user.favorites",
                failed="tattoo.favorites_count",
            ) from exc
