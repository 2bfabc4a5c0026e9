"""TattooService — tattoo lifecycle with ownership checks and portfolio upkeep.

Every mutating call performs two writes in order: the tattoo store first,
then the owner's portfolio in the user store. The second write is not
atomic with the first. When it fails, :class:`PartialConsistencyError` is
raised so the caller can tell a half-applied operation from a clean failure;
the reconciliation sweep repairs the divergence.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from inkfolio.core import id_lists
from inkfolio.models.tattoo import Tattoo
from inkfolio.models.user import User
from inkfolio.services import (
    OwnershipMismatchError,
    PartialConsistencyError,
    PersistenceError,
    ValidationError,
)
from inkfolio.services.store import EntityStore

log = structlog.get_logger(__name__)

# Keys a client may never set through a create/update payload.
_SERVER_OWNED_KEYS = frozenset({"id", "owner", "owner_id", "favorites_count"})

# Non-null text columns a create must supply and an update may not clear.
_REQUIRED_FIELDS = ("design",)


def _clean(payload: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in payload.items() if k not in _SERVER_OWNED_KEYS}


def _check_required(values: dict[str, Any], *, partial: bool) -> dict[str, Any]:
    """Strip required text fields; raise :class:`ValidationError` if absent or blank.

    With ``partial=True`` (an update) a field may be omitted, but not nulled.
    """
    for name in _REQUIRED_FIELDS:
        if partial and name not in values:
            continue
        value = values.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"'{name}' is required and must not be blank")
        values[name] = value.strip()
    return values


def _claimed_owner(payload: dict[str, Any]) -> Any:
    return payload.get("owner", payload.get("owner_id"))


class TattooService:
    """Create, update and delete tattoos on behalf of their owner."""

    def __init__(self, users: EntityStore[User], tattoos: EntityStore[Tattoo]) -> None:
        self._users = users
        self._tattoos = tattoos

    # -- Reads -------------------------------------------------------------

    async def get(self, session: AsyncSession, tattoo_id: uuid.UUID) -> Tattoo:
        """Raises :class:`NotFoundError` if the tattoo does not exist."""
        return await self._tattoos.get(session, tattoo_id)

    async def list(
        self,
        session: AsyncSession,
        cursor: str | None = None,
        page_size: int = 20,
    ) -> dict:
        """Return paginated tattoo list with total count."""
        page = await self._tattoos.page(session, cursor, page_size)
        total = await self._tattoos.count(session)
        return {
            "data": page.data,
            "next_cursor": page.next_cursor,
            "has_more": page.has_more,
            "total": total,
        }

    async def list_by_owner(
        self,
        session: AsyncSession,
        owner_id: uuid.UUID,
        cursor: str | None = None,
        page_size: int = 20,
    ) -> dict:
        """Tattoos whose stored owner is *owner_id*, newest first.

        Raises :class:`NotFoundError` if the user does not exist.
        """
        owner = await self._users.get(session, owner_id)
        page = await self._tattoos.page(session, cursor, page_size, owner_id=owner.id)
        total = await self._tattoos.count(session, owner_id=owner.id)
        return {
            "data": page.data,
            "next_cursor": page.next_cursor,
            "has_more": page.has_more,
            "total": total,
        }

    # -- Ownership ---------------------------------------------------------

    @staticmethod
    def _authorize(
        requested_owner: User, tattoo: Tattoo, claimed_owner: Any = None
    ) -> None:
        """Only the stored owner may mutate a tattoo.

        A client-supplied owner claim is checked too, but it is never the
        source of authority.
        """
        if claimed_owner is not None and str(claimed_owner) != str(requested_owner.id):
            raise OwnershipMismatchError("claimed owner does not match requesting user")
        if tattoo.owner_id != requested_owner.id:
            raise OwnershipMismatchError("tattoo is owned by another user")

    async def _save_portfolio(
        self, session: AsyncSession, owner: User, portfolio: list[str], *, op: str, tattoo_id: uuid.UUID
    ) -> User:
        try:
            return await self._users.update(session, owner.id, portfolio=portfolio)
        except PersistenceError as exc:
            log.error(
                "consistency.partial_failure",
                op=op,
                user_id=str(owner.id),
                tattoo_id=str(tattoo_id),
                completed="tattoo",
                failed="user.portfolio",
            )
            raise PartialConsistencyError(
                f"tattoo {op} succeeded but portfolio of user {owner.id} was not updated",
                completed="tattoo",
                failed="user.portfolio",
            ) from exc

    # -- Lifecycle ---------------------------------------------------------

    async def create(
        self, session: AsyncSession, owner_id: uuid.UUID, draft: dict[str, Any]
    ) -> User:
        """Create a tattoo owned by *owner_id* and add it to the portfolio.

        The owner is always the path user; any owner in *draft* is ignored.
        Raises :class:`NotFoundError` if the owner does not exist.
        Raises :class:`ValidationError` if ``design`` is missing or blank.
        """
        owner = await self._users.get(session, owner_id)

        values = _check_required(_clean(draft), partial=False)
        values["owner_id"] = owner.id
        tattoo = await self._tattoos.create(session, **values)
        log.info("tattoo.created", tattoo_id=str(tattoo.id), owner_id=str(owner.id))

        portfolio = id_lists.append_unique(owner.portfolio, tattoo.id)
        return await self._save_portfolio(
            session, owner, portfolio, op="create", tattoo_id=tattoo.id
        )

    async def update(
        self,
        session: AsyncSession,
        requested_owner_id: uuid.UUID,
        tattoo_id: uuid.UUID,
        patch: dict[str, Any],
    ) -> User:
        """Apply *patch* to a tattoo owned by *requested_owner_id*.

        Raises :class:`NotFoundError` for a missing user or tattoo and
        :class:`OwnershipMismatchError` when the requester is not the stored
        owner. Raises :class:`ValidationError` if the patch nulls or blanks
        ``design``. The owner field itself is never changed.
        """
        owner = await self._users.get(session, requested_owner_id)
        tattoo = await self._tattoos.get(session, tattoo_id)
        self._authorize(owner, tattoo, _claimed_owner(patch))

        values = _check_required(_clean(patch), partial=True)
        if values:
            await self._tattoos.update(session, tattoo.id, **values)
        log.info("tattoo.updated", tattoo_id=str(tattoo.id), fields=sorted(values))

        portfolio = id_lists.append_unique(owner.portfolio, tattoo.id)
        return await self._save_portfolio(
            session, owner, portfolio, op="update", tattoo_id=tattoo.id
        )

    async def delete(
        self,
        session: AsyncSession,
        requested_owner_id: uuid.UUID,
        tattoo_id: uuid.UUID,
        claimed_owner: Any = None,
    ) -> User:
        """Delete a tattoo and detach it from its owner's portfolio.

        Raises :class:`NotFoundError` for a missing user or tattoo and
        :class:`OwnershipMismatchError` when the requester is not the stored
        owner.
        """
        owner = await self._users.get(session, requested_owner_id)
        tattoo = await self._tattoos.get(session, tattoo_id)
        self._authorize(owner, tattoo, claimed_owner)

        await self._tattoos.delete(session, tattoo.id)
        log.info("tattoo.deleted", tattoo_id=str(tattoo.id), owner_id=str(owner.id))

        portfolio = id_lists.without(owner.portfolio, tattoo.id)
        return await self._save_portfolio(
            session, owner, portfolio, op="delete", tattoo_id=tattoo.id
        )
