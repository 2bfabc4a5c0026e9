"""EntityStore — typed-failure view over one DAO / collection."""

from __future__ import annotations

import uuid
from collections.abc import Awaitable
from typing import Any, Generic, TypeVar

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inkfolio.dao.base import BaseDAO, ColumnError, Page
from inkfolio.services import (
    ConstraintViolationError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)

log = structlog.get_logger(__name__)

T = TypeVar("T")


class EntityStore(Generic[T]):
    """Persistence contract for one entity collection.

    Missing rows raise :class:`NotFoundError` and driver failures raise
    :class:`PersistenceError`; the raw ``None`` / ``SQLAlchemyError`` of the
    DAO never reaches callers. Driver text is logged, never put in the
    raised message. No concurrency control: the last write wins.

    ``filters`` are equality matches on column names; an unknown column
    raises :class:`ValidationError`.
    """

    def __init__(self, dao: BaseDAO, entity: str) -> None:
        self._dao = dao
        self.entity = entity

    async def _call(self, op: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except ColumnError as exc:
            raise ValidationError(str(exc)) from exc
        except IntegrityError as exc:
            log.warning(
                "store.constraint_violation", entity=self.entity, op=op, error=str(exc.orig)
            )
            raise ConstraintViolationError(f"{self.entity} {op} violates a constraint") from exc
        except SQLAlchemyError as exc:
            log.error("store.failed", entity=self.entity, op=op, error=str(exc))
            raise PersistenceError(f"{self.entity} {op} failed") from exc

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.entity} not found")

    async def list(self, session: AsyncSession, **filters: Any) -> list[T]:
        return await self._call("list", self._dao.list_all(session, **filters))

    async def page(
        self,
        session: AsyncSession,
        cursor: str | None = None,
        page_size: int = 20,
        **filters: Any,
    ) -> Page[T]:
        return await self._call("list", self._dao.page(session, cursor, page_size, **filters))

    async def count(self, session: AsyncSession, **filters: Any) -> int:
        return await self._call("count", self._dao.count(session, **filters))

    async def get(self, session: AsyncSession, pk: uuid.UUID) -> T:
        obj = await self._call("get", self._dao.get_by_id(session, pk))
        if obj is None:
            raise self._not_found()
        return obj

    async def find_by(self, session: AsyncSession, **filters: Any) -> T | None:
        return await self._call("get", self._dao.find_one(session, **filters))

    async def create(self, session: AsyncSession, **values: Any) -> T:
        return await self._call("create", self._dao.create(session, **values))

    async def update(self, session: AsyncSession, pk: uuid.UUID, **patch: Any) -> T:
        obj = await self._call("update", self._dao.update(session, pk, **patch))
        if obj is None:
            raise self._not_found()
        return obj

    async def delete(self, session: AsyncSession, pk: uuid.UUID) -> None:
        deleted = await self._call("delete", self._dao.delete(session, pk))
        if not deleted:
            raise self._not_found()
