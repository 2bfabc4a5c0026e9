"""BaseDAO — async CRUD, filtered lookups and keyset pages over one table.

Lookups return ``None`` / ``False`` for missing rows; turning that into a
typed failure is the job of :class:`inkfolio.services.store.EntityStore`.
"""

import base64
import hashlib
import hmac
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select, tuple_
from sqlalchemy.ext.asyncio import AsyncSession

from inkfolio.core.database import Base

ModelT = TypeVar("ModelT", bound=Base)

PAGE_SIZE_MAX = 100
PAGE_SIZE_DEFAULT = 20

# Stamped by the server; never writable through create/update values.
SERVER_COLUMNS = frozenset({"id", "created_at", "updated_at"})


class InvalidCursorError(ValueError):
    """Page token is malformed or was not signed by this server."""


class ColumnError(ValueError):
    """Values or filters name a column that does not exist or may not be written."""


@dataclass
class Page(Generic[ModelT]):
    """One page of rows, newest first."""

    data: list[ModelT]
    next_cursor: str | None
    has_more: bool


class CursorCodec:
    """Opaque page tokens for keyset pagination on ``(created_at, id)``.

    A token is ``<created_at>|<id>|<mac>`` in URL-safe base64; the MAC is a
    truncated HMAC-SHA256 over the first two fields.
    """

    def __init__(self, secret: bytes) -> None:
        self._secret = secret

    def _mac(self, body: str) -> str:
        return hmac.new(self._secret, body.encode(), hashlib.sha256).hexdigest()[:16]

    def encode(self, created_at: datetime, row_id: uuid.UUID) -> str:
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        body = f"{created_at.isoformat()}|{row_id}"
        return base64.urlsafe_b64encode(f"{body}|{self._mac(body)}".encode()).decode()

    def decode(self, token: str) -> tuple[datetime, uuid.UUID]:
        """Raises :class:`InvalidCursorError` for malformed or tampered tokens."""
        try:
            raw = base64.urlsafe_b64decode(token.encode()).decode()
            body, mac = raw.rsplit("|", 1)
            stamp, row_id = body.split("|")
        except ValueError as exc:
            raise InvalidCursorError("invalid cursor") from exc
        if not hmac.compare_digest(mac, self._mac(body)):
            raise InvalidCursorError("cursor signature mismatch")
        try:
            return datetime.fromisoformat(stamp), uuid.UUID(row_id)
        except ValueError as exc:
            raise InvalidCursorError("invalid cursor") from exc


# In production set INKFOLIO_CURSOR_SECRET.
cursor_codec = CursorCodec(
    os.environ.get("INKFOLIO_CURSOR_SECRET", "changeme-cursor-secret").encode()
)


class BaseDAO(Generic[ModelT]):
    """Subclasses set the ``model`` class attribute."""

    model: type[ModelT]

    def _columns(self) -> set[str]:
        return set(self.model.__mapper__.column_attrs.keys())

    def _writable(self, values: dict[str, Any]) -> dict[str, Any]:
        columns = self._columns()
        for key in values:
            if key in SERVER_COLUMNS:
                raise ColumnError(f"'{key}' is set by the server and cannot be written")
            if key not in columns:
                raise ColumnError(f"{self.model.__name__} has no column '{key}'")
        return values

    def _where(self, stmt: Select, filters: dict[str, Any]) -> Select:
        columns = self._columns()
        for key, value in filters.items():
            if key not in columns:
                raise ColumnError(f"{self.model.__name__} has no column '{key}'")
            stmt = stmt.where(getattr(self.model, key) == value)
        return stmt

    # ── Lookups ──────────────────────────────────────────────────────────

    async def get_by_id(self, session: AsyncSession, pk: uuid.UUID) -> ModelT | None:
        if pk is None:
            raise ValueError("pk must not be None")
        return await session.get(self.model, pk)

    async def find_one(self, session: AsyncSession, **filters: Any) -> ModelT | None:
        """First row matching every equality filter, e.g. ``username="alice"``."""
        if not filters:
            raise ColumnError("find_one() requires at least one filter")
        result = await session.execute(self._where(select(self.model), filters))
        return result.scalars().first()

    async def list_all(self, session: AsyncSession, **filters: Any) -> list[ModelT]:
        """Every matching row, oldest first."""
        table = self.model.__table__
        stmt = self._where(select(self.model), filters).order_by(
            table.c.created_at, table.c.id
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def page(
        self,
        session: AsyncSession,
        cursor: str | None = None,
        page_size: int = PAGE_SIZE_DEFAULT,
        **filters: Any,
    ) -> Page[ModelT]:
        """Matching rows newest first, resuming after *cursor*."""
        page_size = max(1, min(page_size, PAGE_SIZE_MAX))
        table = self.model.__table__
        stmt = self._where(select(self.model), filters)

        if cursor:
            created_at, row_id = cursor_codec.decode(cursor)
            stmt = stmt.where(tuple_(table.c.created_at, table.c.id) < (created_at, row_id))

        stmt = stmt.order_by(table.c.created_at.desc(), table.c.id.desc()).limit(page_size + 1)
        result = await session.execute(stmt)
        rows = list(result.scalars().all())

        data = rows[:page_size]
        has_more = len(rows) > page_size
        next_cursor = None
        if has_more:
            next_cursor = cursor_codec.encode(data[-1].created_at, data[-1].id)
        return Page(data=data, next_cursor=next_cursor, has_more=has_more)

    async def count(self, session: AsyncSession, **filters: Any) -> int:
        stmt = self._where(select(func.count()).select_from(self.model.__table__), filters)
        result = await session.execute(stmt)
        return result.scalar_one()

    # ── Writes ───────────────────────────────────────────────────────────

    async def create(self, session: AsyncSession, **values: Any) -> ModelT:
        obj = self.model(**self._writable(values))
        session.add(obj)
        await session.flush()
        await session.refresh(obj)
        return obj

    async def update(self, session: AsyncSession, pk: uuid.UUID, **values: Any) -> ModelT | None:
        self._writable(values)
        obj = await self.get_by_id(session, pk)
        if obj is None:
            return None
        for key, val in values.items():
            setattr(obj, key, val)
        await session.flush()
        await session.refresh(obj)
        return obj

    async def delete(self, session: AsyncSession, pk: uuid.UUID) -> bool:
        obj = await self.get_by_id(session, pk)
        if obj is None:
            return False
        await session.delete(obj)
        await session.flush()
        return True
