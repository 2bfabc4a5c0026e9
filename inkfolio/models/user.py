"""users table."""

import uuid
from typing import Optional

from sqlalchemy import Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from inkfolio.core.database import Base, JSONList, TimestampMixin


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[Optional[str]] = mapped_column(Text)

    # Ordered tattoo id strings. Always reassign, never mutate in place.
    portfolio: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    favorites: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
