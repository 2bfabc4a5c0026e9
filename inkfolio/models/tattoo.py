"""tattoos table."""

import uuid
from typing import Optional

from sqlalchemy import Index, Integer, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from inkfolio.core.database import Base, TimestampMixin


class Tattoo(TimestampMixin, Base):
    __tablename__ = "tattoos"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # No foreign key: deleting a user leaves its tattoos with a dangling owner.
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    design: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    style: Mapped[Optional[str]] = mapped_column(Text)
    image: Mapped[Optional[str]] = mapped_column(Text)
    favorites_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    __table_args__ = (Index("idx_tattoos_owner", "owner_id"),)
