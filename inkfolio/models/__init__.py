"""SQLAlchemy ORM models — one file per table."""

from inkfolio.models.tattoo import Tattoo
from inkfolio.models.user import User

__all__ = [
    "User",
    "Tattoo",
]
