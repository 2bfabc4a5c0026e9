"""UserDAO — users table operations."""

from inkfolio.dao.base import BaseDAO
from inkfolio.models.user import User


class UserDAO(BaseDAO[User]):
    model = User
