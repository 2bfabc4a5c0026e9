"""TattooDAO — tattoos table operations.

Filter on ``owner_id`` (indexed) for a user's tattoos.
"""

from inkfolio.dao.base import BaseDAO
from inkfolio.models.tattoo import Tattoo


class TattooDAO(BaseDAO[Tattoo]):
    model = Tattoo
