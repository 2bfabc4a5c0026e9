"""End-to-end portfolio/favorites consistency against a real database session."""

import uuid

import pytest

from inkfolio.dao.tattoo_dao import TattooDAO
from inkfolio.dao.user_dao import UserDAO
from inkfolio.services import ConflictError, NotFoundError, OwnershipMismatchError, ValidationError
from inkfolio.services.auth_service import CredentialService, TokenService
from inkfolio.services.store import EntityStore
from inkfolio.services.tattoo_service import TattooService
from inkfolio.services.user_service import UserService


@pytest.fixture
def stores():
    return EntityStore(UserDAO(), "user"), EntityStore(TattooDAO(), "tattoo")


@pytest.fixture
def user_service(stores):
    users, tattoos = stores
    return UserService(users, tattoos, CredentialService(), TokenService())


@pytest.fixture
def tattoo_service(stores):
    users, tattoos = stores
    return TattooService(users, tattoos)


async def _register(user_service, session, name: str):
    return await user_service.register(
        session, username=name, email=f"{name}@example.com", password="pw"
    )


class TestTattooLifecycle:
    async def test_create_lists_tattoo_once(self, session, user_service, tattoo_service):
        alice = await _register(user_service, session, "alice")

        owner = await tattoo_service.create(session, alice.id, {"design": "dragon"})

        assert len(owner.portfolio) == 1
        tattoo = await tattoo_service.get(session, uuid.UUID(owner.portfolio[0]))
        assert tattoo.design == "dragon"
        assert tattoo.owner_id == alice.id

    async def test_other_user_cannot_update(self, session, user_service, tattoo_service):
        alice = await _register(user_service, session, "alice")
        bob = await _register(user_service, session, "bob")
        owner = await tattoo_service.create(session, alice.id, {"design": "dragon"})
        tattoo_id = uuid.UUID(owner.portfolio[0])

        with pytest.raises(OwnershipMismatchError):
            await tattoo_service.update(session, bob.id, tattoo_id, {"design": "hacked"})

        tattoo = await tattoo_service.get(session, tattoo_id)
        assert tattoo.design == "dragon"
        assert tattoo.owner_id == alice.id
        assert (await user_service.get(session, bob.id)).portfolio == []

    async def test_update_keeps_single_entry(self, session, user_service, tattoo_service):
        alice = await _register(user_service, session, "alice")
        owner = await tattoo_service.create(session, alice.id, {"design": "dragon"})
        tattoo_id = uuid.UUID(owner.portfolio[0])

        for style in ("blackwork", "neo-traditional"):
            owner = await tattoo_service.update(session, alice.id, tattoo_id, {"style": style})

        assert owner.portfolio == [str(tattoo_id)]
        assert (await tattoo_service.get(session, tattoo_id)).style == "neo-traditional"

    async def test_null_design_leaves_tattoo_unchanged(
        self, session, user_service, tattoo_service
    ):
        alice = await _register(user_service, session, "alice")
        owner = await tattoo_service.create(session, alice.id, {"design": "dragon"})
        tattoo_id = uuid.UUID(owner.portfolio[0])

        with pytest.raises(ValidationError, match="'design' is required"):
            await tattoo_service.update(session, alice.id, tattoo_id, {"design": None})

        assert (await tattoo_service.get(session, tattoo_id)).design == "dragon"
        assert (await user_service.get(session, alice.id)).portfolio == [str(tattoo_id)]

    async def test_delete_then_lookup_not_found(self, session, user_service, tattoo_service):
        alice = await _register(user_service, session, "alice")
        owner = await tattoo_service.create(session, alice.id, {"design": "dragon"})
        tattoo_id = uuid.UUID(owner.portfolio[0])

        owner = await tattoo_service.delete(session, alice.id, tattoo_id)

        assert owner.portfolio == []
        with pytest.raises(NotFoundError):
            await tattoo_service.get(session, tattoo_id)
        with pytest.raises(NotFoundError):
            await tattoo_service.delete(session, alice.id, tattoo_id)


class TestFavorites:
    async def test_round_trip(self, session, user_service, tattoo_service):
        alice = await _register(user_service, session, "alice")
        bob = await _register(user_service, session, "bob")
        owner = await tattoo_service.create(session, alice.id, {"design": "dragon"})
        tattoo_id = uuid.UUID(owner.portfolio[0])

        bob = await user_service.add_favorite(session, bob.id, tattoo_id)
        bob = await user_service.add_favorite(session, bob.id, tattoo_id)
        assert bob.favorites == [str(tattoo_id)]
        assert (await tattoo_service.get(session, tattoo_id)).favorites_count == 1

        bob = await user_service.remove_favorite(session, bob.id, tattoo_id)
        assert bob.favorites == []
        assert (await tattoo_service.get(session, tattoo_id)).favorites_count == 0


class TestDeleteUser:
    async def test_tattoos_survive(self, session, user_service, tattoo_service):
        alice = await _register(user_service, session, "alice")
        owner = await tattoo_service.create(session, alice.id, {"design": "dragon"})
        tattoo_id = uuid.UUID(owner.portfolio[0])

        await user_service.delete(session, alice.id)

        with pytest.raises(NotFoundError):
            await user_service.get(session, alice.id)
        tattoo = await tattoo_service.get(session, tattoo_id)
        assert tattoo.owner_id == alice.id


class TestListByOwner:
    async def test_matches_portfolio(self, session, user_service, tattoo_service):
        alice = await _register(user_service, session, "alice")
        bob = await _register(user_service, session, "bob")
        for design in ("rose", "skull"):
            owner = await tattoo_service.create(session, alice.id, {"design": design})
        await tattoo_service.create(session, bob.id, {"design": "anchor"})

        result = await tattoo_service.list_by_owner(session, alice.id)

        assert result["total"] == 2
        assert {str(t.id) for t in result["data"]} == set(owner.portfolio)


class TestRegister:
    async def test_unique_index_backs_the_name_check(
        self, session, stores, user_service, monkeypatch
    ):
        """A second insert of the same name that slipped past the lookup is a conflict."""
        users, _ = stores
        await _register(user_service, session, "alice")

        async def _not_seen(*_args, **_kwargs):
            return None

        monkeypatch.setattr(users, "find_by", _not_seen)
        with pytest.raises(ConflictError, match="username 'alice' already exists"):
            await _register(user_service, session, "alice")
