"""Tests for ReconcileService against a real database session."""

import uuid

import pytest

from inkfolio.dao.tattoo_dao import TattooDAO
from inkfolio.dao.user_dao import UserDAO
from inkfolio.services.reconcile_service import ReconcileService
from inkfolio.services.store import EntityStore


@pytest.fixture
def user_dao():
    return UserDAO()


@pytest.fixture
def tattoo_dao():
    return TattooDAO()


@pytest.fixture
def service(user_dao, tattoo_dao):
    return ReconcileService(EntityStore(user_dao, "user"), EntityStore(tattoo_dao, "tattoo"))


async def _make_user(user_dao, session, name: str, **kwargs):
    return await user_dao.create(
        session,
        username=name,
        email=f"{name}@example.com",
        password_hash="xxx",
        **kwargs,
    )


class TestSweep:
    async def test_consistent_data_has_no_issues(self, service, user_dao, tattoo_dao, session):
        alice = await _make_user(user_dao, session, "alice")
        tattoo = await tattoo_dao.create(session, owner_id=alice.id, design="rose")
        await user_dao.update(session, alice.id, portfolio=[str(tattoo.id)])

        report = await service.sweep(session)

        assert report.issues == 0
        assert report.users_checked == 1
        assert report.tattoos_checked == 1
        assert report.users_repaired == 0

    async def test_repairs_portfolio(self, service, user_dao, tattoo_dao, session):
        alice = await _make_user(user_dao, session, "alice")
        bob = await _make_user(user_dao, session, "bob")
        mine = await tattoo_dao.create(session, owner_id=alice.id, design="rose")
        unlisted = await tattoo_dao.create(session, owner_id=alice.id, design="skull")
        bobs = await tattoo_dao.create(session, owner_id=bob.id, design="anchor")
        deleted = str(uuid.uuid4())
        await user_dao.update(
            session,
            alice.id,
            portfolio=[str(mine.id), deleted, str(mine.id), str(bobs.id)],
        )
        await user_dao.update(session, bob.id, portfolio=[str(bobs.id)])

        report = await service.sweep(session)

        uid = str(alice.id)
        assert (uid, deleted) in report.stale_portfolio_entries
        assert (uid, str(bobs.id)) in report.stale_portfolio_entries
        assert report.duplicate_portfolio_entries == [(uid, str(mine.id))]
        assert report.missing_portfolio_entries == [(uid, str(unlisted.id))]
        assert report.users_repaired == 1

        repaired = await user_dao.get_by_id(session, alice.id)
        assert repaired.portfolio == [str(mine.id), str(unlisted.id)]

    async def test_repairs_favorites_and_counts(self, service, user_dao, tattoo_dao, session):
        alice = await _make_user(user_dao, session, "alice")
        tattoo = await tattoo_dao.create(
            session, owner_id=alice.id, design="rose", favorites_count=5
        )
        await user_dao.update(session, alice.id, portfolio=[str(tattoo.id)])
        gone = str(uuid.uuid4())
        await _make_user(user_dao, session, "bob", favorites=[str(tattoo.id), gone])

        report = await service.sweep(session)

        assert len(report.stale_favorites) == 1
        assert report.favorites_count_fixes == {str(tattoo.id): 1}
        assert (await tattoo_dao.get_by_id(session, tattoo.id)).favorites_count == 1
        bob = await user_dao.find_one(session, username="bob")
        assert bob.favorites == [str(tattoo.id)]

    async def test_collapses_duplicate_favorites(self, service, user_dao, tattoo_dao, session):
        alice = await _make_user(user_dao, session, "alice")
        tattoo = await tattoo_dao.create(
            session, owner_id=alice.id, design="rose", favorites_count=2
        )
        await user_dao.update(session, alice.id, portfolio=[str(tattoo.id)])
        bob = await _make_user(
            user_dao, session, "bob", favorites=[str(tattoo.id), str(tattoo.id)]
        )

        dry = await service.sweep(session, repair=False)

        assert dry.duplicate_favorites == [(str(bob.id), str(tattoo.id))]
        assert dry.favorites_count_fixes == {str(tattoo.id): 1}
        assert dry.issues == 2
        assert dry.to_dict()["duplicate_favorites"] == [[str(bob.id), str(tattoo.id)]]
        assert (await user_dao.get_by_id(session, bob.id)).favorites == [
            str(tattoo.id),
            str(tattoo.id),
        ]

        await service.sweep(session)

        assert (await user_dao.get_by_id(session, bob.id)).favorites == [str(tattoo.id)]
        assert (await tattoo_dao.get_by_id(session, tattoo.id)).favorites_count == 1
        assert (await service.sweep(session)).issues == 0

    async def test_orphans_reported_not_touched(self, service, tattoo_dao, session):
        orphan = await tattoo_dao.create(session, owner_id=uuid.uuid4(), design="koi")

        report = await service.sweep(session)

        assert report.orphan_tattoos == [str(orphan.id)]
        assert report.issues == 0
        assert await tattoo_dao.get_by_id(session, orphan.id) is not None

    async def test_dry_run_changes_nothing(self, service, user_dao, tattoo_dao, session):
        alice = await _make_user(user_dao, session, "alice")
        await tattoo_dao.create(session, owner_id=alice.id, design="rose")

        report = await service.sweep(session, repair=False)

        assert report.dry_run is True
        assert report.issues == 1
        assert report.users_repaired == 0
        assert (await user_dao.get_by_id(session, alice.id)).portfolio == []
        assert report.to_dict()["issues"] == 1
