"""ReconcileService — sweep that brings portfolios, favorites and tattoos back in line.

Tattoo writes and portfolio writes land in separate stores without a shared
transaction, so a crash or a failed second write leaves them diverged. The
sweep treats the tattoo store as the source of truth for ownership:

- portfolio entries for deleted tattoos, or tattoos owned by someone else,
  are dropped and duplicates collapsed;
- tattoos whose owner exists but does not list them are appended;
- tattoos whose owner no longer exists are reported as orphans and left
  alone (user deletion does not cascade);
- favorites pointing at deleted tattoos are dropped and duplicates collapsed;
- ``favorites_count`` is recomputed from the favorites lists.
"""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from inkfolio.core import id_lists
from inkfolio.models.tattoo import Tattoo
from inkfolio.models.user import User
from inkfolio.services.store import EntityStore

log = structlog.get_logger(__name__)


@dataclass
class ReconcileReport:
    """What the sweep found (and fixed, unless it was a dry run)."""

    dry_run: bool = False
    users_checked: int = 0
    tattoos_checked: int = 0
    stale_portfolio_entries: list[tuple[str, str]] = field(default_factory=list)
    duplicate_portfolio_entries: list[tuple[str, str]] = field(default_factory=list)
    missing_portfolio_entries: list[tuple[str, str]] = field(default_factory=list)
    stale_favorites: list[tuple[str, str]] = field(default_factory=list)
    duplicate_favorites: list[tuple[str, str]] = field(default_factory=list)
    favorites_count_fixes: dict[str, int] = field(default_factory=dict)
    orphan_tattoos: list[str] = field(default_factory=list)
    users_repaired: int = 0

    @property
    def issues(self) -> int:
        """Number of problems that a repair would change."""
        return (
            len(self.stale_portfolio_entries)
            + len(self.duplicate_portfolio_entries)
            + len(self.missing_portfolio_entries)
            + len(self.stale_favorites)
            + len(self.duplicate_favorites)
            + len(self.favorites_count_fixes)
        )

    def to_dict(self) -> dict:
        return {
            "dry_run": self.dry_run,
            "users_checked": self.users_checked,
            "tattoos_checked": self.tattoos_checked,
            "stale_portfolio_entries": [list(p) for p in self.stale_portfolio_entries],
            "duplicate_portfolio_entries": [list(p) for p in self.duplicate_portfolio_entries],
            "missing_portfolio_entries": [list(p) for p in self.missing_portfolio_entries],
            "stale_favorites": [list(p) for p in self.stale_favorites],
            "duplicate_favorites": [list(p) for p in self.duplicate_favorites],
            "favorites_count_fixes": dict(self.favorites_count_fixes),
            "orphan_tattoos": list(self.orphan_tattoos),
            "users_repaired": self.users_repaired,
            "issues": self.issues,
        }


class ReconcileService:
    """Compare the user and tattoo stores and repair the relationship lists."""

    def __init__(self, users: EntityStore[User], tattoos: EntityStore[Tattoo]) -> None:
        self._users = users
        self._tattoos = tattoos

    async def sweep(self, session: AsyncSession, *, repair: bool = True) -> ReconcileReport:
        users = await self._users.list(session)
        tattoos = await self._tattoos.list(session)
        report = ReconcileReport(
            dry_run=not repair, users_checked=len(users), tattoos_checked=len(tattoos)
        )

        tattoo_by_id: dict[str, Tattoo] = {str(t.id): t for t in tattoos}
        user_ids: set[uuid.UUID] = {u.id for u in users}
        favorite_counts: Counter[str] = Counter()

        for user in users:
            uid = str(user.id)
            changes: dict[str, list[str]] = {}

            # Portfolio: keep only existing tattoos this user owns, once each.
            seen: set[str] = set()
            portfolio: list[str] = []
            for entry in user.portfolio or []:
                key = str(entry)
                tattoo = tattoo_by_id.get(key)
                if tattoo is None or tattoo.owner_id != user.id:
                    report.stale_portfolio_entries.append((uid, key))
                elif key in seen:
                    report.duplicate_portfolio_entries.append((uid, key))
                else:
                    seen.add(key)
                    portfolio.append(key)
            for tattoo in tattoos:
                if tattoo.owner_id == user.id and str(tattoo.id) not in seen:
                    report.missing_portfolio_entries.append((uid, str(tattoo.id)))
                    portfolio = id_lists.append_unique(portfolio, tattoo.id)
            if portfolio != list(user.portfolio or []):
                changes["portfolio"] = portfolio

            # Favorites: any owner is fine, but the tattoo must exist.
            seen_favorites: set[str] = set()
            favorites: list[str] = []
            for entry in user.favorites or []:
                key = str(entry)
                if key not in tattoo_by_id:
                    report.stale_favorites.append((uid, key))
                elif key in seen_favorites:
                    report.duplicate_favorites.append((uid, key))
                else:
                    seen_favorites.add(key)
                    favorites.append(key)
            favorite_counts.update(favorites)
            if favorites != list(user.favorites or []):
                changes["favorites"] = favorites

            if changes and repair:
                await self._users.update(session, user.id, **changes)
                report.users_repaired += 1

        for key, tattoo in tattoo_by_id.items():
            if tattoo.owner_id not in user_ids:
                report.orphan_tattoos.append(key)
            expected = favorite_counts.get(key, 0)
            if tattoo.favorites_count != expected:
                report.favorites_count_fixes[key] = expected
                if repair:
                    await self._tattoos.update(session, tattoo.id, favorites_count=expected)

        log.info(
            "reconcile.sweep",
            dry_run=report.dry_run,
            users=report.users_checked,
            tattoos=report.tattoos_checked,
            issues=report.issues,
            orphans=len(report.orphan_tattoos),
            repaired=report.users_repaired,
        )
        return report
