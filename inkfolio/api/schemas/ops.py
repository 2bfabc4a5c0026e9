"""Operations schemas."""

from __future__ import annotations

from pydantic import BaseModel


class ReconcileResponse(BaseModel):
    dry_run: bool
    users_checked: int
    tattoos_checked: int
    stale_portfolio_entries: list[list[str]]
    duplicate_portfolio_entries: list[list[str]]
    missing_portfolio_entries: list[list[str]]
    stale_favorites: list[list[str]]
    duplicate_favorites: list[list[str]]
    favorites_count_fixes: dict[str, int]
    orphan_tattoos: list[str]
    users_repaired: int
    issues: int
