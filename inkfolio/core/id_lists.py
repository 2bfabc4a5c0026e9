"""Ordered id lists (portfolio, favorites) treated as set-like sequences.

Every helper returns a *new* list. Callers must store the result; the JSON
columns only detect changes on reassignment.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable

IdLike = uuid.UUID | str


def _key(value: IdLike) -> str:
    return str(value)


def contains(ids: Iterable[IdLike] | None, target: IdLike) -> bool:
    key = _key(target)
    return any(_key(item) == key for item in ids or ())


def without(ids: Iterable[IdLike] | None, target: IdLike) -> list[str]:
    """Remove every occurrence of *target*. Absent target is a no-op."""
    key = _key(target)
    return [_key(item) for item in ids or () if _key(item) != key]


def append_unique(ids: Iterable[IdLike] | None, target: IdLike) -> list[str]:
    """Remove all occurrences of *target*, then append it once at the end."""
    return without(ids, target) + [_key(target)]
