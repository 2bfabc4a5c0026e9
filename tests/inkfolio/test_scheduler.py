"""Unit tests for EngineLoop, Scheduler and the reconcile loop wiring."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from inkfolio.scheduler import EngineLoop, Scheduler, create_scheduler
from inkfolio.services.reconcile_service import ReconcileReport


@pytest.fixture
def make_loop():
    """Factory for creating EngineLoop instances with a controllable run_fn."""

    def _make(
        *,
        name: str = "test",
        return_value: int = 0,
        interval: float = 100,
        side_effect: Exception | None = None,
    ) -> tuple[EngineLoop, list[int]]:
        calls: list[int] = []

        async def run_fn() -> int:
            calls.append(1)
            if side_effect is not None:
                raise side_effect
            return return_value

        return EngineLoop(name, run_fn, interval), calls

    return _make


async def test_loop_runs_on_timeout(make_loop):
    """Loop fires after interval timeout when no trigger is set."""
    loop, calls = make_loop(interval=0.05)

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 1), timeout=1.0)
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


async def test_loop_runs_on_trigger(make_loop):
    """Setting trigger wakes the loop immediately."""
    loop, calls = make_loop(interval=100)

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.sleep(0.01)
        loop.trigger.set()
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 1), timeout=1.0)
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


async def test_exception_does_not_crash(make_loop):
    """run_fn raising does not kill the loop."""
    loop, calls = make_loop(interval=0.05, side_effect=RuntimeError("boom"))

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 2), timeout=2.0)
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


async def test_scheduler_start_stop(make_loop):
    loop1, calls1 = make_loop(name="a", interval=0.05)
    loop2, calls2 = make_loop(name="b", interval=0.05)

    scheduler = Scheduler([loop1, loop2])
    await scheduler.start()
    await asyncio.wait_for(
        _wait_until(lambda: len(calls1) >= 1 and len(calls2) >= 1), timeout=2.0
    )

    await scheduler.stop()
    assert scheduler._tasks == []


async def test_scheduler_start_triggers_first_loop(make_loop):
    """start() sets trigger on the first loop so it runs immediately."""
    loop, calls = make_loop(interval=100)
    scheduler = Scheduler([loop])
    await scheduler.start()
    try:
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 1), timeout=1.0)
    finally:
        await scheduler.stop()


# ---------------------------------------------------------------------------
# create_scheduler
# ---------------------------------------------------------------------------


def _session_factory():
    session = AsyncMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    session.begin = MagicMock(return_value=session)
    return MagicMock(return_value=session), session


async def test_reconcile_loop_sweeps_with_repair():
    factory, session = _session_factory()
    reconcile = MagicMock()
    reconcile.sweep = AsyncMock(return_value=ReconcileReport(orphan_tattoos=["x"]))

    with patch.dict("os.environ", {"INKFOLIO_RECONCILE_INTERVAL": "100"}):
        scheduler = create_scheduler(factory, reconcile_service=reconcile)

    assert [loop.name for loop in scheduler._loops] == ["reconcile"]
    assert await scheduler._loops[0].run_fn() == 0
    reconcile.sweep.assert_awaited_once_with(session, repair=True)


def test_zero_interval_disables_reconcile():
    factory, _ = _session_factory()
    with patch.dict("os.environ", {"INKFOLIO_RECONCILE_INTERVAL": "0"}):
        scheduler = create_scheduler(factory, reconcile_service=MagicMock())
    assert scheduler._loops == []


async def _wait_until(predicate, poll: float = 0.01):
    """Poll until predicate returns True."""
    while not predicate():
        await asyncio.sleep(poll)
