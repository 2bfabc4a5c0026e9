"""Scheduler — background loops (currently the reconciliation sweep)."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inkfolio.services.reconcile_service import ReconcileService

logger = structlog.get_logger(__name__)


class EngineLoop:
    """Single scheduling loop with trigger/timeout wake mechanism."""

    def __init__(
        self,
        name: str,
        run_fn: Callable[[], Awaitable[int]],
        interval: float,
    ) -> None:
        self.name = name
        self.run_fn = run_fn
        self.interval = interval
        self.trigger = asyncio.Event()

    async def loop(self) -> None:
        """Run forever, waking on trigger or after ``interval`` seconds."""
        while True:
            try:
                await asyncio.wait_for(self.trigger.wait(), timeout=self.interval)
                self.trigger.clear()
            except asyncio.TimeoutError:
                pass

            try:
                processed = await self.run_fn()
                logger.info("engine.cycle", engine=self.name, processed=processed)
            except Exception:
                logger.exception("engine.error", engine=self.name)


class Scheduler:
    """Manages lifecycle of all EngineLoop tasks."""

    def __init__(self, loops: list[EngineLoop]) -> None:
        self._loops = loops
        self._tasks: list[asyncio.Task[None]] = []

    async def start(self) -> None:
        """Start all loops as asyncio tasks; the first loop runs immediately."""
        if self._loops:
            self._loops[0].trigger.set()
        self._tasks = [
            asyncio.create_task(loop.loop(), name=f"engine-{loop.name}") for loop in self._loops
        ]
        logger.info("scheduler.started", engines=[loop.name for loop in self._loops])

    async def stop(self) -> None:
        """Cancel all loops and wait for them to exit."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("scheduler.stopped")


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def create_scheduler(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    reconcile_service: ReconcileService,
) -> Scheduler:
    """Build the Scheduler. ``INKFOLIO_RECONCILE_INTERVAL=0`` disables the sweep."""
    reconcile_interval = _env_float("INKFOLIO_RECONCILE_INTERVAL", 3600)

    async def _reconcile() -> int:
        async with session_factory() as session:
            async with session.begin():
                report = await reconcile_service.sweep(session, repair=True)
        return report.issues

    loops: list[EngineLoop] = []
    if reconcile_interval > 0:
        loops.append(EngineLoop("reconcile", _reconcile, reconcile_interval))
    return Scheduler(loops)
