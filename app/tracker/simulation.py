"""Drives GoalTracker.tick on an interval in test mode."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from app.tracker.reporter import ProgressReporter
from app.tracker.tracker import GoalTracker

logger = logging.getLogger(__name__)


class SimulationTimer:
    """Periodic ticker bound to one session generation.

    The task exits on its own once a tick completes the goal or comes back
    empty (goal stopped or replaced). cancel() covers the case where it is
    still sleeping when the session goes away. Each tick and its reporting run
    under `lock`, which the service shares to serialize them with host calls.
    """

    def __init__(
        self,
        tracker: GoalTracker,
        reporter: ProgressReporter,
        generation: int,
        interval: float = 1.0,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self.generation = generation
        self._tracker = tracker
        self._reporter = reporter
        self._interval = interval
        self._lock = lock if lock is not None else asyncio.Lock()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"awty-simulation-{self.generation}")

    async def cancel(self) -> None:
        if self._task is None or self._task.done():
            return
        # Called from our own completion callback: the loop exits by itself.
        if self._task is asyncio.current_task():
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        logger.debug("Simulation timer for generation %d cancelled", self.generation)

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            async with self._lock:
                finished = await self._step()
            if finished:
                return

    async def _step(self) -> bool:
        delta = self._tracker.tick(generation=self.generation)
        if not delta.changed:
            logger.debug("Simulation timer for generation %d finished: session gone", self.generation)
            return True
        await self._reporter.on_delta(delta)
        return delta.goal_reached
