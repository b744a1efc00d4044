"""TrackerService: the single owner of the tracking session.

Wires GoalTracker, ProgressReporter and the simulation timer together with
injected clock, sink and notifier, and serializes the host's operations with
an asyncio.Lock shared with the timer. Sink writes and the completion callback
run while that lock is held, each bounded by `sink_timeout`; the callback must
not call back into the service.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from app.config import Settings, settings
from app.tracker.clock import Clock, MonotonicClock
from app.tracker.models import ProgressDelta, StatusRecord, TrackingMode
from app.tracker.notifiers import GoalReachedNotifier, LoggingNotifier, WebhookNotifier
from app.tracker.reporter import DEFAULT_SINK_TIMEOUT, CompletionCallback, ProgressReporter
from app.tracker.simulation import SimulationTimer
from app.tracker.sinks import DatabaseStatusSink, InMemoryStatusSink, JsonFileStatusSink, StatusSink
from app.tracker.tracker import GoalTracker

logger = logging.getLogger(__name__)


class TrackerService:
    def __init__(
        self,
        sink: StatusSink,
        on_complete: CompletionCallback | None = None,
        clock: Clock | None = None,
        simulation_duration: float = 30.0,
        tick_interval: float = 1.0,
        replace_active: bool = True,
        sink_timeout: float = DEFAULT_SINK_TIMEOUT,
    ) -> None:
        self.clock = clock or MonotonicClock()
        self.tracker = GoalTracker(
            clock=self.clock,
            simulation_duration=simulation_duration,
            replace_active=replace_active,
        )
        self.reporter = ProgressReporter(self.tracker, sink, on_complete, timeout=sink_timeout)
        self._tick_interval = tick_interval
        self._lock = asyncio.Lock()
        self._timer: SimulationTimer | None = None

    @property
    def timer(self) -> SimulationTimer | None:
        return self._timer

    async def start_goal(
        self,
        target_delta: int,
        goal_id: str | None = None,
        mode: TrackingMode | str = TrackingMode.real,
    ) -> StatusRecord:
        """Start (or replace) the goal and publish its initial status record.

        A replaced goal gets its final running=False record first, so a polling
        host sees it end before the new goal appears.
        """
        if goal_id is None:
            goal_id = str(uuid.uuid4())

        async with self._lock:
            previous = self.tracker.snapshot()
            session = self.tracker.start_goal(target_delta, goal_id, mode)
            await self._cancel_timer()
            if previous.running:
                await self.reporter.on_stopped(previous)

            initial = self.tracker.snapshot()
            record = StatusRecord.from_delta(initial)
            await self.reporter.publish(record)

            if session.mode is TrackingMode.simulated:
                self._timer = SimulationTimer(
                    self.tracker,
                    self.reporter,
                    generation=session.generation,
                    interval=self._tick_interval,
                    lock=self._lock,
                )
                self._timer.start()
        return record

    async def report_step(self, observed_count: int) -> ProgressDelta:
        async with self._lock:
            delta = self.tracker.report_step(observed_count)
            await self.reporter.on_delta(delta)
        return delta

    async def stop_goal(self) -> None:
        async with self._lock:
            await self._cancel_timer()
            final = self.tracker.stop_goal()
            await self.reporter.on_stopped(final)

    async def get_steps_remaining(self) -> int:
        return self.tracker.get_steps_remaining()

    def status(self) -> StatusRecord | None:
        """Live status built from the tracker; None when no goal is running."""
        snapshot = self.tracker.snapshot()
        if not snapshot.changed:
            return None
        return StatusRecord.from_delta(snapshot)

    async def shutdown(self) -> None:
        async with self._lock:
            await self._cancel_timer()

    async def _cancel_timer(self) -> None:
        if self._timer is not None:
            await self._timer.cancel()
            self._timer = None


def build_sink(config: Settings) -> StatusSink:
    if config.status_sink == "memory":
        return InMemoryStatusSink()
    if config.status_sink == "database":
        from app.db import async_session

        return DatabaseStatusSink(async_session)
    if config.status_sink == "file":
        return JsonFileStatusSink(config.status_file_path)
    raise ValueError(f"Unknown status_sink: {config.status_sink!r}")


def build_notifier(config: Settings) -> GoalReachedNotifier:
    if config.goal_reached_webhook_url:
        return WebhookNotifier(config.goal_reached_webhook_url, timeout=config.webhook_timeout_seconds)
    return LoggingNotifier()


def build_service(config: Settings = settings) -> TrackerService:
    logger.info("Building tracker service (sink=%s)", config.status_sink)
    return TrackerService(
        sink=build_sink(config),
        on_complete=build_notifier(config),
        simulation_duration=config.simulation_duration_seconds,
        tick_interval=config.tick_interval_seconds,
        replace_active=config.replace_active_goal,
        sink_timeout=config.sink_timeout_seconds,
    )
