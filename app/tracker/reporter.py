"""Progress reporting: a status record on every delta, one completion signal.

The status sink and the completion callback are side channels. Each call is
bounded by `timeout`; failures and timeouts are logged and swallowed so a
broken or hung sink can never stall tracking.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from app.tracker.models import ProgressDelta, StatusRecord
from app.tracker.sinks import StatusSink
from app.tracker.tracker import GoalTracker

logger = logging.getLogger(__name__)

# Sync or async; the return value is awaited if awaitable and otherwise ignored.
CompletionCallback = Callable[[ProgressDelta], Any]

DEFAULT_SINK_TIMEOUT = 10.0  # seconds


class ProgressReporter:
    def __init__(
        self,
        tracker: GoalTracker,
        sink: StatusSink,
        on_complete: CompletionCallback | None = None,
        timeout: float = DEFAULT_SINK_TIMEOUT,
    ) -> None:
        self._tracker = tracker
        self._sink = sink
        self._on_complete = on_complete
        self._timeout = timeout

    @property
    def sink(self) -> StatusSink:
        return self._sink

    @property
    def timeout(self) -> float:
        return self._timeout

    async def on_delta(self, delta: ProgressDelta) -> None:
        if not delta.changed:
            return
        await self.publish(StatusRecord.from_delta(delta))
        if delta.goal_reached:
            await self.on_goal_reached(delta)

    async def on_goal_reached(self, delta: ProgressDelta) -> None:
        """Notify the host, then clear the session it completed.

        The callback runs before stop_goal so a host reacting to the signal
        still reads the reached state, not a reset one. The stop is scoped to
        the delta's generation and leaves a newer session untouched.
        """
        if self._on_complete is not None:
            try:
                result = self._on_complete(delta)
                if inspect.isawaitable(result):
                    await asyncio.wait_for(result, timeout=self._timeout)
            except asyncio.TimeoutError:
                logger.error(
                    "Goal-reached notification for %s timed out after %.1fs",
                    delta.goal_id,
                    self._timeout,
                    extra={"goal_id": delta.goal_id, "generation": delta.generation},
                )
            except Exception:
                logger.exception("Goal-reached notification failed for %s", delta.goal_id)
        self._tracker.stop_goal(generation=delta.generation)

    async def on_stopped(self, final: ProgressDelta) -> None:
        """Publish the not-running record for a goal that was stopped or replaced."""
        if not final.changed:
            return
        await self.publish(StatusRecord.from_delta(final, running=False))

    async def publish(self, record: StatusRecord) -> None:
        try:
            await asyncio.wait_for(self._sink.write(record), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Status sink write for %s timed out after %.1fs; tracking continues",
                record.goal_id,
                self._timeout,
                extra={"goal_id": record.goal_id},
            )
        except Exception:
            logger.exception("Status sink write failed for %s; tracking continues", record.goal_id)
