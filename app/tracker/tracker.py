"""Goal-tracking state machine: pure state and transitions, no I/O.

One TrackingSession at a time. Every mutation runs under a single lock and
checks `status == active` in the same critical section that transitions to
`completed`, so goal_reached is reported at most once per session.

Real mode: the first observation after start becomes the baseline and yields
zero progress; later observations are folded in with max() so regressions
(device counter resets, out-of-order deliveries) never produce negative steps.

Simulated mode: progress is a linear function of clock time since start and
completes once SIMULATION_DURATION has elapsed. Real observations are ignored.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import threading

from app.tracker.clock import Clock, MonotonicClock
from app.tracker.errors import GoalAlreadyActive, InvalidArgument
from app.tracker.models import ProgressDelta, SessionStatus, TrackingMode, TrackingSession

logger = logging.getLogger(__name__)

SIMULATION_DURATION = 30.0  # seconds


# ---------------------------------------------------------------------------
# Progress math
# ---------------------------------------------------------------------------


def steps_taken_real(baseline: int | None, last_observed: int) -> int:
    """Steps since baseline, clamped at 0. Zero while the baseline is unset."""
    if baseline is None:
        return 0
    return max(0, last_observed - baseline)


def steps_taken_simulated(target_delta: int, elapsed: float, duration: float) -> int:
    """Linear interpolation of target_delta over duration, floored."""
    if duration <= 0:
        return target_delta
    progress = min(max(elapsed / duration, 0.0), 1.0)
    return int(math.floor(target_delta * progress))


def steps_remaining(target_delta: int, steps_taken: int) -> int:
    return max(0, target_delta - steps_taken)


def _require_int(value: object, name: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidArgument(f"{name} must be >= {minimum}, got {value}")
    return value


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------


class GoalTracker:
    def __init__(
        self,
        clock: Clock | None = None,
        simulation_duration: float = SIMULATION_DURATION,
        replace_active: bool = True,
    ) -> None:
        if simulation_duration <= 0:
            raise InvalidArgument(f"simulation_duration must be > 0, got {simulation_duration}")
        self._clock = clock or MonotonicClock()
        self._duration = simulation_duration
        self._replace_active = replace_active
        self._lock = threading.Lock()
        self._session: TrackingSession | None = None
        self._generation = 0

    @property
    def simulation_duration(self) -> float:
        return self._duration

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            return self._session.status if self._session is not None else SessionStatus.idle

    @property
    def session(self) -> TrackingSession | None:
        """Copy of the current session, or None when idle."""
        with self._lock:
            return dataclasses.replace(self._session) if self._session is not None else None

    def start_goal(
        self,
        target_delta: int,
        goal_id: str,
        mode: TrackingMode | str = TrackingMode.real,
    ) -> TrackingSession:
        _require_int(target_delta, "target_delta", 1)
        if not isinstance(goal_id, str) or not goal_id.strip():
            raise InvalidArgument("goal_id must be a non-empty string")
        try:
            mode = TrackingMode(mode)
        except ValueError:
            raise InvalidArgument(f"Unknown tracking mode: {mode!r}")

        with self._lock:
            previous = self._session
            if previous is not None and previous.status is SessionStatus.active:
                if not self._replace_active:
                    raise GoalAlreadyActive(previous.goal_id)
                logger.warning(
                    "Replacing active goal %s (generation %d) with %s",
                    previous.goal_id,
                    previous.generation,
                    goal_id,
                )
            self._generation += 1
            session = TrackingSession(
                goal_id=goal_id,
                target_delta=target_delta,
                mode=mode,
                generation=self._generation,
            )
            if mode is TrackingMode.simulated:
                session.simulation_start = self._clock.now()
            self._session = session
            started = dataclasses.replace(session)

        logger.info(
            "Goal started: goal_id=%s target_delta=%d mode=%s generation=%d",
            goal_id,
            target_delta,
            mode.value,
            started.generation,
            extra={"goal_id": goal_id, "generation": started.generation},
        )
        return started

    def report_step(self, observed_count: int) -> ProgressDelta:
        _require_int(observed_count, "observed_count", 0)

        with self._lock:
            session = self._session
            if session is None or session.status is not SessionStatus.active:
                logger.debug("report_step(%d) ignored: no active goal", observed_count)
                return ProgressDelta.empty(self._generation)
            if session.mode is not TrackingMode.real:
                logger.debug("report_step(%d) ignored: goal %s is simulated", observed_count, session.goal_id)
                return ProgressDelta.empty(self._generation)

            if session.baseline is None:
                session.baseline = observed_count
                session.last_observed = observed_count
                logger.info("Baseline established for %s: %d", session.goal_id, observed_count)
                return self._delta(session, steps_taken=0)

            session.last_observed = max(session.last_observed, observed_count)
            taken = steps_taken_real(session.baseline, session.last_observed)
            reached = taken >= session.target_delta
            if reached:
                session.status = SessionStatus.completed
            delta = self._delta(session, steps_taken=taken, goal_reached=reached)

        logger.debug(
            "Step update: observed=%d baseline=%s taken=%d remaining=%d",
            observed_count,
            delta.baseline,
            delta.steps_taken,
            delta.steps_remaining,
        )
        if reached:
            logger.info(
                "Goal %s reached: %d steps taken",
                delta.goal_id,
                delta.steps_taken,
                extra={"goal_id": delta.goal_id, "generation": delta.generation, "steps_remaining": 0},
            )
        return delta

    def tick(self, now: float | None = None, generation: int | None = None) -> ProgressDelta:
        """Advance a simulated session to `now` (default: the injected clock).

        A `generation` that no longer matches the current session makes this a
        no-op, so a timer left over from a stopped or replaced goal cannot act.
        """
        with self._lock:
            session = self._session
            if session is None or session.status is not SessionStatus.active:
                return ProgressDelta.empty(self._generation)
            if session.mode is not TrackingMode.simulated:
                return ProgressDelta.empty(self._generation)
            if generation is not None and generation != session.generation:
                logger.debug("Stale tick for generation %d ignored", generation)
                return ProgressDelta.empty(self._generation)

            current = self._clock.now() if now is None else now
            elapsed = current - session.simulation_start
            reached = elapsed >= self._duration
            if reached:
                session.status = SessionStatus.completed
                taken = session.target_delta
            else:
                taken = steps_taken_simulated(session.target_delta, elapsed, self._duration)
            delta = self._delta(session, steps_taken=taken, goal_reached=reached)

        if reached:
            logger.info(
                "Simulated goal %s reached after %.1fs",
                delta.goal_id,
                elapsed,
                extra={"goal_id": delta.goal_id, "generation": delta.generation, "steps_remaining": 0},
            )
        return delta

    def stop_goal(self, generation: int | None = None) -> ProgressDelta:
        """Reset to idle. Idempotent and never raises.

        With `generation`, only the session of that generation is stopped; a
        newer session started in the meantime is left alone. Returns the final
        state of the stopped session, or an empty delta if nothing was stopped.
        """
        with self._lock:
            session = self._session
            if session is None:
                return ProgressDelta.empty(self._generation)
            if generation is not None and generation != session.generation:
                logger.debug(
                    "stop_goal for generation %d skipped: current is %d",
                    generation,
                    session.generation,
                )
                return ProgressDelta.empty(self._generation)

            final = self._delta(session, steps_taken=self._progress(session, None))
            self._session = None
            self._generation += 1

        logger.info(
            "Goal %s stopped (status was %s)",
            final.goal_id,
            session.status.value,
            extra={"goal_id": final.goal_id, "generation": final.generation, "steps_remaining": final.steps_remaining},
        )
        return dataclasses.replace(final, running=False)

    def get_steps_remaining(self, now: float | None = None) -> int:
        """Steps left on the current goal; 0 when idle or completed."""
        with self._lock:
            session = self._session
            if session is None or session.status is SessionStatus.completed:
                return 0
            return steps_remaining(session.target_delta, self._progress(session, now))

    def snapshot(self, now: float | None = None) -> ProgressDelta:
        """Current state as a delta, without mutating anything."""
        with self._lock:
            session = self._session
            if session is None:
                return ProgressDelta.empty(self._generation)
            return self._delta(session, steps_taken=self._progress(session, now))

    # -- internals (call with the lock held) ---------------------------------

    def _progress(self, session: TrackingSession, now: float | None) -> int:
        if session.mode is TrackingMode.real:
            return steps_taken_real(session.baseline, session.last_observed)
        if session.status is SessionStatus.completed:
            return session.target_delta
        current = self._clock.now() if now is None else now
        return steps_taken_simulated(session.target_delta, current - session.simulation_start, self._duration)

    def _delta(self, session: TrackingSession, steps_taken: int, goal_reached: bool = False) -> ProgressDelta:
        return ProgressDelta(
            changed=True,
            goal_reached=goal_reached,
            generation=session.generation,
            goal_id=session.goal_id,
            mode=session.mode,
            target_delta=session.target_delta,
            baseline=session.baseline,
            last_observed=session.last_observed,
            steps_taken=steps_taken,
            steps_remaining=steps_remaining(session.target_delta, steps_taken),
            running=session.status is SessionStatus.active,
        )
