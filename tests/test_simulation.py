"""Tests for the test-mode simulation timer."""

from __future__ import annotations

import asyncio

import pytest

from app.tracker.models import SessionStatus, TrackingMode
from app.tracker.reporter import ProgressReporter
from app.tracker.simulation import SimulationTimer

from tests.conftest import CompletionRecorder


def _timer(tracker, sink, recorder, generation, interval=0.001):
    reporter = ProgressReporter(tracker, sink, recorder)
    return SimulationTimer(tracker, reporter, generation=generation, interval=interval)


class TestSimulationTimer:
    @pytest.mark.asyncio
    async def test_reports_progress_then_completes(self, tracker, clock, sink):
        recorder = CompletionRecorder()
        session = tracker.start_goal(1000, "g1", TrackingMode.simulated)
        clock.advance(15)
        timer = _timer(tracker, sink, recorder, session.generation)
        timer.start()

        for _ in range(100):
            if sink.latest is not None:
                break
            await asyncio.sleep(0.001)
        assert sink.latest.steps_remaining == 500
        assert recorder.calls == []

        clock.advance(15)
        await asyncio.wait_for(timer.wait(), timeout=2)

        assert len(recorder.calls) == 1
        assert sink.latest.goal_reached is True
        assert sink.latest.steps_remaining == 0
        assert tracker.status is SessionStatus.idle
        assert not timer.running

    @pytest.mark.asyncio
    async def test_exits_when_goal_stopped(self, tracker, clock, sink):
        recorder = CompletionRecorder()
        session = tracker.start_goal(1000, "g1", TrackingMode.simulated)
        timer = _timer(tracker, sink, recorder, session.generation)
        timer.start()
        tracker.stop_goal()
        clock.advance(60)

        await asyncio.wait_for(timer.wait(), timeout=2)
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_stale_timer_cannot_complete_new_goal(self, tracker, clock, sink):
        recorder = CompletionRecorder()
        old = tracker.start_goal(1000, "g1", TrackingMode.simulated)
        stale = _timer(tracker, sink, recorder, old.generation)
        stale.start()
        tracker.start_goal(1000, "g2", TrackingMode.simulated)
        clock.advance(60)

        await asyncio.wait_for(stale.wait(), timeout=2)
        assert recorder.calls == []
        assert tracker.status is SessionStatus.active
        assert tracker.session.goal_id == "g2"

    @pytest.mark.asyncio
    async def test_cancel_while_sleeping(self, tracker, sink):
        recorder = CompletionRecorder()
        session = tracker.start_goal(1000, "g1", TrackingMode.simulated)
        timer = _timer(tracker, sink, recorder, session.generation, interval=60)
        timer.start()
        assert timer.running
        await timer.cancel()
        assert not timer.running
        assert sink.history == []

    @pytest.mark.asyncio
    async def test_cancel_before_start_is_noop(self, tracker, sink):
        timer = _timer(tracker, sink, CompletionRecorder(), generation=1)
        await timer.cancel()
        assert not timer.running
