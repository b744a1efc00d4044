"""Shared fixtures for the test suite."""

from __future__ import annotations

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.tracker.models import ProgressDelta
from app.tracker.router import get_service
from app.tracker.service import TrackerService
from app.tracker.sinks import InMemoryStatusSink
from app.tracker.tracker import GoalTracker


# ---------------------------------------------------------------------------
# Fakes (no real time, no files, no network)
# ---------------------------------------------------------------------------

class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.t = start

    def now(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class FailingSink:
    def __init__(self, exc: Exception | None = None):
        self.exc = exc or OSError("disk full")
        self.calls = 0

    async def write(self, record):
        self.calls += 1
        raise self.exc


class HangingSink:
    """Sink whose writes never complete, like a stalled disk or database."""

    def __init__(self):
        self.calls = 0
        self._never = asyncio.Event()

    async def write(self, record):
        self.calls += 1
        await self._never.wait()


class CompletionRecorder:
    """Completion callback that remembers every delta it was called with."""

    def __init__(self):
        self.calls: list[ProgressDelta] = []

    def __call__(self, delta: ProgressDelta) -> None:
        self.calls.append(delta)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def tracker(clock):
    return GoalTracker(clock=clock)


@pytest.fixture()
def sink():
    return InMemoryStatusSink()


@pytest.fixture()
def completions():
    return CompletionRecorder()


@pytest.fixture()
def service(sink, completions, clock):
    return TrackerService(sink=sink, on_complete=completions, clock=clock, tick_interval=0.01)


@pytest.fixture()
def override_service(service):
    """Override the FastAPI dependency so no lifespan/real sink is needed."""
    app.dependency_overrides[get_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_service):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await override_service.shutdown()
