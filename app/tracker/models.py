"""Tracking session state, progress deltas and the StatusRecord contract."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class TrackingMode(str, Enum):
    real = "real"
    simulated = "simulated"


class SessionStatus(str, Enum):
    idle = "idle"
    active = "active"
    completed = "completed"


@dataclass(slots=True)
class TrackingSession:
    goal_id: str
    target_delta: int
    mode: TrackingMode
    generation: int
    baseline: int | None = None  # None until the first real observation
    last_observed: int = 0
    simulation_start: float | None = None  # Simulated mode only
    status: SessionStatus = SessionStatus.active


@dataclass(frozen=True, slots=True)
class ProgressDelta:
    """Outcome of one tracker mutation, with the session as it stood afterwards.

    `changed` is False for the empty delta returned by no-op calls (no active
    session, wrong mode, stale generation). Consumers must not read live
    tracker state to interpret a delta; everything they need is copied here.
    """

    changed: bool = False
    goal_reached: bool = False
    generation: int = 0
    goal_id: str = ""
    mode: TrackingMode = TrackingMode.real
    target_delta: int = 0
    baseline: int | None = None
    last_observed: int = 0
    steps_taken: int = 0
    steps_remaining: int = 0
    running: bool = False

    @classmethod
    def empty(cls, generation: int = 0) -> ProgressDelta:
        return cls(generation=generation)


class StatusRecord(BaseModel):
    """Point-in-time snapshot for polling hosts. Never the source of truth."""

    goal_id: str
    mode: TrackingMode = TrackingMode.real
    target_delta: int
    baseline: int | None = None
    last_observed: int = 0
    steps_taken: int = 0
    steps_remaining: int = 0
    running: bool = False
    goal_reached: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_delta(cls, delta: ProgressDelta, **overrides) -> StatusRecord:
        data = dict(
            goal_id=delta.goal_id,
            mode=delta.mode,
            target_delta=delta.target_delta,
            baseline=delta.baseline,
            last_observed=delta.last_observed,
            steps_taken=delta.steps_taken,
            steps_remaining=delta.steps_remaining,
            running=delta.running,
            goal_reached=delta.goal_reached,
        )
        data.update(overrides)
        return cls(**data)


# ---------------------------------------------------------------------------
# HTTP payloads
# ---------------------------------------------------------------------------


class StartGoalRequest(BaseModel):
    goal_steps: int | None = Field(
        default=None, gt=0, description="Steps required to complete the goal; DEFAULT_GOAL_STEPS when omitted"
    )
    goal_id: str | None = Field(default=None, description="Opaque id; generated when omitted")
    test_mode: bool = False


class ReportStepRequest(BaseModel):
    steps: int = Field(..., ge=0, description="Raw cumulative step count from the device")


class ReportStepResponse(BaseModel):
    accepted: bool
    goal_reached: bool = False
    steps_remaining: int = 0


class StepsRemainingResponse(BaseModel):
    steps_remaining: int
