"""Tracker HTTP router: startGoal, updateStepCount, getStepsRemaining and stopGoal for the host."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from app.auth import verify_api_key
from app.config import settings
from app.tracker.errors import GoalAlreadyActive, InvalidArgument
from app.tracker.models import (
    ReportStepRequest,
    ReportStepResponse,
    StartGoalRequest,
    StatusRecord,
    StepsRemainingResponse,
    TrackingMode,
)
from app.tracker.service import TrackerService

router = APIRouter(prefix="/tracker", tags=["tracker"])


def get_service(request: Request) -> TrackerService:
    return request.app.state.tracker_service


# ---------------------------------------------------------------------------
# /tracker/goal
# ---------------------------------------------------------------------------


@router.post("/goal", response_model=StatusRecord, status_code=201)
async def start_goal(
    body: StartGoalRequest,
    service: TrackerService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> StatusRecord:
    mode = TrackingMode.simulated if body.test_mode else TrackingMode.real
    goal_steps = body.goal_steps if body.goal_steps is not None else settings.default_goal_steps
    try:
        return await service.start_goal(goal_steps, body.goal_id, mode)
    except InvalidArgument as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except GoalAlreadyActive as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.delete("/goal")
async def stop_goal(
    service: TrackerService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> dict[str, bool]:
    await service.stop_goal()
    return {"stopped": True}


@router.get("/goal/remaining", response_model=StepsRemainingResponse)
async def steps_remaining(
    service: TrackerService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> StepsRemainingResponse:
    return StepsRemainingResponse(steps_remaining=await service.get_steps_remaining())


# ---------------------------------------------------------------------------
# /tracker/steps, /tracker/status
# ---------------------------------------------------------------------------


@router.post("/steps", response_model=ReportStepResponse)
async def report_steps(
    body: ReportStepRequest,
    service: TrackerService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> ReportStepResponse:
    try:
        delta = await service.report_step(body.steps)
    except InvalidArgument as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return ReportStepResponse(
        accepted=delta.changed,
        goal_reached=delta.goal_reached,
        steps_remaining=delta.steps_remaining if delta.changed else await service.get_steps_remaining(),
    )


@router.get("/status", response_model=StatusRecord)
async def status(
    service: TrackerService = Depends(get_service),
    _: str = Depends(verify_api_key),
) -> StatusRecord:
    record = service.status()
    if record is None:
        raise HTTPException(status_code=404, detail="No goal is being tracked")
    return record
