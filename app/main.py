from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import settings
from app.logging_config import setup_logging
from app.tracker.router import router as tracker_router
from app.tracker.service import build_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_format, settings.log_level.upper())
    if settings.status_sink == "database":
        from app.db import ensure_status_table

        await ensure_status_table()
    app.state.tracker_service = build_service(settings)
    try:
        yield
    finally:
        await app.state.tracker_service.shutdown()


app = FastAPI(title="AWTY Step Tracker", version="0.1.0", lifespan=lifespan)
app.include_router(tracker_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "tracker": {
            "start_goal": "POST /tracker/goal",
            "report_steps": "POST /tracker/steps",
            "steps_remaining": "GET /tracker/goal/remaining",
            "stop_goal": "DELETE /tracker/goal",
            "status": "GET /tracker/status",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
