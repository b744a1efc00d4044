"""Status sinks: where StatusRecords go for polling hosts.

Writes are best-effort and idempotent: each record fully describes the session
at one point in time, so replaying or dropping one never corrupts anything.
Sinks raise SinkFailure; the reporter logs it and keeps tracking.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.tracker.errors import SinkFailure
from app.tracker.models import StatusRecord

logger = logging.getLogger(__name__)


class StatusSink(Protocol):
    async def write(self, record: StatusRecord) -> None: ...


class InMemoryStatusSink:
    """Keeps the latest record plus a bounded history."""

    def __init__(self, max_history: int = 1000) -> None:
        self.latest: StatusRecord | None = None
        self.history: list[StatusRecord] = []
        self._max_history = max_history

    async def write(self, record: StatusRecord) -> None:
        self.latest = record
        self.history.append(record)
        if len(self.history) > self._max_history:
            del self.history[: len(self.history) - self._max_history]


class JsonFileStatusSink:
    """Replaces a JSON status file atomically on every write.

    Readers polling the file see either the previous record or the new one,
    never a partial write.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    async def write(self, record: StatusRecord) -> None:
        payload = record.model_dump_json()
        try:
            await asyncio.to_thread(self._replace, payload)
        except OSError as exc:
            raise SinkFailure(f"Could not write status file {self.path}: {exc}") from exc

    def _replace(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".awty_status.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


INSERT_STATUS_SQL = (
    "INSERT INTO goal_status_records "
    "(goal_id, mode, target_delta, baseline, last_observed, steps_taken, "
    "steps_remaining, running, goal_reached, recorded_at) "
    "VALUES (:goal_id, :mode, :target_delta, :baseline, :last_observed, :steps_taken, "
    ":steps_remaining, :running, :goal_reached, :recorded_at)"
)


class DatabaseStatusSink:
    """Appends each record to goal_status_records (see app.db)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def write(self, record: StatusRecord) -> None:
        params = {
            "goal_id": record.goal_id,
            "mode": record.mode.value,
            "target_delta": record.target_delta,
            "baseline": record.baseline,
            "last_observed": record.last_observed,
            "steps_taken": record.steps_taken,
            "steps_remaining": record.steps_remaining,
            "running": record.running,
            "goal_reached": record.goal_reached,
            "recorded_at": record.timestamp,
        }
        try:
            async with self._session_factory() as session:
                await session.execute(text(INSERT_STATUS_SQL), params)
                await session.commit()
        except SQLAlchemyError as exc:
            raise SinkFailure(f"Could not insert status record for {record.goal_id}: {exc}") from exc
