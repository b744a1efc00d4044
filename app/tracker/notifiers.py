"""Goal-reached notifiers, the host's single completion signal."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import httpx

from app.tracker.errors import SinkFailure
from app.tracker.models import ProgressDelta

logger = logging.getLogger(__name__)


@runtime_checkable
class GoalReachedNotifier(Protocol):
    """What build_notifier hands the reporter as its completion callback."""

    async def __call__(self, delta: ProgressDelta) -> None: ...


class LoggingNotifier:
    async def __call__(self, delta: ProgressDelta) -> None:
        logger.info(
            "GOAL_REACHED goal_id=%s target_delta=%d",
            delta.goal_id,
            delta.target_delta,
            extra={"goal_id": delta.goal_id, "generation": delta.generation},
        )


class WebhookNotifier:
    """POSTs a goal_reached event to the host's webhook URL."""

    def __init__(self, url: str, timeout: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self._timeout = timeout
        self._client = client

    async def __call__(self, delta: ProgressDelta) -> None:
        payload = {
            "event": "goal_reached",
            "goal_id": delta.goal_id,
            "target_delta": delta.target_delta,
            "mode": delta.mode.value,
        }
        try:
            if self._client is not None:
                resp = await self._client.post(self.url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(self.url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise SinkFailure(f"goal_reached webhook to {self.url} failed: {exc}") from exc
