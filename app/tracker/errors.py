"""Tracker error taxonomy.

Calls made with no active session are not errors; they return an empty delta.
"""

from __future__ import annotations


class TrackerError(Exception):
    pass


class InvalidArgument(TrackerError, ValueError):
    """Non-positive target, blank goal id, or negative step count."""


class GoalAlreadyActive(TrackerError):
    """startGoal while a goal is active and replace_active_goal is off."""

    def __init__(self, goal_id: str):
        super().__init__(f"Goal {goal_id!r} is already active")
        self.goal_id = goal_id


class SinkFailure(TrackerError):
    """A status sink or goal-reached notifier could not deliver."""
