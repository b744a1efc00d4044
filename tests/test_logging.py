"""Tests for log formatting."""

from __future__ import annotations

import json
import logging

from app.logging_config import JSONFormatter, setup_logging


def _record(msg="Goal %s reached", args=("g1",), **extra) -> logging.LogRecord:
    record = logging.LogRecord("app.tracker.tracker", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_single_line_json(self):
        line = JSONFormatter().format(_record())
        data = json.loads(line)
        assert data["level"] == "INFO"
        assert data["logger"] == "app.tracker.tracker"
        assert data["message"] == "Goal g1 reached"
        assert "\n" not in line

    def test_includes_tracking_fields_only(self):
        data = json.loads(JSONFormatter().format(_record(goal_id="g1", generation=3, other="x")))
        assert data["goal_id"] == "g1"
        assert data["generation"] == 3
        assert "steps_remaining" not in data
        assert "other" not in data

    def test_tracker_log_carries_goal_fields(self, tracker, caplog):
        with caplog.at_level(logging.INFO, logger="app.tracker.tracker"):
            tracker.start_goal(100, "g1")
            tracker.stop_goal()

        stopped = caplog.records[-1]
        data = json.loads(JSONFormatter().format(stopped))
        assert data["goal_id"] == "g1"
        assert data["generation"] == 1
        assert data["steps_remaining"] == 100


class TestSetupLogging:
    def test_json_handler_installed(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            setup_logging("json", logging.DEBUG)
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert root.level == logging.DEBUG
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])
