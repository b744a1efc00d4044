"""Log output for the tracker service: one JSON object per line, or plain text.

Selected with LOG_FORMAT ("json" or "text") and LOG_LEVEL. Tracker log calls
attach the session they concern via `extra=`; the JSON formatter lifts those
fields to top-level keys so log lines can be filtered per goal.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Keys tracker code passes in `extra=`.
TRACKING_FIELDS = ("goal_id", "generation", "steps_remaining")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in TRACKING_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(entry, default=str)


def setup_logging(log_format: str, level: int | str = logging.INFO) -> None:
    """Replace the root handlers with a single stderr handler."""
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if log_format == "json" else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)
