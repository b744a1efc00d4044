"""Time source for test-mode simulation."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float: ...


class MonotonicClock:
    """Seconds from time.monotonic(); immune to wall-clock jumps."""

    def now(self) -> float:
        return time.monotonic()
