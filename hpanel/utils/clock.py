"""Clock infrastructure for deterministic timing in tests and production."""

import threading
import time
from typing import Protocol


class Clock(Protocol):
    """Protocol for a monotonic time source."""

    def now(self) -> float:
        """Get current time in seconds."""
        ...


class MonotonicClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        """Get current monotonic time."""
        return time.monotonic()


class ManualClock:
    """Test clock that only moves when advanced."""

    def __init__(self, start_time: float = 0.0):
        self._current_time = start_time
        self._lock = threading.Lock()

    def now(self) -> float:
        """Get current simulated time."""
        with self._lock:
            return self._current_time

    def advance(self, dt_s: float) -> float:
        """Advance simulated time by dt_s seconds and return the new time."""
        if dt_s < 0:
            raise ValueError("clock cannot move backwards")
        with self._lock:
            self._current_time += dt_s
            return self._current_time
