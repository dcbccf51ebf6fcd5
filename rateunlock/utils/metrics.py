"""
Timing helpers for pipeline latency logging.
"""
import time
from typing import Optional


class Timer:
    """Simple timer for measuring operation latency."""

    def __init__(self):
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def start(self) -> "Timer":
        self._start = time.monotonic()
        return self

    def stop(self) -> int:
        """Stop timer and return elapsed milliseconds."""
        self._end = time.monotonic()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> int:
        """Return elapsed time in milliseconds."""
        if self._start is None:
            return 0
        end = self._end or time.monotonic()
        return int((end - self._start) * 1000)
