"""
Text progress bar shown while targets are dispatched.
"""
from __future__ import annotations
import sys
import threading
from typing import IO, Optional

DEFAULT_BAR_LENGTH = 40


def format_progress_bar(completed: int, total: int, length: int = DEFAULT_BAR_LENGTH) -> str:
    """Renders e.g. '\\r[====----] 50.00% Complete'. An empty total counts as done."""
    percent = min(completed / total, 1.0) if total > 0 else 1.0
    filled = int(length * percent)
    bar = "=" * filled + "-" * (length - filled)
    return f"\r[{bar}] {percent * 100:.2f}% Complete"


class ProgressBar:
    """Redraws the bar in place on a terminal stream."""

    def __init__(self, stream: Optional[IO[str]] = None, length: int = DEFAULT_BAR_LENGTH, enabled: bool = True):
        self.stream = stream or sys.stderr
        self.length = length
        self.enabled = enabled
        self._lock = threading.Lock()
        self._drawn = False

    def update(self, completed: int, total: int):
        if not self.enabled:
            return
        with self._lock:
            self.stream.write(format_progress_bar(completed, total, self.length))
            self.stream.flush()
            self._drawn = True

    def finish(self):
        """Moves past the bar so later output starts on a fresh line."""
        with self._lock:
            if self._drawn:
                self.stream.write("\n")
                self.stream.flush()
                self._drawn = False
