"""
Feeds targets into the work queue at a fixed pace.
"""
from __future__ import annotations
import logging
import queue
import threading
from typing import Callable, Iterable, Optional

from .worker_pool import QUEUE_CLOSED

# How often a blocked put re-checks the stop event.
PUT_POLL_SECONDS = 0.1


class Dispatcher:
    """
    Single producer that enqueues one target every 1/rate seconds.

    This is a fixed-interval pacer: it never bursts, and time spent blocked
    on a full queue is not made up afterwards. Both the pacing wait and a
    blocked put are interrupted by the stop event.
    """

    def __init__(
        self,
        work_queue: "queue.Queue[Optional[str]]",
        rate: float,
        stop_event: Optional[threading.Event] = None,
        on_dispatched: Optional[Callable[[int, int], None]] = None,
    ):
        if rate <= 0:
            raise ValueError(f"rate must be greater than 0, got {rate}")
        self.queue = work_queue
        self.interval = 1.0 / rate
        self.stop_event = stop_event or threading.Event()
        self.on_dispatched = on_dispatched
        self.dispatched = 0

    def run(self, targets: Iterable[str], total: int) -> int:
        """Enqueues targets in order until exhausted or stopped. Returns the count."""
        for target in targets:
            if self.dispatched and self.stop_event.wait(self.interval):
                break
            if not self._put(target):
                break
            self.dispatched += 1
            if self.on_dispatched:
                self.on_dispatched(self.dispatched, total)

        if self.stop_event.is_set():
            logging.info(f"Dispatch stopped after {self.dispatched} of {total} targets.")
        return self.dispatched

    def close(self, worker_count: int):
        """Signals that no more targets will arrive: one sentinel per worker."""
        for _ in range(worker_count):
            self.queue.put(QUEUE_CLOSED)

    def _put(self, target: str) -> bool:
        while not self.stop_event.is_set():
            try:
                self.queue.put(target, timeout=PUT_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False
