"""
Manages the fixed set of worker threads that probe targets.
"""
from __future__ import annotations
import logging
import queue
import threading
from enum import Enum, auto
from typing import Callable, List, Optional, Protocol

from .models import ScanOutcome
from .sink import ResultSink

# Placed on the queue once per worker when no more targets will arrive.
QUEUE_CLOSED = None


class SupportsProbe(Protocol):
    """What a worker needs from a prober."""

    def probe(self, target: str) -> ScanOutcome:
        ...

    def close(self) -> None:
        ...


class PoolState(Enum):
    """Lifecycle of the worker pool."""
    IDLE = auto()
    RUNNING = auto()
    STOPPED = auto()


class CompletionTracker:
    """Thread-safe probe counters for the pool, including the highest in-flight count seen."""

    def __init__(self):
        self._lock = threading.Lock()
        self.in_flight = 0
        self.peak = 0
        self.completed = 0
        self.skipped = 0

    def started(self):
        with self._lock:
            self.in_flight += 1
            if self.in_flight > self.peak:
                self.peak = self.in_flight

    def finished(self):
        with self._lock:
            self.in_flight -= 1
            self.completed += 1

    def skip(self):
        with self._lock:
            self.skipped += 1


class WorkerPool:
    """
    Starts exactly worker_count threads that consume targets from a shared queue.

    Each worker probes synchronously inside its own loop, so no more than
    worker_count probes are ever in flight. Workers exit when they take the
    QUEUE_CLOSED sentinel. Once the stop event is set, targets still in the
    queue are taken but not probed.
    """

    def __init__(
        self,
        worker_count: int,
        work_queue: "queue.Queue[Optional[str]]",
        prober_factory: Callable[[], SupportsProbe],
        sink: ResultSink,
        stop_event: Optional[threading.Event] = None,
    ):
        if worker_count < 1:
            raise ValueError(f"worker_count must be at least 1, got {worker_count}")
        self.worker_count = worker_count
        self.queue = work_queue
        self.prober_factory = prober_factory
        self.sink = sink
        self.stop_event = stop_event or threading.Event()
        self.tracker = CompletionTracker()
        self.state = PoolState.IDLE
        self.threads: List[threading.Thread] = []

    def start(self):
        """Starts the worker threads. Call once, before dispatch begins."""
        if self.state != PoolState.IDLE:
            raise RuntimeError("Worker pool has already been started.")
        self.state = PoolState.RUNNING
        for index in range(self.worker_count):
            thread = threading.Thread(
                target=self._worker,
                name=f"hostprobe-worker-{index}",
                daemon=True,
            )
            thread.start()
            self.threads.append(thread)
        logging.info(f"Started {self.worker_count} workers.")

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Waits for every worker to exit. Returns True when all of them have.

        Workers only exit after the queue has been closed, so this returns
        once the queue is drained and every in-flight probe has finished.
        """
        for thread in self.threads:
            thread.join(timeout)
        done = not any(thread.is_alive() for thread in self.threads)
        if done:
            self.state = PoolState.STOPPED
        return done

    def _worker(self):
        """Worker thread body: take, probe, emit, repeat."""
        prober = self.prober_factory()
        try:
            while True:
                target = self.queue.get()
                try:
                    if target is QUEUE_CLOSED:
                        break
                    if self.stop_event.is_set():
                        self.tracker.skip()
                        continue
                    self._process(prober, target)
                finally:
                    self.queue.task_done()
        finally:
            prober.close()

    def _process(self, prober: SupportsProbe, target: str):
        self.tracker.started()
        try:
            outcome = prober.probe(target)
        except Exception:
            logging.exception(f"Unexpected error while probing {target}")
            return
        finally:
            self.tracker.finished()

        try:
            self.sink.emit(outcome)
        except Exception:
            logging.exception(f"Unexpected error while recording result for {target}")
