"""
Runs one scan: target list -> dispatcher -> queue -> workers -> sink.
"""
from __future__ import annotations
import logging
import queue
import threading
import time
from typing import IO, Callable, Optional

from .dispatcher import Dispatcher
from .models import ScanConfig, ScanSummary
from .network import Prober
from .parsing import TargetSource
from .progress import ProgressBar
from .sink import ResultSink
from .worker_pool import SupportsProbe, WorkerPool


class Scanner:
    """
    Owns the pipeline for a single run.

    Fatal problems (input list or output file cannot be opened) are raised
    as OSError from run() before any worker thread is started. stop() may be
    called from another thread or a signal handler to cancel the scan.
    """

    def __init__(
        self,
        config: ScanConfig,
        stop_event: Optional[threading.Event] = None,
        prober_factory: Optional[Callable[[], SupportsProbe]] = None,
        stream: Optional[IO[str]] = None,
        progress: Optional[ProgressBar] = None,
    ):
        self.config = config
        self.stop_event = stop_event or threading.Event()
        self.prober_factory = prober_factory or self._default_prober
        self.stream = stream
        self.progress = progress or ProgressBar(length=config.progress_width, enabled=config.show_progress)

    def _default_prober(self) -> SupportsProbe:
        return Prober(
            timeout=self.config.timeout,
            verify_tls=self.config.verify_tls,
            user_agent=self.config.user_agent,
        )

    def stop(self):
        """Stops dispatch; in-flight probes end at their own timeout."""
        if not self.stop_event.is_set():
            logging.warning("Stop requested, finishing in-flight probes.")
        self.stop_event.set()

    def run(self) -> ScanSummary:
        config = self.config
        source = TargetSource(config.input_path)
        started = time.monotonic()

        total = source.count()
        logging.info(f"Loaded {total} targets from {config.input_path}")

        with source.open() as stream, ResultSink(config.output_path, self.stream) as sink:
            work_queue: "queue.Queue[Optional[str]]" = queue.Queue(maxsize=config.effective_queue_size)
            pool = WorkerPool(config.workers, work_queue, self.prober_factory, sink, self.stop_event)
            dispatcher = Dispatcher(work_queue, config.rate, self.stop_event, self.progress.update)

            pool.start()
            logging.info(
                f"Dispatching at {config.rate:g} hosts/s (one every {config.interval * 1000:.1f} ms) "
                f"to {config.workers} workers"
            )
            try:
                dispatched = dispatcher.run(TargetSource.iter_targets(stream), total)
            except BaseException:
                self.stop_event.set()
                raise
            finally:
                dispatcher.close(config.workers)
                self.progress.finish()
                pool.join()

        summary = ScanSummary(
            total=total,
            dispatched=dispatched,
            probed=pool.tracker.completed,
            reachable=sink.count,
            peak_in_flight=pool.tracker.peak,
            cancelled=self.stop_event.is_set(),
            elapsed=time.monotonic() - started,
        )
        logging.info(
            f"Scan finished in {summary.elapsed:.1f}s: {summary.reachable} of "
            f"{summary.probed} probed hosts reachable."
        )
        return summary
