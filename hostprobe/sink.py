"""
Collects probe outcomes from all workers and writes the reachable ones.
"""
from __future__ import annotations
import logging
import sys
import threading
from typing import IO, Optional

from .models import ScanOutcome


class ResultSink:
    """
    Prints one '<host> <status>' line per reachable target and, when an
    output path is set, appends the same line to that file.

    Lines are written in completion order, not input order. One lock covers
    the console write and the file append so concurrent workers never
    interleave partial lines. The file is created (or truncated) once in
    open() and stays open until close().
    """

    def __init__(self, output_path: Optional[str] = None, stream: Optional[IO[str]] = None):
        self.output_path = output_path
        self.stream = stream or sys.stdout
        self.count = 0
        self.write_errors = 0
        self._file: Optional[IO[str]] = None
        self._lock = threading.Lock()

    def open(self) -> "ResultSink":
        """Creates the output file. Raises OSError if it cannot be created."""
        if self.output_path:
            self._file = open(self.output_path, "w", encoding="utf-8")
            logging.info(f"Writing reachable hosts to {self.output_path}")
        return self

    def emit(self, outcome: ScanOutcome):
        if not outcome.reachable:
            return

        line = outcome.format_line() + "\n"
        with self._lock:
            self.stream.write(line)
            self.stream.flush()
            self.count += 1
            if self._file is None:
                return
            try:
                self._file.write(line)
                self._file.flush()
            except OSError as e:
                self.write_errors += 1
                logging.error(f"Error writing to output file '{self.output_path}': {e}")

    def close(self):
        with self._lock:
            if self._file is not None:
                try:
                    self._file.close()
                except OSError as e:
                    logging.error(f"Error closing output file '{self.output_path}': {e}")
                self._file = None

    def __enter__(self) -> "ResultSink":
        return self.open()

    def __exit__(self, *exc_info):
        self.close()
