"""Data records shared by the scanner: configuration, outcomes and summaries."""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

SCHEMES = ("http://", "https://")


class FailureKind(Enum):
    """Why a target was unreachable. Used for diagnostics only."""
    TIMEOUT = auto()
    CONNECTION = auto()
    TLS = auto()
    INVALID_URL = auto()
    OTHER = auto()


@dataclass(frozen=True)
class ScanConfig:
    """Settings for one scan run. Built once at startup and shared read-only."""
    input_path: str
    rate: float
    workers: int
    timeout: float
    output_path: Optional[str] = None
    queue_size: int = 0
    verify_tls: bool = True
    user_agent: Optional[str] = None
    show_progress: bool = True
    progress_width: int = 40
    log_level: str = "INFO"
    download_url: Optional[str] = None
    download_path: Optional[str] = None

    @property
    def interval(self) -> float:
        """Seconds between two enqueue operations."""
        return 1.0 / self.rate

    @property
    def effective_queue_size(self) -> int:
        return self.queue_size or self.workers * 2


@dataclass(frozen=True)
class ScanOutcome:
    """The result of probing a single target."""
    target: str
    reachable: bool
    status_line: Optional[str] = None
    failure: Optional[FailureKind] = None

    @property
    def host(self) -> str:
        """The target with its scheme prefix stripped."""
        for scheme in SCHEMES:
            if self.target.lower().startswith(scheme):
                return self.target[len(scheme):]
        return self.target

    def format_line(self) -> str:
        return f"{self.host} {self.status_line}"


@dataclass
class ScanSummary:
    """Counters reported once a scan has finished."""
    total: int = 0
    dispatched: int = 0
    probed: int = 0
    reachable: int = 0
    peak_in_flight: int = 0
    cancelled: bool = False
    elapsed: float = 0.0
