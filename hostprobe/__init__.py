"""hostprobe: rate-paced HTTP reachability scanner.

Exposes the Scanner and the models it produces.
"""

from .models import FailureKind, ScanConfig, ScanOutcome, ScanSummary
from .scanner import Scanner

__all__ = ["FailureKind", "ScanConfig", "ScanOutcome", "ScanSummary", "Scanner"]
