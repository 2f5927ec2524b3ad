"""
Network operations for hostprobe.
"""

from .download import download_file
from .probe import Prober, format_status_line

__all__ = [
    "download_file",
    "Prober",
    "format_status_line",
]
