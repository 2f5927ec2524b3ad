"""
Reads target lists and normalizes each entry into a URL.
"""
from __future__ import annotations
from typing import IO, Iterator

from .models import SCHEMES

DEFAULT_SCHEME = "http://"
COMMENT_PREFIX = "#"


def normalize_target(raw: str) -> str:
    """Returns the entry as a URL, prepending http:// when no scheme is present."""
    value = raw.strip()
    if value.lower().startswith(SCHEMES):
        return value
    return DEFAULT_SCHEME + value


def _is_target_line(line: str) -> bool:
    s = line.strip()
    return bool(s) and not s.startswith(COMMENT_PREFIX)


class TargetSource:
    """
    A line-oriented list of hosts, IPs or URLs on disk.

    Blank lines and lines starting with '#' are skipped. Everything else is
    yielded as-is after scheme normalization; malformed entries are left for
    the prober to reject.
    """

    def __init__(self, path: str, encoding: str = "utf-8"):
        self.path = path
        self.encoding = encoding

    def open(self) -> IO[str]:
        """Opens the list for reading. Raises OSError if it cannot be opened."""
        return open(self.path, "r", encoding=self.encoding, errors="replace")

    def count(self) -> int:
        """Counts the targets the list will produce, without normalizing them."""
        with self.open() as fh:
            return sum(1 for line in fh if _is_target_line(line))

    @staticmethod
    def iter_targets(stream: IO[str]) -> Iterator[str]:
        """Lazily yields normalized targets from an open stream, in input order."""
        for line in stream:
            if _is_target_line(line):
                yield normalize_target(line)
