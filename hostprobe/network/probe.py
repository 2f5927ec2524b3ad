"""
Handles the single HTTP GET issued for each target.
"""
import logging
import socket
import threading
import time
from typing import List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from ..models import FailureKind, ScanOutcome

_INVALID_URL_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.URLRequired,
)

# The deadline of the probe running on the current thread, if any.
_active = threading.local()


class _Deadline:
    """
    One wall-clock limit for a whole probe, redirects included.

    requests only bounds the connect and each single socket read, so a
    server trickling its headers could hold a worker indefinitely. When the
    limit passes, a timer shuts down the sockets of every connection the
    probe touched, which unblocks the pending read.
    """

    def __init__(self, seconds: float):
        self.expires = time.monotonic() + seconds
        self.expired = False
        self._connections: List[HTTPConnection] = []
        self._lock = threading.Lock()
        self._timer = threading.Timer(seconds, self._expire)
        self._timer.daemon = True

    def remaining(self) -> float:
        return max(0.0, self.expires - time.monotonic())

    def watch(self, conn: HTTPConnection):
        with self._lock:
            if self.expired:
                _abort(conn)
            elif conn not in self._connections:
                self._connections.append(conn)

    def _expire(self):
        with self._lock:
            self.expired = True
            for conn in self._connections:
                _abort(conn)

    def __enter__(self) -> "_Deadline":
        _active.deadline = self
        self._timer.start()
        return self

    def __exit__(self, *exc_info):
        self._timer.cancel()
        _active.deadline = None


def _abort(conn: HTTPConnection):
    sock = getattr(conn, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass


class _DeadlineConnectionMixin:
    """Registers the connection with the running probe's deadline at every step."""

    def _watch(self):
        deadline = getattr(_active, "deadline", None)
        if deadline is not None:
            deadline.watch(self)
        return deadline

    def connect(self):
        deadline = self._watch()
        if deadline is not None and isinstance(self.timeout, (int, float)):
            self.timeout = max(0.001, min(self.timeout, deadline.remaining()))
        super().connect()
        self._watch()

    def request(self, *args, **kwargs):
        self._watch()
        return super().request(*args, **kwargs)

    def getresponse(self, *args, **kwargs):
        self._watch()
        return super().getresponse(*args, **kwargs)


class _DeadlineHTTPConnection(_DeadlineConnectionMixin, HTTPConnection):
    pass


class _DeadlineHTTPSConnection(_DeadlineConnectionMixin, HTTPSConnection):
    pass


class _DeadlineHTTPConnectionPool(HTTPConnectionPool):
    ConnectionCls = _DeadlineHTTPConnection


class _DeadlineHTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = _DeadlineHTTPSConnection


class DeadlineAdapter(HTTPAdapter):
    """HTTPAdapter whose connections honour the per-probe deadline."""

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _DeadlineHTTPConnectionPool,
            "https": _DeadlineHTTPSConnectionPool,
        }


def format_status_line(response: requests.Response) -> str:
    """Renders a response status the way the server sent it, e.g. '200 OK'."""
    reason = (response.reason or "").strip()
    return f"{response.status_code} {reason}" if reason else str(response.status_code)


class Prober:
    """
    Issues one GET per target on a private session.

    A Prober is not shared between threads; each worker builds its own.
    Adapters are mounted with max_retries=0 so every probe is exactly one
    connection attempt. The timeout bounds the whole probe, not each read.
    """

    def __init__(self, timeout: float, verify_tls: bool = True, user_agent: Optional[str] = None):
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.session = requests.Session()
        adapter = DeadlineAdapter(max_retries=0, pool_connections=1, pool_maxsize=1)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        if user_agent:
            self.session.headers.update({"User-Agent": user_agent})

    def probe(self, target: str) -> ScanOutcome:
        """
        Performs the request and classifies the result.

        Any HTTP status counts as reachable. Only network-level failures are
        reported as unreachable, and so is a probe that outlives its timeout.
        The body is never read, and the response is closed on every path.
        """
        with _Deadline(self.timeout) as deadline:
            try:
                with self.session.get(target, timeout=self.timeout, stream=True,
                                      verify=self.verify_tls) as response:
                    # headers cut short by the deadline still parse as a response
                    if not deadline.expired:
                        return ScanOutcome(target, True, status_line=format_status_line(response))
                    failure = FailureKind.TIMEOUT
            except requests.exceptions.Timeout:
                failure = FailureKind.TIMEOUT
            except requests.exceptions.SSLError:
                failure = FailureKind.TLS
            except requests.exceptions.ConnectionError:
                failure = FailureKind.CONNECTION
            except _INVALID_URL_ERRORS:
                failure = FailureKind.INVALID_URL
            except requests.exceptions.RequestException:
                failure = FailureKind.OTHER
            except ValueError:
                # urllib3 parse errors and IDNA encoding failures surface as ValueError
                failure = FailureKind.INVALID_URL

            if deadline.expired and failure is not FailureKind.INVALID_URL:
                failure = FailureKind.TIMEOUT

        logging.debug(f"{target} unreachable ({failure.name.lower()})")
        return ScanOutcome(target, False, failure=failure)

    def close(self):
        """Releases the session and any pooled connections."""
        self.session.close()

    def __enter__(self) -> "Prober":
        return self

    def __exit__(self, *exc_info):
        self.close()
