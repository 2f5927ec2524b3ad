import io
import threading
import time

import pytest

from hostprobe.configuration import DEFAULT_CONFIG, build_scan_config
from hostprobe.models import ScanOutcome
from hostprobe.scanner import Scanner


def _config(input_path, **overrides):
    overrides.setdefault("rate", 1000)
    overrides.setdefault("workers", 4)
    overrides.setdefault("timeout", 1)
    overrides.setdefault("show_progress", False)
    return build_scan_config(DEFAULT_CONFIG, input_path=str(input_path), **overrides)


def _worker_threads():
    return [t for t in threading.enumerate() if t.name.startswith("hostprobe-worker")]


def test_scan_reports_reachable_hosts(http_server, closed_port, tmp_path):
    input_path = tmp_path / "hosts.txt"
    input_path.write_text(
        f"# local test hosts\n"
        f"{http_server}/\n"
        f"\n"
        f"http://{http_server}/missing\n"
        f"{closed_port}\n"
    )
    output_path = tmp_path / "out.txt"
    console = io.StringIO()

    summary = Scanner(_config(input_path, output_path=str(output_path)), stream=console).run()

    expected = {f"{http_server}/ 200 OK", f"{http_server}/missing 404 Not Found"}
    assert set(console.getvalue().splitlines()) == expected
    assert set(output_path.read_text().splitlines()) == expected
    assert len(output_path.read_text().splitlines()) == 2
    assert summary.total == summary.dispatched == summary.probed == 3
    assert summary.reachable == 2
    assert not summary.cancelled


def test_timeout_does_not_stall_scan(http_server, silent_server, tmp_path):
    input_path = tmp_path / "hosts.txt"
    input_path.write_text(f"{silent_server}\n{http_server}/\n")
    console = io.StringIO()

    started = time.monotonic()
    summary = Scanner(_config(input_path, timeout=0.3, workers=2), stream=console).run()

    assert console.getvalue().splitlines() == [f"{http_server}/ 200 OK"]
    assert summary.probed == 2
    assert time.monotonic() - started < 10


def test_peak_in_flight_is_bounded(tmp_path):
    input_path = tmp_path / "hosts.txt"
    input_path.write_text("\n".join(f"h{i}.example" for i in range(40)))

    class SlowProber:
        def probe(self, target):
            time.sleep(0.02)
            return ScanOutcome(target, True, status_line="200 OK")

        def close(self):
            pass

    console = io.StringIO()
    summary = Scanner(_config(input_path, workers=3), prober_factory=SlowProber, stream=console).run()
    assert summary.peak_in_flight <= 3
    assert summary.reachable == 40
    assert len(console.getvalue().splitlines()) == 40


def test_missing_input_is_fatal_before_workers_start(tmp_path):
    before = len(_worker_threads())
    with pytest.raises(OSError):
        Scanner(_config(tmp_path / "absent.txt")).run()
    assert len(_worker_threads()) == before


def test_uncreatable_output_is_fatal_before_workers_start(tmp_path):
    input_path = tmp_path / "hosts.txt"
    input_path.write_text("a.example\n")
    before = len(_worker_threads())
    config = _config(input_path, output_path=str(tmp_path / "no-such-dir" / "out.txt"))
    with pytest.raises(OSError):
        Scanner(config).run()
    assert len(_worker_threads()) == before


def test_stop_halts_dispatch_and_closes_output(tmp_path):
    input_path = tmp_path / "hosts.txt"
    input_path.write_text("\n".join(f"h{i}.example" for i in range(50)))
    output_path = tmp_path / "out.txt"

    class FastProber:
        def probe(self, target):
            return ScanOutcome(target, True, status_line="200 OK")

        def close(self):
            pass

    scanner = Scanner(_config(input_path, rate=20, output_path=str(output_path)),
                      prober_factory=FastProber, stream=io.StringIO())
    threading.Timer(0.3, scanner.stop).start()
    summary = scanner.run()

    assert summary.cancelled
    assert 0 < summary.dispatched < 50
    lines = output_path.read_text().splitlines()
    assert len(lines) == summary.reachable
    assert all(line.endswith(" 200 OK") for line in lines)


def test_progress_follows_dispatch(tmp_path):
    input_path = tmp_path / "hosts.txt"
    input_path.write_text("a.example\nb.example\n")

    class UnreachableProber:
        def probe(self, target):
            return ScanOutcome(target, False)

        def close(self):
            pass

    class RecordingBar:
        def __init__(self):
            self.updates = []
            self.finished = False

        def update(self, done, total):
            self.updates.append((done, total))

        def finish(self):
            self.finished = True

    bar = RecordingBar()
    console = io.StringIO()
    Scanner(_config(input_path), prober_factory=UnreachableProber, stream=console, progress=bar).run()
    assert bar.updates == [(1, 2), (2, 2)]
    assert bar.finished
    assert console.getvalue() == ""
