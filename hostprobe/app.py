"""
Command-line front end for hostprobe.

Parses flags, loads the configuration, optionally downloads a host list,
then runs the scan and maps the outcome to an exit code.
"""
import argparse
import logging
import signal
import sys
from typing import Any, Dict, List, Optional

import requests

from . import configuration
from .models import ScanConfig
from .network import download_file
from .progress import ProgressBar
from .scanner import Scanner

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostprobe",
        description="Probe a list of hosts over HTTP and report the ones that answer.",
    )
    parser.add_argument("-f", "--file", dest="input_path", help="Input file with one host, IP or URL per line")
    parser.add_argument("-r", "--rate", type=float, help="Scan rate in hosts per second")
    parser.add_argument("-t", "--threads", dest="workers", type=int, help="Number of concurrent workers")
    parser.add_argument("--timeout", type=float, help="Timeout for each HTTP request, in seconds")
    parser.add_argument("-o", "--output", dest="output_path", help="Also write reachable hosts to this file")
    parser.add_argument("-c", "--config", dest="config_path", help="YAML configuration file")
    parser.add_argument("--download-list", action="store_true",
                        help="Download the configured host list before scanning")
    parser.add_argument("--no-progress", action="store_true", help="Do not draw the progress bar")
    parser.add_argument("--insecure", action="store_true", help="Do not verify TLS certificates")
    parser.add_argument("--write-config", metavar="PATH",
                        help="Write the effective settings to PATH as YAML and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _install_signal_handlers(scanner: Scanner) -> Dict[int, Any]:
    """
    First Ctrl+C stops dispatch gracefully; a second one aborts.
    Returns the previous handlers so they can be restored.
    """
    def _handle(signum, frame):
        scanner.stop()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signums = [signal.SIGINT]
    if hasattr(signal, "SIGTERM"):
        signums.append(signal.SIGTERM)
    return {signum: signal.signal(signum, _handle) for signum in signums}


def _restore_signal_handlers(previous: Dict[int, Any]):
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def _download_list(config: ScanConfig) -> bool:
    if not config.download_url or not config.download_path:
        logging.critical("Download requested but download_url or download_path is not set.")
        return False
    bar = ProgressBar(length=config.progress_width, enabled=config.show_progress)
    try:
        download_file(config.download_url, config.download_path, config.timeout, on_progress=bar.update)
    except (requests.RequestException, OSError) as e:
        bar.finish()
        logging.critical(f"Error downloading {config.download_url}: {e}")
        return False
    bar.finish()
    return True


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point for the application."""
    args = build_parser().parse_args(argv)
    settings = configuration.load_config(args.config_path)

    try:
        config = configuration.build_scan_config(
            settings,
            input_path=args.input_path,
            rate=args.rate,
            workers=args.workers,
            timeout=args.timeout,
            output_path=args.output_path,
            show_progress=False if args.no_progress else None,
            verify_tls=False if args.insecure else None,
            log_level="DEBUG" if args.verbose else None,
        )
    except ValueError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        return EXIT_FATAL

    logging.basicConfig(level=config.log_level, format='%(asctime)s - %(levelname)s - %(message)s')

    if args.write_config:
        effective = {key: getattr(config, key) for key in configuration.DEFAULT_CONFIG}
        try:
            configuration.save_config(effective, args.write_config)
        except OSError as e:
            logging.critical(f"Could not write config file to '{args.write_config}': {e}")
            return EXIT_FATAL
        logging.info(f"Configuration written to {args.write_config}")
        return EXIT_OK

    if args.download_list and not _download_list(config):
        return EXIT_FATAL

    scanner = Scanner(config)
    previous_handlers = _install_signal_handlers(scanner)
    try:
        summary = scanner.run()
    except OSError as e:
        logging.critical(f"Cannot start scan: {e}")
        return EXIT_FATAL
    except KeyboardInterrupt:
        logging.warning("Scan aborted.")
        return EXIT_CANCELLED
    finally:
        _restore_signal_handlers(previous_handlers)

    return EXIT_CANCELLED if summary.cancelled else EXIT_OK
