# hostprobe/configuration.py

"""
Configuration loader for hostprobe.

Settings come from three layers: the defaults below, an optional
hostprobe.yaml file, and command-line overrides. The merged result is
frozen into a ScanConfig before the scan starts.
"""

import os
import sys
import yaml
from typing import Dict, Any, Optional

from .models import ScanConfig

# Default structure and values. Also what --write-config dumps.
DEFAULT_CONFIG = {
    'input_path': 'cloud.txt',
    'rate': 200,                 # hosts per second
    'workers': 100,
    'timeout': 3.0,              # seconds per request
    'output_path': None,         # console only when unset
    'queue_size': 0,             # 0 means twice the worker count
    'verify_tls': True,
    'user_agent': None,
    'show_progress': True,
    'progress_width': 40,
    'log_level': 'INFO',
    'download_url': 'https://raw.githubusercontent.com/elon30/varnish/main/varnish.txt',
    'download_path': 'varnish.txt',
}

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

def get_config_path() -> str:
    """Returns the path of the config file looked up by default."""
    return "hostprobe.yaml"

def save_config(config: Dict[str, Any], config_path: Optional[str] = None):
    """Saves the provided configuration dictionary as YAML."""
    config_path = config_path or get_config_path()
    with open(config_path, 'w') as f:
        f.write("# hostprobe configuration file\n")
        f.write("# Command-line flags take precedence over these settings.\n\n")
        yaml.dump(config, f, sort_keys=False, default_flow_style=False, indent=2)

def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads settings and merges them over DEFAULT_CONFIG.

    Without an explicit path, hostprobe.yaml is used if it exists in the
    working directory. An explicit path that is missing, or a file that
    cannot be parsed, is fatal.
    """
    explicit = config_path is not None
    config_path = config_path or get_config_path()
    config = DEFAULT_CONFIG.copy()

    if not explicit and not os.path.exists(config_path):
        return config

    try:
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f)
    except OSError as e:
        print(f"FATAL: Could not read config file '{config_path}': {e}", file=sys.stderr)
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"FATAL: Error parsing '{config_path}': {e}", file=sys.stderr)
        sys.exit(1)

    if user_config:
        if not isinstance(user_config, dict):
            print(f"FATAL: '{config_path}' must contain a mapping of settings.", file=sys.stderr)
            sys.exit(1)
        unknown = set(user_config) - set(DEFAULT_CONFIG)
        if unknown:
            print(f"Warning: ignoring unknown settings in '{config_path}': {', '.join(sorted(unknown))}",
                  file=sys.stderr)
        config.update({k: v for k, v in user_config.items() if k in DEFAULT_CONFIG})
    return config

def build_scan_config(settings: Dict[str, Any], **overrides: Any) -> ScanConfig:
    """
    Applies command-line overrides and validates the result.

    Overrides that are None are ignored so unset flags never mask the file.
    Raises ValueError on out-of-range values.
    """
    merged = dict(settings)
    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        rate = float(merged['rate'])
        workers = int(merged['workers'])
        timeout = float(merged['timeout'])
        queue_size = int(merged['queue_size'] or 0)
        progress_width = int(merged['progress_width'])
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid numeric setting: {e}") from e

    if rate <= 0:
        raise ValueError(f"rate must be greater than 0, got {rate}")
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    if timeout <= 0:
        raise ValueError(f"timeout must be greater than 0, got {timeout}")
    if queue_size < 0:
        raise ValueError(f"queue_size cannot be negative, got {queue_size}")
    if progress_width < 1:
        raise ValueError(f"progress_width must be at least 1, got {progress_width}")
    if not merged.get('input_path'):
        raise ValueError("input_path is required")
    log_level = str(merged['log_level']).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {merged['log_level']}")

    return ScanConfig(
        input_path=str(merged['input_path']),
        rate=rate,
        workers=workers,
        timeout=timeout,
        output_path=merged.get('output_path') or None,
        queue_size=queue_size,
        verify_tls=bool(merged['verify_tls']),
        user_agent=merged.get('user_agent') or None,
        show_progress=bool(merged['show_progress']),
        progress_width=progress_width,
        log_level=log_level,
        download_url=merged.get('download_url') or None,
        download_path=merged.get('download_path') or None,
    )
