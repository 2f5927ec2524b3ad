"""
Fetches a remote host list to disk before a scan.
"""
import logging
from typing import Callable, Optional

import requests

DEFAULT_CHUNK_SIZE = 1024


def download_file(
    url: str,
    dest_path: str,
    timeout: float,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> int:
    """
    Streams url into dest_path and returns the number of bytes written.

    on_progress receives (received, total) after every chunk. When the server
    sends no Content-Length, total tracks the bytes received so far.
    Network and file errors propagate to the caller.
    """
    logging.info(f"Downloading {url} to {dest_path}")
    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        expected = int(response.headers.get("Content-Length") or 0)

        received = 0
        with open(dest_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if not chunk:
                    continue
                f.write(chunk)
                received += len(chunk)
                if on_progress:
                    on_progress(received, max(expected, received))

    logging.info(f"Download completed: {received} bytes saved as {dest_path}")
    return received
