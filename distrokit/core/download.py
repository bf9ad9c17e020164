"""
Network download with progress tracking.

This module provides the blocking HTTP transport used to fill the archive
cache:
- HTTP/HTTPS downloads with TLS verification and redirects
- Streaming writes to a temporary sibling file, renamed into place on success
- Optional per-chunk progress reporting (cumulative bytes)
- Timeout handling

A download is attempted exactly once. Callers decide whether to retry.
"""

import logging
import tempfile
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

from distrokit.core.exceptions import TransferError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    timeout: int = 30,
) -> Path:
    """
    Download file from URL to destination.

    Args:
        url: URL to download from
        destination: Local path to save file
        progress_callback: Optional callback(bytes_downloaded, total_bytes);
            total_bytes is 0 when the server sends no content-length
        timeout: Request timeout in seconds

    Returns:
        Path to downloaded file

    Raises:
        TransferError: If the request fails or the server returns an error status
        ValueError: If URL or destination is invalid
        OSError: If the destination cannot be written

    Example:
        >>> url = "https://example.com/yarn-v1.9.4.tar.gz"
        >>> download_file(url, Path("cache/yarn-v1.9.4.tar.gz"))
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Downloading from {url}")

    try:
        response = requests.get(url, stream=True, timeout=timeout, allow_redirects=True)
    except RequestException as e:
        raise TransferError(f"Request to {url} failed: {e}") from e

    try:
        try:
            response.raise_for_status()
        except RequestException as e:
            raise TransferError(f"Request to {url} failed: {e}") from e

        downloaded = _stream_to_file(response, url, destination, progress_callback)
    finally:
        response.close()

    logger.info(f"Download complete: {destination} ({downloaded} bytes)")
    return destination


def _stream_to_file(
    response: requests.Response,
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[int, int], None]],
) -> int:
    """Write the response body to a .part sibling, then move it onto destination."""
    content_length = response.headers.get("content-length")
    total_size = int(content_length) if content_length else 0

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".part"
    )
    temp_path = Path(temp_path_str)
    downloaded = 0

    try:
        with open(temp_fd, "wb") as f:
            try:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    downloaded += len(chunk)
                    if progress_callback:
                        progress_callback(downloaded, total_size)
            except RequestException as e:
                raise TransferError(f"Transfer from {url} interrupted: {e}") from e

        temp_path.replace(destination)

    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    return downloaded
