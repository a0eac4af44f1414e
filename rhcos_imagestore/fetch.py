"""Image download module.

This module handles:
- Streaming a remote image to a local file
- Rejecting non-2xx responses
- Checking the transferred size against the declared Content-Length
- Removing the partial file when a download fails
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from rhcos_imagestore.errors import FetchError

logger = logging.getLogger(__name__)

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 3600

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB


@dataclass
class DownloadResult:
    """Result of an image download."""

    path: Path
    size_bytes: int


def _declared_length(response: httpx.Response) -> int | None:
    """Return the Content-Length of a response, or None if absent or invalid."""
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring invalid Content-Length %r", value)
        return None


def _discard(path: Path) -> None:
    """Remove a partially written download."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to remove partial download %s: %s", path, e)


def download_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    timeout: float = DOWNLOAD_TIMEOUT,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
) -> DownloadResult:
    """Download a URL into a newly created file.

    The caller only invokes this when ``dest_path`` is absent. On any failure
    the file at ``dest_path`` is removed.

    Args:
        client: HTTPX client instance.
        url: URL to download from.
        dest_path: Destination path for the downloaded file.
        timeout: Download timeout in seconds.
        chunk_size: Size of chunks to download.

    Returns:
        DownloadResult with path and size.

    Raises:
        FetchError: If the request fails, the status is not 2xx, or the
            size does not match the declared Content-Length.
    """
    logger.info("Downloading %s to %s", url, dest_path)

    try:
        with client.stream("GET", url, timeout=timeout) as response:
            if not response.is_success:
                raise FetchError(
                    f"Request to {url} returned error code {response.status_code}",
                    url=url,
                    cause="bad status",
                    status=response.status_code,
                )

            dest_path.parent.mkdir(parents=True, exist_ok=True)

            written = 0
            with dest_path.open("wb") as f:
                for chunk in response.iter_bytes(chunk_size):
                    f.write(chunk)
                    written += len(chunk)

            # Content-Length counts the bytes on the wire, before decoding
            received = response.num_bytes_downloaded
            expected = _declared_length(response)
            if expected is not None and received != expected:
                raise FetchError(
                    f"Received {received} bytes, but expected to receive {expected}",
                    url=url,
                    cause="size mismatch",
                    status=response.status_code,
                )

    except FetchError:
        _discard(dest_path)
        raise
    except httpx.TimeoutException as e:
        _discard(dest_path)
        raise FetchError(
            f"Timeout downloading {url}",
            url=url,
            cause="timeout",
        ) from e
    except httpx.HTTPError as e:
        _discard(dest_path)
        raise FetchError(
            f"Network error downloading {url}: {e}",
            url=url,
            cause="network error",
        ) from e
    except OSError as e:
        _discard(dest_path)
        raise FetchError(
            f"OS error writing {dest_path}: {e}",
            url=url,
            cause="os error",
        ) from e

    logger.info("Downloaded %s (%d bytes)", dest_path.name, written)
    return DownloadResult(path=dest_path, size_bytes=written)


__all__ = [
    "DOWNLOAD_CHUNK_SIZE",
    "DOWNLOAD_TIMEOUT",
    "DownloadResult",
    "download_file",
]
