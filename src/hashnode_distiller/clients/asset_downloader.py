"""Downloader for images hosted on the Hashnode CDN."""

import logging
import re
from pathlib import Path
from time import sleep

import httpx

from schemas.assets import DownloadOutcome

from .client import Client
from .exceptions import ClientError, ForbiddenError

logger = logging.getLogger(__name__)

HASHNODE_CDN_URL = "https://cdn.hashnode.com"

DEFAULT_HEADERS = {
    "User-Agent": "hashnode-distiller/1.0",
}

# Hashnode CDN URLs embed a UUID-named upload:
#   https://cdn.hashnode.com/res/hashnode/image/upload/v1/{uuid}.png?auto=compress
ASSET_FILENAME_PATTERN = re.compile(
    r"/([a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12})"
    r"\.(png|jpg|jpeg|gif|webp)",
    re.IGNORECASE,
)


def extract_filename(url: str) -> str | None:
    """Derive the local filename for a CDN asset URL.

    Args:
        url: Remote asset URL

    Returns:
        "{uuid}.{ext}" or None if the URL holds no UUID-named image

    Examples:
        >>> extract_filename("https://cdn.hashnode.com/res/hashnode/image/upload/v1/"
        ...     "0d9a8c7e-1f2b-4c3d-9e8f-a1b2c3d4e5f6.png?auto=compress")
        '0d9a8c7e-1f2b-4c3d-9e8f-a1b2c3d4e5f6.png'
        >>> extract_filename("https://cdn.hashnode.com/res/hashnode/image/upload/logo.png") is None
        True
    """
    match = ASSET_FILENAME_PATTERN.search(url)
    if match is None:
        return None
    return f"{match.group(1)}.{match.group(2)}"


class AssetDownloader(Client):
    """Fetches remote assets to local files.

    Redirects are followed up to max_redirects. A 403 response is a
    permanent failure and is never retried. A 404 is returned at once
    without retrying but is still transient, so a later run will try it
    again. Every other failure is retried with retry_delay between
    attempts.

    Bytes are written to a ".part" file and renamed into place, so a
    failed fetch never leaves a file at the destination.

    Config keys (in addition to those of Client):
        download_delay: Seconds to wait after every fetch (default: 0)

    Example:
        with AssetDownloader({"max_retries": 2}) as downloader:
            outcome = downloader.fetch(url, Path("./out/hello-world/image.png"))
    """

    def __init__(self, config: dict | None = None, http_client: httpx.Client | None = None):
        config = dict(config or {})
        config.setdefault("base_url", HASHNODE_CDN_URL)
        config.setdefault("headers", DEFAULT_HEADERS)
        super().__init__(config, http_client=http_client)

    @property
    def download_delay(self) -> float:
        return float(self._config.get("download_delay", 0))

    def fetch(self, url: str, destination: Path) -> DownloadOutcome:
        """Download url to destination.

        Args:
            url: Remote URL to fetch
            destination: Local file path; its parent directory must exist

        Returns:
            DownloadOutcome describing success, or a permanent or transient failure
        """
        try:
            return self._fetch(url, destination)
        finally:
            if self.download_delay > 0:
                sleep(self.download_delay)

    def _fetch(self, url: str, destination: Path) -> DownloadOutcome:
        try:
            response = self.get(url)
        except ForbiddenError as e:
            logger.warning(f"Access denied for {url}: {e}")
            return DownloadOutcome(success=False, permanent=True, error=str(e))
        except ClientError as e:
            logger.warning(f"Failed to download {url}: {e}")
            return DownloadOutcome(success=False, error=str(e))

        try:
            self._write_file(response.content, destination)
        except OSError as e:
            logger.warning(f"Failed to save {url} to {destination}: {e}")
            return DownloadOutcome(success=False, error=f"Write failed: {e}")

        logger.debug(f"Downloaded {url} -> {destination}")
        return DownloadOutcome(success=True)

    def _write_file(self, content: bytes, destination: Path) -> None:
        """Write content to destination via a temporary ".part" file.

        Raises:
            OSError: If the file cannot be written or renamed
        """
        partial = destination.with_name(destination.name + ".part")
        try:
            partial.write_bytes(content)
            partial.replace(destination)
        except OSError:
            partial.unlink(missing_ok=True)
            raise
