"""On-disk markers recording the outcome of each asset fetch.

Markers live in a hidden ``.downloaded-markers`` directory inside the
directory being localized:

    {marker_dir}/.downloaded-markers/
        {filename}.marker       empty: downloaded
        {filename}.marker       non-empty: transient failure (error text), retried next run
        {filename}.marker.403   permanent failure (error text), never retried

Markers are never deleted by the converter. Removing one by hand makes
the next run try that asset again.
"""

import logging
from enum import Enum
from pathlib import Path

from schemas.assets import DownloadOutcome

logger = logging.getLogger(__name__)

MARKER_DIR_NAME = ".downloaded-markers"
MARKER_SUFFIX = ".marker"
PERMANENT_SUFFIX = ".403"


class MarkerStatus(Enum):
    """What to do with an asset, given its marker."""

    SKIP_SUCCESS = "skip-success"
    SKIP_PERMANENT = "skip-permanent"
    ATTEMPT = "attempt"


class MarkerStore:
    """Reads and writes asset markers for one directory."""

    def __init__(self, marker_dir: Path):
        self.marker_dir = Path(marker_dir)
        self.markers_path = self.marker_dir / MARKER_DIR_NAME

    def marker_path(self, filename: str) -> Path:
        return self.markers_path / f"{filename}{MARKER_SUFFIX}"

    def permanent_marker_path(self, filename: str) -> Path:
        return self.markers_path / f"{filename}{MARKER_SUFFIX}{PERMANENT_SUFFIX}"

    def status(self, filename: str, asset_dir: Path) -> MarkerStatus:
        """Decide whether an asset needs to be fetched.

        An asset is only considered downloaded when both the asset file and
        an empty success marker exist. A transient-failure marker, a missing
        asset file, or no marker at all all lead to another attempt.

        Args:
            filename: Asset filename
            asset_dir: Directory the asset file is stored in

        Returns:
            The MarkerStatus for this asset
        """
        marker = self.marker_path(filename)
        asset_path = Path(asset_dir) / filename

        if asset_path.exists() and marker.exists() and marker.stat().st_size == 0:
            return MarkerStatus.SKIP_SUCCESS

        if self.permanent_marker_path(filename).exists():
            return MarkerStatus.SKIP_PERMANENT

        return MarkerStatus.ATTEMPT

    def record(self, filename: str, outcome: DownloadOutcome) -> Path:
        """Persist the outcome of a fetch.

        Args:
            filename: Asset filename
            outcome: Result returned by the downloader

        Returns:
            Path of the marker that was written
        """
        self.markers_path.mkdir(parents=True, exist_ok=True)

        if outcome.success:
            path = self.marker_path(filename)
            path.write_text("", encoding="utf-8")
        elif outcome.permanent:
            path = self.permanent_marker_path(filename)
            path.write_text(outcome.error or "HTTP 403", encoding="utf-8")
        else:
            path = self.marker_path(filename)
            path.write_text(outcome.error or "Unknown error", encoding="utf-8")

        logger.debug(f"Recorded marker {path.name}")
        return path
