"""Asset localization schemas.

These models describe the result of fetching remote images referenced in
a post body and rewriting those references to local copies.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, model_validator

AssetStatus = Literal[
    "downloaded",
    "cached",
    "failed",
    "forbidden",
    "skipped_forbidden",
    "unresolved",
]


class DownloadOutcome(BaseModel):
    """Result of a single fetch of a remote resource.

    Attributes:
        success: True if the bytes are now at the destination path
        permanent: True if the failure will not change on retry (HTTP 403)
        error: Error message for failed fetches
    """

    success: bool
    permanent: bool = False
    error: str | None = None


class AssetError(BaseModel):
    """An asset that could not be localized.

    Attributes:
        filename: Local filename, or "unknown" if none could be derived
        url: Remote URL of the asset
        error: Error message
        is_403: True for permanent (access-denied) failures
    """

    filename: str
    url: str
    error: str
    is_403: bool = False


class AssetOutcome(BaseModel):
    """What happened to one asset reference during localization."""

    filename: str
    url: str
    status: AssetStatus
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status in ("downloaded", "cached")

    @property
    def permanent(self) -> bool:
        return self.status in ("forbidden", "skipped_forbidden")


class AssetProcessingResult(BaseModel):
    """Aggregate result of localizing the assets of one document.

    Attributes:
        markdown: Document body with localized references rewritten
        processed: Number of references examined
        downloaded: Number of assets fetched during this pass
        skipped: Number of assets skipped because of an existing marker
        errors: Assets that could not be localized
        outcomes: Per-reference outcomes in encounter order
    """

    markdown: str
    processed: int = 0
    downloaded: int = 0
    skipped: int = 0
    errors: list[AssetError] = []
    outcomes: list[AssetOutcome] = []


class AssetContext(BaseModel):
    """Where assets for a document are stored and how they are referenced.

    Attributes:
        asset_dir: Directory the asset files are written to
        path_prefix: Prefix for rewritten references ("." or "/images")
        marker_dir: Directory holding the marker subdirectory
            (defaults to asset_dir)
    """

    asset_dir: Path
    path_prefix: str
    marker_dir: Path | None = None

    @model_validator(mode="after")
    def _default_marker_dir(self) -> "AssetContext":
        if self.marker_dir is None:
            self.marker_dir = self.asset_dir
        return self

    def reference_for(self, filename: str) -> str:
        """Build the local reference for an asset filename.

        Examples:
            >>> AssetContext(asset_dir=Path("/x"), path_prefix=".").reference_for("a.png")
            './a.png'
            >>> AssetContext(asset_dir=Path("/x"), path_prefix="/images/").reference_for("a.png")
            '/images/a.png'
        """
        if self.path_prefix.endswith("/"):
            return f"{self.path_prefix}{filename}"
        return f"{self.path_prefix}/{filename}"
