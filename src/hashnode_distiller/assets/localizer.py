"""Localize Hashnode CDN images referenced in markdown.

Finds ``![alt](https://cdn.hashnode.com/...)`` references, downloads each
image once across runs (tracked with markers), and rewrites a reference to
its local path only when the image is on disk. References to images that
failed to download keep their remote URL, so they stay visible in the
rendered output.
"""

import logging
import re
from pathlib import Path

from schemas.assets import (
    AssetContext,
    AssetError,
    AssetOutcome,
    AssetProcessingResult,
    DownloadOutcome,
)
from schemas.options import DownloadOptions

from ..clients.asset_downloader import AssetDownloader, extract_filename
from ..exceptions import AssetDirectoryError
from .markers import MarkerStatus, MarkerStore

logger = logging.getLogger(__name__)

CDN_IMAGE_PATTERN = re.compile(r"!\[[^\]]*\]\((https://cdn\.hashnode\.com[^)]+)\)")


def extract_image_references(markdown: str) -> list[tuple[str, str]]:
    """Find CDN image references in markdown.

    Args:
        markdown: Document body

    Returns:
        (full_match, url) tuples in encounter order, duplicates included

    Examples:
        >>> extract_image_references("![a](https://cdn.hashnode.com/x.png) ![b](https://example.com/y.png)")
        [('![a](https://cdn.hashnode.com/x.png)', 'https://cdn.hashnode.com/x.png')]
    """
    return [(m.group(0), m.group(1)) for m in CDN_IMAGE_PATTERN.finditer(markdown)]


class AssetLocalizer:
    """Downloads CDN images for a document and rewrites their references.

    Two entry points share the same per-reference algorithm:

    - localize(): images and markers live in the document's own directory
      and are referenced as "./{filename}".
    - localize_with_context(): images live in an explicit directory,
      referenced with an explicit prefix, with markers in a possibly
      different directory.

    Example:
        with AssetLocalizer() as localizer:
            result = localizer.localize(markdown, Path("./out/hello-world"))
    """

    def __init__(
        self,
        downloader: AssetDownloader | None = None,
        options: DownloadOptions | None = None,
    ):
        """Initialize the localizer.

        Args:
            downloader: Optional downloader. If not provided, one is created
                        from options and closed with this localizer.
            options: Download settings used when creating a downloader
        """
        self.options = options or DownloadOptions()
        self._downloader = downloader
        self._owns_downloader = downloader is None

    @property
    def downloader(self) -> AssetDownloader:
        if self._downloader is None:
            self._downloader = AssetDownloader(self.options.to_client_config())
        return self._downloader

    def close(self) -> None:
        """Close the downloader if we own it."""
        if self._owns_downloader and self._downloader is not None:
            self._downloader.close()
            self._downloader = None

    def __enter__(self) -> "AssetLocalizer":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def localize(self, markdown: str, post_dir: Path) -> AssetProcessingResult:
        """Localize images into the document's own directory.

        Args:
            markdown: Document body
            post_dir: Existing directory the document is written to

        Returns:
            AssetProcessingResult with the rewritten body

        Raises:
            AssetDirectoryError: If post_dir does not exist
        """
        context = AssetContext(asset_dir=Path(post_dir), path_prefix=".")
        return self.localize_with_context(markdown, context)

    def localize_with_context(
        self,
        markdown: str,
        context: AssetContext,
    ) -> AssetProcessingResult:
        """Localize images into context.asset_dir.

        Args:
            markdown: Document body
            context: Asset directory, reference prefix, and marker directory

        Returns:
            AssetProcessingResult with the rewritten body

        Raises:
            AssetDirectoryError: If context.asset_dir does not exist
        """
        if not context.asset_dir.is_dir():
            raise AssetDirectoryError(
                f"Image directory does not exist: {context.asset_dir}"
            )

        markers = MarkerStore(context.marker_dir)
        result = AssetProcessingResult(markdown=markdown)
        failed: set[str] = set()

        for full_match, url in extract_image_references(markdown):
            result.processed += 1
            self._process_reference(full_match, url, context, markers, result, failed)

        if result.processed:
            logger.debug(
                f"Processed {result.processed} images: {result.downloaded} downloaded, "
                f"{result.skipped} skipped, {len(result.errors)} errors"
            )
        return result

    def _process_reference(
        self,
        full_match: str,
        url: str,
        context: AssetContext,
        markers: MarkerStore,
        result: AssetProcessingResult,
        failed: set[str],
    ) -> None:
        filename = extract_filename(url)
        if filename is None:
            logger.warning(f"Could not extract image filename from {url}")
            error = "Could not extract hash from URL"
            result.errors.append(AssetError(filename="unknown", url=url, error=error))
            result.outcomes.append(
                AssetOutcome(filename="unknown", url=url, status="unresolved", error=error)
            )
            return

        # One fetch per asset per pass; repeats of a failed asset reuse that failure.
        if filename in failed:
            logger.debug(f"Skipping {filename}: already failed in this pass")
            result.skipped += 1
            return

        status = markers.status(filename, context.asset_dir)

        if status is MarkerStatus.SKIP_SUCCESS:
            result.skipped += 1
            result.markdown = self._rewrite(result.markdown, full_match, url, context, filename)
            result.outcomes.append(AssetOutcome(filename=filename, url=url, status="cached"))
            return

        if status is MarkerStatus.SKIP_PERMANENT:
            logger.debug(f"Skipping {filename}: previously denied")
            result.skipped += 1
            result.outcomes.append(
                AssetOutcome(filename=filename, url=url, status="skipped_forbidden")
            )
            return

        outcome = self._download(url, context.asset_dir / filename)
        markers.record(filename, outcome)

        if outcome.success:
            result.downloaded += 1
            result.markdown = self._rewrite(result.markdown, full_match, url, context, filename)
            result.outcomes.append(AssetOutcome(filename=filename, url=url, status="downloaded"))
        else:
            failed.add(filename)
            error = outcome.error or "Unknown error"
            result.errors.append(
                AssetError(filename=filename, url=url, error=error, is_403=outcome.permanent)
            )
            result.outcomes.append(
                AssetOutcome(
                    filename=filename,
                    url=url,
                    status="forbidden" if outcome.permanent else "failed",
                    error=error,
                )
            )

    def _download(self, url: str, destination: Path) -> DownloadOutcome:
        try:
            return self.downloader.fetch(url, destination)
        except Exception as e:
            logger.warning(f"Unexpected error downloading {url}: {e}")
            return DownloadOutcome(success=False, error=str(e) or type(e).__name__)

    def _rewrite(
        self,
        markdown: str,
        full_match: str,
        url: str,
        context: AssetContext,
        filename: str,
    ) -> str:
        local_reference = full_match.replace(url, context.reference_for(filename))
        return markdown.replace(full_match, local_reference)
