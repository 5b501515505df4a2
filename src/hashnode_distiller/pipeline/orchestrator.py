"""Conversion orchestrator for Hashnode export → markdown processing.

Loads an export, runs every post through the pipeline

    parse → transform → localize images → frontmatter → write

and reports progress through events. A failing post is recorded and the
run continues with the next one; only a bad export file aborts the run.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from time import monotonic
from typing import Any

from pydantic import ValidationError

from schemas.assets import AssetProcessingResult
from schemas.events import (
    AssetDownloaded,
    ConversionCompleted,
    ConversionErrorEvent,
    ConversionStarting,
)
from schemas.export import HashnodeExport
from schemas.options import ConversionOptions, ConverterConfig
from schemas.results import (
    ConversionErrorRecord,
    ConversionResult,
    ConvertedPost,
    format_duration,
)

from ..assets.localizer import AssetLocalizer
from ..exceptions import DistillerError, ExportError
from ..processors.frontmatter_generator import FrontmatterGenerator
from ..processors.markdown_transformer import MarkdownTransformer
from ..processors.post_parser import PostParser
from ..services.conversion_logger import SUCCESS, ConversionLogger
from ..services.file_writer import FileWriter
from .events import EventEmitter, Listener
from .layouts import OutputLayout, create_layout

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": SUCCESS,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

# Asset statuses reported as AssetDownloaded events. Previously denied and
# unresolvable images only appear in the localization errors and the log.
EVENT_STATUSES = ("downloaded", "cached", "failed", "forbidden")

ProgressCallback = Callable[[int, int, str], None]


class Converter:
    """Converts a Hashnode export into markdown documents.

    Collaborators are injected for testing; defaults are created for any
    that are omitted. The output layout is fixed for the lifetime of the
    converter by config.output_structure.

    Events (subscribe with on/once/off):
        ConversionStarting: before a post is processed
        AssetDownloaded: for each image fetched, attempted, or found cached
        ConversionErrorEvent: for each failed post, and for a fatal run error
        ConversionCompleted: exactly once per post, after it finishes

    Example:
        with Converter() as converter:
            converter.on(ConversionCompleted, print)
            result = converter.convert_all_posts(Path("export.json"), Path("./blog"))
    """

    def __init__(
        self,
        post_parser: PostParser | None = None,
        markdown_transformer: MarkdownTransformer | None = None,
        asset_localizer: AssetLocalizer | None = None,
        frontmatter_generator: FrontmatterGenerator | None = None,
        file_writer: FileWriter | None = None,
        conversion_logger: ConversionLogger | None = None,
        config: ConverterConfig | None = None,
    ):
        self.config = config or ConverterConfig()
        self.layout: OutputLayout = create_layout(self.config.output_structure)

        self.post_parser = post_parser or PostParser()
        self.markdown_transformer = markdown_transformer or MarkdownTransformer()
        self.frontmatter_generator = frontmatter_generator or FrontmatterGenerator()
        # skip_existing decides whether a post is rewritten, so the default
        # writer always overwrites.
        self.file_writer = file_writer or FileWriter(
            overwrite=True, output_mode=self.layout.mode
        )
        self.conversion_logger = conversion_logger

        self._asset_localizer = asset_localizer
        self._owns_localizer = asset_localizer is None
        self._run_logger: ConversionLogger | None = None
        self.events = EventEmitter()

    @classmethod
    def with_progress(cls, callback: ProgressCallback, **kwargs) -> "Converter":
        """Create a converter that reports progress as callback(index, total, title)."""
        converter = cls(**kwargs)
        converter.on(
            ConversionStarting,
            lambda event: callback(event.index, event.total, event.title),
        )
        return converter

    @classmethod
    def from_export_file(
        cls,
        export_path: Path,
        output_dir: Path,
        options: ConversionOptions | None = None,
        **kwargs,
    ) -> ConversionResult:
        """Convert an export with a one-off converter."""
        with cls(**kwargs) as converter:
            return converter.convert_all_posts(export_path, output_dir, options)

    @property
    def asset_localizer(self) -> AssetLocalizer:
        if self._asset_localizer is None:
            self._asset_localizer = AssetLocalizer()
        return self._asset_localizer

    def on(self, event_type: type, listener: Listener) -> Listener:
        return self.events.on(event_type, listener)

    def once(self, event_type: type, listener: Listener) -> Listener:
        return self.events.once(event_type, listener)

    def off(self, event_type: type, listener: Listener) -> None:
        self.events.off(event_type, listener)

    def close(self) -> None:
        """Close the asset localizer if we own it."""
        if self._owns_localizer and self._asset_localizer is not None:
            self._asset_localizer.close()
            self._asset_localizer = None

    def __enter__(self) -> "Converter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def convert_all_posts(
        self,
        export_path: Path,
        output_dir: Path,
        options: ConversionOptions | None = None,
    ) -> ConversionResult:
        """Convert every post in an export.

        Args:
            export_path: Path to the Hashnode export JSON file
            output_dir: Root directory for converted posts
            options: Per-run settings

        Returns:
            ConversionResult with counts, failed posts, and duration

        Raises:
            ExportError: If the export cannot be loaded or the output
                directory cannot be created
        """
        options = options or ConversionOptions()
        started = monotonic()
        export_path = Path(export_path)
        output_dir = Path(output_dir)

        if self.conversion_logger is None and options.logger_config is not None:
            self._run_logger = ConversionLogger(options.logger_config)

        localizer = self.asset_localizer
        run_localizer: AssetLocalizer | None = None
        if options.download_options is not None:
            run_localizer = AssetLocalizer(options=options.download_options)
            localizer = run_localizer

        try:
            try:
                posts = self._load_posts(export_path)
                self._prepare_output_dir(output_dir)
            except ExportError as e:
                self._report("error", f"Fatal error: {e.message}")
                self.events.emit(ConversionErrorEvent(type="fatal", message=e.message))
                raise

            result = self._convert_posts(posts, output_dir, options, localizer)

            result.elapsed_seconds = monotonic() - started
            result.duration = format_duration(result.elapsed_seconds)

            if self._active_logger is not None:
                self._active_logger.write_summary(
                    result.converted, result.skipped, result.errors
                )
            return result
        finally:
            if run_localizer is not None:
                run_localizer.close()
            if self._run_logger is not None:
                self._run_logger.close()
                self._run_logger = None

    def convert_post(
        self,
        raw_post: Any,
        output_dir: Path,
        index: int = 0,
        localizer: AssetLocalizer | None = None,
    ) -> ConvertedPost:
        """Run a single post through the pipeline.

        Failures are not raised. They are reported as a ConversionErrorEvent
        whose type names the failed stage, and returned as an unsuccessful
        ConvertedPost.

        Args:
            raw_post: A single entry of the export's "posts" array
            output_dir: Root directory for converted posts
            index: Zero-based position of the post, used for fallback slugs
            localizer: Asset localizer to use (default: the converter's own)

        Returns:
            ConvertedPost describing the outcome
        """
        localizer = localizer or self.asset_localizer
        slug = fallback_slug(raw_post, index)
        title = _raw_field(raw_post, "title")

        try:
            metadata = self.post_parser.parse(raw_post)
            slug = metadata.slug
            title = metadata.title

            body = self.markdown_transformer.transform(metadata.content_markdown)
            context = self.layout.prepare_assets(output_dir, slug)
            assets = localizer.localize_with_context(body, context)
            self._report_assets(slug, assets)

            frontmatter = self.frontmatter_generator.generate(metadata)
            output_path = self.file_writer.write_post(
                output_dir, slug, frontmatter, assets.markdown
            )
        except Exception as e:
            error_type = e.kind if isinstance(e, DistillerError) else "fatal"
            message = str(e) or type(e).__name__
            self._report("error", f"Error converting {slug}: {message}")
            self.events.emit(ConversionErrorEvent(type=error_type, message=message, slug=slug))
            return ConvertedPost(slug=slug, title=title, success=False, error=message)

        # The document is on disk, so a reporting failure must not fail the post.
        try:
            self._report("success", f"Created: {output_path}")
        except Exception as e:
            logger.error(f"Could not report conversion of {slug}: {e}")
        return ConvertedPost(
            slug=slug, title=title, output_path=str(output_path), success=True
        )

    @property
    def _active_logger(self) -> ConversionLogger | None:
        return self._run_logger or self.conversion_logger

    def _report(self, level: str, message: str) -> None:
        run_logger = self._active_logger
        if run_logger is not None:
            getattr(run_logger, level)(message)
        else:
            logger.log(LOG_LEVELS[level], message)

    def _load_posts(self, export_path: Path) -> list:
        """Load and validate the export's posts array."""
        if not export_path.is_file():
            raise ExportError(f"Export file not found: {export_path}")

        try:
            text = export_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ExportError(f"Cannot read export file {export_path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ExportError(f"Invalid JSON in export file {export_path}: {e}") from e

        if not isinstance(data, dict):
            raise ExportError("Export file must contain a JSON object")
        if "posts" not in data:
            raise ExportError('Export file must contain a "posts" array')

        try:
            export = HashnodeExport.model_validate(data)
        except ValidationError as e:
            raise ExportError('Export file "posts" must be an array') from e

        return export.posts

    def _prepare_output_dir(self, output_dir: Path) -> None:
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportError(f"Cannot create output directory {output_dir}: {e}") from e

    def _convert_posts(
        self,
        posts: list,
        output_dir: Path,
        options: ConversionOptions,
        localizer: AssetLocalizer,
    ) -> ConversionResult:
        result = ConversionResult()
        total = len(posts)

        if total == 0:
            self._report("warn", "No posts found in export")
            return result

        self._report("info", f"Found {total} posts to convert")

        for i, raw_post in enumerate(posts):
            index = i + 1
            post_started = monotonic()
            skipped = False
            try:
                post = raw_post if isinstance(raw_post, dict) else {}
                self.events.emit(ConversionStarting(post=post, index=index, total=total))
                outcome, skipped = self._process_post(
                    raw_post, i, total, output_dir, options, localizer
                )
            except Exception as e:
                slug = fallback_slug(raw_post, i)
                message = str(e) or type(e).__name__
                logger.error(f"Unexpected error converting {slug}: {message}")
                self._emit_isolated(ConversionErrorEvent(type="fatal", message=message, slug=slug))
                outcome = ConvertedPost(
                    slug=slug, title=_raw_field(raw_post, "title"), success=False, error=message
                )

            if skipped:
                result.skipped += 1
            elif outcome.success:
                result.converted += 1
            else:
                result.errors.append(
                    ConversionErrorRecord(slug=outcome.slug, error=outcome.error or "Unknown error")
                )

            duration_ms = int((monotonic() - post_started) * 1000)
            self._emit_isolated(
                ConversionCompleted(result=outcome, index=index, total=total, duration_ms=duration_ms)
            )

        return result

    def _emit_isolated(self, event: Any) -> None:
        """Emit an event whose listener failures must not stop the run."""
        try:
            self.events.emit(event)
        except Exception as e:
            logger.error(f"{type(event).__name__} listener failed: {e}")

    def _process_post(
        self,
        raw_post: Any,
        i: int,
        total: int,
        output_dir: Path,
        options: ConversionOptions,
        localizer: AssetLocalizer,
    ) -> tuple[ConvertedPost, bool]:
        slug = _raw_field(raw_post, "slug")
        title = _raw_field(raw_post, "title")
        position = f"[{i + 1}/{total}]"

        if options.skip_existing and slug and self.layout.exists(output_dir, slug):
            self._report("info", f'{position} Skipped: "{title}" ({slug})')
            outcome = ConvertedPost(
                slug=slug,
                title=title,
                output_path=str(self.layout.output_path(output_dir, slug)),
                success=True,
            )
            return outcome, True

        label = slug or fallback_slug(raw_post, i)
        self._report("info", f'{position} Converting: "{title}" ({label})')
        return self.convert_post(raw_post, output_dir, index=i, localizer=localizer), False

    def _report_assets(self, slug: str, assets: AssetProcessingResult) -> None:
        """Log image outcomes and emit AssetDownloaded events."""
        for outcome in assets.outcomes:
            if outcome.status == "downloaded":
                self._report("success", f"Downloaded: {outcome.filename}")
            elif outcome.status == "cached":
                self._report("success", f"Image already exists: {outcome.filename}")
            elif outcome.status == "failed":
                self._report("warn", f"Failed to download {outcome.filename}: {outcome.error}")
            elif outcome.status == "forbidden":
                self._report("error", f"[HTTP 403] Image not accessible: {outcome.url} (post: {slug})")
                if self._active_logger is not None:
                    self._active_logger.track_http403(slug, outcome.filename, outcome.url)
            elif outcome.status == "skipped_forbidden":
                self._report("info", f"Skipped previously denied image: {outcome.filename}")
            else:
                self._report("warn", f"Could not extract hash from: {outcome.url}")

            if outcome.status in EVENT_STATUSES:
                self.events.emit(
                    AssetDownloaded(
                        filename=outcome.filename,
                        post_slug=slug,
                        success=outcome.success,
                        error=outcome.error,
                        is_permanent=outcome.permanent,
                    )
                )


def fallback_slug(raw_post: Any, index: int) -> str:
    """Identify a post that may not have a usable slug.

    Examples:
        >>> fallback_slug({"slug": " hello "}, 0)
        'hello'
        >>> fallback_slug({}, 2)
        'unknown-post-2'
    """
    return _raw_field(raw_post, "slug") or f"unknown-post-{index}"


def _raw_field(raw_post: Any, name: str) -> str:
    if not isinstance(raw_post, dict):
        return ""
    value = raw_post.get(name)
    return value.strip() if isinstance(value, str) else ""
