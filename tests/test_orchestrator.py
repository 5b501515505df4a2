"""Tests for the Converter orchestrator."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from schemas.assets import AssetProcessingResult, DownloadOutcome
from schemas.events import (
    AssetDownloaded,
    ConversionCompleted,
    ConversionErrorEvent,
    ConversionStarting,
)
from schemas.options import (
    ConversionOptions,
    ConverterConfig,
    DownloadOptions,
    LoggerConfig,
    OutputStructure,
)

from hashnode_distiller.assets import AssetLocalizer
from hashnode_distiller.exceptions import ExportError
from hashnode_distiller.pipeline import Converter, fallback_slug
from hashnode_distiller.services import ConversionLogger

EVENT_TYPES = (ConversionStarting, AssetDownloaded, ConversionErrorEvent, ConversionCompleted)


@pytest.fixture
def converter(fake_downloader):
    """Nested-mode converter with a fake downloader."""
    return Converter(asset_localizer=AssetLocalizer(downloader=fake_downloader))


@pytest.fixture
def flat_converter(fake_downloader):
    """Flat-mode converter with a fake downloader."""
    config = ConverterConfig(output_structure=OutputStructure(mode="flat"))
    return Converter(asset_localizer=AssetLocalizer(downloader=fake_downloader), config=config)


def record_events(converter: Converter) -> list:
    events = []
    for event_type in EVENT_TYPES:
        converter.on(event_type, events.append)
    return events


class TestConvertAllPosts:
    """Tests for Converter.convert_all_posts()."""

    def test_converts_sample_post(self, converter, sample_post, write_export, output_dir, image_urls):
        """A post is written with frontmatter and a localized image."""
        export_path = write_export([sample_post])

        result = converter.convert_all_posts(export_path, output_dir)

        assert result.converted == 1
        assert result.skipped == 0
        assert result.errors == []

        post_dir = output_dir / "hello-world"
        document = (post_dir / "index.md").read_text(encoding="utf-8")
        assert document.startswith('---\ntitle: "Hello World"\n')
        assert "date: 2023-01-01T12:00:00.000Z\n" in document
        assert f"![diagram](./{image_urls['filename_1']})" in document
        assert "align=" not in document
        assert "cdn.hashnode.com/res/hashnode/image/upload/v1700000000000" not in document

        assert (post_dir / image_urls["filename_1"]).read_bytes() == b"image-bytes"
        marker = post_dir / ".downloaded-markers" / f"{image_urls['filename_1']}.marker"
        assert marker.read_text() == ""

    def test_transient_failure_keeps_remote_url(
        self, converter, fake_downloader, sample_post, write_export, output_dir, image_urls
    ):
        """A failed download leaves the CDN URL and a non-empty marker."""
        fake_downloader.responses[image_urls["url_1"]] = DownloadOutcome(
            success=False, error="HTTP 500: server error"
        )
        export_path = write_export([sample_post])

        result = converter.convert_all_posts(export_path, output_dir)

        assert result.converted == 1
        post_dir = output_dir / "hello-world"
        document = (post_dir / "index.md").read_text(encoding="utf-8")
        assert f"![diagram]({image_urls['url_1']})" in document
        assert not (post_dir / image_urls["filename_1"]).exists()
        marker = post_dir / ".downloaded-markers" / f"{image_urls['filename_1']}.marker"
        assert "HTTP 500" in marker.read_text()

    def test_second_run_skips_existing(self, converter, make_post, write_export, output_dir):
        """Rerunning skips converted posts and leaves their files unchanged."""
        export_path = write_export([make_post("one"), make_post("two")])
        converter.convert_all_posts(export_path, output_dir)
        before = {p: p.read_bytes() for p in output_dir.rglob("*.md")}

        result = converter.convert_all_posts(export_path, output_dir)

        assert result.converted == 0
        assert result.skipped == 2
        assert result.errors == []
        assert {p: p.read_bytes() for p in output_dir.rglob("*.md")} == before

    def test_rerun_without_skip_uses_cached_images(
        self, converter, fake_downloader, sample_post, write_export, output_dir
    ):
        """Reconverting a post does not download its images again."""
        export_path = write_export([sample_post])
        converter.convert_all_posts(export_path, output_dir)
        document_path = output_dir / "hello-world" / "index.md"
        first = document_path.read_bytes()

        result = converter.convert_all_posts(
            export_path, output_dir, ConversionOptions(skip_existing=False)
        )

        assert result.converted == 1
        assert len(fake_downloader.calls) == 1
        assert document_path.read_bytes() == first

    def test_failure_isolation(self, converter, make_post, write_export, output_dir):
        """A malformed post fails alone; the others are converted."""
        broken = make_post("broken")
        del broken["title"]
        export_path = write_export([make_post("first"), broken, make_post("third")])

        result = converter.convert_all_posts(export_path, output_dir)

        assert result.converted == 2
        assert result.failed == 1
        assert result.errors[0].slug == "broken"
        assert result.errors[0].error == "Missing required field: title"
        assert (output_dir / "first" / "index.md").exists()
        assert (output_dir / "third" / "index.md").exists()
        assert not (output_dir / "broken").exists()

    def test_non_object_post(self, converter, make_post, write_export, output_dir):
        """Entries that are not objects fail as parse errors."""
        export_path = write_export(["not a post", make_post("ok")])
        events = record_events(converter)

        result = converter.convert_all_posts(export_path, output_dir)

        assert result.converted == 1
        assert result.errors[0].slug == "unknown-post-0"
        errors = [e for e in events if isinstance(e, ConversionErrorEvent)]
        assert errors[0].type == "parse"

    def test_fallback_slug_for_missing_slug(self, converter, make_post, write_export, output_dir):
        """Posts without a slug are identified by position."""
        nameless = make_post("x")
        del nameless["slug"]
        export_path = write_export([make_post("ok"), nameless])

        result = converter.convert_all_posts(export_path, output_dir)

        assert result.errors[0].slug == "unknown-post-1"
        assert result.errors[0].error == "Missing required field: slug"

    def test_empty_export(self, converter, write_export, output_dir, caplog):
        """An export without posts converts nothing."""
        export_path = write_export([])

        result = converter.convert_all_posts(export_path, output_dir)

        assert result.converted == 0
        assert result.skipped == 0
        assert result.errors == []
        assert "No posts found in export" in caplog.text

    def test_duration_is_set(self, converter, make_post, write_export, output_dir):
        """The result carries a formatted duration."""
        result = converter.convert_all_posts(write_export([make_post("a")]), output_dir)

        assert result.duration.endswith("s")
        assert result.elapsed_seconds >= 0


class TestFatalErrors:
    """Tests for errors that abort a run."""

    def test_missing_export(self, converter, tmp_path, output_dir):
        """A missing export file raises ExportError."""
        with pytest.raises(ExportError, match="Export file not found"):
            converter.convert_all_posts(tmp_path / "missing.json", output_dir)

    def test_invalid_json(self, converter, tmp_path, output_dir):
        """Invalid JSON raises ExportError."""
        export_path = tmp_path / "export.json"
        export_path.write_text("{not json")

        with pytest.raises(ExportError, match="Invalid JSON in export file"):
            converter.convert_all_posts(export_path, output_dir)

    @pytest.mark.parametrize(
        "data,message",
        [
            ([], "Export file must contain a JSON object"),
            ({"articles": []}, 'Export file must contain a "posts" array'),
            ({"posts": "nope"}, 'Export file "posts" must be an array'),
        ],
    )
    def test_bad_export_structure(self, converter, tmp_path, output_dir, data, message):
        """Exports without a posts array raise ExportError."""
        export_path = tmp_path / "export.json"
        export_path.write_text(json.dumps(data))

        with pytest.raises(ExportError) as exc_info:
            converter.convert_all_posts(export_path, output_dir)

        assert exc_info.value.message == message

    def test_output_dir_is_a_file(self, converter, make_post, write_export, tmp_path):
        """An output path that cannot be a directory raises ExportError."""
        output_dir = tmp_path / "occupied"
        output_dir.write_text("file")

        with pytest.raises(ExportError, match="Cannot create output directory"):
            converter.convert_all_posts(write_export([make_post("a")]), output_dir)

    def test_fatal_event_without_slug(self, converter, tmp_path, output_dir):
        """Fatal errors emit one error event with no slug."""
        events = record_events(converter)

        with pytest.raises(ExportError):
            converter.convert_all_posts(tmp_path / "missing.json", output_dir)

        assert len(events) == 1
        assert events[0].type == "fatal"
        assert events[0].slug is None
        assert "Export file not found" in events[0].message


class TestEvents:
    """Tests for the conversion event stream."""

    def test_event_order(self, converter, sample_post, write_export, output_dir):
        """Each post emits starting, its asset events, then completed."""
        events = record_events(converter)

        converter.convert_all_posts(write_export([sample_post]), output_dir)

        assert [type(e) for e in events] == [ConversionStarting, AssetDownloaded, ConversionCompleted]
        assert events[0].index == 1
        assert events[0].total == 1
        assert events[0].title == "Hello World"
        assert events[1].post_slug == "hello-world"
        assert events[1].success is True
        assert events[2].result.success is True
        assert events[2].duration_ms >= 0

    def test_one_completed_per_post(self, converter, make_post, write_export, output_dir):
        """Every post gets exactly one completed event, failed or not."""
        broken = make_post("broken", contentMarkdown=None)
        export_path = write_export([make_post("a"), broken, make_post("c")])
        completed = []
        converter.on(ConversionCompleted, completed.append)

        converter.convert_all_posts(export_path, output_dir)

        assert [e.index for e in completed] == [1, 2, 3]
        assert [e.result.success for e in completed] == [True, False, True]

    def test_error_event_precedes_completed(self, converter, make_post, write_export, output_dir):
        """A failing post reports its error before completing."""
        broken = make_post("broken", dateAdded="yesterday")
        events = record_events(converter)

        converter.convert_all_posts(write_export([broken]), output_dir)

        assert [type(e) for e in events] == [ConversionStarting, ConversionErrorEvent, ConversionCompleted]
        assert events[1].type == "parse"
        assert events[1].slug == "broken"

    def test_skipped_post_events(self, converter, make_post, write_export, output_dir):
        """Skipped posts complete successfully with their output path."""
        export_path = write_export([make_post("a")])
        converter.convert_all_posts(export_path, output_dir)
        completed = []
        converter.on(ConversionCompleted, completed.append)

        converter.convert_all_posts(export_path, output_dir)

        outcome = completed[0].result
        assert outcome.success is True
        assert outcome.output_path == str((output_dir / "a" / "index.md").resolve())

    def test_forbidden_asset_event(
        self, fake_downloader, sample_post, write_export, output_dir, image_urls
    ):
        """Denied images emit a permanent failure and are tracked for the summary."""
        run_logger = ConversionLogger()
        converter = Converter(
            asset_localizer=AssetLocalizer(downloader=fake_downloader),
            conversion_logger=run_logger,
        )
        fake_downloader.responses[image_urls["url_1"]] = DownloadOutcome(
            success=False, permanent=True, error="HTTP 403: Forbidden"
        )
        assets = []
        converter.on(AssetDownloaded, assets.append)

        result = converter.convert_all_posts(write_export([sample_post]), output_dir)

        assert result.converted == 1
        assert assets[0].success is False
        assert assets[0].is_permanent is True
        assert run_logger.http403_errors[0]["slug"] == "hello-world"
        marker = output_dir / "hello-world" / ".downloaded-markers" / f"{image_urls['filename_1']}.marker.403"
        assert marker.exists()

    def test_previously_denied_image_has_no_event(
        self, converter, fake_downloader, sample_post, write_export, output_dir, image_urls
    ):
        """Images skipped because of a 403 marker are not reported as events."""
        fake_downloader.responses[image_urls["url_1"]] = DownloadOutcome(
            success=False, permanent=True, error="HTTP 403: Forbidden"
        )
        export_path = write_export([sample_post])
        converter.convert_all_posts(export_path, output_dir)
        assets = []
        converter.on(AssetDownloaded, assets.append)

        converter.convert_all_posts(export_path, output_dir, ConversionOptions(skip_existing=False))

        assert assets == []
        assert len(fake_downloader.calls) == 1

    def test_localizer_exception_is_transient(
        self, converter, fake_downloader, sample_post, write_export, output_dir, image_urls
    ):
        """Unexpected downloader exceptions do not fail the post."""
        fake_downloader.responses[image_urls["url_1"]] = RuntimeError("socket closed")
        assets = []
        converter.on(AssetDownloaded, assets.append)

        result = converter.convert_all_posts(write_export([sample_post]), output_dir)

        assert result.converted == 1
        assert assets[0].success is False
        assert assets[0].is_permanent is False
        assert assets[0].error == "socket closed"

    def test_failing_starting_listener_is_isolated(self, converter, make_post, write_export, output_dir):
        """A listener raising for one post fails that post only."""

        def fail_on_first(event):
            if event.index == 1:
                raise RuntimeError("listener boom")

        converter.on(ConversionStarting, fail_on_first)
        completed = []
        converter.on(ConversionCompleted, completed.append)
        export_path = write_export([make_post("a"), make_post("b"), make_post("c")])

        result = converter.convert_all_posts(export_path, output_dir)

        assert result.converted == 2
        assert result.errors[0].slug == "a"
        assert result.errors[0].error == "listener boom"
        assert [e.index for e in completed] == [1, 2, 3]
        assert (output_dir / "b" / "index.md").exists()
        assert (output_dir / "c" / "index.md").exists()

    def test_failing_completed_listener_is_isolated(
        self, converter, make_post, write_export, output_dir, caplog
    ):
        """A listener raising on completion does not stop the run."""

        def fail(event):
            raise RuntimeError("listener boom")

        converter.on(ConversionCompleted, fail)
        export_path = write_export([make_post("a"), make_post("b")])

        result = converter.convert_all_posts(export_path, output_dir)

        assert result.converted == 2
        assert result.errors == []
        assert "ConversionCompleted listener failed: listener boom" in caplog.text


class TestFlatMode:
    """Tests for the flat output layout."""

    def test_flat_output(self, flat_converter, sample_post, write_export, output_dir, image_urls):
        """Flat mode writes {slug}.md and a shared image folder."""
        result = flat_converter.convert_all_posts(write_export([sample_post]), output_dir)

        assert result.converted == 1
        document = (output_dir / "hello-world.md").read_text(encoding="utf-8")
        assert f"![diagram](/images/{image_urls['filename_1']})" in document

        image_dir = output_dir.parent / "_images"
        assert (image_dir / image_urls["filename_1"]).exists()
        assert (image_dir / ".downloaded-markers" / f"{image_urls['filename_1']}.marker").exists()
        assert not (output_dir / "hello-world").exists()

    def test_flat_skip_checks_file(self, flat_converter, make_post, write_export, output_dir):
        """Flat mode skips posts whose markdown file exists."""
        export_path = write_export([make_post("a")])
        flat_converter.convert_all_posts(export_path, output_dir)

        result = flat_converter.convert_all_posts(export_path, output_dir)

        assert result.skipped == 1

    def test_shared_image_downloaded_once(
        self, flat_converter, fake_downloader, make_post, write_export, output_dir, image_urls
    ):
        """Posts sharing an image in flat mode fetch it once."""
        body = f"![shared]({image_urls['url_2']})"
        export_path = write_export([make_post("a", body), make_post("b", body)])

        flat_converter.convert_all_posts(export_path, output_dir)

        assert fake_downloader.urls == [image_urls["url_2"]]
        for slug in ("a", "b"):
            document = (output_dir / f"{slug}.md").read_text(encoding="utf-8")
            assert f"![shared](/images/{image_urls['filename_2']})" in document

    def test_layouts_produce_same_document(
        self, fake_downloader, sample_post, write_export, tmp_path, image_urls
    ):
        """Nested and flat documents differ only in image references."""
        export_path = write_export([sample_post])
        nested_dir = tmp_path / "nested" / "posts"
        flat_dir = tmp_path / "flat" / "posts"

        Converter(asset_localizer=AssetLocalizer(downloader=fake_downloader)).convert_all_posts(
            export_path, nested_dir
        )
        Converter(
            asset_localizer=AssetLocalizer(downloader=fake_downloader),
            config=ConverterConfig(output_structure=OutputStructure(mode="flat")),
        ).convert_all_posts(export_path, flat_dir)

        nested = (nested_dir / "hello-world" / "index.md").read_text(encoding="utf-8")
        flat = (flat_dir / "hello-world.md").read_text(encoding="utf-8")
        filename = image_urls["filename_1"]
        assert nested.replace(f"./{filename}", "IMG") == flat.replace(f"/images/{filename}", "IMG")

    def test_flat_mode_at_filesystem_root(self, flat_converter, make_post):
        """A root-level output directory fails each post as a write error."""
        errors = []
        flat_converter.on(ConversionErrorEvent, errors.append)

        result = flat_converter.convert_post(make_post("a"), "/output-root-level")

        assert result.success is False
        assert "Invalid outputDir for flat mode" in result.error
        assert errors[0].type == "write"


class TestConvertPost:
    """Tests for Converter.convert_post()."""

    def test_returns_output_path(self, converter, make_post, output_dir):
        """Successful posts report an absolute output path."""
        result = converter.convert_post(make_post("single"), output_dir)

        assert result.success is True
        assert result.title == "Single"
        assert result.output_path == str((output_dir / "single" / "index.md").resolve())

    def test_unexpected_error_is_fatal(self, make_post, output_dir, fake_downloader):
        """Exceptions outside the pipeline's own errors are typed fatal."""
        generator = MagicMock()
        generator.generate.side_effect = RuntimeError("template exploded")
        converter = Converter(
            asset_localizer=AssetLocalizer(downloader=fake_downloader),
            frontmatter_generator=generator,
        )
        errors = []
        converter.on(ConversionErrorEvent, errors.append)

        result = converter.convert_post(make_post("a"), output_dir)

        assert result.success is False
        assert result.error == "template exploded"
        assert errors[0].type == "fatal"

    def test_reporting_failure_after_write(self, make_post, output_dir, fake_downloader, caplog):
        """A written post stays successful when its success line cannot be logged."""
        run_logger = MagicMock()
        run_logger.success.side_effect = OSError("log disk full")
        converter = Converter(
            asset_localizer=AssetLocalizer(downloader=fake_downloader),
            conversion_logger=run_logger,
        )

        result = converter.convert_post(make_post("a"), output_dir)

        assert result.success is True
        assert (output_dir / "a" / "index.md").exists()
        assert "Could not report conversion of a: log disk full" in caplog.text

    def test_non_string_content(self, converter, make_post, output_dir):
        """Non-string content fails as a parse error before transforming."""
        errors = []
        converter.on(ConversionErrorEvent, errors.append)

        converter.convert_post(make_post("a", body=42), output_dir)

        assert errors[0].type == "parse"


class TestRunOptions:
    """Tests for per-run options."""

    def test_logger_config_writes_log_file(self, converter, make_post, write_export, output_dir, tmp_path):
        """A logger config creates a log file with a summary for the run."""
        log_path = tmp_path / "conversion.log"
        options = ConversionOptions(logger_config=LoggerConfig(file_path=log_path))

        converter.convert_all_posts(write_export([make_post("a")]), output_dir, options)

        text = log_path.read_text(encoding="utf-8")
        assert "Found 1 posts to convert" in text
        assert '[1/1] Converting: "A" (a)' in text
        assert "Converted: 1 posts" in text

    def test_download_options_create_run_localizer(self, make_post, write_export, output_dir):
        """download_options builds a localizer for the run and closes it."""
        options = ConversionOptions(download_options=DownloadOptions(max_retries=1, download_delay=0))

        with patch("hashnode_distiller.pipeline.orchestrator.AssetLocalizer") as mock_localizer:
            mock_localizer.return_value.localize_with_context.return_value = AssetProcessingResult(
                markdown="Body text"
            )
            converter = Converter(asset_localizer=MagicMock())
            result = converter.convert_all_posts(write_export([make_post("a")]), output_dir, options)

        assert result.converted == 1
        mock_localizer.assert_called_once_with(options=options.download_options)
        mock_localizer.return_value.close.assert_called_once()
        converter.asset_localizer.localize_with_context.assert_not_called()

    def test_logs_to_module_logger_without_run_logger(self, converter, make_post, write_export, output_dir, caplog):
        """Progress goes to the logging hierarchy when no run logger is set."""
        caplog.set_level(logging.INFO)

        converter.convert_all_posts(write_export([make_post("a")]), output_dir)

        assert "Found 1 posts to convert" in caplog.text
        assert "Created:" in caplog.text


class TestConstructors:
    """Tests for convenience constructors and lifecycle."""

    def test_with_progress(self, fake_downloader, make_post, write_export, output_dir):
        """The progress callback receives index, total and title."""
        calls = []
        converter = Converter.with_progress(
            lambda index, total, title: calls.append((index, total, title)),
            asset_localizer=AssetLocalizer(downloader=fake_downloader),
        )

        converter.convert_all_posts(write_export([make_post("first-post"), make_post("second")]), output_dir)

        assert calls == [(1, 2, "First Post"), (2, 2, "Second")]

    def test_from_export_file(self, fake_downloader, make_post, write_export, output_dir):
        """from_export_file converts with a one-off converter."""
        result = Converter.from_export_file(
            write_export([make_post("a")]),
            output_dir,
            asset_localizer=AssetLocalizer(downloader=fake_downloader),
        )

        assert result.converted == 1
        assert fake_downloader.closed is False

    def test_close_owned_localizer(self):
        """Converters close the localizer they created."""
        converter = Converter()
        localizer = MagicMock()
        converter._asset_localizer = localizer

        converter.close()

        localizer.close.assert_called_once()

    def test_injected_localizer_not_closed(self):
        """Injected localizers are left open."""
        localizer = MagicMock()

        with Converter(asset_localizer=localizer):
            pass

        localizer.close.assert_not_called()

    def test_default_writer_matches_layout(self):
        """The default writer follows the configured output mode."""
        converter = Converter(
            config=ConverterConfig(output_structure=OutputStructure(mode="flat"))
        )

        assert converter.file_writer.output_mode == "flat"
        assert converter.file_writer.overwrite is True


class TestFallbackSlug:
    """Tests for fallback_slug()."""

    def test_uses_trimmed_slug(self):
        """The raw slug is used when present."""
        assert fallback_slug({"slug": "  my-post "}, 3) == "my-post"

    @pytest.mark.parametrize("raw", [{}, {"slug": "  "}, {"slug": 5}, "not a dict", None])
    def test_position_fallback(self, raw):
        """Missing or unusable slugs fall back to the position."""
        assert fallback_slug(raw, 3) == "unknown-post-3"
